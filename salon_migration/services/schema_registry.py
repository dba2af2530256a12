"""Registry of entity schemas: field aliases, defaults and import phases."""

import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from ..models.schema import Coercion, EntitySchema, FieldRule, Reference
from ..utils import PLACEHOLDER_PHONE, normalize_header

logger = logging.getLogger(__name__)

# Import phases: reference data first, sales last
PHASE_REFERENCE = 1
PHASE_PEOPLE = 2
PHASE_CATALOG = 3
PHASE_SCHEDULE = 4
PHASE_SALES = 5


def _rule(target, aliases=None, coerce=Coercion.TEXT, default=None, fill=None) -> FieldRule:
    return FieldRule(
        target=target,
        aliases=aliases or [target],
        coerce=coerce,
        default=default,
        fill=fill,
    )


def builtin_schemas() -> List[EntitySchema]:
    """Schemas for every entity the pipeline knows how to import."""
    return [
        EntitySchema(
            name="categorias",
            table="categorias",
            name_field="nome",
            phase=PHASE_REFERENCE,
            key_fields=["nome"],
            json_aliases=["categorias", "categories", "categorias_servicos"],
            fields=[
                _rule("nome", ["nome", "name", "categoria", "descricao"]),
                _rule("descricao", ["descricao", "description"]),
                _rule("tipo", ["tipo", "type"], default="servico"),
                _rule("ativo", ["ativo", "active"], Coercion.ACTIVE, default=True),
            ],
        ),
        EntitySchema(
            name="fornecedores",
            table="fornecedores",
            name_field="nome",
            phase=PHASE_REFERENCE,
            key_fields=["cnpj", "nome"],
            json_aliases=["fornecedores", "suppliers"],
            fields=[
                _rule("nome", ["nome", "name", "fornecedor", "razao_social"]),
                _rule("cnpj", ["cnpj", "cpf_cnpj", "documento"], Coercion.DIGITS),
                _rule("telefone", ["telefone", "tel", "fone", "celular"], Coercion.PHONE),
                _rule("email", ["email", "e_mail"], Coercion.LOWER),
                _rule("contato", ["contato", "responsavel"]),
                _rule("endereco", ["endereco", "rua"]),
                _rule("cidade"),
                _rule("estado", ["estado", "uf"]),
                _rule("observacoes", ["observacoes", "obs"]),
            ],
        ),
        EntitySchema(
            name="clientes",
            table="clientes",
            name_field="nome",
            phase=PHASE_PEOPLE,
            key_fields=["celular", "cpf", "email"],
            json_aliases=["clientes", "clients", "customers"],
            fields=[
                _rule("nome", ["nome", "name", "cliente"]),
                _rule("celular", ["celular", "cel", "telefone", "fone"], Coercion.PHONE,
                      default=PLACEHOLDER_PHONE),
                _rule("telefone", ["telefone", "tel", "fone"], Coercion.PHONE),
                _rule("email", ["email", "e_mail"], Coercion.LOWER),
                _rule("cpf", ["cpf", "cpf_cnpj"], Coercion.DIGITS),
                _rule("data_nascimento", ["data_nascimento", "nascimento"], Coercion.DATE),
                _rule("endereco", ["endereco", "rua"]),
                _rule("bairro"),
                _rule("cidade"),
                _rule("estado", ["estado", "uf"]),
                _rule("cep", ["cep"], Coercion.DIGITS),
                _rule("observacoes", ["observacoes", "obs"]),
            ],
        ),
        EntitySchema(
            name="profissionais",
            table="profissionais",
            name_field="nome",
            phase=PHASE_PEOPLE,
            key_fields=["nome"],
            json_aliases=["profissionais", "professionals", "funcionarios", "employees"],
            fields=[
                _rule("nome", ["nome", "name", "profissional"]),
                _rule("telefone", ["telefone", "tel", "celular"], Coercion.PHONE),
                _rule("email", ["email", "e_mail"], Coercion.LOWER),
                _rule("comissao_padrao", ["comissao", "comissao_padrao"], Coercion.NUMBER, default=50),
                _rule("comissao_servicos", ["comissao_servicos", "comissao"], Coercion.NUMBER, default=50),
                _rule("comissao_produtos", ["comissao_produtos"], Coercion.NUMBER, default=10),
                _rule("especialidade", ["especialidade", "funcao", "cargo"]),
                _rule("ativo", ["ativo", "active"], Coercion.ACTIVE, default=True),
                _rule("cor_agenda", ["cor_agenda", "cor"], default="#3B82F6"),
            ],
        ),
        EntitySchema(
            name="servicos",
            table="servicos",
            name_field="nome",
            phase=PHASE_CATALOG,
            key_fields=["nome"],
            json_aliases=["servicos", "services"],
            references=[Reference("categoria", "categorias")],
            fields=[
                _rule("nome", ["nome", "name", "servico", "descricao"]),
                _rule("preco", ["preco", "valor", "price"], Coercion.NUMBER, default=0),
                _rule("duracao_minutos", ["duracao", "duracao_minutos", "tempo"], Coercion.INTEGER, default=30),
                _rule("comissao", ["comissao", "comissao_percentual"], Coercion.NUMBER, default=50),
                _rule("descricao", ["descricao", "description"]),
                _rule("categoria", ["categoria", "category"], fill="Geral"),
                _rule("ativo", ["ativo", "active"], Coercion.ACTIVE, default=True),
            ],
        ),
        EntitySchema(
            name="produtos",
            table="produtos",
            name_field="nome",
            phase=PHASE_CATALOG,
            key_fields=["codigo_barras", "nome"],
            json_aliases=["produtos", "products"],
            fields=[
                _rule("nome", ["nome", "name", "produto", "descricao"]),
                _rule("preco_venda", ["preco_venda", "preco", "valor"], Coercion.NUMBER, default=0),
                _rule("preco_custo", ["preco_custo", "custo"], Coercion.NUMBER, default=0),
                _rule("estoque_atual", ["estoque", "estoque_atual", "quantidade"], Coercion.INTEGER, default=0),
                _rule("estoque_minimo", ["estoque_minimo", "estoque_min"], Coercion.INTEGER, default=0),
                _rule("codigo_barras", ["codigo_barras", "barcode", "ean"], Coercion.DIGITS),
                _rule("categoria", ["categoria", "category"], fill="Geral"),
                _rule("descricao", ["descricao", "description"]),
                _rule("ativo", ["ativo", "active"], Coercion.ACTIVE, default=True),
            ],
        ),
        EntitySchema(
            name="agendamentos",
            table="agendamentos",
            name_field="cliente_nome",
            phase=PHASE_SCHEDULE,
            key_fields=["cliente_nome+data_hora", "cliente_id+data_hora"],
            json_aliases=["agendamentos", "agenda", "appointments"],
            references=[
                Reference("cliente_nome", "clientes", "cliente_id", required=True),
                Reference("profissional_nome", "profissionais", "profissional_id"),
                Reference("servico_nome", "servicos", "servico_id"),
            ],
            fields=[
                _rule("cliente_nome", ["cliente", "cliente_nome", "nome_cliente", "nome"]),
                _rule("profissional_nome", ["profissional", "profissional_nome", "funcionario"]),
                _rule("servico_nome", ["servico", "servico_nome", "procedimento"]),
                _rule("data_hora", ["data_hora", "datahora", "data", "inicio"], Coercion.DATETIME),
                _rule("duracao_minutos", ["duracao", "duracao_minutos"], Coercion.INTEGER, default=30),
                _rule("valor", ["valor", "preco"], Coercion.NUMBER, default=0),
                _rule("status", ["status", "situacao"], default="agendado"),
                _rule("observacoes", ["observacoes", "obs"]),
            ],
        ),
        EntitySchema(
            name="atendimentos",
            table="atendimentos",
            name_field="data_hora",
            phase=PHASE_SALES,
            key_fields=[],
            json_aliases=["atendimentos", "vendas", "sales"],
            references=[
                Reference("cliente_nome", "clientes", "cliente_id"),
                Reference("profissional_nome", "profissionais", "profissional_id"),
            ],
            fields=[
                _rule("cliente_nome", ["cliente", "cliente_nome", "nome_cliente"]),
                _rule("profissional_nome", ["profissional", "vendedor", "funcionario"]),
                _rule("data_hora", ["data_hora", "data", "data_venda", "datahora"], Coercion.DATETIME),
                _rule("valor_total", ["valor_total", "total", "valor"], Coercion.NUMBER, default=0),
                _rule("desconto", ["desconto"], Coercion.NUMBER, default=0),
                _rule("forma_pagamento", ["forma_pagamento", "pagamento", "forma"], default="dinheiro"),
                _rule("status", ["status"], default="fechado"),
                _rule("observacoes", ["observacoes", "obs"]),
            ],
        ),
    ]


class EntityRegistry:
    """
    Registry of importable entities.

    Supports:
    - Built-in schemas for the salon tables
    - Overriding or adding schemas from JSON files
    - Resolving JSON backup keys (``clients``, ``customers``...) to entities
    """

    def __init__(self, schemas_dir: Optional[str] = None):
        self.schemas: Dict[str, EntitySchema] = {}
        for schema in builtin_schemas():
            self.register(schema)

        if schemas_dir:
            self.load_from_directory(schemas_dir)

    def register(self, schema: EntitySchema) -> None:
        """Register (or replace) an entity schema."""
        self.schemas[schema.name] = schema

    def load_from_directory(self, directory: str) -> int:
        """
        Load entity schema files from a directory.

        Args:
            directory: Path containing one JSON file per entity

        Returns:
            Number of schemas loaded
        """
        loaded = 0
        path = Path(directory)

        if not path.exists():
            logger.warning(f"Schema directory does not exist: {directory}")
            return 0

        for file_path in sorted(path.glob("*.json")):
            try:
                schema = EntitySchema.from_json_file(str(file_path))
            except (OSError, ValueError, KeyError) as e:
                logger.error(f"Failed to load schema from {file_path}: {e}")
                continue
            self.register(schema)
            loaded += 1
            logger.info(f"Loaded schema: {schema.name} from {file_path}")

        return loaded

    def get(self, entity: Optional[str]) -> Optional[EntitySchema]:
        if not entity:
            return None
        return self.schemas.get(entity)

    def is_supported(self, entity: Optional[str]) -> bool:
        return self.get(entity) is not None

    def entity_for_key(self, key: str) -> Optional[str]:
        """Resolve a JSON backup key or dump table name to an entity."""
        normalized = normalize_header(key)
        if normalized in self.schemas:
            return normalized
        for schema in self.schemas.values():
            if normalized in schema.json_aliases:
                return schema.name
        return None

    def ordered(self, entities: Iterable[str], order_of=None) -> List[str]:
        """Sort entities by import phase, then by classifier order when given."""
        def sort_key(entity):
            schema = self.schemas[entity]
            secondary = order_of(schema.table) if order_of else 0
            return (schema.phase, secondary)

        return sorted((e for e in entities if e in self.schemas), key=sort_key)

    def list_entities(self) -> List[str]:
        return list(self.schemas.keys())
