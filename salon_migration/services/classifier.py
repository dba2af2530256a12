"""Filename-based detection of entity type, target table and import order."""

import logging
import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from ..models.record import UNKNOWN_ORDER, ClassifiedFile, SourceFile
from ..utils import normalize_header, strip_accents

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FileMapping:
    key: str
    table: str
    order: int


# Declaration order is the fallback tie-break between equally long keys.
FILE_MAPPINGS: Tuple[FileMapping, ...] = (
    FileMapping("dados_salao", "configuracoes", 1),
    FileMapping("categorias_servicos", "categorias", 2),
    FileMapping("clientes", "clientes", 3),
    FileMapping("clientes_temp", "clientes", 3),
    FileMapping("profissionais", "profissionais", 4),
    FileMapping("servicos", "servicos", 5),
    FileMapping("produtos", "produtos", 6),
    FileMapping("fornecedores", "fornecedores", 7),
    FileMapping("agenda", "agendamentos", 8),
    FileMapping("agendamentos", "agendamentos", 8),
    FileMapping("vendas", "atendimentos", 9),
    FileMapping("vendas_produtos", "atendimento_produtos", 10),
    FileMapping("vendas_servicos", "atendimento_servicos", 11),
    FileMapping("pagamentos", "pagamentos", 12),
    FileMapping("caixa", "caixa", 13),
    FileMapping("comissoes_servicos", "comissoes", 14),
    FileMapping("movimento_estoque", "estoque_movimentos", 15),
    FileMapping("cheques", "cheques", 16),
)

# Header names that give away the entity of an otherwise unknown file
HEADER_HINTS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("clientes", ("cpf", "data_nascimento", "nascimento", "celular")),
    ("servicos", ("duracao", "duracao_minutos", "tempo")),
    ("produtos", ("estoque", "estoque_atual", "codigo_barras", "preco_custo")),
    ("profissionais", ("comissao", "comissao_padrao", "especialidade")),
)

_EXTENSIONS = re.compile(r"\.(csv|txt|json|sql)$")
_SEPARATORS = re.compile(r"[\s_\-]+")


def normalize_filename(filename: str) -> str:
    """
    Lower-case, strip the extension and diacritics, collapse separators.

    >>> normalize_filename("Vendas - Produtos.CSV")
    'vendas_produtos'
    """
    name = filename.replace("\\", "/").rsplit("/", 1)[-1]
    name = strip_accents(name.strip().lower())
    name = _EXTENSIONS.sub("", name)
    return _SEPARATORS.sub("_", name).strip("_")


class FileClassifier:
    """
    Maps legacy export filenames to target tables.

    An exact key match wins. Otherwise every key contained in the normalized
    name is a candidate and the longest one wins, so ``vendas_produtos`` is not
    swallowed by ``vendas``. Unknown files get order 999 and sort last.
    """

    def __init__(self, mappings: Iterable[FileMapping] = FILE_MAPPINGS):
        self.mappings: List[FileMapping] = list(mappings)

    def match(self, filename: str) -> Optional[FileMapping]:
        name = normalize_filename(filename)
        if not name:
            return None

        best: Optional[FileMapping] = None
        for mapping in self.mappings:
            if mapping.key == name:
                return mapping
            if mapping.key in name and (best is None or len(mapping.key) > len(best.key)):
                best = mapping
        return best

    def classify(self, source: SourceFile) -> ClassifiedFile:
        """Classify a file by name. Known files are selected by default."""
        mapping = self.match(source.name)
        if mapping is None:
            logger.debug(f"Unknown file type: {source.name}")
            return ClassifiedFile(source=source)

        return ClassifiedFile(
            source=source,
            entity_type=mapping.table,
            target_table=mapping.table,
            import_order=mapping.order,
            selected=True,
        )

    def classify_all(self, sources: Iterable[SourceFile]) -> List[ClassifiedFile]:
        """Classify a batch of files, sorted by import order (stable)."""
        classified = [self.classify(s) for s in sources]
        return sorted(classified, key=lambda c: c.import_order)

    def order_of(self, table: str) -> int:
        for mapping in self.mappings:
            if mapping.table == table:
                return mapping.order
        return UNKNOWN_ORDER

    @staticmethod
    def suggest_from_headers(headers: Iterable[str]) -> Optional[str]:
        """Guess an entity from column names. Used only as a suggestion."""
        normalized = {normalize_header(h) for h in headers}
        for entity, hints in HEADER_HINTS:
            if normalized.intersection(hints):
                return entity
        return None
