"""Pre-import validation of mapped datasets."""

import re
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from ..models.record import EntityDataset, FileOutcome, FileStatus, MappedRecord
from ..models.schema import EntitySchema
from ..models.session import ImportOptions
from ..models.validation import Severity, ValidationFinding, ValidationSummary
from ..utils import PLACEHOLDER_PHONE, digits_only, is_blank, normalize_name
from .merger import record_keys
from .schema_registry import EntityRegistry
from .triage import PROFILE_FIELDS

logger = logging.getLogger(__name__)

MAX_POSITIONS = 20


class ValidationRules:
    """Common validation rules that can be composed."""

    @staticmethod
    def email(value: Any) -> Optional[str]:
        """Validate email format."""
        if is_blank(value):
            return None

        email_pattern = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"
        if not re.match(email_pattern, str(value)):
            return "E-mail em formato inválido"
        return None

    @staticmethod
    def phone(value: Any) -> Optional[str]:
        """Validate phone length (DDD + number, optional country code)."""
        if is_blank(value) or value == PLACEHOLDER_PHONE:
            return None

        digits = digits_only(value)
        if len(digits) < 10 or len(digits) > 13:
            return "Telefone com quantidade de dígitos inválida"
        return None

    @staticmethod
    def non_negative(value: Any) -> Optional[str]:
        if isinstance(value, (int, float)) and value < 0:
            return "Valor negativo"
        return None

    @staticmethod
    def percentage(value: Any) -> Optional[str]:
        if isinstance(value, (int, float)) and not 0 <= value <= 100:
            return "Percentual fora do intervalo 0-100"
        return None

    @staticmethod
    def duration(value: Any) -> Optional[str]:
        if isinstance(value, (int, float)) and not 0 < value <= 600:
            return "Duração fora do intervalo de 1 a 600 minutos"
        return None

    @staticmethod
    def past_date(value: Any) -> Optional[str]:
        if is_blank(value):
            return None
        try:
            parsed = date.fromisoformat(str(value)[:10])
        except ValueError:
            return "Data inválida"
        if parsed > date.today():
            return "Data no futuro"
        return None


@dataclass
class _Tally:
    severity: Severity
    entity: Optional[str]
    code: str
    message: str
    suggestion: Optional[str] = None
    count: int = 0
    positions: List[int] = field(default_factory=list)


class ValidationEngine:
    """
    Checks mapped datasets before anything is written.

    Findings are aggregated per entity and check, so a file with 300 bad
    e-mails yields one warning with a count instead of 300 lines. Only
    problems that would break a hard constraint of the backend are critical;
    ``pode_importar`` is False exactly while a critical finding exists.
    """

    def __init__(self, registry: Optional[EntityRegistry] = None, report_dropped_records: bool = False):
        self.registry = registry or EntityRegistry()
        self.report_dropped_records = report_dropped_records
        self._tallies: Dict[Tuple[Severity, Optional[str], str], _Tally] = {}
        self._options = ImportOptions()

    def validate(
        self,
        datasets: Iterable[EntityDataset],
        options: Optional[ImportOptions] = None,
        existing: Optional[Dict[str, Set[str]]] = None,
        files: Optional[List[FileOutcome]] = None,
    ) -> ValidationSummary:
        """
        Validate every dataset of a session.

        Args:
            datasets: Mapped records grouped by entity
            options: Session options (non-critical checks may be skipped)
            existing: Normalized names already in the store, per entity
            files: File outcomes from parsing, for file-level findings

        Returns:
            ValidationSummary
        """
        self._tallies = {}
        self._options = options or ImportOptions()
        datasets = list(datasets)
        existing = existing or {}

        known_names = self._known_names(datasets, existing)

        for outcome in files or []:
            self._check_file(outcome)

        for dataset in datasets:
            schema = self.registry.get(dataset.entity_type)
            if schema is None:
                continue
            self._check_dataset(dataset, schema)
            for record in dataset.records:
                self._check_references(record, schema, known_names)
                self._check_record(record, schema)
            self._check_duplicates(dataset, schema)

        summary = ValidationSummary()
        for tally in self._tallies.values():
            summary.add(ValidationFinding(
                severity=tally.severity,
                message=tally.message.replace("{count}", str(tally.count)),
                suggestion=tally.suggestion,
                entity=tally.entity,
                code=tally.code,
                count=tally.count,
                positions=tally.positions,
            ))

        logger.info(
            f"Validation: {summary.total_criticos} critical, "
            f"{summary.total_avisos} warnings, {summary.total_info} info"
        )
        return summary

    def _flag(
        self,
        severity: Severity,
        entity: Optional[str],
        code: str,
        message: str,
        position: Optional[int] = None,
        suggestion: Optional[str] = None,
        count: int = 1,
    ) -> None:
        """Add to the tally of one check. ``message`` may use ``{count}``."""
        if severity != Severity.CRITICAL and self._options.pular_validacoes_nao_criticas:
            return

        key = (severity, entity, code)
        tally = self._tallies.get(key)
        if tally is None:
            tally = _Tally(severity, entity, code, message, suggestion)
            self._tallies[key] = tally
        tally.count += count
        if position is not None and len(tally.positions) < MAX_POSITIONS:
            tally.positions.append(position)

    def _known_names(self, datasets: List[EntityDataset], existing: Dict[str, Set[str]]) -> Dict[str, Set[str]]:
        """Names each entity will have after import: parsed plus already stored."""
        names: Dict[str, Set[str]] = {entity: set(values) for entity, values in existing.items()}
        for dataset in datasets:
            schema = self.registry.get(dataset.entity_type)
            if schema is None:
                continue
            bucket = names.setdefault(dataset.entity_type, set())
            for record in dataset.records:
                name = normalize_name(record.get(schema.name_field))
                if name:
                    bucket.add(name)
        return names

    def _check_file(self, outcome: FileOutcome) -> None:
        if outcome.status == FileStatus.ERRO:
            self._flag(
                Severity.WARNING, outcome.entity_type, f"arquivo_invalido:{outcome.name}",
                f"Arquivo {outcome.name} não pôde ser lido: {outcome.message}",
                suggestion="Verifique o formato do arquivo; os demais arquivos seguem normalmente",
            )
        elif outcome.status == FileStatus.IGNORADO and outcome.table:
            self._flag(
                Severity.WARNING, outcome.entity_type, f"tabela_nao_suportada:{outcome.name}",
                f"Arquivo {outcome.name}: tabela {outcome.table} não suportada ainda",
            )

    def _check_dataset(self, dataset: EntityDataset, schema: EntitySchema) -> None:
        if not dataset.records:
            self._flag(
                Severity.WARNING, schema.name, "sem_registros",
                f"Nenhum registro válido de {schema.name} encontrado",
                suggestion="Confira se o arquivo tem cabeçalho e a coluna de nome preenchida",
            )
        if dataset.descartados and self.report_dropped_records:
            self._flag(
                Severity.INFO, schema.name, "linhas_descartadas",
                "{count} linha(s) sem " + schema.name_field + " serão ignoradas",
                count=dataset.descartados,
            )

    def _check_references(self, record: MappedRecord, schema: EntitySchema, known: Dict[str, Set[str]]) -> None:
        for ref in schema.references:
            value = record.get(ref.source_field)
            if is_blank(value):
                if ref.required:
                    self._flag(
                        Severity.CRITICAL, schema.name, f"sem_{ref.source_field}",
                        "{count} registro(s) de " + schema.name + " sem " + ref.source_field,
                        position=record.position,
                    )
                continue

            if normalize_name(value) in known.get(ref.entity, set()):
                continue

            if ref.required:
                self._flag(
                    Severity.CRITICAL, schema.name, f"referencia:{ref.entity}",
                    "{count} registro(s) de " + schema.name + " citam " + ref.entity
                    + " inexistente(s)",
                    position=record.position,
                    suggestion=f"Inclua o arquivo de {ref.entity} ou corrija os nomes",
                )
            else:
                self._flag(
                    Severity.WARNING, schema.name, f"referencia:{ref.entity}",
                    "{count} registro(s) de " + schema.name + " citam " + ref.entity
                    + " não encontrado(s)",
                    position=record.position,
                    suggestion="Serão importados sem vínculo",
                )

        if schema.name == "agendamentos" and is_blank(record.get("data_hora")):
            self._flag(
                Severity.CRITICAL, schema.name, "sem_data",
                "{count} agendamento(s) sem data/hora válida",
                position=record.position,
            )

    def _check_record(self, record: MappedRecord, schema: EntitySchema) -> None:
        entity = schema.name
        data = record.data

        if "email" in data and ValidationRules.email(data.get("email")):
            self._flag(Severity.WARNING, entity, "email", "{count} e-mail(s) em formato inválido",
                       position=record.position)

        for phone_field in ("celular", "telefone"):
            if phone_field in data and ValidationRules.phone(data.get(phone_field)):
                self._flag(Severity.WARNING, entity, phone_field,
                           "{count} " + phone_field + "(s) com quantidade de dígitos inválida",
                           position=record.position)

        if data.get("celular") == PLACEHOLDER_PHONE:
            self._flag(Severity.INFO, entity, "celular_padrao",
                       "{count} registro(s) sem celular receberão o número padrão",
                       position=record.position,
                       suggestion="Atualize o celular depois da importação")

        for invalid in record.invalid_fields:
            self._flag(Severity.WARNING, entity, f"invalido:{invalid}",
                       "{count} valor(es) ilegível(is) em " + invalid,
                       position=record.position)

        for money in ("preco", "preco_venda", "preco_custo", "valor", "valor_total", "estoque_atual"):
            if ValidationRules.non_negative(data.get(money)):
                self._flag(Severity.WARNING, entity, f"negativo:{money}",
                           "{count} registro(s) com " + money + " negativo",
                           position=record.position)

        for price in ("preco", "preco_venda"):
            if price in data and data.get(price) == 0:
                self._flag(Severity.INFO, entity, f"zero:{price}",
                           "{count} registro(s) com " + price + " zerado",
                           position=record.position)

        if ValidationRules.duration(data.get("duracao_minutos")):
            self._flag(Severity.WARNING, entity, "duracao",
                       "{count} registro(s) com duração fora de 1 a 600 minutos",
                       position=record.position)

        for commission in ("comissao", "comissao_padrao", "comissao_servicos", "comissao_produtos"):
            if ValidationRules.percentage(data.get(commission)):
                self._flag(Severity.WARNING, entity, f"percentual:{commission}",
                           "{count} registro(s) com " + commission + " fora de 0-100%",
                           position=record.position)

        if ValidationRules.past_date(data.get("data_nascimento")):
            self._flag(Severity.WARNING, entity, "data_nascimento",
                       "{count} data(s) de nascimento inválida(s) ou no futuro",
                       position=record.position)

        if entity == "clientes" and any(is_blank(data.get(f)) for f in PROFILE_FIELDS):
            self._flag(Severity.INFO, entity, "cadastro_incompleto",
                       "{count} cliente(s) com cadastro incompleto (e-mail, nascimento ou endereço)",
                       position=record.position,
                       suggestion="Complete os dados após a importação")

        for filled in record.filled_fields:
            self._flag(Severity.INFO, entity, f"preenchido:{filled}",
                       "{count} campo(s) " + filled + " preenchido(s) com valor padrão",
                       position=record.position)

    def _check_duplicates(self, dataset: EntityDataset, schema: EntitySchema) -> None:
        seen: Set[str] = set()
        for record in dataset.records:
            keys = record_keys(schema, record.data)
            if any(k in seen for k in keys):
                self._flag(Severity.WARNING, schema.name, "duplicado_arquivo",
                           "{count} registro(s) repetido(s) nos arquivos de " + schema.name,
                           position=record.position,
                           suggestion="Repetições seguem a estratégia de duplicados escolhida")
            seen.update(keys)
