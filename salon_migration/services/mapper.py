"""Field mapper: translates parsed rows into canonical entity records."""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from ..models.record import MappedRecord, ParsedRecord
from ..models.schema import Coercion, EntitySchema, FieldRule
from ..utils import (
    digits_only,
    format_phone,
    is_blank,
    normalize_date,
    normalize_datetime,
    parse_active,
    parse_number,
)
from .schema_registry import EntityRegistry

logger = logging.getLogger(__name__)


@dataclass
class MappingResult:
    """Mapped records plus the positions of rows dropped for having no name."""
    entity_type: str
    records: List[MappedRecord] = field(default_factory=list)
    dropped: List[int] = field(default_factory=list)


class FieldMapper:
    """
    Data-driven mapper from parsed rows to entity records.

    Every entity is described by an ordered list of FieldRules; a single
    generic routine applies them. Mapping is pure: the same rows always map
    to the same records.
    """

    def __init__(self, registry: Optional[EntityRegistry] = None):
        self.registry = registry or EntityRegistry()
        self._coercions = self._register_builtin_coercions()

    def _register_builtin_coercions(self) -> Dict[str, Callable[[Any], Tuple[Any, bool]]]:
        """Each coercion returns (value, readable)."""
        return {
            Coercion.TEXT.value: self._coerce_text,
            Coercion.LOWER.value: self._coerce_lower,
            Coercion.DIGITS.value: self._coerce_digits,
            Coercion.PHONE.value: self._coerce_phone,
            Coercion.DATE.value: self._coerce_date,
            Coercion.DATETIME.value: self._coerce_datetime,
            Coercion.NUMBER.value: self._coerce_number,
            Coercion.INTEGER.value: self._coerce_integer,
            Coercion.ACTIVE.value: self._coerce_active,
        }

    def map(
        self,
        records: List[ParsedRecord],
        entity_type: str,
        fill_empty: bool = False,
    ) -> List[MappedRecord]:
        """Map parsed rows to records of ``entity_type``, dropping nameless rows."""
        return self.map_records(records, entity_type, fill_empty).records

    def map_records(
        self,
        records: List[ParsedRecord],
        entity_type: str,
        fill_empty: bool = False,
    ) -> MappingResult:
        """
        Map parsed rows and report which rows were dropped.

        Args:
            records: Parsed rows keyed by normalized header
            entity_type: Registered entity name
            fill_empty: Apply each rule's ``fill`` value to empty fields

        Returns:
            MappingResult with kept records and dropped row positions
        """
        schema = self.registry.get(entity_type)
        if schema is None:
            raise ValueError(f"No mapping rules for entity: {entity_type}")

        result = MappingResult(entity_type=entity_type)
        for row in records:
            mapped = self.map_row(row, schema, fill_empty)
            if is_blank(mapped.data.get(schema.name_field)):
                result.dropped.append(row.position)
                continue
            result.records.append(mapped)

        if result.dropped:
            logger.info(
                f"Dropped {len(result.dropped)} {entity_type} rows without '{schema.name_field}'"
            )
        return result

    def map_row(self, row: ParsedRecord, schema: EntitySchema, fill_empty: bool = False) -> MappedRecord:
        """Apply every rule of ``schema`` to one row."""
        mapped = MappedRecord(
            entity_type=schema.name,
            data={},
            position=row.position,
            source_file=row.source_file,
        )

        for rule in schema.fields:
            raw = self._first_value(row, rule)
            value = None

            if raw is not None:
                value, readable = self._coercions[rule.coerce.value](raw)
                if not readable:
                    mapped.invalid_fields.append(rule.target)

            if value is None and raw is None and rule.default is not None:
                value = rule.default
            if value is None and fill_empty and rule.fill is not None:
                value = rule.fill
                mapped.filled_fields.append(rule.target)

            mapped.data[rule.target] = value

        return mapped

    @staticmethod
    def _first_value(row: ParsedRecord, rule: FieldRule) -> Any:
        for alias in rule.aliases:
            value = row.get(alias)
            if not is_blank(value):
                return value
        return None

    # Coercions

    def _coerce_text(self, value: Any) -> Tuple[Any, bool]:
        text = str(value).strip()
        return (text or None), True

    def _coerce_lower(self, value: Any) -> Tuple[Any, bool]:
        text = str(value).strip().lower()
        return (text or None), True

    def _coerce_digits(self, value: Any) -> Tuple[Any, bool]:
        digits = digits_only(value)
        return (digits or None), bool(digits)

    def _coerce_phone(self, value: Any) -> Tuple[Any, bool]:
        return format_phone(value), bool(digits_only(value))

    def _coerce_date(self, value: Any) -> Tuple[Any, bool]:
        parsed = normalize_date(value)
        return parsed, parsed is not None

    def _coerce_datetime(self, value: Any) -> Tuple[Any, bool]:
        parsed = normalize_datetime(value)
        return parsed, parsed is not None

    def _coerce_number(self, value: Any) -> Tuple[Any, bool]:
        marker = object()
        number = parse_number(value, default=marker)
        if number is marker:
            return 0, False
        return number, True

    def _coerce_integer(self, value: Any) -> Tuple[Any, bool]:
        number, readable = self._coerce_number(value)
        return int(round(number)), readable

    def _coerce_active(self, value: Any) -> Tuple[Any, bool]:
        return parse_active(value), True
