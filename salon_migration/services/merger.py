"""Duplicate detection and merge planning against existing store rows."""

import logging
from dataclasses import dataclass, field
from typing import Any, Collection, Dict, List, Optional

from ..models.record import MappedRecord
from ..models.schema import EntitySchema
from ..models.session import MergeStrategy
from ..utils import PLACEHOLDER_PHONE, datetime_key, digits_only, is_blank, normalize_name, phone_key

logger = logging.getLogger(__name__)

PHONE_FIELDS = {"celular", "telefone"}
DIGIT_FIELDS = {"cpf", "cnpj", "codigo_barras"}
DATETIME_FIELDS = {"data_hora"}


def _is_empty(value: Any, field_name: Optional[str] = None) -> bool:
    if is_blank(value) or value == PLACEHOLDER_PHONE:
        return True
    # Legacy placeholders such as "(00) 00000-0000" carry no usable digits
    return field_name in PHONE_FIELDS and phone_key(value) is None


def _key_part(field_name: str, value: Any) -> Optional[str]:
    if _is_empty(value, field_name):
        return None
    if field_name in PHONE_FIELDS:
        return phone_key(value)
    if field_name in DIGIT_FIELDS:
        return digits_only(value) or None
    if field_name in DATETIME_FIELDS:
        return datetime_key(value)
    if field_name == "email":
        return str(value).strip().lower() or None
    return normalize_name(value) or None


def record_keys(schema: EntitySchema, data: Dict[str, Any]) -> List[str]:
    """
    Duplicate keys of a row.

    Each entry of ``schema.key_fields`` produces one key; ``a+b`` entries are
    composite and need every part. Two rows sharing any key are duplicates.
    Placeholder phones never produce a key.
    """
    keys = []
    for key_field in schema.key_fields:
        parts = []
        for name in key_field.split("+"):
            part = _key_part(name, data.get(name))
            if part is None:
                break
            parts.append(part)
        else:
            keys.append(f"{key_field}:{'|'.join(parts)}")
    return keys


@dataclass
class PlannedUpdate:
    """Changes to write to an existing row."""
    record_id: Any
    values: Dict[str, Any]
    record: MappedRecord


@dataclass
class MergePlan:
    """What to insert, update and skip for one entity."""
    to_insert: List[MappedRecord] = field(default_factory=list)
    to_update: List[PlannedUpdate] = field(default_factory=list)
    to_skip: List[MappedRecord] = field(default_factory=list)

    def to_dict(self) -> Dict[str, int]:
        return {
            "to_insert": len(self.to_insert),
            "to_update": len(self.to_update),
            "to_skip": len(self.to_skip),
        }


class ConflictResolver:
    """
    Decides per incoming record whether to insert, update or skip.

    Strategies:
    - ``mesclar``: fill only the fields that are empty on the existing row
    - ``substituir``: overwrite the existing row with the incoming record,
      blank values included
    - ``manter_ambos``: leave the existing row alone and skip the incoming one
    - no strategy: duplicates are skipped and reported
    Records without a match are always inserted. A record repeating an
    earlier incoming record is folded into it with the same rules.
    """

    def resolve(
        self,
        existing: List[Dict[str, Any]],
        incoming: List[MappedRecord],
        strategy: Optional[MergeStrategy],
        schema: EntitySchema,
    ) -> MergePlan:
        """
        Plan the writes for one entity.

        Args:
            existing: Rows already in the store (must carry ``id``)
            incoming: Mapped records about to be imported
            strategy: Merge strategy, or None to only flag duplicates
            schema: Entity schema providing the duplicate keys

        Returns:
            MergePlan
        """
        plan = MergePlan()
        if not schema.key_fields:
            plan.to_insert = list(incoming)
            return plan

        # Names replaced by ids are not columns of the stored row
        name_fields = {ref.source_field for ref in schema.references if ref.id_field}

        stored: Dict[str, Dict[str, Any]] = {}
        for row in existing:
            for key in record_keys(schema, row):
                stored.setdefault(key, row)

        pending: Dict[str, MappedRecord] = {}
        updates: Dict[Any, PlannedUpdate] = {}

        for record in incoming:
            keys = record_keys(schema, record.data)
            match = next((stored[k] for k in keys if k in stored), None)

            if match is not None:
                self._resolve_existing(match, record, strategy, plan, updates, name_fields)
                continue

            earlier = next((pending[k] for k in keys if k in pending), None)
            if earlier is not None:
                self._fold_into(earlier, record, strategy)
                plan.to_skip.append(record)
                for key in record_keys(schema, earlier.data):
                    pending.setdefault(key, earlier)
                continue

            plan.to_insert.append(record)
            for key in keys:
                pending.setdefault(key, record)

        logger.info(
            f"Merge plan for {schema.name} ({strategy.value if strategy else 'flag only'}): "
            f"{len(plan.to_insert)} insert, {len(plan.to_update)} update, {len(plan.to_skip)} skip"
        )
        return plan

    def _resolve_existing(
        self,
        existing: Dict[str, Any],
        record: MappedRecord,
        strategy: Optional[MergeStrategy],
        plan: MergePlan,
        updates: Dict[Any, PlannedUpdate],
        name_fields: Collection[str] = (),
    ) -> None:
        if strategy == MergeStrategy.MESCLAR:
            changes = self.merge_values(existing, record.data)
        elif strategy == MergeStrategy.SUBSTITUIR:
            changes = self.replace_values(existing, record.data, exclude=name_fields)
        else:
            plan.to_skip.append(record)
            return

        if not changes:
            plan.to_skip.append(record)
            return

        # Later duplicates see the row as it will be after this update
        existing.update(changes)
        record_id = existing.get("id")
        if record_id in updates:
            updates[record_id].values.update(changes)
            plan.to_skip.append(record)
            return

        update = PlannedUpdate(record_id=record_id, values=dict(changes), record=record)
        updates[record_id] = update
        plan.to_update.append(update)

    def _fold_into(self, earlier: MappedRecord, record: MappedRecord, strategy: Optional[MergeStrategy]) -> None:
        if strategy == MergeStrategy.MESCLAR:
            earlier.data.update(self.merge_values(earlier.data, record.data))
        elif strategy == MergeStrategy.SUBSTITUIR:
            earlier.data.update(self.replace_values(earlier.data, record.data))

    @staticmethod
    def merge_values(existing: Dict[str, Any], incoming: Dict[str, Any]) -> Dict[str, Any]:
        """Incoming values for fields that are empty on ``existing``."""
        return {
            name: value
            for name, value in incoming.items()
            if name != "id" and not _is_empty(value, name) and _is_empty(existing.get(name), name)
        }

    @staticmethod
    def replace_values(
        existing: Dict[str, Any],
        incoming: Dict[str, Any],
        exclude: Collection[str] = (),
    ) -> Dict[str, Any]:
        """
        Incoming values that differ from ``existing``, blanks included.

        A blank incoming value clears the stored one, so the row ends up
        equal to the incoming record.
        """
        changes = {}
        for name, value in incoming.items():
            if name == "id" or name in exclude:
                continue
            if is_blank(value):
                value = None
            if existing.get(name) != value:
                changes[name] = value
        return changes
