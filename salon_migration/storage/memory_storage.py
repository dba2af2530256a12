"""In-memory storage used for dry runs and tests."""

import copy
import logging
import uuid
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from ..exceptions import StorageError
from .base import BaseStorage, Row, StorageResponse

logger = logging.getLogger(__name__)


class MemoryStorage(BaseStorage):
    """
    Dict-backed tables with the same batch semantics as the hosted backend.

    A batch insert is all-or-nothing. Failures can be injected per table:
    ``fail_inserts={"clientes": {2}}`` makes the second insert call on
    ``clientes`` fail, and ``required_columns={"clientes": ["nome"]}``
    rejects any batch holding a row without ``nome`` (a NOT NULL violation).
    """

    def __init__(
        self,
        tables: Optional[Dict[str, List[Row]]] = None,
        fail_inserts: Optional[Dict[str, Set[int]]] = None,
        fail_tables: Optional[Iterable[str]] = None,
        required_columns: Optional[Dict[str, List[str]]] = None,
    ):
        self.tables: Dict[str, List[Row]] = {}
        self.fail_inserts = fail_inserts or {}
        self.fail_tables: Set[str] = set(fail_tables or [])
        self.required_columns = required_columns or {}
        self.calls: List[Tuple[str, str, int]] = []  # (operation, table, rows)
        self._insert_counts: Dict[str, int] = {}

        for table, rows in (tables or {}).items():
            self.seed(table, rows)

    def seed(self, table: str, rows: List[Row]) -> List[Row]:
        """Put rows in a table without going through insert accounting."""
        stored = []
        for row in rows:
            row = dict(row)
            row.setdefault("id", str(uuid.uuid4()))
            stored.append(row)
        self.tables.setdefault(table, []).extend(stored)
        return stored

    def rows(self, table: str) -> List[Row]:
        return self.tables.get(table, [])

    def _check_insert(self, table: str, rows: List[Row]) -> Optional[str]:
        call_number = self._insert_counts.get(table, 0) + 1
        self._insert_counts[table] = call_number

        if table in self.fail_tables:
            return f"table '{table}' is unavailable"
        if call_number in self.fail_inserts.get(table, set()):
            return f"simulated failure on insert #{call_number} into '{table}'"

        for column in self.required_columns.get(table, []):
            for row in rows:
                if row.get(column) in (None, ""):
                    return f'null value in column "{column}" violates not-null constraint'
        return None

    async def insert(self, table: str, rows: List[Row]) -> StorageResponse:
        self.calls.append(("insert", table, len(rows)))
        error = self._check_insert(table, rows)
        if error:
            logger.debug(f"Memory insert into {table} failed: {error}")
            return StorageResponse.failure(error, code="23502")

        inserted = self.seed(table, copy.deepcopy(rows))
        return StorageResponse(data=copy.deepcopy(inserted))

    async def update(self, table: str, record_id: Any, values: Row) -> StorageResponse:
        self.calls.append(("update", table, 1))
        if table in self.fail_tables:
            return StorageResponse.failure(f"table '{table}' is unavailable")

        for row in self.tables.get(table, []):
            if row.get("id") == record_id:
                row.update(copy.deepcopy(values))
                return StorageResponse(data=[copy.deepcopy(row)])
        return StorageResponse.failure(f"{table} row {record_id} not found", code="PGRST116")

    async def select(
        self,
        table: str,
        columns: str = "*",
        filters: Optional[Dict[str, Any]] = None,
        limit: Optional[int] = None,
        offset: int = 0,
        order: Optional[str] = None,
    ) -> StorageResponse:
        self.calls.append(("select", table, 0))
        if table in self.fail_tables:
            return StorageResponse.failure(f"table '{table}' is unavailable")

        matched = [r for r in self.tables.get(table, []) if self._matches(r, filters)]
        if order:
            column, _, direction = order.partition(".")
            matched.sort(key=lambda r: (r.get(column) is None, r.get(column) or ""), reverse=direction == "desc")
        matched = matched[offset:offset + limit] if limit is not None else matched[offset:]

        if columns and columns != "*":
            wanted = [c.strip() for c in columns.split(",")]
            matched = [{c: r.get(c) for c in wanted} for r in matched]
        return StorageResponse(data=copy.deepcopy(matched))

    async def count(self, table: str, filters: Optional[Dict[str, Any]] = None) -> int:
        self.calls.append(("count", table, 0))
        if table in self.fail_tables:
            raise StorageError(f"table '{table}' is unavailable")
        return sum(1 for r in self.tables.get(table, []) if self._matches(r, filters))

    @staticmethod
    def _matches(row: Row, filters: Optional[Dict[str, Any]]) -> bool:
        for column, expected in (filters or {}).items():
            if row.get(column) != expected:
                return False
        return True
