"""Base storage interface for the salon backend."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
import logging

logger = logging.getLogger(__name__)

Row = Dict[str, Any]


@dataclass
class StorageResponse:
    """Outcome of a storage call: rows on success, an error object otherwise."""
    data: Optional[List[Row]] = None
    error: Optional[Dict[str, Any]] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def error_message(self) -> str:
        if not self.error:
            return ""
        return str(self.error.get("message") or self.error)

    @classmethod
    def failure(cls, message: str, **details: Any) -> "StorageResponse":
        error = {"message": message}
        error.update(details)
        return cls(data=None, error=error)


class BaseStorage(ABC):
    """
    Async client for the hosted relational backend.

    Implementations must never raise for a failed write; the failure comes
    back as ``StorageResponse.error`` so the caller can count it and move on.
    Filters are equality matches, with None meaning "is null".
    """

    @abstractmethod
    async def insert(self, table: str, rows: List[Row]) -> StorageResponse:
        """
        Insert a batch of rows in one call.

        Args:
            table: Target table
            rows: Row objects

        Returns:
            StorageResponse with the inserted rows (including ids) or an error
        """
        pass

    @abstractmethod
    async def update(self, table: str, record_id: Any, values: Row) -> StorageResponse:
        """Update a single row by id."""
        pass

    @abstractmethod
    async def select(
        self,
        table: str,
        columns: str = "*",
        filters: Optional[Dict[str, Any]] = None,
        limit: Optional[int] = None,
        offset: int = 0,
        order: Optional[str] = None,
    ) -> StorageResponse:
        """Read rows matching ``filters``. ``order`` is ``column.asc`` or ``column.desc``."""
        pass

    @abstractmethod
    async def count(self, table: str, filters: Optional[Dict[str, Any]] = None) -> int:
        """Count rows matching ``filters``. Raises StorageError on failure."""
        pass

    async def fetch_all(
        self,
        table: str,
        columns: str = "*",
        filters: Optional[Dict[str, Any]] = None,
        page_size: int = 1000,
    ) -> StorageResponse:
        """Read every matching row, one page at a time."""
        rows: List[Row] = []
        offset = 0

        while True:
            response = await self.select(table, columns, filters, limit=page_size, offset=offset)
            if not response.ok:
                return response
            page = response.data or []
            rows.extend(page)
            if len(page) < page_size:
                break
            offset += page_size

        return StorageResponse(data=rows)

    async def validate_connection(self) -> bool:
        """Validate the connection to the backend."""
        return True

    async def close(self) -> None:
        pass
