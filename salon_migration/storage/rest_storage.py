"""PostgREST (Supabase) storage client."""

import asyncio
import logging
import time
from typing import Any, Dict, List, Optional

import requests

from ..exceptions import StorageError
from .base import BaseStorage, Row, StorageResponse

logger = logging.getLogger(__name__)


class RestStorage(BaseStorage):
    """
    Storage client speaking the PostgREST dialect used by Supabase.

    Requests go through a shared ``requests.Session``. Each call runs in a
    worker thread and is awaited before the next one starts, so batch order
    is preserved.
    """

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        timeout: float = 30.0,
        rate_limit: float = 0.0,
        rest_path: str = "/rest/v1",
    ):
        """
        Initialize the REST client.

        Args:
            base_url: Project URL (e.g. https://xyz.supabase.co)
            api_key: Service or anon key, sent as ``apikey`` and bearer token
            timeout: Per-request timeout in seconds
            rate_limit: Max requests per second (0 disables the wait)
            rest_path: Path of the PostgREST endpoint
        """
        self.base_url = base_url.rstrip("/") + rest_path
        self.api_key = api_key
        self.timeout = timeout
        self.rate_limit = rate_limit
        self._last_request_time = 0.0
        self._session = self._create_session()

    def _create_session(self) -> requests.Session:
        """Create a requests session with authentication."""
        session = requests.Session()

        if self.api_key:
            session.headers["apikey"] = self.api_key
            session.headers["Authorization"] = f"Bearer {self.api_key}"

        session.headers["Content-Type"] = "application/json"
        session.headers["Accept"] = "application/json"

        return session

    def _rate_limit_wait(self):
        """Wait to respect rate limits."""
        if self.rate_limit > 0:
            elapsed = time.time() - self._last_request_time
            wait_time = (1.0 / self.rate_limit) - elapsed
            if wait_time > 0:
                time.sleep(wait_time)
        self._last_request_time = time.time()

    @staticmethod
    def _filter_params(filters: Optional[Dict[str, Any]]) -> Dict[str, str]:
        params = {}
        for column, value in (filters or {}).items():
            if value is None:
                params[column] = "is.null"
            elif isinstance(value, bool):
                params[column] = f"eq.{str(value).lower()}"
            else:
                params[column] = f"eq.{value}"
        return params

    def _request(
        self,
        method: str,
        table: str,
        params: Optional[Dict[str, str]] = None,
        json_body: Any = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> requests.Response:
        self._rate_limit_wait()
        response = self._session.request(
            method,
            f"{self.base_url}/{table}",
            params=params,
            json=json_body,
            headers=headers,
            timeout=self.timeout,
        )
        response.raise_for_status()
        return response

    def _call(self, method: str, table: str, **kwargs) -> StorageResponse:
        """Run a request and fold any failure into a StorageResponse."""
        try:
            response = self._request(method, table, **kwargs)
            data = response.json() if response.text else []
            if isinstance(data, dict):
                data = [data]
            return StorageResponse(data=data)

        except requests.exceptions.HTTPError as e:
            error = {"message": str(e), "status": e.response.status_code if e.response is not None else None}
            try:
                body = e.response.json()
                if isinstance(body, dict):
                    error.update({k: body.get(k) for k in ("message", "code", "details", "hint") if body.get(k)})
            except ValueError:
                pass
            logger.error(f"{method} {table} failed: {error.get('message')}")
            return StorageResponse(error=error)

        except requests.exceptions.RequestException as e:
            logger.error(f"{method} {table} failed: {e}")
            return StorageResponse.failure(str(e))

    async def insert(self, table: str, rows: List[Row]) -> StorageResponse:
        return await asyncio.to_thread(
            self._call,
            "POST",
            table,
            json_body=rows,
            headers={"Prefer": "return=representation"},
        )

    async def update(self, table: str, record_id: Any, values: Row) -> StorageResponse:
        return await asyncio.to_thread(
            self._call,
            "PATCH",
            table,
            params={"id": f"eq.{record_id}"},
            json_body=values,
            headers={"Prefer": "return=representation"},
        )

    async def select(
        self,
        table: str,
        columns: str = "*",
        filters: Optional[Dict[str, Any]] = None,
        limit: Optional[int] = None,
        offset: int = 0,
        order: Optional[str] = None,
    ) -> StorageResponse:
        params = {"select": columns}
        params.update(self._filter_params(filters))
        if order:
            params["order"] = order
        if limit is not None:
            params["limit"] = str(limit)
        if offset:
            params["offset"] = str(offset)
        return await asyncio.to_thread(self._call, "GET", table, params=params)

    async def count(self, table: str, filters: Optional[Dict[str, Any]] = None) -> int:
        params = {"select": "id", "limit": "1"}
        params.update(self._filter_params(filters))
        try:
            response = await asyncio.to_thread(
                self._request, "GET", table, params=params, headers={"Prefer": "count=exact"}
            )
        except requests.exceptions.RequestException as e:
            raise StorageError(f"count on {table} failed: {e}") from e
        return self._parse_content_range(response.headers.get("Content-Range", ""))

    @staticmethod
    def _parse_content_range(header: str) -> int:
        """``0-0/42`` and ``*/0`` both carry the total after the slash."""
        total = header.rsplit("/", 1)[-1] if "/" in header else ""
        if not total.isdigit():
            raise StorageError(f"Unexpected Content-Range header: {header!r}")
        return int(total)

    async def validate_connection(self) -> bool:
        try:
            await asyncio.to_thread(self._request, "GET", "", params=None)
        except requests.exceptions.RequestException as e:
            logger.error(f"Connection check failed: {e}")
            return False
        return True

    async def close(self) -> None:
        self._session.close()
