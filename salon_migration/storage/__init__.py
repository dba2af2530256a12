"""Storage clients for the salon backend."""

from .base import BaseStorage, StorageResponse
from .memory_storage import MemoryStorage
from .rest_storage import RestStorage
from ..exceptions import PreflightError
from ..models.session import ImportConfig


def create_storage(config: ImportConfig) -> BaseStorage:
    """
    Build the storage client a configuration asks for.

    Dry runs write to memory. Anything else needs a backend URL.

    Raises:
        PreflightError: No backend URL and not a dry run
    """
    if config.dry_run:
        return MemoryStorage()
    if not config.storage_url:
        raise PreflightError("SUPABASE_URL não configurada; defina a variável ou use --dry-run")
    return RestStorage(
        base_url=config.storage_url,
        api_key=config.storage_api_key,
        timeout=config.request_timeout,
    )


__all__ = [
    "BaseStorage",
    "StorageResponse",
    "MemoryStorage",
    "RestStorage",
    "create_storage",
]
