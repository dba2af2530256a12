"""In-memory registry of import sessions served by the API."""

import logging
from typing import Dict, Optional

from ..models.session import ImportConfig
from ..orchestrator import ImportSession
from ..services.schema_registry import EntityRegistry
from ..storage import BaseStorage, create_storage

logger = logging.getLogger(__name__)


class SessionStore:
    """
    Keeps the sessions of this process.

    Storage and configuration are built from the environment on first use
    unless set with ``configure``. Uploaded file contents live only in the
    session and are gone when the process stops.
    """

    def __init__(self):
        self._sessions: Dict[str, ImportSession] = {}
        self._config: Optional[ImportConfig] = None
        self._storage: Optional[BaseStorage] = None
        self._registry: Optional[EntityRegistry] = None

    def configure(
        self,
        config: Optional[ImportConfig] = None,
        storage: Optional[BaseStorage] = None,
    ) -> None:
        """Replace configuration and storage, dropping existing sessions."""
        self._config = config
        self._storage = storage
        self._registry = None
        self._sessions = {}

    @property
    def config(self) -> ImportConfig:
        if self._config is None:
            self._config = ImportConfig.load()
        return self._config

    @property
    def storage(self) -> BaseStorage:
        if self._storage is None:
            self._storage = create_storage(self.config)
            logger.info(f"API storage: {type(self._storage).__name__}")
        return self._storage

    @property
    def registry(self) -> EntityRegistry:
        if self._registry is None:
            self._registry = EntityRegistry(self.config.schemas_dir)
        return self._registry

    def create(self) -> ImportSession:
        session = ImportSession(self.storage, self.config, self.registry)
        self._sessions[session.id] = session
        return session

    def get(self, session_id: str) -> Optional[ImportSession]:
        return self._sessions.get(session_id)


session_store = SessionStore()
