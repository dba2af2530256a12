"""Follow-up of imported clients whose profile is incomplete."""

import logging
from typing import Any, Dict, Iterable, List

from ..exceptions import StorageError
from ..models.session import IncompleteClient
from ..storage.base import BaseStorage, StorageResponse
from ..utils import PLACEHOLDER_PHONE, is_blank

logger = logging.getLogger(__name__)

PROFILE_FIELDS = ("email", "data_nascimento", "endereco")
PENDING_FLAG = "pendente_atualizacao"
EDITABLE_FIELDS = PROFILE_FIELDS + ("celular", "telefone", "cpf", "bairro", "cidade", "estado", "cep", "observacoes")


def find_incomplete(imported_clients: Iterable[Dict[str, Any]]) -> List[IncompleteClient]:
    """
    Clients missing any of e-mail, birth date or address.

    Args:
        imported_clients: Client rows as returned by the store (with ``id``)

    Returns:
        One IncompleteClient per client with at least one missing field
    """
    incomplete = []
    for client in imported_clients:
        missing = [f for f in PROFILE_FIELDS if is_blank(client.get(f))]
        if not missing:
            continue
        phone = client.get("celular") or client.get("telefone")
        incomplete.append(IncompleteClient(
            id=client.get("id"),
            nome=client.get("nome") or "",
            telefone=None if phone == PLACEHOLDER_PHONE else phone,
            campos_faltando=missing,
        ))
    return incomplete


class ClientTriage:
    """
    Applies inline corrections to imported clients or tags them for later.

    Edits are written right away, one client at a time. Tagging sets
    ``pendente_atualizacao`` so the client can be completed at the next
    visit.
    """

    def __init__(self, storage: BaseStorage, table: str = "clientes"):
        self.storage = storage
        self.table = table

    async def apply_edits(self, edits: Dict[Any, Dict[str, Any]]) -> Dict[Any, StorageResponse]:
        """
        Write corrections for several clients.

        Args:
            edits: client id -> {field: value}; blank values are ignored

        Returns:
            client id -> StorageResponse
        """
        responses = {}
        for client_id, values in edits.items():
            changes = {
                name: value.strip() if isinstance(value, str) else value
                for name, value in values.items()
                if name in EDITABLE_FIELDS and not is_blank(value)
            }
            if not changes:
                continue

            response = await self.storage.update(self.table, client_id, changes)
            if not response.ok:
                logger.error(f"Failed to update client {client_id}: {response.error_message}")
            responses[client_id] = response

        logger.info(f"Applied edits to {sum(1 for r in responses.values() if r.ok)} clients")
        return responses

    async def mark_for_later_update(self, client_ids: Iterable[Any]) -> Dict[Any, StorageResponse]:
        """Tag clients so the missing data is collected later."""
        responses = {}
        for client_id in client_ids:
            response = await self.storage.update(self.table, client_id, {PENDING_FLAG: True})
            if not response.ok:
                logger.error(f"Failed to tag client {client_id}: {response.error_message}")
            responses[client_id] = response
        return responses

    async def pending_updates(self) -> List[IncompleteClient]:
        """Clients tagged for a later update, with what they still miss."""
        response = await self.storage.fetch_all(self.table, filters={PENDING_FLAG: True})
        if not response.ok:
            raise StorageError(f"Failed to load pending clients: {response.error_message}")
        return find_incomplete(response.data or [])
