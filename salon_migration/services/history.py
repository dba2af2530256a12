"""
Import history: one ``import_logs`` row per session.

A row is created when the import starts (status ``em_andamento``) and
completed with per-entity totals when it ends, so the history screen can
list recent imports and their outcome.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..exceptions import StorageError
from ..models.record import SourceFile
from ..models.session import SessionResult, SessionStatus
from ..storage.base import BaseStorage, StorageResponse

logger = logging.getLogger(__name__)

LOG_TABLE = "import_logs"
HISTORY_COLUMNS = (
    "id, arquivo_nome, created_at, tempo_processamento_segundos, "
    "total_registros_importados, total_erros, status"
)

# Entity -> (column prefix, participle ending) in the log table
LOG_COLUMNS = {
    "clientes": ("clientes", "os"),
    "profissionais": ("profissionais", "os"),
    "servicos": ("servicos", "os"),
    "produtos": ("produtos", "os"),
    "agendamentos": ("agendamentos", "os"),
    "atendimentos": ("vendas", "as"),
}

FINAL_STATUS = {
    SessionStatus.CONCLUIDO: "concluido",
    SessionStatus.CANCELADO: "cancelado",
}


class ImportHistory:
    """Writes and reads import log rows."""

    def __init__(self, storage: BaseStorage, origem: str = "importacao_massa"):
        self.storage = storage
        self.origem = origem

    async def start(self, files: List[SourceFile]) -> Optional[Any]:
        """Create the log row. Returns its id, or None when the write failed."""
        row = {
            "arquivo_nome": ", ".join(f.name for f in files)[:500],
            "arquivo_tamanho": sum(f.byte_size for f in files),
            "origem": self.origem,
            "status": "em_andamento",
            "created_at": datetime.utcnow().isoformat(),
        }
        response = await self.storage.insert(LOG_TABLE, [row])
        if not response.ok or not response.data:
            logger.warning(f"Could not create import log: {response.error_message}")
            return None
        return response.data[0].get("id")

    async def finish(self, log_id: Any, result: SessionResult) -> StorageResponse:
        """Store the final totals of a session on its log row."""
        response = await self.storage.update(LOG_TABLE, log_id, self.summary_row(result))
        if not response.ok:
            logger.warning(f"Could not update import log {log_id}: {response.error_message}")
        return response

    @staticmethod
    def summary_row(result: SessionResult) -> Dict[str, Any]:
        """Column values describing a finished session."""
        row: Dict[str, Any] = {
            "status": FINAL_STATUS.get(result.status, "erro"),
            "total_registros_importados": result.total_importados + result.total_atualizados,
            "total_erros": result.total_erros,
            "total_registros_ignorados": result.total_duplicados + result.total_descartados,
            "tempo_processamento_segundos": round(result.duration_seconds or 0.0, 2),
            "avisos": result.warnings,
            "erros_detalhados": {
                entity: r.mensagens for entity, r in result.results.items() if r.mensagens
            },
        }

        for entity, entity_result in result.results.items():
            if entity not in LOG_COLUMNS:
                continue
            prefix, ending = LOG_COLUMNS[entity]
            row[f"{prefix}_importad{ending}"] = entity_result.importados + entity_result.atualizados
            row[f"{prefix}_duplicad{ending}"] = entity_result.duplicados
            row[f"{prefix}_erros"] = entity_result.erros

        return row

    async def recent(self, limit: int = 10) -> List[Dict[str, Any]]:
        """Most recent import logs, newest first."""
        response = await self.storage.select(
            LOG_TABLE, columns=HISTORY_COLUMNS, limit=limit, order="created_at.desc"
        )
        if not response.ok:
            raise StorageError(f"Failed to load import history: {response.error_message}")
        return response.data or []
