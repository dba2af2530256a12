"""Tests for the import log."""

import asyncio
from datetime import datetime, timedelta

from salon_migration.models.record import SourceFile
from salon_migration.models.session import SessionResult, SessionStatus
from salon_migration.services.history import LOG_TABLE, ImportHistory
from salon_migration.storage import MemoryStorage


def _finished_result():
    result = SessionResult(status=SessionStatus.CONCLUIDO)
    started = datetime(2024, 1, 1, 10, 0, 0)
    result.started_at = started
    result.completed_at = started + timedelta(seconds=3.456)

    clientes = result.result_for("clientes", "clientes")
    clientes.importados = 10
    clientes.atualizados = 2
    clientes.duplicados = 1
    clientes.add_errors(1, "Lote 1 (linhas 1-1): boom")

    vendas = result.result_for("atendimentos", "atendimentos")
    vendas.importados = 5
    vendas.descartados = 3
    return result


def test_summary_row():
    row = ImportHistory.summary_row(_finished_result())

    assert row["status"] == "concluido"
    assert row["total_registros_importados"] == 17
    assert row["total_erros"] == 1
    assert row["total_registros_ignorados"] == 4
    assert row["tempo_processamento_segundos"] == 3.46
    assert row["clientes_importados"] == 12
    assert row["clientes_duplicados"] == 1
    assert row["vendas_importadas"] == 5
    assert row["vendas_duplicadas"] == 0
    assert row["erros_detalhados"] == {"clientes": ["Lote 1 (linhas 1-1): boom"]}


def test_start_and_finish():
    storage = MemoryStorage()
    history = ImportHistory(storage)

    async def scenario():
        log_id = await history.start([SourceFile.from_text("clientes.csv", "nome\nAna\n")])
        await history.finish(log_id, _finished_result())
        return log_id

    log_id = asyncio.run(scenario())

    row = storage.rows(LOG_TABLE)[0]
    assert row["id"] == log_id
    assert row["arquivo_nome"] == "clientes.csv"
    assert row["arquivo_tamanho"] == 9
    assert row["status"] == "concluido"


def test_start_failure_returns_none():
    history = ImportHistory(MemoryStorage(fail_tables=[LOG_TABLE]))
    assert asyncio.run(history.start([SourceFile.from_text("a.csv", "x")])) is None


def test_recent_newest_first():
    storage = MemoryStorage(tables={LOG_TABLE: [
        {"id": i, "created_at": f"2024-01-0{i}T00:00:00", "status": "concluido"} for i in range(1, 6)
    ]})

    rows = asyncio.run(ImportHistory(storage).recent(limit=3))

    assert [r["id"] for r in rows] == [5, 4, 3]
