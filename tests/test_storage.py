"""Tests for the in-memory and PostgREST storage clients."""

import asyncio
import json
from unittest.mock import MagicMock

import pytest
import requests

from salon_migration.exceptions import PreflightError, StorageError
from salon_migration.models.session import ImportConfig
from salon_migration.storage import MemoryStorage, RestStorage, create_storage


def _response(status, body=None, headers=None):
    response = requests.Response()
    response.status_code = status
    response._content = json.dumps(body).encode("utf-8") if body is not None else b""
    response.encoding = "utf-8"
    response.headers.update(headers or {})
    return response


def test_memory_insert_is_all_or_nothing():
    """A batch with one bad row writes nothing."""
    storage = MemoryStorage(required_columns={"clientes": ["nome"]})

    async def scenario():
        ok = await storage.insert("clientes", [{"nome": "Ana"}])
        bad = await storage.insert("clientes", [{"nome": "Bruno"}, {"nome": None}])
        return ok, bad

    ok, bad = asyncio.run(scenario())

    assert ok.ok and ok.data[0]["id"]
    assert not bad.ok
    assert "not-null" in bad.error_message
    assert [r["nome"] for r in storage.rows("clientes")] == ["Ana"]


def test_memory_injected_failure_and_count():
    storage = MemoryStorage(fail_inserts={"clientes": {2}})

    async def scenario():
        results = [await storage.insert("clientes", [{"nome": n}]) for n in ("a", "b", "c")]
        return results, await storage.count("clientes")

    results, total = asyncio.run(scenario())

    assert [r.ok for r in results] == [True, False, True]
    assert total == 2


def test_memory_select_filters_order_and_paging():
    storage = MemoryStorage(tables={"import_logs": [
        {"id": 1, "created_at": "2024-01-01", "status": "concluido"},
        {"id": 2, "created_at": "2024-03-01", "status": "concluido"},
        {"id": 3, "created_at": "2024-02-01", "status": "cancelado"},
    ]})

    async def scenario():
        newest = await storage.select("import_logs", columns="id, status", limit=2, order="created_at.desc")
        done = await storage.fetch_all("import_logs", filters={"status": "concluido"}, page_size=1)
        return newest, done

    newest, done = asyncio.run(scenario())

    assert newest.data == [{"id": 2, "status": "concluido"}, {"id": 3, "status": "cancelado"}]
    assert [r["id"] for r in done.data] == [1, 2]


def test_memory_update_unknown_row():
    storage = MemoryStorage()
    response = asyncio.run(storage.update("clientes", "nope", {"email": "a@example.com"}))
    assert not response.ok


def test_memory_count_failure_raises():
    storage = MemoryStorage(fail_tables=["clientes"])
    with pytest.raises(StorageError):
        asyncio.run(storage.count("clientes"))


@pytest.fixture
def rest():
    storage = RestStorage("https://example.supabase.co/", api_key="secret")
    storage._session = MagicMock()
    return storage


def test_rest_session_headers():
    storage = RestStorage("https://example.supabase.co", api_key="secret")
    assert storage.base_url == "https://example.supabase.co/rest/v1"
    assert storage._session.headers["apikey"] == "secret"
    assert storage._session.headers["Authorization"] == "Bearer secret"


def test_rest_insert(rest):
    rest._session.request.return_value = _response(201, [{"id": 7, "nome": "Ana"}])

    response = asyncio.run(rest.insert("clientes", [{"nome": "Ana"}]))

    assert response.ok
    assert response.data == [{"id": 7, "nome": "Ana"}]
    args, kwargs = rest._session.request.call_args
    assert args == ("POST", "https://example.supabase.co/rest/v1/clientes")
    assert kwargs["json"] == [{"nome": "Ana"}]
    assert kwargs["headers"] == {"Prefer": "return=representation"}


def test_rest_http_error_is_returned_not_raised(rest):
    """Backend errors come back in the response with their code."""
    rest._session.request.return_value = _response(
        409, {"message": "duplicate key value", "code": "23505", "details": "Key (cpf)"}
    )

    response = asyncio.run(rest.insert("clientes", [{"nome": "Ana"}]))

    assert not response.ok
    assert response.error_message == "duplicate key value"
    assert response.error["code"] == "23505"
    assert response.error["status"] == 409


def test_rest_connection_error_is_returned(rest):
    rest._session.request.side_effect = requests.exceptions.ConnectionError("refused")
    response = asyncio.run(rest.update("clientes", 1, {"email": "a@example.com"}))
    assert not response.ok
    assert "refused" in response.error_message


def test_rest_select_params(rest):
    rest._session.request.return_value = _response(200, [])

    asyncio.run(rest.select(
        "clientes", columns="id,nome", filters={"pendente_atualizacao": True, "email": None},
        limit=50, offset=100, order="created_at.desc",
    ))

    params = rest._session.request.call_args.kwargs["params"]
    assert params == {
        "select": "id,nome",
        "pendente_atualizacao": "eq.true",
        "email": "is.null",
        "order": "created_at.desc",
        "limit": "50",
        "offset": "100",
    }


def test_rest_update_targets_id(rest):
    rest._session.request.return_value = _response(200, [{"id": 3}])
    asyncio.run(rest.update("clientes", 3, {"email": "a@example.com"}))
    args, kwargs = rest._session.request.call_args
    assert args[0] == "PATCH"
    assert kwargs["params"] == {"id": "eq.3"}


def test_rest_count(rest):
    rest._session.request.return_value = _response(200, [], headers={"Content-Range": "0-0/42"})
    assert asyncio.run(rest.count("clientes")) == 42

    rest._session.request.return_value = _response(500, {"message": "boom"})
    with pytest.raises(StorageError):
        asyncio.run(rest.count("clientes"))


def test_rest_validate_connection(rest):
    rest._session.request.return_value = _response(200, {})
    assert asyncio.run(rest.validate_connection()) is True
    args, _ = rest._session.request.call_args
    assert args == ("GET", "https://example.supabase.co/rest/v1/")

    rest._session.request.return_value = _response(401, {"message": "invalid key"})
    assert asyncio.run(rest.validate_connection()) is False

    rest._session.request.side_effect = requests.exceptions.ConnectionError("refused")
    assert asyncio.run(rest.validate_connection()) is False


def test_create_storage():
    assert isinstance(create_storage(ImportConfig(dry_run=True)), MemoryStorage)
    assert isinstance(create_storage(ImportConfig(storage_url="https://x.supabase.co", dry_run=True)), MemoryStorage)
    assert isinstance(create_storage(ImportConfig(storage_url="https://x.supabase.co")), RestStorage)


def test_create_storage_without_url_refuses():
    """Only a dry run may fall back to memory."""
    with pytest.raises(PreflightError, match="SUPABASE_URL"):
        create_storage(ImportConfig())
