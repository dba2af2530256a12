"""Tests for the import API."""

import base64

import pytest
from fastapi.testclient import TestClient

from salon_migration.api.main import app
from salon_migration.api.sessions import session_store
from salon_migration.models.session import ImportConfig
from salon_migration.storage import MemoryStorage

from conftest import CLIENTES_CSV


@pytest.fixture
def storage():
    storage = MemoryStorage()
    session_store.configure(ImportConfig(batch_delay=0.0), storage)
    yield storage
    session_store.configure()


@pytest.fixture
def client(storage):
    return TestClient(app)


def _upload(client, files, **extra):
    payload = {"files": files}
    payload.update(extra)
    return client.post("/api/imports", json=payload)


def _clientes(client):
    response = _upload(client, [{"name": "clientes.csv", "content": CLIENTES_CSV}])
    assert response.status_code == 200
    return response.json()


def test_health(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


def test_create_confirm_and_report(client, storage):
    session = _clientes(client)
    assert session["status"] == "validando"
    assert session["validation"]["pode_importar"] is True
    assert session["datasets"]["clientes"]["registros"] == 3

    response = client.post(f"/api/imports/{session['id']}/confirm", json={})
    assert response.status_code == 200
    assert response.json() == {"status": "started", "session_id": session["id"], "forced": False}

    status = client.get(f"/api/imports/{session['id']}").json()
    assert status["status"] == "concluido"
    assert status["result"]["total_importados"] == 3

    report = client.get(f"/api/imports/{session['id']}/report")
    assert report.status_code == 200
    assert report.text == "clientes: 3 importados, 0 erros - clientes"
    assert len(storage.rows("clientes")) == 3


def test_base64_upload(client):
    content = base64.b64encode(CLIENTES_CSV.encode("latin-1")).decode("ascii")
    response = _upload(client, [{"name": "clientes.csv", "content": content, "encoding": "base64"}])

    assert response.status_code == 200
    assert response.json()["datasets"]["clientes"]["registros"] == 3


def test_invalid_base64(client):
    response = _upload(client, [{"name": "clientes.csv", "content": "@@not base64@@", "encoding": "base64"}])
    assert response.status_code == 400


def test_no_files(client):
    assert _upload(client, []).status_code == 400


def test_nothing_to_import(client, storage):
    response = _upload(client, [{"name": "anotacoes.csv", "content": "texto\nqualquer\n"}])

    assert response.status_code == 400
    assert "Nenhum arquivo selecionado" in response.json()["detail"]
    assert storage.calls == []


def test_blocked_confirm(client, storage):
    response = _upload(client, [{"name": "agenda.csv", "content": "cliente;data_hora\nZé;10/01/2024 14:00\n"}])
    session_id = response.json()["id"]

    blocked = client.post(f"/api/imports/{session_id}/confirm", json={})
    assert blocked.status_code == 409
    assert blocked.json()["detail"]["total_criticos"] == 1

    forced = client.post(f"/api/imports/{session_id}/confirm", json={"force": True})
    assert forced.status_code == 200
    assert forced.json()["forced"] is True


def test_report_before_import(client):
    session = _clientes(client)
    response = client.get(f"/api/imports/{session['id']}/report")
    assert response.status_code == 400


def test_cancel_when_not_importing(client):
    session = _clientes(client)
    response = client.post(f"/api/imports/{session['id']}/cancel")
    assert response.status_code == 400


def test_unknown_session(client):
    assert client.get("/api/imports/does-not-exist").status_code == 404
    assert client.post("/api/imports/does-not-exist/confirm", json={}).status_code == 404


def test_history(client):
    session = _clientes(client)
    client.post(f"/api/imports/{session['id']}/confirm", json={})

    response = client.get("/api/imports/history")

    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 1
    assert body["imports"][0]["status"] == "concluido"
    assert body["imports"][0]["total_registros_importados"] == 3


def test_incomplete_clients_edit_and_mark(client, storage):
    session = _clientes(client)
    client.post(f"/api/imports/{session['id']}/confirm", json={})

    incomplete = client.get(f"/api/imports/{session['id']}/incomplete").json()
    assert [c["nome"] for c in incomplete] == ["Bruno Lima"]
    bruno_id = incomplete[0]["id"]

    edited = client.post(
        f"/api/imports/{session['id']}/incomplete/edits",
        json={"edits": {bruno_id: {"email": "bruno@example.com"}}},
    ).json()
    assert edited["succeeded"] == 1

    marked = client.post(
        f"/api/imports/{session['id']}/incomplete/mark",
        json={"client_ids": [bruno_id, "missing"]},
    ).json()
    assert marked["total"] == 2
    assert marked["failed"] == 1

    bruno = next(r for r in storage.rows("clientes") if r["id"] == bruno_id)
    assert bruno["email"] == "bruno@example.com"
    assert bruno["pendente_atualizacao"] is True


def test_triage_before_import(client):
    session = _clientes(client)
    response = client.post(f"/api/imports/{session['id']}/incomplete/mark", json={"client_ids": ["x"]})
    assert response.status_code == 400


def test_no_backend_configured(monkeypatch):
    """Without a backend URL the API refuses to open sessions."""
    monkeypatch.delenv("SUPABASE_URL", raising=False)
    session_store.configure(ImportConfig(batch_delay=0.0))
    try:
        client = TestClient(app)
        response = _upload(client, [{"name": "clientes.csv", "content": CLIENTES_CSV}])
        assert response.status_code == 400
        assert "SUPABASE_URL" in response.json()["detail"]
        assert client.get("/api/imports/history").status_code == 400
    finally:
        session_store.configure()
