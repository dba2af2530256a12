"""Tests for the entity registry."""

import json

from salon_migration.services.classifier import FileClassifier
from salon_migration.services.schema_registry import EntityRegistry


def test_builtin_entities(registry):
    assert set(registry.list_entities()) == {
        "categorias", "fornecedores", "clientes", "profissionais",
        "servicos", "produtos", "agendamentos", "atendimentos",
    }
    assert not registry.is_supported("caixa")
    assert not registry.is_supported(None)


def test_entity_for_key(registry):
    """Backup keys resolve by entity name or alias."""
    assert registry.entity_for_key("clientes") == "clientes"
    assert registry.entity_for_key("Customers") == "clientes"
    assert registry.entity_for_key("vendas") == "atendimentos"
    assert registry.entity_for_key("configuracoes") is None


def test_ordered_by_phase(registry):
    """References are imported before the records that point to them."""
    order = registry.ordered(
        ["atendimentos", "servicos", "clientes", "agendamentos", "categorias", "profissionais", "caixa"],
        FileClassifier().order_of,
    )
    assert order == ["categorias", "clientes", "profissionais", "servicos", "agendamentos", "atendimentos"]


def test_load_from_directory(tmp_path):
    """Schema files add entities and replace built-ins by name."""
    (tmp_path / "pacotes.json").write_text(json.dumps({
        "name": "pacotes",
        "table": "pacotes",
        "fields": [{"target": "nome", "aliases": ["nome", "pacote"]}, {"target": "preco", "coerce": "number"}],
        "key_fields": ["nome"],
        "phase": 3,
    }), encoding="utf-8")
    (tmp_path / "quebrado.json").write_text("{not json", encoding="utf-8")

    registry = EntityRegistry(str(tmp_path))

    schema = registry.get("pacotes")
    assert schema is not None
    assert schema.name_field == "nome"
    assert schema.get_rule("preco").aliases == ["preco"]
    assert registry.is_supported("clientes")


def test_missing_directory_is_ignored(tmp_path):
    registry = EntityRegistry()
    assert registry.load_from_directory(str(tmp_path / "nope")) == 0
