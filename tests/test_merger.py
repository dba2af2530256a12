"""Tests for duplicate detection and merge planning."""

import pytest

from salon_migration.models.record import MappedRecord
from salon_migration.models.session import MergeStrategy
from salon_migration.services.merger import ConflictResolver, record_keys


@pytest.fixture
def resolver():
    return ConflictResolver()


@pytest.fixture
def clientes(registry):
    return registry.get("clientes")


def _records(entity, *rows):
    return [MappedRecord(entity_type=entity, data=dict(row), position=i) for i, row in enumerate(rows)]


def test_record_keys(clientes, registry):
    keys = record_keys(clientes, {"celular": "(11) 98765-4321", "email": "Ana@Example.com", "cpf": None})
    assert keys == ["celular:11987654321", "email:ana@example.com"]

    agenda = registry.get("agendamentos")
    keys = record_keys(agenda, {"cliente_nome": "Ana Souza", "data_hora": "2024-01-10T14:00:00"})
    assert keys == ["cliente_nome+data_hora:ana souza|2024-01-10T14:00:00"]

    # Composite keys need every part
    assert record_keys(agenda, {"cliente_nome": "Ana Souza", "data_hora": None}) == []


def test_new_records_are_inserted(resolver, clientes):
    incoming = _records("clientes", {"nome": "Ana", "celular": "(11) 98765-4321"})
    plan = resolver.resolve([], incoming, MergeStrategy.MESCLAR, clientes)
    assert plan.to_insert == incoming
    assert plan.to_update == []


def test_mesclar_fills_only_empty_fields(resolver, clientes):
    existing = [{"id": "c1", "nome": "Ana", "celular": "11987654321", "email": "old@example.com", "endereco": None}]
    incoming = _records("clientes", {
        "nome": "Ana Souza", "celular": "(11) 98765-4321", "email": "new@example.com", "endereco": "Rua A",
    })

    plan = resolver.resolve(existing, incoming, MergeStrategy.MESCLAR, clientes)

    assert plan.to_insert == []
    assert len(plan.to_update) == 1
    assert plan.to_update[0].record_id == "c1"
    assert plan.to_update[0].values == {"endereco": "Rua A"}


def test_substituir_overwrites_provided_values(resolver, clientes):
    existing = [{"id": "c1", "nome": "Ana", "celular": "(11) 98765-4321", "email": "old@example.com"}]
    incoming = _records("clientes", {"nome": "Ana", "celular": "(11) 98765-4321", "email": "new@example.com", "cpf": None})

    plan = resolver.resolve(existing, incoming, MergeStrategy.SUBSTITUIR, clientes)

    assert plan.to_update[0].values == {"email": "new@example.com"}


def test_substituir_clears_blank_values(resolver, clientes):
    """The stored row ends up equal to the incoming record."""
    existing = [{"id": "c1", "nome": "Ana", "celular": "(11) 98765-4321",
                 "email": "old@x.com", "endereco": "Rua Velha"}]
    incoming = _records("clientes", {"nome": "Ana", "celular": "(11) 98765-4321", "email": None, "endereco": None})

    plan = resolver.resolve(existing, incoming, MergeStrategy.SUBSTITUIR, clientes)

    assert len(plan.to_update) == 1
    assert plan.to_update[0].values == {"email": None, "endereco": None}


def test_substituir_leaves_reference_names_out(resolver, registry):
    agenda = registry.get("agendamentos")
    existing = [{"id": "a1", "cliente_nome": "Ana Souza", "data_hora": "2024-01-10T14:00:00", "observacoes": "x"}]
    incoming = _records("agendamentos", {"cliente_nome": "ANA SOUZA", "data_hora": "2024-01-10T14:00:00",
                                         "observacoes": ""})

    plan = resolver.resolve(existing, incoming, MergeStrategy.SUBSTITUIR, agenda)

    assert plan.to_update[0].values == {"observacoes": None}


def test_mesclar_replaces_placeholder_phone(resolver, clientes):
    existing = [{"id": "c1", "nome": "Ana", "email": "ana@example.com", "celular": "(00) 00000-0000"}]
    incoming = _records("clientes", {"nome": "Ana", "email": "ana@example.com", "celular": "(11) 98765-4321"})

    plan = resolver.resolve(existing, incoming, MergeStrategy.MESCLAR, clientes)

    assert plan.to_update[0].values == {"celular": "(11) 98765-4321"}


def test_appointment_times_match_across_offsets(resolver, registry):
    """A stored UTC timestamp and a naive local one are the same slot."""
    agenda = registry.get("agendamentos")
    existing = [{"id": "a1", "cliente_nome": "Ana Souza", "data_hora": "2024-01-10T14:00:00+00:00"}]
    incoming = _records("agendamentos", {"cliente_nome": "Ana Souza", "data_hora": "2024-01-10T14:00:00"})

    plan = resolver.resolve(existing, incoming, MergeStrategy.MANTER_AMBOS, agenda)

    assert plan.to_insert == []
    assert plan.to_skip == incoming


def test_manter_ambos_and_no_strategy_skip(resolver, clientes):
    """Without a merging strategy the incoming duplicate is skipped."""
    existing = [{"id": "c1", "nome": "Ana", "email": "ana@example.com"}]
    for strategy in (MergeStrategy.MANTER_AMBOS, None):
        incoming = _records("clientes", {"nome": "Ana", "email": "ANA@example.com", "endereco": "Rua A"})
        plan = resolver.resolve(existing, incoming, strategy, clientes)
        assert plan.to_skip == incoming
        assert plan.to_insert == [] and plan.to_update == []


def test_nothing_to_change_is_skipped(resolver, clientes):
    existing = [{"id": "c1", "nome": "Ana", "email": "ana@example.com"}]
    incoming = _records("clientes", {"nome": "Ana", "email": "ana@example.com"})
    plan = resolver.resolve(existing, incoming, MergeStrategy.MESCLAR, clientes)
    assert len(plan.to_skip) == 1


def test_placeholder_phone_never_matches(resolver, clientes):
    existing = [{"id": "c1", "nome": "Bia", "celular": "00000000000"}]
    incoming = _records(
        "clientes",
        {"nome": "Carla", "celular": "00000000000"},
        {"nome": "Dora", "celular": "00000000000"},
    )
    plan = resolver.resolve(existing, incoming, MergeStrategy.MESCLAR, clientes)
    assert len(plan.to_insert) == 2


def test_repeated_incoming_records_are_folded(resolver, clientes):
    """A record repeating an earlier one completes it instead of being inserted twice."""
    incoming = _records(
        "clientes",
        {"nome": "Ana", "email": "ana@example.com", "endereco": None},
        {"nome": "Ana S.", "email": "ana@example.com", "endereco": "Rua A"},
    )
    plan = resolver.resolve([], incoming, MergeStrategy.MESCLAR, clientes)

    assert len(plan.to_insert) == 1
    assert plan.to_insert[0].data["endereco"] == "Rua A"
    assert plan.to_insert[0].data["nome"] == "Ana"
    assert plan.to_skip == [incoming[1]]


def test_two_updates_to_one_row_are_combined(resolver, clientes):
    existing = [{"id": "c1", "nome": "Ana", "email": "ana@example.com", "endereco": None, "cpf": None}]
    incoming = _records(
        "clientes",
        {"nome": "Ana", "email": "ana@example.com", "endereco": "Rua A"},
        {"nome": "Ana", "email": "ana@example.com", "cpf": "12345678900"},
    )
    plan = resolver.resolve(existing, incoming, MergeStrategy.MESCLAR, clientes)

    assert len(plan.to_update) == 1
    assert plan.to_update[0].values == {"endereco": "Rua A", "cpf": "12345678900"}
    assert len(plan.to_skip) == 1


def test_entities_without_keys_always_insert(resolver, registry):
    vendas = registry.get("atendimentos")
    incoming = _records("atendimentos", {"data_hora": "2024-01-10T00:00:00"}, {"data_hora": "2024-01-10T00:00:00"})
    plan = resolver.resolve([{"id": 1, "data_hora": "2024-01-10T00:00:00"}], incoming, None, vendas)
    assert len(plan.to_insert) == 2
