"""Tests for pre-import validation."""

import pytest

from salon_migration.models.record import EntityDataset, FileOutcome, FileStatus, MappedRecord
from salon_migration.models.session import ImportOptions
from salon_migration.models.validation import Severity
from salon_migration.services.validator import ValidationEngine, ValidationRules


def _dataset(entity, *rows, descartados=0):
    records = [MappedRecord(entity_type=entity, data=dict(row), position=i) for i, row in enumerate(rows)]
    return EntityDataset(entity_type=entity, table=entity, records=records, descartados=descartados)


def _codes(summary, severity=None):
    return {f.code for f in summary.findings if severity is None or f.severity == severity}


@pytest.fixture
def engine(registry):
    return ValidationEngine(registry)


def test_rules():
    assert ValidationRules.email("ana@example.com") is None
    assert ValidationRules.email("ana@") is not None
    assert ValidationRules.phone("(11) 98765-4321") is None
    assert ValidationRules.phone("12345") is not None
    assert ValidationRules.phone("00000000000") is None
    assert ValidationRules.percentage(120) is not None
    assert ValidationRules.duration(0) is not None
    assert ValidationRules.past_date("2999-01-01") == "Data no futuro"


def test_findings_are_aggregated(engine):
    """Many records failing the same check give one finding with a count."""
    dataset = _dataset(
        "clientes",
        {"nome": "Ana", "email": "ana@", "celular": "(11) 98765-4321"},
        {"nome": "Bruno", "email": "bruno.example.com", "celular": "(11) 91234-5678"},
        {"nome": "Carla", "email": "carla@example.com", "celular": "(11) 99999-0000"},
    )
    summary = engine.validate([dataset])

    emails = [f for f in summary.findings if f.code == "email"]
    assert len(emails) == 1
    assert emails[0].count == 2
    assert emails[0].severity == Severity.WARNING
    assert emails[0].message == "2 e-mail(s) em formato inválido"
    assert emails[0].positions == [0, 1]
    assert summary.pode_importar


def test_required_reference_missing_is_critical(engine):
    """An appointment for an unknown client blocks the import."""
    dataset = _dataset(
        "agendamentos",
        {"cliente_nome": "Zé Ninguém", "data_hora": "2024-01-10T14:00:00", "servico_nome": "Corte"},
    )
    summary = engine.validate([dataset])

    assert summary.total_criticos == 1
    assert not summary.pode_importar
    assert "referencia:clientes" in _codes(summary, Severity.CRITICAL)
    # Optional references only warn
    assert "referencia:servicos" in _codes(summary, Severity.WARNING)


def test_references_resolved_by_files_or_store(engine):
    """Names present in another uploaded file or already stored are fine."""
    clientes = _dataset("clientes", {"nome": "Ana Souza", "celular": "(11) 98765-4321"})
    agenda = _dataset(
        "agendamentos",
        {"cliente_nome": "ana  souza", "profissional_nome": "Paula", "data_hora": "2024-01-10T14:00:00"},
    )
    summary = engine.validate([clientes, agenda], existing={"profissionais": {"paula"}})

    assert summary.total_criticos == 0
    assert not any(code.startswith("referencia") for code in _codes(summary))


def test_appointment_without_date_is_critical(engine):
    dataset = _dataset("agendamentos", {"cliente_nome": "Ana", "data_hora": None})
    summary = engine.validate([dataset], existing={"clientes": {"ana"}})
    assert _codes(summary, Severity.CRITICAL) == {"sem_data"}


def test_skip_non_critical(engine):
    """Only critical checks run when non-critical validations are skipped."""
    dataset = _dataset(
        "agendamentos",
        {"cliente_nome": "Zé", "data_hora": "2024-01-10T14:00:00", "servico_nome": "Corte", "valor": -5},
    )
    summary = engine.validate([dataset], options=ImportOptions(pular_validacoes_nao_criticas=True))

    assert summary.total_criticos == 1
    assert summary.total_avisos == 0
    assert summary.total_info == 0


def test_duplicates_within_files(engine):
    dataset = _dataset(
        "clientes",
        {"nome": "Ana", "celular": "(11) 98765-4321"},
        {"nome": "Ana S.", "celular": "11987654321"},
        {"nome": "Carla", "celular": "00000000000"},
        {"nome": "Dora", "celular": "00000000000"},
    )
    summary = engine.validate([dataset])

    duplicates = [f for f in summary.findings if f.code == "duplicado_arquivo"]
    assert len(duplicates) == 1
    assert duplicates[0].count == 1
    assert duplicates[0].positions == [1]


def test_placeholder_and_incomplete_clients_are_info(engine):
    dataset = _dataset("clientes", {"nome": "Carla", "celular": "00000000000"})
    summary = engine.validate([dataset])

    assert {"celular_padrao", "cadastro_incompleto"} <= _codes(summary, Severity.INFO)
    assert summary.pode_importar


def test_dropped_rows_reported_only_when_configured(registry):
    dataset = _dataset("clientes", {"nome": "Ana", "celular": "(11) 98765-4321"}, descartados=2)

    quiet = ValidationEngine(registry).validate([dataset])
    assert "linhas_descartadas" not in _codes(quiet)

    loud = ValidationEngine(registry, report_dropped_records=True).validate([dataset])
    finding = next(f for f in loud.findings if f.code == "linhas_descartadas")
    assert finding.count == 2
    assert finding.severity == Severity.INFO


def test_file_problems_warn(engine):
    files = [
        FileOutcome(name="vendas.json", entity_type="atendimentos", table="atendimentos",
                    status=FileStatus.ERRO, message="invalid JSON"),
        FileOutcome(name="caixa.csv", entity_type="caixa", table="caixa", status=FileStatus.IGNORADO),
        FileOutcome(name="outro.csv", status=FileStatus.IGNORADO),
    ]
    summary = engine.validate([], files=files)

    assert summary.total_avisos == 2
    assert summary.pode_importar


def test_values_out_of_range(engine):
    dataset = _dataset(
        "servicos",
        {"nome": "Corte", "preco": -10, "duracao_minutos": 900, "comissao": 150, "categoria": None},
    )
    summary = engine.validate([dataset])

    assert {"negativo:preco", "duracao", "percentual:comissao"} <= _codes(summary, Severity.WARNING)
