"""Tests for session configuration and result models."""

import json

from salon_migration.models.session import (
    ImportConfig,
    ImportOptions,
    ImportResult,
    MergeStrategy,
    ResultStatus,
    SessionResult,
)
from salon_migration.models.validation import Severity, ValidationFinding, ValidationSummary


def test_config_load_file_and_environment(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({
        "batch_size": 50,
        "default_strategy": "substituir",
        "options": {"completar_campos_vazios": True},
    }))

    config = ImportConfig.load(str(path), environ={
        "SUPABASE_URL": "https://x.supabase.co",
        "SUPABASE_KEY": "secret",
        "SALON_IMPORT_BATCH_SIZE": "25",
    })

    assert config.batch_size == 25
    assert config.default_strategy == MergeStrategy.SUBSTITUIR
    assert config.options.completar_campos_vazios is True
    assert config.options.ignorar_registros_com_erro is True
    assert config.storage_url == "https://x.supabase.co"
    assert config.storage_api_key == "secret"


def test_config_defaults():
    config = ImportConfig.load(environ={})
    assert config.batch_size == 100
    assert config.storage_url is None
    assert config.options == ImportOptions()
    assert "storage_api_key" not in config.to_dict()


def test_result_status():
    result = ImportResult(entity="clientes", tabela="clientes")
    assert result.status == ResultStatus.SUCESSO

    result.add_errors(2, "Lote 1: falhou")
    assert result.status == ResultStatus.ERRO

    result.importados = 1
    assert result.status == ResultStatus.PARCIAL
    assert result.report_line() == "clientes: 1 importados, 2 erros - clientes"


def test_result_message_cap():
    result = ImportResult(entity="clientes", tabela="clientes", max_mensagens=2)
    for i in range(5):
        result.add_errors(1, f"Linha {i}")

    assert result.erros == 5
    assert result.mensagens == ["Linha 0", "Linha 1"]
    assert result.mensagens_omitidas == 3


def test_session_report_keeps_entity_order():
    result = SessionResult()
    result.result_for("clientes", "clientes").importados = 3
    result.result_for("atendimentos", "atendimentos").erros = 1

    assert result.to_report() == (
        "clientes: 3 importados, 0 erros - clientes\n"
        "atendimentos: 0 importados, 1 erros - atendimentos"
    )
    assert result.total_importados == 3
    assert result.total_erros == 1


def test_validation_gate():
    summary = ValidationSummary()
    summary.add(ValidationFinding(Severity.WARNING, "Telefone inválido"))
    assert summary.pode_importar

    summary.add(ValidationFinding(Severity.CRITICAL, "Nenhum nome"))
    assert not summary.pode_importar
    assert [f.message for f in summary.by_severity(Severity.CRITICAL)] == ["Nenhum nome"]
