"""Import session models: options, configuration, progress and results."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from enum import Enum
from datetime import datetime
import json
import os
import uuid

from .record import FileOutcome
from .validation import ValidationSummary


class SessionStatus(str, Enum):
    """Status of an import session."""
    IDLE = "idle"
    ANALISANDO = "analisando"
    VALIDANDO = "validando"
    IMPORTANDO = "importando"
    CONCLUIDO = "concluido"
    CANCELADO = "cancelado"


class MergeStrategy(str, Enum):
    """What to do when an incoming record matches an existing one."""
    MESCLAR = "mesclar"  # Fill only the existing record's empty fields
    SUBSTITUIR = "substituir"  # Overwrite the existing record
    MANTER_AMBOS = "manter_ambos"  # Leave the existing record, skip the incoming one


class ResultStatus(str, Enum):
    SUCESSO = "sucesso"
    PARCIAL = "parcial"
    ERRO = "erro"


@dataclass
class ImportOptions:
    """User-selectable switches for one session."""
    ignorar_registros_com_erro: bool = True
    completar_campos_vazios: bool = False
    mesclar_duplicatas: bool = False
    pular_validacoes_nao_criticas: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "ignorar_registros_com_erro": self.ignorar_registros_com_erro,
            "completar_campos_vazios": self.completar_campos_vazios,
            "mesclar_duplicatas": self.mesclar_duplicatas,
            "pular_validacoes_nao_criticas": self.pular_validacoes_nao_criticas,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "ImportOptions":
        """Create from dictionary representation."""
        data = data or {}
        return cls(
            ignorar_registros_com_erro=data.get("ignorar_registros_com_erro", True),
            completar_campos_vazios=data.get("completar_campos_vazios", False),
            mesclar_duplicatas=data.get("mesclar_duplicatas", False),
            pular_validacoes_nao_criticas=data.get("pular_validacoes_nao_criticas", False),
        )


@dataclass
class ProgressEvent:
    """Progress notification emitted while a session runs."""
    etapa: str
    atual: int
    total: int
    mensagem: str = ""
    timestamp: datetime = field(default_factory=datetime.utcnow)

    @property
    def percent(self) -> float:
        if self.total <= 0:
            return 0.0
        return round(100.0 * self.atual / self.total, 1)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "etapa": self.etapa,
            "atual": self.atual,
            "total": self.total,
            "mensagem": self.mensagem,
            "percent": self.percent,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class ImportResult:
    """Counters and messages for one entity within a session."""
    entity: str
    tabela: str
    importados: int = 0
    atualizados: int = 0
    duplicados: int = 0
    erros: int = 0
    descartados: int = 0
    mensagens: List[str] = field(default_factory=list)
    mensagens_omitidas: int = 0
    max_mensagens: int = 50
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    def add_message(self, message: str) -> None:
        """Keep a message for display; past the cap only the overflow is counted."""
        if len(self.mensagens) < self.max_mensagens:
            self.mensagens.append(message)
        else:
            self.mensagens_omitidas += 1

    def add_errors(self, count: int, message: str) -> None:
        self.erros += count
        self.add_message(message)

    @property
    def status(self) -> ResultStatus:
        if self.erros == 0:
            return ResultStatus.SUCESSO
        if self.importados + self.atualizados > 0:
            return ResultStatus.PARCIAL
        return ResultStatus.ERRO

    @property
    def duration_seconds(self) -> Optional[float]:
        """Get duration in seconds."""
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    def report_line(self) -> str:
        return f"{self.entity}: {self.importados} importados, {self.erros} erros - {self.tabela}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "entity": self.entity,
            "tabela": self.tabela,
            "status": self.status.value,
            "importados": self.importados,
            "atualizados": self.atualizados,
            "duplicados": self.duplicados,
            "erros": self.erros,
            "descartados": self.descartados,
            "mensagens": self.mensagens,
            "mensagens_omitidas": self.mensagens_omitidas,
            "duration_seconds": self.duration_seconds,
        }


@dataclass
class IncompleteClient:
    """An imported client missing profile fields."""
    id: Any
    nome: str
    telefone: Optional[str] = None
    campos_faltando: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "nome": self.nome,
            "telefone": self.telefone,
            "campos_faltando": self.campos_faltando,
        }


@dataclass
class SessionResult:
    """Everything a finished (or cancelled) session reports."""
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    status: SessionStatus = SessionStatus.IDLE
    strategy: Optional[MergeStrategy] = None
    forced: bool = False
    results: Dict[str, ImportResult] = field(default_factory=dict)
    files: List[FileOutcome] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    incomplete_clients: List[IncompleteClient] = field(default_factory=list)
    validation: Optional[ValidationSummary] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    log_id: Optional[Any] = None

    def result_for(self, entity: str, table: str, max_mensagens: int = 50) -> ImportResult:
        """Get or create the result for an entity."""
        if entity not in self.results:
            self.results[entity] = ImportResult(
                entity=entity, tabela=table, max_mensagens=max_mensagens
            )
        return self.results[entity]

    @property
    def total_importados(self) -> int:
        return sum(r.importados for r in self.results.values())

    @property
    def total_atualizados(self) -> int:
        return sum(r.atualizados for r in self.results.values())

    @property
    def total_duplicados(self) -> int:
        return sum(r.duplicados for r in self.results.values())

    @property
    def total_erros(self) -> int:
        return sum(r.erros for r in self.results.values())

    @property
    def total_descartados(self) -> int:
        return sum(r.descartados for r in self.results.values())

    @property
    def duration_seconds(self) -> Optional[float]:
        """Get duration in seconds."""
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    def to_report(self) -> str:
        """Plain-text report, one line per entity."""
        return "\n".join(r.report_line() for r in self.results.values())

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "status": self.status.value,
            "strategy": self.strategy.value if self.strategy else None,
            "forced": self.forced,
            "results": [r.to_dict() for r in self.results.values()],
            "files": [f.to_dict() for f in self.files],
            "warnings": self.warnings,
            "incomplete_clients": [c.to_dict() for c in self.incomplete_clients],
            "validation": self.validation.to_dict() if self.validation else None,
            "total_importados": self.total_importados,
            "total_atualizados": self.total_atualizados,
            "total_duplicados": self.total_duplicados,
            "total_erros": self.total_erros,
            "total_descartados": self.total_descartados,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_seconds": self.duration_seconds,
            "log_id": self.log_id,
        }


@dataclass
class ImportConfig:
    """Runtime configuration for the import pipeline."""
    batch_size: int = 100
    batch_delay: float = 0.05  # Minimum seconds between storage batch calls
    max_display_errors: int = 50
    default_strategy: MergeStrategy = MergeStrategy.MESCLAR
    options: ImportOptions = field(default_factory=ImportOptions)

    # Storage
    storage_url: Optional[str] = None
    storage_api_key: Optional[str] = None
    request_timeout: float = 30.0
    dry_run: bool = False

    # Bookkeeping
    record_import_log: bool = True
    report_dropped_records: bool = False
    schemas_dir: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "batch_size": self.batch_size,
            "batch_delay": self.batch_delay,
            "max_display_errors": self.max_display_errors,
            "default_strategy": self.default_strategy.value,
            "options": self.options.to_dict(),
            "storage_url": self.storage_url,
            "request_timeout": self.request_timeout,
            "dry_run": self.dry_run,
            "record_import_log": self.record_import_log,
            "report_dropped_records": self.report_dropped_records,
            "schemas_dir": self.schemas_dir,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ImportConfig":
        """Create from dictionary representation."""
        return cls(
            batch_size=data.get("batch_size", 100),
            batch_delay=data.get("batch_delay", 0.05),
            max_display_errors=data.get("max_display_errors", 50),
            default_strategy=MergeStrategy(data.get("default_strategy", "mesclar")),
            options=ImportOptions.from_dict(data.get("options")),
            storage_url=data.get("storage_url"),
            storage_api_key=data.get("storage_api_key"),
            request_timeout=data.get("request_timeout", 30.0),
            dry_run=data.get("dry_run", False),
            record_import_log=data.get("record_import_log", True),
            report_dropped_records=data.get("report_dropped_records", False),
            schemas_dir=data.get("schemas_dir"),
        )

    @classmethod
    def load(cls, path: Optional[str] = None, environ: Optional[Dict[str, str]] = None) -> "ImportConfig":
        """
        Build a configuration from an optional JSON file plus environment overrides.

        Args:
            path: JSON file with ImportConfig keys
            environ: Environment mapping (defaults to os.environ)

        Returns:
            ImportConfig
        """
        data: Dict[str, Any] = {}
        if path:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)

        env = os.environ if environ is None else environ
        if env.get("SUPABASE_URL"):
            data["storage_url"] = env["SUPABASE_URL"]
        if env.get("SUPABASE_KEY"):
            data["storage_api_key"] = env["SUPABASE_KEY"]
        if env.get("SALON_IMPORT_BATCH_SIZE"):
            data["batch_size"] = int(env["SALON_IMPORT_BATCH_SIZE"])
        if env.get("SALON_IMPORT_BATCH_DELAY"):
            data["batch_delay"] = float(env["SALON_IMPORT_BATCH_DELAY"])

        return cls.from_dict(data)
