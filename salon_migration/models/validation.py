"""Validation findings and the summary that gates an import."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from enum import Enum


class Severity(str, Enum):
    """Severity of a validation finding."""
    CRITICAL = "critical"  # Blocks the import unless forced
    WARNING = "warning"
    INFO = "info"


@dataclass
class ValidationFinding:
    """A single validation message, possibly aggregating several records."""
    severity: Severity
    message: str
    suggestion: Optional[str] = None
    entity: Optional[str] = None
    code: str = "validation"
    count: int = 1
    positions: List[int] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "severity": self.severity.value,
            "message": self.message,
            "suggestion": self.suggestion,
            "entity": self.entity,
            "code": self.code,
            "count": self.count,
            "positions": self.positions,
        }


@dataclass
class ValidationSummary:
    """All findings for a session plus per-severity totals."""
    findings: List[ValidationFinding] = field(default_factory=list)

    def add(self, finding: ValidationFinding) -> None:
        self.findings.append(finding)

    def _count(self, severity: Severity) -> int:
        return sum(1 for f in self.findings if f.severity == severity)

    @property
    def total_criticos(self) -> int:
        return self._count(Severity.CRITICAL)

    @property
    def total_avisos(self) -> int:
        return self._count(Severity.WARNING)

    @property
    def total_info(self) -> int:
        return self._count(Severity.INFO)

    @property
    def pode_importar(self) -> bool:
        """True exactly when there are no critical findings."""
        return self.total_criticos == 0

    def by_severity(self, severity: Severity) -> List[ValidationFinding]:
        return [f for f in self.findings if f.severity == severity]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "total_criticos": self.total_criticos,
            "total_avisos": self.total_avisos,
            "total_info": self.total_info,
            "pode_importar": self.pode_importar,
            "findings": [f.to_dict() for f in self.findings],
        }
