"""Base extractor interface."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from datetime import datetime
import logging

from ..models.record import ParsedRecord, SourceFile
from ..utils import decode_bytes

logger = logging.getLogger(__name__)


@dataclass
class ExtractionResult:
    """
    Result of parsing one file.

    Single-table formats fill ``records``. Multi-table formats (JSON backups,
    SQL dumps) fill ``sections``, keyed by the table or key name found in the
    file.
    """
    filename: str
    format: str
    records: List[ParsedRecord] = field(default_factory=list)
    sections: Dict[str, List[ParsedRecord]] = field(default_factory=dict)
    headers: List[str] = field(default_factory=list)
    errors: List[Dict[str, Any]] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def total_extracted(self) -> int:
        return len(self.records) + sum(len(rows) for rows in self.sections.values())

    @property
    def is_multi_table(self) -> bool:
        return bool(self.sections)

    @property
    def success(self) -> bool:
        return len(self.errors) == 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "filename": self.filename,
            "format": self.format,
            "total_extracted": self.total_extracted,
            "sections": {name: len(rows) for name, rows in self.sections.items()},
            "headers": self.headers,
            "errors": self.errors,
            "warnings": self.warnings,
        }


class BaseExtractor(ABC):
    """
    Base class for file parsers.

    Extractors turn the raw text of an uploaded file into ParsedRecords keyed
    by normalized header. Unreadable files raise ParseError; the caller
    decides what that means for sibling files.
    """

    format_name = "unknown"

    def __init__(self):
        self._errors: List[Dict[str, Any]] = []
        self._warnings: List[str] = []

    @abstractmethod
    def parse(self, text: str, source_file: Optional[str] = None) -> ExtractionResult:
        """
        Parse decoded file text.

        Args:
            text: File contents
            source_file: Name used in messages and on the records

        Returns:
            ExtractionResult
        """
        pass

    def extract(self, source: SourceFile) -> ExtractionResult:
        """Decode and parse an uploaded file."""
        self.reset()
        started_at = datetime.utcnow()
        result = self.parse(decode_bytes(source.content), source_file=source.name)
        result.started_at = started_at
        result.completed_at = datetime.utcnow()
        result.errors.extend(self._errors)
        result.warnings.extend(self._warnings)
        logger.info(f"Parsed {result.total_extracted} rows from {source.name} ({self.format_name})")
        return result

    def add_error(self, message: str, position: Optional[int] = None, details: Optional[Dict] = None):
        """Record a non-fatal parsing error."""
        self._errors.append({
            "message": message,
            "position": position,
            "details": details or {},
            "timestamp": datetime.utcnow().isoformat(),
        })
        logger.error(f"Parse error: {message}")

    def add_warning(self, message: str):
        """Record a parsing warning."""
        self._warnings.append(message)
        logger.warning(f"Parse warning: {message}")

    def reset(self):
        self._errors = []
        self._warnings = []


def detect_format(filename: str, text: str) -> str:
    """
    Pick a parser for a file: extension first, then a look at the content.

    Returns one of ``json``, ``sql`` or ``csv``.
    """
    lowered = filename.lower()
    if lowered.endswith(".json"):
        return "json"
    if lowered.endswith(".sql"):
        return "sql"

    head = text.lstrip()[:2048]
    if head.startswith("{") or head.startswith("["):
        return "json"
    if "insert into" in head.lower():
        return "sql"
    return "csv"
