"""Data models for the import pipeline."""

from .record import (
    UNKNOWN_ORDER,
    FileStatus,
    SourceFile,
    ClassifiedFile,
    ParsedRecord,
    MappedRecord,
    FileOutcome,
    EntityDataset,
)
from .schema import (
    Coercion,
    FieldRule,
    Reference,
    EntitySchema,
)
from .session import (
    SessionStatus,
    MergeStrategy,
    ResultStatus,
    ImportOptions,
    ProgressEvent,
    ImportResult,
    IncompleteClient,
    SessionResult,
    ImportConfig,
)
from .validation import (
    Severity,
    ValidationFinding,
    ValidationSummary,
)

__all__ = [
    "UNKNOWN_ORDER",
    "FileStatus",
    "SourceFile",
    "ClassifiedFile",
    "ParsedRecord",
    "MappedRecord",
    "FileOutcome",
    "EntityDataset",
    "Coercion",
    "FieldRule",
    "Reference",
    "EntitySchema",
    "SessionStatus",
    "MergeStrategy",
    "ResultStatus",
    "ImportOptions",
    "ProgressEvent",
    "ImportResult",
    "IncompleteClient",
    "SessionResult",
    "ImportConfig",
    "Severity",
    "ValidationFinding",
    "ValidationSummary",
]
