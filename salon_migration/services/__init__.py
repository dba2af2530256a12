"""Services for classification, mapping, validation, merging and triage."""

from .classifier import FileClassifier, FileMapping, FILE_MAPPINGS, normalize_filename
from .schema_registry import EntityRegistry, builtin_schemas
from .mapper import FieldMapper, MappingResult
from .merger import ConflictResolver, MergePlan, PlannedUpdate, record_keys
from .validator import ValidationEngine, ValidationRules
from .triage import ClientTriage, find_incomplete
from .history import ImportHistory

__all__ = [
    "FileClassifier",
    "FileMapping",
    "FILE_MAPPINGS",
    "normalize_filename",
    "EntityRegistry",
    "builtin_schemas",
    "FieldMapper",
    "MappingResult",
    "ConflictResolver",
    "MergePlan",
    "PlannedUpdate",
    "record_keys",
    "ValidationEngine",
    "ValidationRules",
    "ClientTriage",
    "find_incomplete",
    "ImportHistory",
]
