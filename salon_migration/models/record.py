"""Record models for import data."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from enum import Enum

UNKNOWN_ORDER = 999


class FileStatus(str, Enum):
    """Status of an uploaded file within a session."""
    PENDENTE = "pendente"
    SUCESSO = "sucesso"
    ERRO = "erro"
    IGNORADO = "ignorado"


@dataclass
class SourceFile:
    """A file handed to the pipeline. Never persisted."""
    name: str
    content: bytes
    byte_size: int = 0

    def __post_init__(self):
        if not self.byte_size:
            self.byte_size = len(self.content)

    @classmethod
    def from_text(cls, name: str, text: str) -> "SourceFile":
        return cls(name=name, content=text.encode("utf-8"))


@dataclass
class ClassifiedFile:
    """A source file with its detected entity and import position."""
    source: SourceFile
    entity_type: Optional[str] = None
    target_table: Optional[str] = None
    import_order: int = UNKNOWN_ORDER
    selected: bool = False
    suggested_entity: Optional[str] = None  # From headers, never auto-selected

    @property
    def name(self) -> str:
        return self.source.name

    @property
    def known(self) -> bool:
        return self.entity_type is not None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "name": self.name,
            "byte_size": self.source.byte_size,
            "entity_type": self.entity_type,
            "target_table": self.target_table,
            "import_order": self.import_order,
            "selected": self.selected,
            "suggested_entity": self.suggested_entity,
        }


@dataclass
class ParsedRecord:
    """One row of a source file keyed by normalized header."""
    values: Dict[str, Any]
    position: int = 0
    source_file: Optional[str] = None

    def get(self, key: str, default: Any = None) -> Any:
        return self.values.get(key, default)


@dataclass
class MappedRecord:
    """A row translated to the canonical fields of an entity."""
    entity_type: str
    data: Dict[str, Any]
    position: int = 0
    source_file: Optional[str] = None
    filled_fields: List[str] = field(default_factory=list)  # Filled with fallback values
    invalid_fields: List[str] = field(default_factory=list)  # Present in the source but unreadable

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "entity_type": self.entity_type,
            "data": self.data,
            "position": self.position,
            "source_file": self.source_file,
        }


@dataclass
class FileOutcome:
    """What happened to one uploaded file."""
    name: str
    entity_type: Optional[str] = None
    table: Optional[str] = None
    status: FileStatus = FileStatus.PENDENTE
    registros: int = 0
    descartados: int = 0
    message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "name": self.name,
            "entity_type": self.entity_type,
            "table": self.table,
            "status": self.status.value,
            "registros": self.registros,
            "descartados": self.descartados,
            "message": self.message,
        }


@dataclass
class EntityDataset:
    """All mapped records of one entity gathered from the session's files."""
    entity_type: str
    table: str
    import_order: int = UNKNOWN_ORDER
    records: List[MappedRecord] = field(default_factory=list)
    descartados: int = 0
    files: List[str] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.records)
