"""Entity schema models: field rules and references between entities."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from enum import Enum
import json


class Coercion(str, Enum):
    """Supported value coercions."""
    TEXT = "text"
    LOWER = "lower"  # Trimmed, lower-cased text (emails)
    DIGITS = "digits"  # Digits only (CPF, CEP)
    PHONE = "phone"
    DATE = "date"
    DATETIME = "datetime"
    NUMBER = "number"
    INTEGER = "integer"
    ACTIVE = "active"


@dataclass
class FieldRule:
    """
    How one canonical field is read from a parsed row.

    The first alias holding a non-blank value wins. ``default`` is used when
    no alias has a value; ``fill`` only when the session asks to complete
    empty fields.
    """
    target: str
    aliases: List[str] = field(default_factory=list)
    coerce: Coercion = Coercion.TEXT
    default: Any = None
    fill: Any = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "target": self.target,
            "aliases": self.aliases,
            "coerce": self.coerce.value,
            "default": self.default,
            "fill": self.fill,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FieldRule":
        """Create from dictionary representation."""
        target = data["target"]
        return cls(
            target=target,
            aliases=data.get("aliases") or [target],
            coerce=Coercion(data.get("coerce", "text")),
            default=data.get("default"),
            fill=data.get("fill"),
        )


@dataclass
class Reference:
    """A name-based link from one entity to another, resolved to an id on import."""
    source_field: str  # Field holding the referenced name, e.g. cliente_nome
    entity: str  # Referenced entity, e.g. clientes
    id_field: Optional[str] = None  # Column receiving the resolved id; None only checks the name
    required: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "source_field": self.source_field,
            "entity": self.entity,
            "id_field": self.id_field,
            "required": self.required,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Reference":
        """Create from dictionary representation."""
        return cls(
            source_field=data["source_field"],
            entity=data["entity"],
            id_field=data.get("id_field"),
            required=data.get("required", False),
        )


@dataclass
class EntitySchema:
    """Mapping rules and import metadata for one entity."""
    name: str
    table: str
    name_field: str  # Records with this field empty are dropped
    fields: List[FieldRule] = field(default_factory=list)
    key_fields: List[str] = field(default_factory=list)  # Each one alone identifies a duplicate
    references: List[Reference] = field(default_factory=list)
    phase: int = 99
    json_aliases: List[str] = field(default_factory=list)
    description: str = ""

    def get_rule(self, target: str) -> Optional[FieldRule]:
        for rule in self.fields:
            if rule.target == target:
                return rule
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "name": self.name,
            "table": self.table,
            "name_field": self.name_field,
            "fields": [r.to_dict() for r in self.fields],
            "key_fields": self.key_fields,
            "references": [r.to_dict() for r in self.references],
            "phase": self.phase,
            "json_aliases": self.json_aliases,
            "description": self.description,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EntitySchema":
        """Create from dictionary representation."""
        return cls(
            name=data["name"],
            table=data.get("table", data["name"]),
            name_field=data.get("name_field", "nome"),
            fields=[FieldRule.from_dict(f) for f in data.get("fields", [])],
            key_fields=data.get("key_fields", []),
            references=[Reference.from_dict(r) for r in data.get("references", [])],
            phase=data.get("phase", 99),
            json_aliases=data.get("json_aliases", []),
            description=data.get("description", ""),
        )

    @classmethod
    def from_json_file(cls, file_path: str) -> "EntitySchema":
        """Load an entity schema from a JSON file."""
        with open(file_path, "r", encoding="utf-8") as f:
            return cls.from_dict(json.load(f))
