"""Derived outputs: schema validation reports and valid move sets."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from .hex import HexPosition


class Severity(Enum):
    ERROR = "error"
    WARNING = "warning"


class SchemaErrorCategory(Enum):
    """Kinds of schema problems, in reporting order."""
    DANGLING_REFERENCE = "dangling_reference"
    ROLE_MISMATCH = "role_mismatch"
    PROPERTY_MISMATCH = "property_mismatch"
    INVALID_EXPRESSION = "invalid_expression"
    MISSING_BINDING = "missing_binding"

    @property
    def rank(self) -> int:
        return list(SchemaErrorCategory).index(self)

    @property
    def severity(self) -> Severity:
        if self is SchemaErrorCategory.MISSING_BINDING:
            return Severity.WARNING
        return Severity.ERROR

    @property
    def label(self) -> str:
        return self.value.replace("_", " ")


@dataclass
class SchemaError:
    """A single schema problem and the definition it was found on."""
    category: SchemaErrorCategory
    message: str
    source_reference: str  # id of the offending binding, relation, constraint or concept

    @property
    def is_warning(self) -> bool:
        return self.category.severity is Severity.WARNING

    def to_dict(self) -> dict:
        return {
            "category": self.category.value,
            "severity": self.category.severity.value,
            "message": self.message,
            "source_reference": self.source_reference,
        }


@dataclass
class SchemaValidation:
    """Result of one validation pass over the ontology."""
    errors: list[SchemaError] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        """No error-severity entries. Warnings alone keep the schema valid."""
        return not any(not e.is_warning for e in self.errors)

    def warnings(self) -> list[SchemaError]:
        return [e for e in self.errors if e.is_warning]

    def by_category(self, category: SchemaErrorCategory) -> list[SchemaError]:
        return [e for e in self.errors if e.category is category]

    def has(self, category: SchemaErrorCategory) -> bool:
        return any(e.category is category for e in self.errors)

    def to_dict(self) -> dict:
        return {
            "is_valid": self.is_valid,
            "errors": [e.to_dict() for e in self.errors],
        }


@dataclass
class ValidMoveSet:
    """Hexes the selected entity may reach, plus reasons for blocked ones."""
    for_entity: Optional[str] = None
    valid_positions: set[HexPosition] = field(default_factory=set)
    # Only hexes within search range that were never reached.
    blocked_explanations: dict[HexPosition, list[str]] = field(default_factory=dict)

    @classmethod
    def empty(cls) -> "ValidMoveSet":
        return cls()

    def is_valid(self, pos: HexPosition) -> bool:
        return pos in self.valid_positions

    def explain(self, pos: HexPosition) -> list[str]:
        return list(self.blocked_explanations.get(pos, []))

    def to_dict(self) -> dict:
        return {
            "for_entity": self.for_entity,
            "valid_positions": [p.to_dict() for p in sorted(self.valid_positions)],
            "blocked_explanations": [
                {**pos.to_dict(), "reasons": reasons}
                for pos, reasons in sorted(self.blocked_explanations.items())
            ],
        }
