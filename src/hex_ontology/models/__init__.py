"""Data models for entity types, the board, the ontology and derived outputs."""

from hex_ontology.models.board import BoardState, EntityData, UnitInstance
from hex_ontology.models.game_system import (
    EntityRole,
    EntityType,
    EntityTypeRegistry,
    PropertyDefinition,
    PropertyType,
    new_id,
)
from hex_ontology.models.hex import GridConfig, HexPosition
from hex_ontology.models.ontology import (
    Allow,
    Block,
    CompareOp,
    Concept,
    ConceptBinding,
    ConceptRole,
    Constraint,
    CrossCompare,
    IsType,
    ModifyOperation,
    ModifyProperty,
    PathBudget,
    PropertyBinding,
    PropertyCompare,
    Relation,
    RelationTrigger,
)
from hex_ontology.models.validation import (
    SchemaError,
    SchemaErrorCategory,
    SchemaValidation,
    Severity,
    ValidMoveSet,
)

__all__ = [
    "BoardState",
    "EntityData",
    "UnitInstance",
    "EntityRole",
    "EntityType",
    "EntityTypeRegistry",
    "PropertyDefinition",
    "PropertyType",
    "new_id",
    "GridConfig",
    "HexPosition",
    "Allow",
    "Block",
    "CompareOp",
    "Concept",
    "ConceptBinding",
    "ConceptRole",
    "Constraint",
    "CrossCompare",
    "IsType",
    "ModifyOperation",
    "ModifyProperty",
    "PathBudget",
    "PropertyBinding",
    "PropertyCompare",
    "Relation",
    "RelationTrigger",
    "SchemaError",
    "SchemaErrorCategory",
    "SchemaValidation",
    "Severity",
    "ValidMoveSet",
]
