"""Ontology models: concepts, bindings, relations and constraints.

Concepts give meaning to entity types without hardcoding game terms. A
concept such as "Motion" declares role slots ("traveler", "ground"); entity
types bind to those roles and map their own properties to concept-local
names ("budget", "cost"). Relations and constraints are written against
roles and concept-local names only.
"""

import operator
from enum import Enum
from typing import Annotated, Callable, Literal, Optional, Union

from pydantic import BaseModel, Field

from .game_system import EntityRole, PropertyValue, new_id


# ============================================================================
# Concepts and bindings
# ============================================================================

class ConceptRole(BaseModel):
    """A named slot within a concept."""

    id: str = Field(default_factory=new_id)
    name: str
    allowed_entity_roles: list[EntityRole] = Field(default_factory=list)

    def accepts(self, role: EntityRole) -> bool:
        return role in self.allowed_entity_roles


class Concept(BaseModel):
    """A named abstract relationship pattern with role slots."""

    id: str = Field(default_factory=new_id)
    name: str
    description: str = ""
    roles: list[ConceptRole] = Field(default_factory=list)

    def role(self, role_id: str) -> Optional[ConceptRole]:
        for role in self.roles:
            if role.id == role_id:
                return role
        return None

    def has_role(self, role_id: str) -> bool:
        return self.role(role_id) is not None

    def role_by_name(self, name: str) -> Optional[ConceptRole]:
        for role in self.roles:
            if role.name == name:
                return role
        return None


class PropertyBinding(BaseModel):
    """Maps an entity type property to a concept-local name."""

    property_name: str  # name on the entity type, e.g. "movement_points"
    concept_local_name: str  # name used by relations and constraints, e.g. "budget"


class ConceptBinding(BaseModel):
    """Binds an entity type to one role of one concept."""

    id: str = Field(default_factory=new_id)
    entity_type_id: str
    concept_id: str
    concept_role_id: str
    property_bindings: list[PropertyBinding] = Field(default_factory=list)

    def resolve(self, local_name: str) -> Optional[str]:
        """Entity type property name bound to ``local_name``, if any."""
        for pb in self.property_bindings:
            if pb.concept_local_name == local_name:
                return pb.property_name
        return None

    def local_names(self) -> set[str]:
        return {pb.concept_local_name for pb in self.property_bindings}


# ============================================================================
# Constraint expressions
# ============================================================================

class CompareOp(str, Enum):
    """Comparison operators for constraint expressions."""

    LT = "<"
    LE = "<="
    EQ = "=="
    NE = "!="
    GE = ">="
    GT = ">"

    def apply(self, left: PropertyValue, right: PropertyValue) -> bool:
        """Compare two values. Ordering incomparable types raises TypeError."""
        return _OPERATORS[self](left, right)


_OPERATORS: dict[CompareOp, Callable[[object, object], bool]] = {
    CompareOp.LT: operator.lt,
    CompareOp.LE: operator.le,
    CompareOp.EQ: operator.eq,
    CompareOp.NE: operator.ne,
    CompareOp.GE: operator.ge,
    CompareOp.GT: operator.gt,
}


class PropertyCompare(BaseModel):
    """role.property <op> literal"""

    kind: Literal["property_compare"] = "property_compare"
    role_id: str
    property: str
    op: CompareOp
    value: PropertyValue


class CrossCompare(BaseModel):
    """role_a.property_a <op> role_b.property_b"""

    kind: Literal["cross_compare"] = "cross_compare"
    role_a: str
    property_a: str
    op: CompareOp
    role_b: str
    property_b: str


class IsType(BaseModel):
    """The entity filling ``role_id`` is of ``expected_type``."""

    kind: Literal["is_type"] = "is_type"
    role_id: str
    expected_type: str


class PathBudget(BaseModel):
    """Accumulated path cost may not exceed role.property."""

    kind: Literal["path_budget"] = "path_budget"
    role_id: str
    property: str


ConstraintExpr = Annotated[
    Union[PropertyCompare, CrossCompare, IsType, PathBudget],
    Field(discriminator="kind"),
]


def expression_roles(expr: ConstraintExpr) -> list[str]:
    """Role ids an expression needs filled before it can be evaluated."""
    match expr:
        case CrossCompare():
            return [expr.role_a, expr.role_b]
        case PropertyCompare() | IsType() | PathBudget():
            return [expr.role_id]
    return []


def expression_properties(expr: ConstraintExpr) -> list[tuple[str, str]]:
    """(role id, concept-local property) pairs an expression reads."""
    match expr:
        case PropertyCompare() | PathBudget():
            return [(expr.role_id, expr.property)]
        case CrossCompare():
            return [(expr.role_a, expr.property_a), (expr.role_b, expr.property_b)]
    return []


# ============================================================================
# Relations
# ============================================================================

class RelationTrigger(str, Enum):
    """When a relation's effect applies."""

    ON_ENTER = "OnEnter"
    ON_EXIT = "OnExit"
    WHILE_PRESENT = "WhilePresent"


class ModifyOperation(str, Enum):
    ADD = "Add"
    SUBTRACT = "Subtract"


class ModifyProperty(BaseModel):
    """Change the subject's ``property`` by ``amount`` when triggered.

    When ``source_property`` names a concept-local property bound on the
    object, its value is used instead of ``amount`` (e.g. a terrain's own
    movement cost).
    """

    kind: Literal["modify_property"] = "modify_property"
    property: str
    operation: ModifyOperation
    amount: int | float = 1
    source_property: Optional[str] = None


class Block(BaseModel):
    """Forbid the subject from the object's hex, optionally only when ``condition`` holds."""

    kind: Literal["block"] = "block"
    condition: Optional[ConstraintExpr] = None


class Allow(BaseModel):
    """Permit the subject at the object's hex."""

    kind: Literal["allow"] = "allow"
    condition: Optional[ConstraintExpr] = None


RelationEffect = Annotated[
    Union[ModifyProperty, Block, Allow],
    Field(discriminator="kind"),
]


class Relation(BaseModel):
    """A triggered effect between two roles of a concept."""

    id: str = Field(default_factory=new_id)
    name: str
    concept_id: str
    subject_role_id: str
    object_role_id: str
    trigger: RelationTrigger = RelationTrigger.ON_ENTER
    effect: RelationEffect

    @property
    def is_subtract(self) -> bool:
        return (
            isinstance(self.effect, ModifyProperty)
            and self.effect.operation == ModifyOperation.SUBTRACT
        )


# ============================================================================
# Constraints
# ============================================================================

class Constraint(BaseModel):
    """A named expression that must hold within a concept.

    ``auto_generated`` constraints are derived from a Subtract relation and
    carry its id in ``relation_id``. Editing one by hand clears both fields.
    """

    id: str = Field(default_factory=new_id)
    name: str
    description: str = ""
    concept_id: str
    expression: ConstraintExpr
    auto_generated: bool = False
    relation_id: Optional[str] = None
