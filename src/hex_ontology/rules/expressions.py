"""Evaluation of constraint expressions against the entities filling concept roles.

An expression is evaluated only when every role it mentions is filled. A
role that cannot be filled, a concept-local name with no binding, or values
that cannot be compared all make the expression not applicable: the caller
skips it instead of failing.
"""

from dataclasses import dataclass
from typing import Optional

from loguru import logger

from ..models.board import EntityData
from ..models.game_system import PropertyValue
from ..models.ontology import (
    CompareOp,
    ConceptBinding,
    ConstraintExpr,
    CrossCompare,
    IsType,
    PathBudget,
    PropertyCompare,
    expression_roles,
)


class ExpressionError(Exception):
    """An expression cannot be evaluated with the bindings at hand."""


@dataclass
class RoleFiller:
    """An entity standing in a concept role, with the binding that put it there."""
    data: EntityData
    binding: ConceptBinding

    def value_of(self, local_name: str) -> PropertyValue:
        property_name = self.binding.resolve(local_name)
        if property_name is None:
            raise ExpressionError(f"'{local_name}' is not bound for this entity")
        value = self.data.get(property_name)
        if value is None:
            raise ExpressionError(f"entity has no value for '{property_name}'")
        return value


@dataclass
class Outcome:
    """Result of evaluating one expression, with what was compared."""
    satisfied: bool
    property_name: str
    actual: PropertyValue
    op: CompareOp
    expected: PropertyValue
    type_check: bool = False


def format_value(value: PropertyValue) -> str:
    """Render a value for explanations: 3.0 -> "3", True -> "true"."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def as_number(value: Optional[PropertyValue]) -> Optional[float | int]:
    """Numeric view of a property value; booleans and text are not numbers."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return value
    return None


def _compare(op: CompareOp, left: PropertyValue, right: PropertyValue) -> bool:
    try:
        return op.apply(left, right)
    except TypeError as e:
        raise ExpressionError(f"cannot compare {left!r} {op.value} {right!r}") from e


def _evaluate(expr: ConstraintExpr, fillers: dict[str, RoleFiller]) -> Optional[Outcome]:
    match expr:
        case PropertyCompare(role_id=role_id, property=prop, op=op, value=value):
            actual = fillers[role_id].value_of(prop)
            return Outcome(_compare(op, actual, value), prop, actual, op, value)
        case CrossCompare(role_a=role_a, property_a=prop_a, op=op, role_b=role_b, property_b=prop_b):
            left = fillers[role_a].value_of(prop_a)
            right = fillers[role_b].value_of(prop_b)
            return Outcome(_compare(op, left, right), prop_a, left, op, right)
        case IsType(role_id=role_id, expected_type=expected):
            actual = fillers[role_id].data.entity_type_id
            return Outcome(actual == expected, "type", actual, CompareOp.EQ, expected, type_check=True)
        case PathBudget():
            # budgets are enforced by the search itself
            return None
    return None


def evaluate(expr: ConstraintExpr, fillers: dict[str, RoleFiller]) -> Optional[Outcome]:
    """Evaluate ``expr`` with ``fillers`` keyed by role id.

    Returns:
        The outcome, or None when the expression does not apply (a role is
        unfilled, a name is unbound, or the values are incomparable)
    """
    if any(role_id not in fillers for role_id in expression_roles(expr)):
        return None
    try:
        return _evaluate(expr, fillers)
    except ExpressionError as e:
        logger.debug(f"Skipping {expr.kind} expression: {e}")
        return None
