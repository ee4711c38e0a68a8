"""
Rules Module

Decides move legality from the ontology and the board:
- which hexes a selected unit can reach within its budgets
- why every in-range hex it cannot enter is blocked
"""

from .engine import (
    BLOCK_TEMPLATE,
    BUDGET_TEMPLATE,
    PROPERTY_TEMPLATE,
    ReachabilityEngine,
    compute_valid_moves,
)
from .expressions import Outcome, RoleFiller, evaluate, format_value

__all__ = [
    "BLOCK_TEMPLATE",
    "BUDGET_TEMPLATE",
    "PROPERTY_TEMPLATE",
    "ReachabilityEngine",
    "compute_valid_moves",
    "Outcome",
    "RoleFiller",
    "evaluate",
    "format_value",
]
