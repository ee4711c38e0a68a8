"""Valid move computation.

Searches outward from the selected unit's hex, applying the ontology at each
step:

- ``OnEnter`` relations whose subject role the unit's type is bound to and
  whose object role the target tile's type is bound to fire on entry.
  ``ModifyProperty`` effects add to (Subtract) or take from (Add) the step
  cost; ``Block`` effects, unconditional or with a holding condition, make the
  hex unenterable. ``Allow`` effects change nothing: entry is allowed unless
  something blocks it.
- Constraints of the unit's concepts are evaluated with the unit and the
  target tile filling their roles; a violated one blocks the hex.
- ``PathBudget`` constraints cap the accumulated path cost at the unit's
  current value of the budget property.

The frontier is ordered by accumulated cost. Hop count is capped at the
largest budget as a guard against unbounded exploration, so a cheaper route
to a hex does not replace one with fewer hops: each hex keeps every
(cost, hops) pair no other route beats on both counts.

Malformed parts of the ontology never stop the search: anything that cannot
be resolved is skipped.
"""

import heapq
import math
from collections import deque
from dataclasses import dataclass, field
from typing import Optional

from loguru import logger

from ..config import get_settings
from ..models.board import BoardState, EntityData, UnitInstance
from ..models.game_system import EntityTypeRegistry
from ..models.hex import HexPosition
from ..models.ontology import (
    Block,
    ConceptBinding,
    Constraint,
    ModifyOperation,
    ModifyProperty,
    PathBudget,
    Relation,
    RelationTrigger,
)
from ..models.validation import ValidMoveSet
from ..ontology.store import OntologyStore
from .expressions import ExpressionError, Outcome, RoleFiller, as_number, evaluate, format_value


BLOCK_TEMPLATE = "{entity_type} cannot enter {target_type}: {relation_name} blocks entry"
BUDGET_TEMPLATE = (
    "{entity_type} cannot reach ({q}, {r}): path cost {cost} exceeds {budget_property} of {budget}"
)
PROPERTY_TEMPLATE = "{constraint_name}: {property_name} is {actual}, must be {op} {expected}"


@dataclass
class Budget:
    """A movement budget the unit carries for one PathBudget constraint."""
    constraint: Constraint
    property: str  # concept-local name shown in explanations
    value: float | int


@dataclass
class StepResult:
    """Outcome of trying to enter one hex."""
    cost: float | int = 0  # accumulated path cost after entering
    reasons: list[str] = field(default_factory=list)
    rejected: bool = False


@dataclass
class _Context:
    """Everything about the moving unit that stays fixed during one search."""
    unit: UnitInstance
    unit_type_name: str
    unit_bindings: list[ConceptBinding]
    relations: list[Relation]
    constraints: list[Constraint]
    budgets: list[Budget]

    @property
    def depth_limit(self) -> Optional[int]:
        if not self.budgets:
            return None
        return max(0, math.floor(max(b.value for b in self.budgets)))

    def binding_for(self, concept_id: str, role_id: str) -> Optional[ConceptBinding]:
        for binding in self.unit_bindings:
            if binding.concept_id == concept_id and binding.concept_role_id == role_id:
                return binding
        return None


class ReachabilityEngine:
    """Computes the valid move set of a selected unit.

    Usage:
        engine = ReachabilityEngine(store, board, entity_types)
        moves = engine.compute(board.selected_unit)
        print(engine.search_steps)  # frontier expansions of the last run
    """

    def __init__(
        self,
        ontology: OntologyStore,
        board: BoardState,
        entity_types: Optional[EntityTypeRegistry] = None,
        budget_fallback_name: Optional[str] = None,
    ):
        self.ontology = ontology
        self.board = board
        self.entity_types = entity_types or EntityTypeRegistry()
        self.budget_fallback_name = budget_fallback_name or get_settings().budget_fallback_name
        self.search_steps = 0

    def compute(self, selected_entity: Optional[str]) -> ValidMoveSet:
        self.search_steps = 0

        if selected_entity is None:
            return ValidMoveSet.empty()

        unit = self.board.unit(selected_entity)
        if unit is None:
            logger.warning(f"Selected unit {selected_entity} is not on the board")
            return ValidMoveSet.empty()

        moves = ValidMoveSet(for_entity=unit.id)
        if self.ontology.is_empty_of_rules():
            self._free_movement(unit.position, moves)
        else:
            self._search(self._context(unit), moves)

        logger.debug(
            f"Moves for {unit.id}: {len(moves.valid_positions)} valid, "
            f"{len(moves.blocked_explanations)} blocked, {self.search_steps} step(s)"
        )
        return moves

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    def _free_movement(self, start: HexPosition, moves: ValidMoveSet) -> None:
        """Every in-bounds hex is reachable when the ontology has no rules."""
        grid = self.board.grid
        visited = {start}
        queue = deque([start])
        while queue:
            current = queue.popleft()
            self.search_steps += 1
            for neighbor in current.neighbors():
                if neighbor in visited or not grid.contains(neighbor):
                    continue
                visited.add(neighbor)
                moves.valid_positions.add(neighbor)
                queue.append(neighbor)

    def _search(self, ctx: _Context, moves: ValidMoveSet) -> None:
        grid = self.board.grid
        start = ctx.unit.position
        depth_limit = ctx.depth_limit

        # per hex, the (cost, hops) labels no other route beats on both counts
        labels: dict[HexPosition, list[tuple[float | int, int]]] = {start: [(0, 0)]}
        counter = 0
        frontier: list[tuple[float | int, int, int, HexPosition]] = [(0, 0, counter, start)]

        while frontier:
            cost, hops, _, current = heapq.heappop(frontier)
            if (cost, hops) not in labels[current]:
                continue  # dominated by a route found since
            self.search_steps += 1
            if depth_limit is not None and hops >= depth_limit:
                continue

            for neighbor in current.neighbors():
                if neighbor == start or not grid.contains(neighbor):
                    continue

                step = self._evaluate_step(ctx, neighbor, cost)
                if step.rejected:
                    # Entry costs depend only on the target, and the frontier pops
                    # in cost order, so the first rejection is the cheapest one.
                    if neighbor not in moves.valid_positions and neighbor not in moves.blocked_explanations:
                        moves.blocked_explanations[neighbor] = step.reasons
                    continue

                candidate = (step.cost, hops + 1)
                known = labels.setdefault(neighbor, [])
                if any(_dominates(label, candidate) for label in known):
                    continue
                known[:] = [label for label in known if not _dominates(candidate, label)]
                known.append(candidate)
                moves.valid_positions.add(neighbor)
                moves.blocked_explanations.pop(neighbor, None)
                counter += 1
                heapq.heappush(frontier, (step.cost, hops + 1, counter, neighbor))

    def _evaluate_step(self, ctx: _Context, target: HexPosition, cost_so_far: float | int) -> StepResult:
        tile = self.board.tile_at(target)
        result = StepResult()
        step_cost: float | int = 0

        for relation in ctx.relations:
            fillers = self._relation_fillers(ctx, relation, tile)
            if fillers is None:
                continue
            effect = relation.effect
            if isinstance(effect, ModifyProperty):
                amount = self._effect_amount(effect, fillers[relation.object_role_id])
                step_cost += amount if effect.operation == ModifyOperation.SUBTRACT else -amount
            elif isinstance(effect, Block):
                if effect.condition is None or _holds(evaluate(effect.condition, fillers)):
                    result.rejected = True
                    result.reasons.append(BLOCK_TEMPLATE.format(
                        entity_type=ctx.unit_type_name,
                        target_type=self.entity_types.name_of(tile.entity_type_id if tile else None),
                        relation_name=relation.name,
                    ))

        for constraint in ctx.constraints:
            outcome = evaluate(constraint.expression, self._constraint_fillers(ctx, constraint, tile))
            if outcome is not None and not outcome.satisfied:
                result.rejected = True
                result.reasons.append(self._describe_violation(constraint, outcome))

        if result.rejected:
            return result

        result.cost = cost_so_far + max(step_cost, 0)
        for budget in ctx.budgets:
            if result.cost > budget.value:
                result.rejected = True
                result.reasons.append(BUDGET_TEMPLATE.format(
                    entity_type=ctx.unit_type_name,
                    q=target.q,
                    r=target.r,
                    cost=format_value(result.cost),
                    budget_property=budget.property,
                    budget=format_value(budget.value),
                ))
        return result

    # ------------------------------------------------------------------
    # Context
    # ------------------------------------------------------------------

    def _context(self, unit: UnitInstance) -> _Context:
        type_id = unit.data.entity_type_id
        unit_bindings = self.ontology.bindings_for(type_id)
        bound_roles = {(b.concept_id, b.concept_role_id) for b in unit_bindings}
        bound_concepts = {b.concept_id for b in unit_bindings}

        relations = [
            r for r in self.ontology.relations
            if r.trigger == RelationTrigger.ON_ENTER
            and (r.concept_id, r.subject_role_id) in bound_roles
        ]

        ctx = _Context(
            unit=unit,
            unit_type_name=self.entity_types.name_of(type_id, default="Unit"),
            unit_bindings=unit_bindings,
            relations=relations,
            constraints=[],
            budgets=[],
        )

        for constraint in self.ontology.constraints:
            if constraint.concept_id not in bound_concepts:
                continue
            expr = constraint.expression
            if isinstance(expr, PathBudget):
                if (constraint.concept_id, expr.role_id) in bound_roles:
                    budget = self._resolve_budget(ctx, constraint, expr)
                    if budget is not None:
                        ctx.budgets.append(budget)
            else:
                ctx.constraints.append(constraint)

        return ctx

    def _resolve_budget(self, ctx: _Context, constraint: Constraint, expr: PathBudget) -> Optional[Budget]:
        binding = ctx.binding_for(constraint.concept_id, expr.role_id)
        if binding is None:
            return None
        filler = RoleFiller(ctx.unit.data, binding)
        for name in (expr.property, self.budget_fallback_name):
            try:
                value = as_number(filler.value_of(name))
            except ExpressionError:
                continue
            if value is not None:
                return Budget(constraint=constraint, property=expr.property, value=value)
        logger.debug(f"No budget value for '{expr.property}' on unit {ctx.unit.id}; skipping {constraint.name}")
        return None

    def _tile_binding(self, tile: Optional[EntityData], concept_id: str, role_id: str) -> Optional[ConceptBinding]:
        if tile is None:
            return None
        bindings = self.ontology.bindings_for(tile.entity_type_id, concept_id, role_id)
        return bindings[0] if bindings else None

    def _relation_fillers(
        self, ctx: _Context, relation: Relation, tile: Optional[EntityData]
    ) -> Optional[dict[str, RoleFiller]]:
        subject = ctx.binding_for(relation.concept_id, relation.subject_role_id)
        target = self._tile_binding(tile, relation.concept_id, relation.object_role_id)
        if subject is None or target is None:
            return None
        return {
            relation.subject_role_id: RoleFiller(ctx.unit.data, subject),
            relation.object_role_id: RoleFiller(tile, target),
        }

    def _constraint_fillers(
        self, ctx: _Context, constraint: Constraint, tile: Optional[EntityData]
    ) -> dict[str, RoleFiller]:
        fillers = {
            b.concept_role_id: RoleFiller(ctx.unit.data, b)
            for b in ctx.unit_bindings
            if b.concept_id == constraint.concept_id
        }
        if tile is not None:
            for b in self.ontology.bindings_for(tile.entity_type_id, constraint.concept_id):
                fillers.setdefault(b.concept_role_id, RoleFiller(tile, b))
        return fillers

    @staticmethod
    def _effect_amount(effect: ModifyProperty, target: RoleFiller) -> float | int:
        if effect.source_property:
            try:
                value = as_number(target.value_of(effect.source_property))
            except ExpressionError:
                value = None
            if value is not None:
                return value
        return effect.amount

    def _describe_violation(self, constraint: Constraint, outcome: Outcome) -> str:
        if outcome.type_check:
            actual = self.entity_types.name_of(str(outcome.actual))
            expected = self.entity_types.name_of(str(outcome.expected))
        else:
            actual = format_value(outcome.actual)
            expected = format_value(outcome.expected)
        return PROPERTY_TEMPLATE.format(
            constraint_name=constraint.name,
            property_name=outcome.property_name,
            actual=actual,
            op=outcome.op.value,
            expected=expected,
        )


def _dominates(a: tuple[float | int, int], b: tuple[float | int, int]) -> bool:
    """Route label ``a`` is no worse than ``b`` in both cost and hops."""
    return a[0] <= b[0] and a[1] <= b[1]


def _holds(outcome: Optional[Outcome]) -> bool:
    return outcome is not None and outcome.satisfied


def compute_valid_moves(
    selected_entity: Optional[str],
    board_state: BoardState,
    ontology: OntologyStore,
    entity_types: Optional[EntityTypeRegistry] = None,
) -> ValidMoveSet:
    """Compute the valid move set for ``selected_entity`` (None clears it)."""
    return ReachabilityEngine(ontology, board_state, entity_types).compute(selected_entity)
