"""Auto-generation of budget constraints from Subtract relations.

A relation whose effect subtracts from a subject property implies that the
property caps how far the subject can go. For every such relation the store
carries one constraint ``PathBudget{role: subject_role, property}`` flagged
``auto_generated`` and pointing back at the relation.

Reconciliation is driven by the relation changes the store records, so a
constraint the designer edited (flag cleared, back-reference dropped) is
never touched again, not even when its source relation is deleted. Such a
constraint never stands in for a derived one: every Subtract relation gets
its own, even when a designer constraint states the same budget.
"""

from dataclasses import dataclass, field

from loguru import logger

from ..models.ontology import Constraint, ModifyOperation, ModifyProperty, PathBudget, Relation
from .store import REMOVE, OntologyStore


@dataclass
class ReconcileReport:
    """What a reconciliation pass changed."""
    created: list[str] = field(default_factory=list)  # new constraint ids
    removed: list[str] = field(default_factory=list)  # deleted constraint ids

    @property
    def changed(self) -> bool:
        return bool(self.created or self.removed)


def budget_expression(relation: Relation) -> PathBudget | None:
    """The PathBudget a relation implies, or None when it implies none."""
    effect = relation.effect
    if isinstance(effect, ModifyProperty) and effect.operation == ModifyOperation.SUBTRACT:
        return PathBudget(role_id=relation.subject_role_id, property=effect.property)
    return None


def _build_constraint(relation: Relation, expression: PathBudget) -> Constraint:
    prop = expression.property
    return Constraint(
        name=f"[auto] {prop} budget",
        description=(
            f"Auto-generated: path cost may not exceed {prop} "
            f"because relation \"{relation.name}\" subtracts from it"
        ),
        concept_id=relation.concept_id,
        expression=expression,
        auto_generated=True,
        relation_id=relation.id,
    )


def reconcile_relation(store: OntologyStore, relation_id: str, report: ReconcileReport) -> None:
    """Bring the auto constraint of one relation in line with the relation."""
    relation = store.find_relation(relation_id)
    existing = store.auto_constraints_for(relation_id)
    expected = budget_expression(relation) if relation else None

    if relation is not None and expected is not None and len(existing) == 1:
        current = existing[0]
        if current.expression == expected and current.concept_id == relation.concept_id:
            return

    for constraint in existing:
        store.discard_constraint(constraint.id)
        report.removed.append(constraint.id)

    if relation is not None and expected is not None:
        constraint = _build_constraint(relation, expected)
        store.put_constraint(constraint)
        report.created.append(constraint.id)


def reconcile(store: OntologyStore) -> ReconcileReport:
    """Apply every pending relation change to the derived constraints.

    Running it again with no relation change in between finds nothing
    pending and changes nothing.
    """
    report = ReconcileReport()
    changes = store.drain_relation_changes()
    if not changes:
        return report

    for relation_id, kind in changes.items():
        if kind == REMOVE:
            for constraint in store.auto_constraints_for(relation_id):
                store.discard_constraint(constraint.id)
                report.removed.append(constraint.id)
        else:
            reconcile_relation(store, relation_id, report)

    if report.changed:
        logger.info(
            f"Reconciled {len(changes)} relation change(s): "
            f"{len(report.created)} constraint(s) created, {len(report.removed)} removed"
        )
    return report


def reconcile_all(store: OntologyStore) -> ReconcileReport:
    """Re-check every relation, e.g. after importing a hand-written project."""
    for relation in store.relations:
        store.mark_relation_changed(relation.id)
    for constraint in store.constraints:
        orphaned = constraint.auto_generated and constraint.relation_id
        if orphaned and store.find_relation(constraint.relation_id) is None:
            store.mark_relation_changed(constraint.relation_id)
    return reconcile(store)


def orphaned_auto_constraints(store: OntologyStore) -> list[Constraint]:
    """Auto constraints whose back-reference no longer names a Subtract relation."""
    orphans = []
    for constraint in store.constraints:
        if not constraint.auto_generated:
            continue
        relation = store.find_relation(constraint.relation_id) if constraint.relation_id else None
        if relation is None or not relation.is_subtract:
            orphans.append(constraint)
    return orphans
