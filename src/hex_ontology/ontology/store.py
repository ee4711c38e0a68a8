"""In-memory ontology store.

Holds concepts, bindings, relations and constraints, and exposes the
discrete edit operations the editor issues against them. The store checks
only that references exist and that a binding's entity role fits the target
role. Everything else (property names, expression shape) is reported later by
the schema validator, so designers can build an ontology up incrementally.

Every successful mutation bumps ``version``. A failed mutation raises before
touching any collection, so the store is left exactly as it was.
"""

from dataclasses import dataclass
from typing import Iterable, Optional

from loguru import logger

from ..exceptions import InvalidReferenceError, NotFoundError
from ..models.game_system import EntityRole, EntityTypeRegistry
from ..models.ontology import (
    Concept,
    ConceptBinding,
    ConceptRole,
    Constraint,
    ConstraintExpr,
    PropertyBinding,
    Relation,
    RelationEffect,
    RelationTrigger,
)


UPSERT = "upsert"
REMOVE = "remove"


@dataclass(frozen=True)
class StoreSnapshot:
    """Deep copy of a store's collections, used to roll back a failed edit."""
    concepts: dict[str, Concept]
    bindings: dict[str, ConceptBinding]
    relations: dict[str, Relation]
    constraints: dict[str, Constraint]
    relation_changes: dict[str, str]
    version: int


def _copy_all(items: dict) -> dict:
    return {key: value.model_copy(deep=True) for key, value in items.items()}


class OntologyStore:
    """Concepts, bindings, relations and constraints keyed by id.

    Usage:
        store = OntologyStore(entity_types)
        motion = store.add_concept("Motion", roles=[traveler, ground])
        store.add_binding(infantry.id, motion.id, traveler.id,
                          [PropertyBinding(property_name="movement_points",
                                           concept_local_name="budget")])
    """

    def __init__(self, entity_types: Optional[EntityTypeRegistry] = None):
        """Initialize an empty store.

        Args:
            entity_types: Registry used to check bindings. Without one,
                binding checks against entity types are left to the validator.
        """
        self.entity_types = entity_types
        self._concepts: dict[str, Concept] = {}
        self._bindings: dict[str, ConceptBinding] = {}
        self._relations: dict[str, Relation] = {}
        self._constraints: dict[str, Constraint] = {}
        # relation id -> last change kind, drained by auto-generation
        self._relation_changes: dict[str, str] = {}
        self.version = 0

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def concepts(self) -> tuple[Concept, ...]:
        return tuple(self._concepts.values())

    @property
    def bindings(self) -> tuple[ConceptBinding, ...]:
        return tuple(self._bindings.values())

    @property
    def relations(self) -> tuple[Relation, ...]:
        return tuple(self._relations.values())

    @property
    def constraints(self) -> tuple[Constraint, ...]:
        return tuple(self._constraints.values())

    def get_concept(self, concept_id: str) -> Concept:
        return self._require(self._concepts, "Concept", concept_id)

    def get_binding(self, binding_id: str) -> ConceptBinding:
        return self._require(self._bindings, "ConceptBinding", binding_id)

    def get_relation(self, relation_id: str) -> Relation:
        return self._require(self._relations, "Relation", relation_id)

    def get_constraint(self, constraint_id: str) -> Constraint:
        return self._require(self._constraints, "Constraint", constraint_id)

    def find_concept(self, concept_id: str) -> Optional[Concept]:
        return self._concepts.get(concept_id)

    def find_relation(self, relation_id: str) -> Optional[Relation]:
        return self._relations.get(relation_id)

    def bindings_for(
        self,
        entity_type_id: str,
        concept_id: Optional[str] = None,
        role_id: Optional[str] = None,
    ) -> list[ConceptBinding]:
        """Bindings of an entity type, optionally narrowed to a concept and role."""
        return [
            b for b in self._bindings.values()
            if b.entity_type_id == entity_type_id
            and (concept_id is None or b.concept_id == concept_id)
            and (role_id is None or b.concept_role_id == role_id)
        ]

    def bindings_for_role(self, concept_id: str, role_id: str) -> list[ConceptBinding]:
        return [
            b for b in self._bindings.values()
            if b.concept_id == concept_id and b.concept_role_id == role_id
        ]

    def auto_constraints_for(self, relation_id: str) -> list[Constraint]:
        return [
            c for c in self._constraints.values()
            if c.auto_generated and c.relation_id == relation_id
        ]

    def is_empty_of_rules(self) -> bool:
        """True when no relations and no constraints exist at all."""
        return not self._relations and not self._constraints

    # ------------------------------------------------------------------
    # Concepts and roles
    # ------------------------------------------------------------------

    def add_concept(
        self,
        name: str,
        roles: Iterable[ConceptRole] = (),
        description: str = "",
        concept_id: Optional[str] = None,
    ) -> Concept:
        fields = {"name": name, "description": description, "roles": list(roles)}
        if concept_id:
            if concept_id in self._concepts:
                raise InvalidReferenceError(f"Concept id already in use: {concept_id}")
            fields["id"] = concept_id
        concept = Concept(**fields)
        self._concepts[concept.id] = concept
        self._touch(f"added concept '{name}' ({concept.id})")
        return concept

    def update_concept(
        self,
        concept_id: str,
        name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Concept:
        concept = self.get_concept(concept_id)
        if name is not None:
            concept.name = name
        if description is not None:
            concept.description = description
        self._touch(f"updated concept {concept_id}")
        return concept

    def remove_concept(self, concept_id: str) -> Concept:
        """Remove a concept together with the bindings, relations and constraints it owns."""
        concept = self.get_concept(concept_id)
        del self._concepts[concept_id]
        for binding in [b for b in self._bindings.values() if b.concept_id == concept_id]:
            del self._bindings[binding.id]
        for relation in [r for r in self._relations.values() if r.concept_id == concept_id]:
            del self._relations[relation.id]
            self._relation_changes[relation.id] = REMOVE
        for constraint in [c for c in self._constraints.values() if c.concept_id == concept_id]:
            del self._constraints[constraint.id]
        self._touch(f"removed concept '{concept.name}' ({concept_id})")
        return concept

    def add_role(
        self,
        concept_id: str,
        name: str,
        allowed_entity_roles: Iterable[EntityRole],
        role_id: Optional[str] = None,
    ) -> ConceptRole:
        concept = self.get_concept(concept_id)
        fields = {"name": name, "allowed_entity_roles": list(allowed_entity_roles)}
        if role_id:
            if concept.has_role(role_id):
                raise InvalidReferenceError(f"Role id already in use: {role_id}")
            fields["id"] = role_id
        role = ConceptRole(**fields)
        concept.roles.append(role)
        self._touch(f"added role '{name}' to concept {concept_id}")
        return role

    def update_role(
        self,
        concept_id: str,
        role_id: str,
        name: Optional[str] = None,
        allowed_entity_roles: Optional[Iterable[EntityRole]] = None,
    ) -> ConceptRole:
        role = self._require_role(concept_id, role_id)
        if name is not None:
            role.name = name
        if allowed_entity_roles is not None:
            role.allowed_entity_roles = list(allowed_entity_roles)
        self._touch(f"updated role {role_id}")
        return role

    def remove_role(self, concept_id: str, role_id: str) -> ConceptRole:
        """Remove a role. References to it are left for the validator to report."""
        role = self._require_role(concept_id, role_id)
        concept = self._concepts[concept_id]
        concept.roles = [r for r in concept.roles if r.id != role_id]
        self._touch(f"removed role '{role.name}' from concept {concept_id}")
        return role

    # ------------------------------------------------------------------
    # Bindings
    # ------------------------------------------------------------------

    def add_binding(
        self,
        entity_type_id: str,
        concept_id: str,
        concept_role_id: str,
        property_bindings: Iterable[PropertyBinding] = (),
    ) -> ConceptBinding:
        role = self._require_reference_role(concept_id, concept_role_id)

        if self.entity_types is not None:
            entity_type = self.entity_types.get(entity_type_id)
            if entity_type is None:
                raise InvalidReferenceError(f"Entity type does not exist: {entity_type_id}")
            if not role.accepts(entity_type.role):
                allowed = ", ".join(r.value for r in role.allowed_entity_roles) or "nothing"
                raise InvalidReferenceError(
                    f"Entity type '{entity_type.name}' has role {entity_type.role.value} "
                    f"but role '{role.name}' only accepts {allowed}"
                )

        binding = ConceptBinding(
            entity_type_id=entity_type_id,
            concept_id=concept_id,
            concept_role_id=concept_role_id,
            property_bindings=list(property_bindings),
        )
        self._bindings[binding.id] = binding
        self._touch(f"bound entity type {entity_type_id} to role {concept_role_id}")
        return binding

    def update_binding(
        self,
        binding_id: str,
        property_bindings: Iterable[PropertyBinding],
    ) -> ConceptBinding:
        binding = self.get_binding(binding_id)
        binding.property_bindings = list(property_bindings)
        self._touch(f"updated binding {binding_id}")
        return binding

    def remove_binding(self, binding_id: str) -> ConceptBinding:
        binding = self.get_binding(binding_id)
        del self._bindings[binding_id]
        self._touch(f"removed binding {binding_id}")
        return binding

    # ------------------------------------------------------------------
    # Relations
    # ------------------------------------------------------------------

    def add_relation(
        self,
        concept_id: str,
        name: str,
        subject_role_id: str,
        object_role_id: str,
        effect: RelationEffect,
        trigger: RelationTrigger = RelationTrigger.ON_ENTER,
    ) -> Relation:
        relation = Relation(
            name=name,
            concept_id=concept_id,
            subject_role_id=subject_role_id,
            object_role_id=object_role_id,
            trigger=trigger,
            effect=effect,
        )
        self._check_relation(relation)
        self._relations[relation.id] = relation
        self._relation_changes[relation.id] = UPSERT
        self._touch(f"added relation '{name}' ({relation.id})")
        return relation

    def update_relation(
        self,
        relation_id: str,
        name: Optional[str] = None,
        subject_role_id: Optional[str] = None,
        object_role_id: Optional[str] = None,
        trigger: Optional[RelationTrigger] = None,
        effect: Optional[RelationEffect] = None,
    ) -> Relation:
        current = self.get_relation(relation_id)
        changes = {
            key: value for key, value in {
                "name": name,
                "subject_role_id": subject_role_id,
                "object_role_id": object_role_id,
                "trigger": trigger,
                "effect": effect,
            }.items()
            if value is not None
        }
        candidate = current.model_copy(update=changes)
        self._check_relation(candidate)
        self._relations[relation_id] = candidate
        self._relation_changes[relation_id] = UPSERT
        self._touch(f"updated relation {relation_id}")
        return candidate

    def remove_relation(self, relation_id: str) -> Relation:
        relation = self.get_relation(relation_id)
        del self._relations[relation_id]
        self._relation_changes[relation_id] = REMOVE
        self._touch(f"removed relation '{relation.name}' ({relation_id})")
        return relation

    # ------------------------------------------------------------------
    # Constraints
    # ------------------------------------------------------------------

    def add_constraint(
        self,
        concept_id: str,
        name: str,
        expression: ConstraintExpr,
        description: str = "",
    ) -> Constraint:
        if concept_id not in self._concepts:
            raise InvalidReferenceError(f"Concept does not exist: {concept_id}")
        constraint = Constraint(
            name=name,
            description=description,
            concept_id=concept_id,
            expression=expression,
        )
        self._constraints[constraint.id] = constraint
        self._touch(f"added constraint '{name}' ({constraint.id})")
        return constraint

    def update_constraint(
        self,
        constraint_id: str,
        name: Optional[str] = None,
        description: Optional[str] = None,
        expression: Optional[ConstraintExpr] = None,
    ) -> Constraint:
        """Apply a designer edit.

        The constraint stops being auto-generated: the flag is cleared and the
        back-reference dropped, so deleting its source relation keeps it.
        """
        constraint = self.get_constraint(constraint_id)
        if name is not None:
            constraint.name = name
        if description is not None:
            constraint.description = description
        if expression is not None:
            constraint.expression = expression
        constraint.auto_generated = False
        constraint.relation_id = None
        self._touch(f"updated constraint {constraint_id}")
        return constraint

    def remove_constraint(self, constraint_id: str) -> Constraint:
        constraint = self.get_constraint(constraint_id)
        del self._constraints[constraint_id]
        self._touch(f"removed constraint '{constraint.name}' ({constraint_id})")
        return constraint

    # ------------------------------------------------------------------
    # Loading and derived-constraint maintenance
    # ------------------------------------------------------------------

    def put_concept(self, concept: Concept) -> None:
        """Insert a concept as-is (project loading)."""
        self._concepts[concept.id] = concept
        self._touch(f"loaded concept {concept.id}")

    def put_binding(self, binding: ConceptBinding) -> None:
        """Insert a binding as-is (project loading)."""
        self._bindings[binding.id] = binding
        self._touch(f"loaded binding {binding.id}")

    def put_relation(self, relation: Relation) -> None:
        """Insert a relation as-is, without recording a change (project loading)."""
        self._relations[relation.id] = relation
        self._touch(f"loaded relation {relation.id}")

    def put_constraint(self, constraint: Constraint) -> None:
        """Insert a constraint keeping its flags (project loading, auto-generation)."""
        self._constraints[constraint.id] = constraint
        self._touch(f"stored constraint {constraint.id}")

    def discard_constraint(self, constraint_id: str) -> None:
        """Remove a constraint if present."""
        if self._constraints.pop(constraint_id, None) is not None:
            self._touch(f"discarded constraint {constraint_id}")

    @property
    def pending_relation_changes(self) -> dict[str, str]:
        return dict(self._relation_changes)

    def mark_relation_changed(self, relation_id: str) -> None:
        """Queue a relation for reconciliation without editing it."""
        kind = UPSERT if relation_id in self._relations else REMOVE
        self._relation_changes[relation_id] = kind

    def drain_relation_changes(self) -> dict[str, str]:
        changes, self._relation_changes = self._relation_changes, {}
        return changes

    def snapshot(self) -> StoreSnapshot:
        return StoreSnapshot(
            concepts=_copy_all(self._concepts),
            bindings=_copy_all(self._bindings),
            relations=_copy_all(self._relations),
            constraints=_copy_all(self._constraints),
            relation_changes=dict(self._relation_changes),
            version=self.version,
        )

    def restore(self, snapshot: StoreSnapshot) -> None:
        self._concepts = _copy_all(snapshot.concepts)
        self._bindings = _copy_all(snapshot.bindings)
        self._relations = _copy_all(snapshot.relations)
        self._constraints = _copy_all(snapshot.constraints)
        self._relation_changes = dict(snapshot.relation_changes)
        self.version = snapshot.version
        logger.debug(f"Restored ontology store to version {snapshot.version}")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _touch(self, message: str) -> None:
        self.version += 1
        logger.debug(f"Ontology v{self.version}: {message}")

    @staticmethod
    def _require(items: dict, kind: str, item_id: str):
        item = items.get(item_id)
        if item is None:
            raise NotFoundError(kind, item_id)
        return item

    def _require_role(self, concept_id: str, role_id: str) -> ConceptRole:
        role = self.get_concept(concept_id).role(role_id)
        if role is None:
            raise NotFoundError("ConceptRole", role_id)
        return role

    def _require_reference_role(self, concept_id: str, role_id: str) -> ConceptRole:
        """Like _require_role, but a missing target is a bad reference, not a bad id."""
        concept = self._concepts.get(concept_id)
        if concept is None:
            raise InvalidReferenceError(f"Concept does not exist: {concept_id}")
        role = concept.role(role_id)
        if role is None:
            raise InvalidReferenceError(
                f"Role {role_id} does not belong to concept '{concept.name}'"
            )
        return role

    def _check_relation(self, relation: Relation) -> None:
        self._require_reference_role(relation.concept_id, relation.subject_role_id)
        self._require_reference_role(relation.concept_id, relation.object_role_id)
        if relation.subject_role_id == relation.object_role_id:
            raise InvalidReferenceError(
                f"Relation '{relation.name}' must link two distinct roles"
            )
