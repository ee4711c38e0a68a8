"""Schema validation for the ontology.

Checks the ontology store against the entity-type registry and reports
problems as data. Nothing here raises or blocks editing: an invalid schema
is still saved, edited and used for move computation, and the report tells
the designer what to fix.

Checks, in reporting order:
    1. Dangling references (binding, relation, constraint or IsType naming
       something that no longer exists)
    2. Role mismatches (bound entity role not accepted by the concept role)
    3. Property mismatches (property binding naming a missing property)
    4. Invalid expressions (roles outside the concept, unbound concept-local
       property names, relations linking a role to itself)
    5. Missing bindings (warning: a role nothing is bound to)
"""

from typing import Optional

from loguru import logger

from ..models.game_system import EntityTypeRegistry
from ..models.ontology import (
    Allow,
    Block,
    Concept,
    ConceptBinding,
    Constraint,
    ConstraintExpr,
    IsType,
    ModifyProperty,
    Relation,
    expression_properties,
    expression_roles,
)
from ..models.validation import SchemaError, SchemaErrorCategory, SchemaValidation
from .store import OntologyStore


class _Collector:
    """Accumulates schema errors for one pass."""

    def __init__(self, store: OntologyStore, entity_types: EntityTypeRegistry):
        self.store = store
        self.entity_types = entity_types
        self.errors: list[SchemaError] = []

    def add(self, category: SchemaErrorCategory, message: str, source: str) -> None:
        self.errors.append(SchemaError(category=category, message=message, source_reference=source))

    # ------------------------------------------------------------------
    # Bindings
    # ------------------------------------------------------------------

    def check_binding(self, binding: ConceptBinding) -> None:
        entity_type = self.entity_types.get(binding.entity_type_id)
        if entity_type is None:
            self.add(
                SchemaErrorCategory.DANGLING_REFERENCE,
                f"Binding references non-existent entity type {binding.entity_type_id}",
                binding.id,
            )

        concept = self.store.find_concept(binding.concept_id)
        role = concept.role(binding.concept_role_id) if concept else None
        if concept is None:
            self.add(
                SchemaErrorCategory.DANGLING_REFERENCE,
                f"Binding references non-existent concept {binding.concept_id}",
                binding.id,
            )
        elif role is None:
            self.add(
                SchemaErrorCategory.DANGLING_REFERENCE,
                f"Binding references non-existent role {binding.concept_role_id} "
                f"in concept \"{concept.name}\"",
                binding.id,
            )

        if entity_type is not None and role is not None and not role.accepts(entity_type.role):
            allowed = ", ".join(r.value for r in role.allowed_entity_roles) or "nothing"
            self.add(
                SchemaErrorCategory.ROLE_MISMATCH,
                f"Entity type \"{entity_type.name}\" has role {entity_type.role.value} "
                f"but role \"{role.name}\" only accepts {allowed}",
                binding.id,
            )

        if entity_type is not None:
            for pb in binding.property_bindings:
                if not entity_type.has_property(pb.property_name):
                    self.add(
                        SchemaErrorCategory.PROPERTY_MISMATCH,
                        f"Property binding \"{pb.concept_local_name}\" maps to "
                        f"\"{pb.property_name}\", which entity type \"{entity_type.name}\" "
                        f"does not define",
                        binding.id,
                    )

    # ------------------------------------------------------------------
    # Relations
    # ------------------------------------------------------------------

    def check_relation(self, relation: Relation) -> None:
        concept = self.store.find_concept(relation.concept_id)
        if concept is None:
            self.add(
                SchemaErrorCategory.DANGLING_REFERENCE,
                f"Relation \"{relation.name}\" references non-existent concept {relation.concept_id}",
                relation.id,
            )
            return

        roles_ok = True
        for label, role_id in (("subject", relation.subject_role_id), ("object", relation.object_role_id)):
            if not concept.has_role(role_id):
                roles_ok = False
                self.add(
                    SchemaErrorCategory.DANGLING_REFERENCE,
                    f"Relation \"{relation.name}\" references non-existent {label} role "
                    f"{role_id} in concept \"{concept.name}\"",
                    relation.id,
                )

        if roles_ok and relation.subject_role_id == relation.object_role_id:
            self.add(
                SchemaErrorCategory.INVALID_EXPRESSION,
                f"Relation \"{relation.name}\" uses the same role as subject and object",
                relation.id,
            )

        effect = relation.effect
        if isinstance(effect, ModifyProperty):
            self.check_property_name(concept, relation.subject_role_id, effect.property, relation.id)
            if effect.source_property:
                self.check_property_name(
                    concept, relation.object_role_id, effect.source_property, relation.id
                )
        elif isinstance(effect, (Block, Allow)) and effect.condition is not None:
            self.check_expression(effect.condition, concept, relation.id)

    # ------------------------------------------------------------------
    # Constraints
    # ------------------------------------------------------------------

    def check_constraint(self, constraint: Constraint) -> None:
        concept = self.store.find_concept(constraint.concept_id)
        if concept is None:
            self.add(
                SchemaErrorCategory.DANGLING_REFERENCE,
                f"Constraint \"{constraint.name}\" references non-existent concept "
                f"{constraint.concept_id}",
                constraint.id,
            )
            return

        if constraint.auto_generated:
            relation = (
                self.store.find_relation(constraint.relation_id) if constraint.relation_id else None
            )
            if relation is None:
                self.add(
                    SchemaErrorCategory.DANGLING_REFERENCE,
                    f"Auto-generated constraint \"{constraint.name}\" references non-existent "
                    f"relation {constraint.relation_id}",
                    constraint.id,
                )

        self.check_expression(constraint.expression, concept, constraint.id)

    def check_expression(self, expr: ConstraintExpr, concept: Concept, source: str) -> None:
        if isinstance(expr, IsType) and expr.expected_type not in self.entity_types:
            self.add(
                SchemaErrorCategory.DANGLING_REFERENCE,
                f"Type check references non-existent entity type {expr.expected_type}",
                source,
            )

        checked_roles: set[str] = set()
        for role_id, prop in expression_properties(expr):
            checked_roles.add(role_id)
            self.check_property_name(concept, role_id, prop, source)
        for role_id in expression_roles(expr):
            if role_id not in checked_roles:
                self.check_role(concept, role_id, source)

    def check_role(self, concept: Concept, role_id: str, source: str) -> bool:
        if concept.has_role(role_id):
            return True
        self.add(
            SchemaErrorCategory.INVALID_EXPRESSION,
            f"Expression references role {role_id}, which is not part of concept \"{concept.name}\"",
            source,
        )
        return False

    def check_property_name(self, concept: Concept, role_id: str, local_name: str, source: str) -> None:
        """A concept-local name must be bound for the role by at least one binding.

        Roles with no bindings at all are reported once as missing bindings
        instead of once per expression.
        """
        if not self.check_role(concept, role_id, source):
            return
        bindings = self.store.bindings_for_role(concept.id, role_id)
        if not bindings:
            return
        if any(local_name in b.local_names() for b in bindings):
            return
        role = concept.role(role_id)
        self.add(
            SchemaErrorCategory.INVALID_EXPRESSION,
            f"Property \"{local_name}\" is not bound for role \"{role.name}\" "
            f"in concept \"{concept.name}\"",
            source,
        )

    # ------------------------------------------------------------------
    # Concepts
    # ------------------------------------------------------------------

    def check_concept_bindings(self, concept: Concept) -> None:
        for role in concept.roles:
            if not self.store.bindings_for_role(concept.id, role.id):
                self.add(
                    SchemaErrorCategory.MISSING_BINDING,
                    f"Role \"{role.name}\" in concept \"{concept.name}\" has no entity type bindings",
                    concept.id,
                )


def validate_schema(store: OntologyStore, entity_types: EntityTypeRegistry) -> SchemaValidation:
    """Run every schema check and return a fresh report."""
    collector = _Collector(store, entity_types)

    for binding in store.bindings:
        collector.check_binding(binding)
    for relation in store.relations:
        collector.check_relation(relation)
    for constraint in store.constraints:
        collector.check_constraint(constraint)
    for concept in store.concepts:
        collector.check_concept_bindings(concept)

    # sorted() is stable, so definition order is kept within a category
    errors = sorted(collector.errors, key=lambda e: e.category.rank)
    validation = SchemaValidation(errors=errors)
    logger.debug(
        f"Schema validation: {len(errors)} issue(s), "
        f"{len(validation.warnings())} warning(s), valid={validation.is_valid}"
    )
    return validation


class SchemaValidator:
    """Re-runs validation only when the store or the registry changed.

    Usage:
        validator = SchemaValidator(store, entity_types)
        report = validator.validate()   # runs
        report = validator.validate()   # cached, nothing changed
    """

    def __init__(self, store: OntologyStore, entity_types: EntityTypeRegistry):
        self.store = store
        self.entity_types = entity_types
        self._seen: Optional[tuple[int, int]] = None
        self._result = SchemaValidation()
        self.runs = 0

    @property
    def is_stale(self) -> bool:
        return self._seen != (self.store.version, self.entity_types.version)

    @property
    def result(self) -> SchemaValidation:
        return self._result

    def validate(self, force: bool = False) -> SchemaValidation:
        if force or self.is_stale:
            self._result = validate_schema(self.store, self.entity_types)
            self._seen = (self.store.version, self.entity_types.version)
            self.runs += 1
        return self._result
