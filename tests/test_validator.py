"""Tests for schema validation."""

from hex_ontology.models import (
    Block,
    CompareOp,
    ConceptRole,
    CrossCompare,
    EntityRole,
    IsType,
    ModifyOperation,
    ModifyProperty,
    PropertyBinding,
    PropertyCompare,
    SchemaErrorCategory,
)
from hex_ontology.ontology import SchemaValidator, reconcile, validate_schema


def categories(report) -> list[SchemaErrorCategory]:
    return [e.category for e in report.errors]


class TestValidateSchema:
    """Tests for individual checks."""

    def test_clean_ontology_is_valid(self, motion):
        report = validate_schema(motion.store, motion.entity_types)
        assert report.errors == []
        assert report.is_valid

    def test_binding_to_removed_entity_type(self, motion):
        forest = motion.type_named("Forest")
        binding = motion.store.bindings_for(forest.id)[0]
        motion.entity_types.remove(forest.id)

        report = validate_schema(motion.store, motion.entity_types)

        assert not report.is_valid
        (error,) = report.by_category(SchemaErrorCategory.DANGLING_REFERENCE)
        assert error.source_reference == binding.id

    def test_property_mismatch(self, motion):
        binding = motion.store.bindings_for(motion.type_named("Plains").id)[0]
        motion.store.update_binding(
            binding.id, [PropertyBinding(property_name="elevation", concept_local_name="cost")]
        )

        report = validate_schema(motion.store, motion.entity_types)

        (error,) = report.errors
        assert error.category is SchemaErrorCategory.PROPERTY_MISMATCH
        assert "elevation" in error.message
        assert error.source_reference == binding.id

    def test_role_mismatch_after_allowed_roles_change(self, motion):
        motion.store.update_role(motion.concept.id, motion.ground.id, allowed_entity_roles=[EntityRole.TOKEN])

        report = validate_schema(motion.store, motion.entity_types)

        assert categories(report) == [SchemaErrorCategory.ROLE_MISMATCH] * 4

    def test_unbound_property_in_relation(self, motion):
        relation = motion.store.add_relation(
            motion.concept.id, "fuel use", motion.traveler.id, motion.ground.id,
            ModifyProperty(property="fuel", operation=ModifyOperation.ADD),
        )

        report = validate_schema(motion.store, motion.entity_types)

        (error,) = report.errors
        assert error.category is SchemaErrorCategory.INVALID_EXPRESSION
        assert error.source_reference == relation.id

    def test_constraint_role_outside_concept(self, motion):
        constraint = motion.store.add_constraint(
            motion.concept.id, "stray",
            PropertyCompare(role_id="elsewhere", property="budget", op=CompareOp.GT, value=0),
        )

        report = validate_schema(motion.store, motion.entity_types)

        (error,) = report.errors
        assert error.category is SchemaErrorCategory.INVALID_EXPRESSION
        assert error.source_reference == constraint.id

    def test_cross_compare_checks_both_sides(self, motion):
        motion.store.add_constraint(
            motion.concept.id, "cross",
            CrossCompare(
                role_a=motion.traveler.id, property_a="strength", op=CompareOp.GE,
                role_b=motion.ground.id, property_b="defense",
            ),
        )

        report = validate_schema(motion.store, motion.entity_types)

        (error,) = report.errors
        assert "defense" in error.message

    def test_is_type_unknown_type(self, motion):
        motion.store.add_relation(
            motion.concept.id, "lava", motion.traveler.id, motion.ground.id,
            Block(condition=IsType(role_id=motion.ground.id, expected_type="lava")),
        )

        report = validate_schema(motion.store, motion.entity_types)

        assert categories(report) == [SchemaErrorCategory.DANGLING_REFERENCE]

    def test_auto_constraint_with_deleted_relation(self, motion):
        relation = motion.store.add_relation(
            motion.concept.id, "cost", motion.traveler.id, motion.ground.id,
            ModifyProperty(property="budget", operation=ModifyOperation.SUBTRACT),
        )
        reconcile(motion.store)
        motion.store.remove_relation(relation.id)  # not reconciled yet

        report = validate_schema(motion.store, motion.entity_types)

        (error,) = report.errors
        assert error.category is SchemaErrorCategory.DANGLING_REFERENCE
        assert error.source_reference == motion.store.constraints[0].id

    def test_missing_binding_is_only_a_warning(self, motion):
        motion.store.add_role(motion.concept.id, "escort", [EntityRole.TOKEN])

        report = validate_schema(motion.store, motion.entity_types)

        (error,) = report.errors
        assert error.category is SchemaErrorCategory.MISSING_BINDING
        assert error.source_reference == motion.concept.id
        assert report.is_valid
        assert report.warnings() == [error]

    def test_errors_sorted_by_category(self, motion):
        combat = motion.store.add_concept(
            "Combat", roles=[ConceptRole(name="attacker", allowed_entity_roles=[EntityRole.TOKEN])]
        )
        motion.store.add_constraint(
            motion.concept.id, "stray",
            PropertyCompare(role_id="elsewhere", property="x", op=CompareOp.EQ, value=1),
        )
        binding = motion.store.bindings_for(motion.type_named("Plains").id)[0]
        motion.store.update_binding(
            binding.id, [PropertyBinding(property_name="elevation", concept_local_name="cost")]
        )
        motion.entity_types.remove(motion.type_named("Water").id)

        report = validate_schema(motion.store, motion.entity_types)

        assert categories(report) == [
            SchemaErrorCategory.DANGLING_REFERENCE,
            SchemaErrorCategory.PROPERTY_MISMATCH,
            SchemaErrorCategory.INVALID_EXPRESSION,
            SchemaErrorCategory.MISSING_BINDING,
        ]
        assert report.errors[-1].source_reference == combat.id
        assert not report.is_valid


class TestSchemaValidator:
    """Tests for change-driven revalidation."""

    def test_reruns_only_on_change(self, motion):
        validator = SchemaValidator(motion.store, motion.entity_types)
        validator.validate()
        validator.validate()
        assert validator.runs == 1

        motion.store.add_role(motion.concept.id, "escort", [EntityRole.TOKEN])
        assert validator.is_stale
        validator.validate()
        assert validator.runs == 2
        assert validator.result.has(SchemaErrorCategory.MISSING_BINDING)

    def test_entity_type_change_marks_stale(self, motion):
        validator = SchemaValidator(motion.store, motion.entity_types)
        validator.validate()
        motion.entity_types.remove(motion.type_named("Forest").id)
        assert validator.is_stale
        assert not validator.validate().is_valid
