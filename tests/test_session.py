"""Tests for the edit/refresh cycle."""

import pytest

from hex_ontology.config import Settings
from hex_ontology.exceptions import InvalidReferenceError
from hex_ontology.models import (
    EntityRole,
    HexPosition,
    ModifyOperation,
    ModifyProperty,
    SchemaErrorCategory,
)
from hex_ontology.session import RulesSession


@pytest.fixture
def session(motion):
    board = motion.place(motion.board(radius=3), movement_points=2)
    return RulesSession(motion.entity_types, board, motion.store, settings=Settings())


def add_cost(session, motion):
    with session.edit() as store:
        return store.add_relation(
            motion.concept.id, "Terrain cost", motion.traveler.id, motion.ground.id,
            ModifyProperty(property="budget", operation=ModifyOperation.SUBTRACT),
        )


class TestEdit:
    """Tests for atomic edits."""

    def test_edit_reconciles_before_returning(self, session, motion):
        relation = add_cost(session, motion)
        (constraint,) = session.ontology.constraints
        assert constraint.relation_id == relation.id
        assert session.last_reconcile.created == [constraint.id]

    def test_relation_and_constraint_removed_together(self, session, motion):
        relation = add_cost(session, motion)
        with session.edit() as store:
            store.remove_relation(relation.id)
        assert session.ontology.relations == ()
        assert session.ontology.constraints == ()

    def test_failed_edit_rolls_back(self, session, motion):
        version = session.ontology.version
        with pytest.raises(InvalidReferenceError):
            with session.edit() as store:
                store.add_role(motion.concept.id, "escort", [EntityRole.TOKEN])
                store.add_binding("ghost", motion.concept.id, motion.traveler.id)

        assert session.ontology.version == version
        assert len(session.ontology.get_concept(motion.concept.id).roles) == 2


class TestRefresh:
    """Tests for change-driven recomputation."""

    def test_first_refresh_computes_everything(self, session):
        result = session.refresh()
        assert result.validated
        assert result.moves_computed
        assert session.validation.is_valid
        assert len(session.valid_moves.valid_positions) == 36

    def test_no_change_no_work(self, session):
        session.refresh()
        result = session.refresh()
        assert not result.validated
        assert not result.moves_computed

    def test_ontology_edit_triggers_both(self, session, motion):
        session.refresh()
        add_cost(session, motion)

        result = session.refresh()

        assert result.validated
        assert result.moves_computed
        assert len(session.valid_moves.valid_positions) == 18

    def test_board_change_only_recomputes_moves(self, session):
        session.refresh()
        session.board.move_unit("u1", HexPosition(1, 0))

        result = session.refresh()

        assert not result.validated
        assert result.moves_computed
        assert HexPosition(0, 0) in session.valid_moves.valid_positions

    def test_entity_type_change_revalidates(self, session, motion):
        session.refresh()
        motion.entity_types.remove(motion.type_named("Forest").id)

        result = session.refresh()

        assert result.validated
        assert session.validation.has(SchemaErrorCategory.DANGLING_REFERENCE)

    def test_select_none_clears_moves(self, session):
        session.refresh()
        moves = session.select(None)
        assert moves.valid_positions == set()
        assert moves.for_entity is None
