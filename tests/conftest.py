"""Shared fixtures: a small terrain/infantry registry and a Motion concept."""

from dataclasses import dataclass

import pytest
from loguru import logger

from hex_ontology.models import (
    BoardState,
    Concept,
    ConceptRole,
    EntityData,
    EntityRole,
    EntityType,
    EntityTypeRegistry,
    GridConfig,
    HexPosition,
    PropertyBinding,
    PropertyDefinition,
)
from hex_ontology.ontology import OntologyStore


@pytest.fixture(autouse=True)
def quiet_logs():
    """Keep loguru's default stderr sink out of test output."""
    logger.remove()
    yield


def terrain(name: str, cost: int) -> EntityType:
    return EntityType(
        name=name,
        role=EntityRole.BOARD_POSITION,
        properties=[PropertyDefinition(name="movement_cost", default=cost)],
    )


@dataclass
class Motion:
    """A Motion concept with every terrain bound as ground and infantry as traveler."""
    entity_types: EntityTypeRegistry
    store: OntologyStore
    concept: Concept
    traveler: ConceptRole
    ground: ConceptRole

    def type_named(self, name: str) -> EntityType:
        return self.entity_types.by_name(name)

    def board(self, radius: int = 3, fill: str = "Plains") -> BoardState:
        board = BoardState(grid=GridConfig(radius=radius))
        for pos in board.grid.positions():
            board.paint_tile(pos, EntityData.of(self.type_named(fill)))
        return board

    def place(self, board: BoardState, unit_id: str = "u1", pos: HexPosition = HexPosition(0, 0), **props):
        board.place_unit(unit_id, pos, EntityData.of(self.type_named("Infantry"), **props))
        board.select(unit_id)
        return board


@pytest.fixture
def entity_types() -> EntityTypeRegistry:
    return EntityTypeRegistry([
        terrain("Plains", 1),
        terrain("Forest", 2),
        terrain("Mountain", 3),
        terrain("Water", 1),
        EntityType(
            name="Infantry",
            role=EntityRole.TOKEN,
            properties=[
                PropertyDefinition(name="movement_points", default=2),
                PropertyDefinition(name="strength", default=5),
            ],
        ),
    ])


@pytest.fixture
def motion(entity_types) -> Motion:
    store = OntologyStore(entity_types)
    traveler = ConceptRole(name="traveler", allowed_entity_roles=[EntityRole.TOKEN])
    ground = ConceptRole(name="ground", allowed_entity_roles=[EntityRole.BOARD_POSITION])
    concept = store.add_concept("Motion", roles=[traveler, ground])

    store.add_binding(
        entity_types.by_name("Infantry").id, concept.id, traveler.id,
        [
            PropertyBinding(property_name="movement_points", concept_local_name="budget"),
            PropertyBinding(property_name="strength", concept_local_name="strength"),
        ],
    )
    for name in ("Plains", "Forest", "Mountain", "Water"):
        store.add_binding(
            entity_types.by_name(name).id, concept.id, ground.id,
            [PropertyBinding(property_name="movement_cost", concept_local_name="cost")],
        )

    return Motion(entity_types, store, concept, traveler, ground)
