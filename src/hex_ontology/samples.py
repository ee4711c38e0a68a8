"""Starter project: a Motion concept over a small painted board."""

from .models.board import BoardState, EntityData
from .models.game_system import (
    EntityRole,
    EntityType,
    EntityTypeRegistry,
    PropertyDefinition,
    PropertyType,
)
from .models.hex import GridConfig, HexPosition
from .models.ontology import (
    Block,
    ConceptRole,
    IsType,
    ModifyOperation,
    ModifyProperty,
    PropertyBinding,
)
from .ontology.autogen import reconcile
from .ontology.store import OntologyStore
from .storage import Project


def _terrain(name: str, cost: int) -> EntityType:
    return EntityType(
        name=name,
        role=EntityRole.BOARD_POSITION,
        properties=[PropertyDefinition(name="movement_cost", property_type=PropertyType.INT, default=cost)],
    )


def build_sample_project(radius: int = 4) -> Project:
    """Plains, forest, mountain and water terrain with one infantry unit at the centre."""
    plains = _terrain("Plains", 1)
    forest = _terrain("Forest", 2)
    mountain = _terrain("Mountain", 3)
    water = _terrain("Water", 1)
    infantry = EntityType(
        name="Infantry",
        role=EntityRole.TOKEN,
        properties=[PropertyDefinition(name="movement_points", property_type=PropertyType.INT, default=4)],
    )
    entity_types = EntityTypeRegistry([plains, forest, mountain, water, infantry])

    store = OntologyStore(entity_types)
    traveler = ConceptRole(name="traveler", allowed_entity_roles=[EntityRole.TOKEN])
    ground = ConceptRole(name="ground", allowed_entity_roles=[EntityRole.BOARD_POSITION])
    motion = store.add_concept(
        "Motion",
        roles=[traveler, ground],
        description="Tokens spend movement points to enter terrain",
    )
    store.add_binding(
        infantry.id, motion.id, traveler.id,
        [PropertyBinding(property_name="movement_points", concept_local_name="budget")],
    )
    for terrain in (plains, forest, mountain, water):
        store.add_binding(
            terrain.id, motion.id, ground.id,
            [PropertyBinding(property_name="movement_cost", concept_local_name="cost")],
        )
    store.add_relation(
        motion.id, "Terrain movement cost", traveler.id, ground.id,
        ModifyProperty(property="budget", operation=ModifyOperation.SUBTRACT, amount=1, source_property="cost"),
    )
    store.add_relation(
        motion.id, "Impassable water", traveler.id, ground.id,
        Block(condition=IsType(role_id=ground.id, expected_type=water.id)),
    )
    reconcile(store)

    board = BoardState(grid=GridConfig(radius=radius))
    for pos in board.grid.positions():
        ring = pos.distance(HexPosition(0, 0))
        if pos.q == 2 and pos.r <= 0:
            terrain = water
        elif ring == 2 and pos.r > 0:
            terrain = mountain
        elif ring % 2 == 1 and pos.q < 0:
            terrain = forest
        else:
            terrain = plains
        board.paint_tile(pos, EntityData.of(terrain))
    board.place_unit("infantry-1", HexPosition(0, 0), EntityData.of(infantry))
    board.select("infantry-1")

    return Project(entity_types=entity_types, ontology=store, board=board)
