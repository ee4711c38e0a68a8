"""Project files: entity types, ontology and board in one JSON document.

Every ontology field is written as-is, including ``auto_generated`` and
``relation_id`` on constraints, so a reloaded project reconciles exactly as
the saved one would have.
"""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from loguru import logger
from pydantic import BaseModel, Field, ValidationError

from .config import get_settings
from .exceptions import ProjectFormatError
from .models.board import BoardState, EntityData, UnitInstance
from .models.game_system import EntityType, EntityTypeRegistry
from .models.hex import GridConfig, HexPosition
from .models.ontology import Concept, ConceptBinding, Constraint, Relation
from .ontology.store import OntologyStore


FORMAT_VERSION = 1


class TileRecord(BaseModel):
    q: int
    r: int
    entity: EntityData


class UnitRecord(BaseModel):
    id: str
    q: int
    r: int
    entity: EntityData


class BoardRecord(BaseModel):
    radius: Optional[int] = None
    tiles: list[TileRecord] = Field(default_factory=list)
    units: list[UnitRecord] = Field(default_factory=list)
    selected_unit: Optional[str] = None


class ProjectFile(BaseModel):
    """On-disk layout of a project."""

    format_version: int = FORMAT_VERSION
    entity_types: list[EntityType] = Field(default_factory=list)
    concepts: list[Concept] = Field(default_factory=list)
    bindings: list[ConceptBinding] = Field(default_factory=list)
    relations: list[Relation] = Field(default_factory=list)
    constraints: list[Constraint] = Field(default_factory=list)
    board: BoardRecord


@dataclass
class Project:
    """A loaded project, ready to hand to a RulesSession."""
    entity_types: EntityTypeRegistry
    ontology: OntologyStore
    board: BoardState


def to_project_file(project: Project) -> ProjectFile:
    board = project.board
    return ProjectFile(
        entity_types=list(project.entity_types),
        concepts=list(project.ontology.concepts),
        bindings=list(project.ontology.bindings),
        relations=list(project.ontology.relations),
        constraints=list(project.ontology.constraints),
        board=BoardRecord(
            radius=board.grid.radius,
            tiles=[
                TileRecord(q=pos.q, r=pos.r, entity=data)
                for pos, data in sorted(board.tiles.items())
            ],
            units=[
                UnitRecord(id=unit.id, q=unit.position.q, r=unit.position.r, entity=unit.data)
                for unit in board.units.values()
            ],
            selected_unit=board.selected_unit,
        ),
    )


def from_project_file(data: ProjectFile) -> Project:
    entity_types = EntityTypeRegistry(data.entity_types)

    ontology = OntologyStore(entity_types)
    for concept in data.concepts:
        ontology.put_concept(concept)
    for binding in data.bindings:
        ontology.put_binding(binding)
    for relation in data.relations:
        ontology.put_relation(relation)
    for constraint in data.constraints:
        ontology.put_constraint(constraint)

    radius = data.board.radius
    if radius is None:
        radius = get_settings().default_board_radius
    board = BoardState(grid=GridConfig(radius=radius))
    for tile in data.board.tiles:
        board.tiles[HexPosition(tile.q, tile.r)] = tile.entity
    for unit in data.board.units:
        board.units[unit.id] = UnitInstance(id=unit.id, position=HexPosition(unit.q, unit.r), data=unit.entity)
    if data.board.selected_unit in board.units:
        board.selected_unit = data.board.selected_unit

    return Project(entity_types=entity_types, ontology=ontology, board=board)


def save_project(path: str | Path, project: Project) -> Path:
    """Write a project to ``path`` as JSON."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    document = to_project_file(project)
    path.write_text(document.model_dump_json(indent=2), encoding="utf-8")
    logger.info(
        f"Saved project to {path} ({len(document.concepts)} concepts, "
        f"{len(document.relations)} relations, {len(document.constraints)} constraints)"
    )
    return path


def load_project(path: str | Path) -> Project:
    """Read a project written by save_project."""
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)
        document = ProjectFile.model_validate(raw)
    except (OSError, json.JSONDecodeError, ValidationError) as e:
        raise ProjectFormatError(f"Cannot load project {path}: {e}") from e

    if document.format_version != FORMAT_VERSION:
        raise ProjectFormatError(
            f"Unsupported project format {document.format_version} in {path}"
        )
    logger.debug(f"Loaded project {path}")
    return from_project_file(document)
