"""Board instances: painted tiles, placed units and the current selection."""

from dataclasses import dataclass, field
from typing import Optional

from pydantic import BaseModel, Field

from ..exceptions import NotFoundError
from .game_system import EntityType, PropertyValue
from .hex import GridConfig, HexPosition


class EntityData(BaseModel):
    """Per-instance type and property values of a tile or unit."""

    entity_type_id: str
    properties: dict[str, PropertyValue] = Field(default_factory=dict)

    @classmethod
    def of(cls, entity_type: EntityType, **overrides: PropertyValue) -> "EntityData":
        """Instance of ``entity_type`` with default values, overridden by keyword."""
        values = entity_type.default_values()
        values.update(overrides)
        return cls(entity_type_id=entity_type.id, properties=values)

    def get(self, property_name: str) -> Optional[PropertyValue]:
        return self.properties.get(property_name)


@dataclass
class UnitInstance:
    """A token placed on the board."""
    id: str
    position: HexPosition
    data: EntityData

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "position": self.position.to_dict(),
            "data": self.data.model_dump(),
        }

    @classmethod
    def from_dict(cls, d: dict) -> "UnitInstance":
        return cls(
            id=d["id"],
            position=HexPosition.from_dict(d["position"]),
            data=EntityData.model_validate(d["data"]),
        )


@dataclass
class BoardState:
    """Tiles, units and selection, with a change counter.

    Every mutation bumps ``version`` so consumers can tell whether their
    derived output is stale.
    """
    grid: GridConfig
    tiles: dict[HexPosition, EntityData] = field(default_factory=dict)
    units: dict[str, UnitInstance] = field(default_factory=dict)
    selected_unit: Optional[str] = None
    version: int = 0

    def paint_tile(self, pos: HexPosition, data: EntityData) -> None:
        self.tiles[pos] = data
        self.version += 1

    def clear_tile(self, pos: HexPosition) -> None:
        if self.tiles.pop(pos, None) is not None:
            self.version += 1

    def tile_at(self, pos: HexPosition) -> Optional[EntityData]:
        return self.tiles.get(pos)

    def place_unit(self, unit_id: str, pos: HexPosition, data: EntityData) -> UnitInstance:
        unit = UnitInstance(id=unit_id, position=pos, data=data)
        self.units[unit_id] = unit
        self.version += 1
        return unit

    def move_unit(self, unit_id: str, pos: HexPosition) -> None:
        self._require(unit_id).position = pos
        self.version += 1

    def remove_unit(self, unit_id: str) -> None:
        self._require(unit_id)
        del self.units[unit_id]
        if self.selected_unit == unit_id:
            self.selected_unit = None
        self.version += 1

    def unit(self, unit_id: str) -> Optional[UnitInstance]:
        return self.units.get(unit_id)

    def select(self, unit_id: Optional[str]) -> None:
        if unit_id is not None:
            self._require(unit_id)
        if unit_id != self.selected_unit:
            self.selected_unit = unit_id
            self.version += 1

    def _require(self, unit_id: str) -> UnitInstance:
        unit = self.units.get(unit_id)
        if unit is None:
            raise NotFoundError("Unit", unit_id)
        return unit
