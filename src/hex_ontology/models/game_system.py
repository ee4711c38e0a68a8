"""Entity types and the registry the editor maintains for them.

The registry is owned by the editor. The rules core reads it to resolve
names, roles and property definitions, and never mutates it on its own.
"""

import uuid
from enum import Enum
from typing import Iterator, Union

from pydantic import BaseModel, Field

from ..exceptions import NotFoundError


PropertyValue = Union[bool, int, float, str]


def new_id() -> str:
    """Generate a stable identifier for a definition."""
    return str(uuid.uuid4())


class EntityRole(str, Enum):
    """What kind of thing an entity type describes on the board."""

    BOARD_POSITION = "BoardPosition"  # occupies a hex permanently (terrain)
    TOKEN = "Token"  # movable piece (unit)


class PropertyType(str, Enum):
    """Data type of a property definition."""

    INT = "int"
    FLOAT = "float"
    BOOL = "bool"
    STRING = "string"
    ENUM = "enum"


_TYPE_DEFAULTS: dict[PropertyType, PropertyValue] = {
    PropertyType.INT: 0,
    PropertyType.FLOAT: 0.0,
    PropertyType.BOOL: False,
    PropertyType.STRING: "",
    PropertyType.ENUM: "",
}


class PropertyDefinition(BaseModel):
    """A named, typed property on an entity type."""

    name: str
    property_type: PropertyType = PropertyType.INT
    default: PropertyValue | None = None
    options: list[str] = Field(default_factory=list)  # enum choices

    def default_value(self) -> PropertyValue:
        if self.default is not None:
            return self.default
        if self.property_type == PropertyType.ENUM and self.options:
            return self.options[0]
        return _TYPE_DEFAULTS[self.property_type]

    @property
    def is_numeric(self) -> bool:
        return self.property_type in (PropertyType.INT, PropertyType.FLOAT)


class EntityType(BaseModel):
    """A designer-defined kind of board position or token."""

    id: str = Field(default_factory=new_id)
    name: str
    role: EntityRole
    properties: list[PropertyDefinition] = Field(default_factory=list)

    def get_property(self, name: str) -> PropertyDefinition | None:
        for prop in self.properties:
            if prop.name == name:
                return prop
        return None

    def has_property(self, name: str) -> bool:
        return self.get_property(name) is not None

    def default_values(self) -> dict[str, PropertyValue]:
        return {p.name: p.default_value() for p in self.properties}


class EntityTypeRegistry:
    """Ordered registry of entity types with a change counter."""

    def __init__(self, types: list[EntityType] | None = None):
        self._types: dict[str, EntityType] = {}
        self.version = 0
        for entity_type in types or []:
            self._types[entity_type.id] = entity_type

    def add(self, entity_type: EntityType) -> EntityType:
        self._types[entity_type.id] = entity_type
        self.version += 1
        return entity_type

    def update(self, entity_type: EntityType) -> EntityType:
        if entity_type.id not in self._types:
            raise NotFoundError("EntityType", entity_type.id)
        self._types[entity_type.id] = entity_type
        self.version += 1
        return entity_type

    def remove(self, type_id: str) -> EntityType:
        if type_id not in self._types:
            raise NotFoundError("EntityType", type_id)
        self.version += 1
        return self._types.pop(type_id)

    def get(self, type_id: str) -> EntityType | None:
        return self._types.get(type_id)

    def by_name(self, name: str) -> EntityType | None:
        for entity_type in self._types.values():
            if entity_type.name == name:
                return entity_type
        return None

    def name_of(self, type_id: str | None, default: str = "Unknown") -> str:
        entity_type = self._types.get(type_id) if type_id else None
        return entity_type.name if entity_type else default

    def __contains__(self, type_id: object) -> bool:
        return type_id in self._types

    def __iter__(self) -> Iterator[EntityType]:
        return iter(list(self._types.values()))

    def __len__(self) -> int:
        return len(self._types)
