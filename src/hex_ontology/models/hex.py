"""Axial hex coordinates and grid bounds."""

from dataclasses import dataclass
from typing import Iterator


# Axial neighbor offsets, starting east and going counter-clockwise.
AXIAL_DIRECTIONS: tuple[tuple[int, int], ...] = (
    (1, 0),
    (1, -1),
    (0, -1),
    (-1, 0),
    (-1, 1),
    (0, 1),
)


@dataclass(frozen=True, order=True)
class HexPosition:
    """An axial (q, r) hex coordinate."""
    q: int
    r: int

    @property
    def s(self) -> int:
        """Third cube coordinate."""
        return -self.q - self.r

    def neighbors(self) -> list["HexPosition"]:
        return [HexPosition(self.q + dq, self.r + dr) for dq, dr in AXIAL_DIRECTIONS]

    def distance(self, other: "HexPosition") -> int:
        dq = self.q - other.q
        dr = self.r - other.r
        return max(abs(dq), abs(dr), abs(dq + dr))

    def within_radius(self, radius: int) -> bool:
        """True when the hex lies on a hexagonal board of ``radius`` centred on the origin."""
        return max(abs(self.q), abs(self.r), abs(self.q + self.r)) <= radius

    def to_dict(self) -> dict:
        return {"q": self.q, "r": self.r}

    @classmethod
    def from_dict(cls, d: dict) -> "HexPosition":
        return cls(q=int(d["q"]), r=int(d["r"]))

    def __str__(self) -> str:
        return f"({self.q}, {self.r})"


@dataclass(frozen=True)
class GridConfig:
    """Board configuration supplied by the grid layer."""
    radius: int

    def contains(self, pos: HexPosition) -> bool:
        return pos.within_radius(self.radius)

    def positions(self) -> Iterator[HexPosition]:
        """Yield every in-bounds hex, row by row."""
        n = self.radius
        for q in range(-n, n + 1):
            for r in range(max(-n, -q - n), min(n, -q + n) + 1):
                yield HexPosition(q, r)

    def __len__(self) -> int:
        return 3 * self.radius * (self.radius + 1) + 1
