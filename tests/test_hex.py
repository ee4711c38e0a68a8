"""Tests for hex coordinates, grid bounds and the board."""

import pytest

from hex_ontology.exceptions import NotFoundError
from hex_ontology.models import BoardState, EntityData, GridConfig, HexPosition


class TestHexPosition:
    """Tests for axial coordinates."""

    def test_six_distinct_neighbors_at_distance_one(self):
        origin = HexPosition(0, 0)
        neighbors = origin.neighbors()
        assert len(set(neighbors)) == 6
        assert all(origin.distance(n) == 1 for n in neighbors)

    def test_distance_is_cube_distance(self):
        assert HexPosition(0, 0).distance(HexPosition(2, -1)) == 2
        assert HexPosition(-2, 3).distance(HexPosition(1, -1)) == 4

    def test_within_radius_uses_all_three_axes(self):
        assert HexPosition(3, -3).within_radius(3)
        assert not HexPosition(2, 2).within_radius(3)  # s == -4

    def test_str(self):
        assert str(HexPosition(1, -2)) == "(1, -2)"

    def test_dict_conversion(self):
        pos = HexPosition(4, -1)
        assert HexPosition.from_dict(pos.to_dict()) == pos


class TestGridConfig:
    """Tests for board bounds."""

    @pytest.mark.parametrize("radius,count", [(0, 1), (1, 7), (2, 19), (3, 37)])
    def test_positions_match_hex_count(self, radius, count):
        grid = GridConfig(radius=radius)
        positions = list(grid.positions())
        assert len(positions) == count == len(grid)
        assert all(grid.contains(p) for p in positions)


class TestBoardState:
    """Tests for board mutations and the change counter."""

    def test_mutations_bump_version(self):
        board = BoardState(grid=GridConfig(radius=2))
        data = EntityData(entity_type_id="t")
        board.paint_tile(HexPosition(0, 0), data)
        board.place_unit("u", HexPosition(0, 0), data)
        board.move_unit("u", HexPosition(1, 0))
        assert board.version == 3
        assert board.unit("u").position == HexPosition(1, 0)

    def test_reselecting_same_unit_keeps_version(self):
        board = BoardState(grid=GridConfig(radius=1))
        board.place_unit("u", HexPosition(0, 0), EntityData(entity_type_id="t"))
        board.select("u")
        version = board.version
        board.select("u")
        assert board.version == version

    def test_select_unknown_unit(self):
        board = BoardState(grid=GridConfig(radius=1))
        with pytest.raises(NotFoundError):
            board.select("ghost")

    def test_removing_selected_unit_clears_selection(self):
        board = BoardState(grid=GridConfig(radius=1))
        board.place_unit("u", HexPosition(0, 0), EntityData(entity_type_id="t"))
        board.select("u")
        board.remove_unit("u")
        assert board.selected_unit is None
