"""Tests for project files."""

import json

import pytest

from hex_ontology.exceptions import ProjectFormatError
from hex_ontology.models import HexPosition, PathBudget
from hex_ontology.ontology import validate_schema
from hex_ontology.samples import build_sample_project
from hex_ontology.storage import load_project, save_project


class TestProjectFiles:
    """Tests for saving and loading projects."""

    @pytest.fixture
    def saved(self, tmp_path):
        project = build_sample_project(radius=3)
        path = save_project(tmp_path / "project.json", project)
        return project, path

    def test_sample_project_is_valid(self):
        project = build_sample_project(radius=3)
        assert validate_schema(project.ontology, project.entity_types).is_valid

    def test_reload_keeps_ontology(self, saved):
        project, path = saved
        loaded = load_project(path)

        assert [c.model_dump() for c in loaded.ontology.concepts] == [
            c.model_dump() for c in project.ontology.concepts
        ]
        assert loaded.ontology.relations == project.ontology.relations
        assert loaded.ontology.pending_relation_changes == {}

    def test_reload_keeps_auto_generated_flags(self, saved):
        project, path = saved
        loaded = load_project(path)

        (constraint,) = loaded.ontology.constraints
        assert constraint.auto_generated
        assert constraint.relation_id in {r.id for r in loaded.ontology.relations}
        assert isinstance(constraint.expression, PathBudget)

    def test_reload_keeps_board(self, saved):
        project, path = saved
        loaded = load_project(path)

        assert loaded.board.grid.radius == 3
        assert loaded.board.tiles == project.board.tiles
        assert loaded.board.selected_unit == "infantry-1"
        assert loaded.board.unit("infantry-1").position == HexPosition(0, 0)

    def test_missing_radius_uses_default(self, saved):
        _, path = saved
        raw = json.loads(path.read_text())
        del raw["board"]["radius"]
        raw["board"]["tiles"] = []
        path.write_text(json.dumps(raw))

        assert load_project(path).board.grid.radius == 10

    def test_unknown_format_version(self, saved):
        _, path = saved
        raw = json.loads(path.read_text())
        raw["format_version"] = 99
        path.write_text(json.dumps(raw))

        with pytest.raises(ProjectFormatError):
            load_project(path)

    def test_not_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json")
        with pytest.raises(ProjectFormatError):
            load_project(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(ProjectFormatError):
            load_project(tmp_path / "nope.json")
