"""Tests for the command-line interface."""

import json

import pytest
from click.testing import CliRunner

from hex_ontology import __version__
from hex_ontology.cli import main


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def project_path(runner, tmp_path):
    path = tmp_path / "sample.json"
    result = runner.invoke(main, ["init", str(path), "--radius", "3"])
    assert result.exit_code == 0, result.output
    return path


class TestCli:
    """Tests for the hex-ontology commands."""

    def test_version(self, runner):
        result = runner.invoke(main, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_init_writes_project(self, project_path):
        data = json.loads(project_path.read_text())
        assert data["format_version"] == 1
        assert [c["name"] for c in data["concepts"]] == ["Motion"]
        assert data["board"]["radius"] == 3

    def test_init_refuses_to_overwrite(self, runner, project_path):
        result = runner.invoke(main, ["init", str(project_path)])
        assert result.exit_code != 0
        assert "already exists" in result.output

    def test_validate_sample(self, runner, project_path):
        result = runner.invoke(main, ["validate", str(project_path)])
        assert result.exit_code == 0, result.output
        assert "Schema is valid" in result.output

    def test_validate_broken_project(self, runner, project_path, tmp_path):
        data = json.loads(project_path.read_text())
        data["entity_types"] = [t for t in data["entity_types"] if t["name"] != "Water"]
        project_path.write_text(json.dumps(data))
        report = tmp_path / "report.json"

        result = runner.invoke(main, ["validate", str(project_path), "-o", str(report)])

        assert result.exit_code == 1
        assert "Schema is invalid" in result.output
        saved = json.loads(report.read_text())
        assert not saved["is_valid"]
        assert {e["category"] for e in saved["errors"]} == {"dangling_reference"}

    def test_moves(self, runner, project_path, tmp_path):
        output = tmp_path / "moves.json"
        result = runner.invoke(main, ["moves", str(project_path), "-o", str(output)])

        assert result.exit_code == 0, result.output
        assert "reachable hex(es)" in result.output
        moves = json.loads(output.read_text())
        assert moves["for_entity"] == "infantry-1"
        assert moves["valid_positions"]
        # (2, 0) is water in the sample
        assert {"q": 2, "r": 0} not in moves["valid_positions"]

    def test_moves_unknown_unit(self, runner, project_path):
        result = runner.invoke(main, ["moves", str(project_path), "--unit", "ghost"])
        assert result.exit_code != 0
        assert "ghost" in result.output

    def test_reconcile_up_to_date(self, runner, project_path):
        result = runner.invoke(main, ["reconcile", str(project_path)])
        assert result.exit_code == 0
        assert "already up to date" in result.output

    def test_reconcile_restores_missing_constraint(self, runner, project_path):
        data = json.loads(project_path.read_text())
        data["constraints"] = []
        project_path.write_text(json.dumps(data))

        result = runner.invoke(main, ["reconcile", str(project_path)])

        assert result.exit_code == 0, result.output
        assert "1 constraint(s) created" in result.output
        constraints = json.loads(project_path.read_text())["constraints"]
        assert len(constraints) == 1
        assert constraints[0]["auto_generated"]

    def test_load_error(self, runner, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("[]")
        result = runner.invoke(main, ["validate", str(path)])
        assert result.exit_code != 0
        assert "Cannot load project" in result.output
