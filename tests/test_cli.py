"""Tests for the command-line entry point."""

import json

from click.testing import CliRunner

from pyswag.__main__ import main

from conftest import TESTDATA


class TestInit:
    def test_generates_documents(self, tmp_path):
        out = tmp_path / "docs"
        result = CliRunner().invoke(main, ["init", "-d", str(TESTDATA / "simple"), "-o", str(out)])

        assert result.exit_code == 0, result.output
        assert "8 operations" in result.output
        assert sorted(p.name for p in out.iterdir()) == ["docs.py", "swagger.json", "swagger.yaml"]

    def test_property_strategy(self, tmp_path):
        out = tmp_path / "docs"
        result = CliRunner().invoke(
            main, ["init", "-d", str(TESTDATA / "simple"), "-o", str(out), "--propertyStrategy", "camelcase"],
        )
        assert result.exit_code == 0, result.output
        spec = json.loads((out / "swagger.json").read_text())
        assert "userName" in spec["definitions"]["account.Profile"]["properties"]

    def test_missing_entry_point(self, tmp_path):
        result = CliRunner().invoke(
            main, ["init", "-d", str(TESTDATA / "simple"), "-g", "nope.py", "-o", str(tmp_path / "docs")],
        )
        assert result.exit_code == 1
        assert "nope.py" in result.output
        assert not (tmp_path / "docs").exists()

    def test_faults_reported(self, tmp_path):
        result = CliRunner().invoke(main, ["init", "-d", str(TESTDATA / "faults"), "-o", str(tmp_path / "docs")])
        assert result.exit_code == 0
        assert "duplicate:" in result.output

    def test_unknown_strategy_rejected(self, tmp_path):
        result = CliRunner().invoke(
            main, ["init", "-d", str(TESTDATA / "simple"), "-o", str(tmp_path), "-p", "kebab"],
        )
        assert result.exit_code == 2
