"""Tests for the geofusion-kg command line."""

import json
from pathlib import Path

from typer.testing import CliRunner

from geofusion_kg.cli import app

runner = CliRunner()


def _records_file(tmp_path: Path) -> Path:
    path = tmp_path / "records.json"
    path.write_text(json.dumps([
        {"id": "gov", "category": "GOVERNMENT", "name": "City Hall", "latitude": 39.30, "longitude": -76.61},
        {"id": "econ", "category": "ECONOMIC", "name": "Jobs", "latitude": 39.318, "longitude": -76.61,
         "properties": {"value": 4.2}},
    ]))
    return path


def _imported_kb(tmp_path: Path) -> Path:
    kb = tmp_path / "kb"
    result = runner.invoke(app, ["import", str(_records_file(tmp_path)), "--kb", str(kb)])
    assert result.exit_code == 0, result.output
    return kb


def test_help_lists_commands():
    result = runner.invoke(app, ["--help"])

    assert result.exit_code == 0
    for command in ("import", "enrich", "info", "show"):
        assert command in result.output


def test_import(tmp_path: Path):
    kb = tmp_path / "kb"
    result = runner.invoke(app, ["import", str(_records_file(tmp_path)), "--kb", str(kb)])

    assert result.exit_code == 0
    assert "Imported 2 records" in result.output
    assert (kb / "records.parquet").is_dir()


def test_import_invalid_file(tmp_path: Path):
    path = tmp_path / "bad.json"
    path.write_text(json.dumps({"type": "Feature"}))

    result = runner.invoke(app, ["import", str(path), "--kb", str(tmp_path / "kb")])

    assert result.exit_code == 1
    assert "Import failed" in result.output


def test_enrich_json(tmp_path: Path):
    kb = _imported_kb(tmp_path)
    result = runner.invoke(app, ["enrich", "--kb", str(kb), "--json"])

    assert result.exit_code == 0
    payload = json.loads(result.output)
    assert payload["success"] is True
    assert payload["enrichedCount"] == 2
    assert payload["relationshipsCreated"] == 2


def test_enrich_table(tmp_path: Path):
    kb = _imported_kb(tmp_path)
    result = runner.invoke(app, ["enrich", "--kb", str(kb), "-c", "GOVERNMENT", "--radius-km", "10"])

    assert result.exit_code == 0
    assert "Relationships created" in result.output


def test_enrich_empty_selection_fails(tmp_path: Path):
    kb = _imported_kb(tmp_path)
    result = runner.invoke(app, ["enrich", "--kb", str(kb), "-c", "WILDLIFE"])

    assert result.exit_code == 1
    assert "No records found" in result.output


def test_info(tmp_path: Path):
    kb = _imported_kb(tmp_path)
    runner.invoke(app, ["enrich", "--kb", str(kb)])
    result = runner.invoke(app, ["info", "--kb", str(kb)])

    assert result.exit_code == 0
    assert "Knowledge edges" in result.output
    assert "Daily Enrichment" in result.output


def test_show(tmp_path: Path):
    kb = _imported_kb(tmp_path)
    runner.invoke(app, ["enrich", "--kb", str(kb)])
    result = runner.invoke(app, ["show", "gov", "--kb", str(kb)])

    assert result.exit_code == 0
    assert "City Hall" in result.output
    assert "funds" in result.output


def test_show_missing_record(tmp_path: Path):
    kb = _imported_kb(tmp_path)
    result = runner.invoke(app, ["show", "nope", "--kb", str(kb)])

    assert result.exit_code == 1
    assert "Record not found" in result.output
