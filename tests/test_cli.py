"""CLI integration smoke tests."""

from __future__ import annotations

import json
from pathlib import Path

from typer.testing import CliRunner

from flatvec import __version__
from flatvec.cli import app
from flatvec.config import Settings

runner = CliRunner()


def test_version_flag():
    result = runner.invoke(app, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.stdout


def test_init_creates_index_at_configured_path(override_settings: Settings):
    result = runner.invoke(app, ["init"])

    assert result.exit_code == 0, result.output
    assert "Created index" in result.stdout
    assert override_settings.get_index_path().exists()

    again = runner.invoke(app, ["init"])
    assert again.exit_code == 0, again.output
    assert "Validated index" in again.stdout


def test_add_and_search_round_trip(override_settings: Settings):
    for vector in ("[1, 0, 0, 0]", "[0, 1, 0, 0]", "[1, 1, 0, 0]"):
        result = runner.invoke(app, ["add", vector])
        assert result.exit_code == 0, result.output

    assert result.stdout.strip() == "3"

    search = runner.invoke(app, ["search", "[1, 0, 0, 0]", "-k", "2", "--json"])
    assert search.exit_code == 0, search.output

    payload = json.loads(search.stdout)
    assert payload["schema_id"] == "search_results"
    assert payload["producer"] == f"flatvec-{__version__}"
    assert [hit["id"] for hit in payload["results"]] == [1, 3]
    assert payload["results"][0]["distance"] == 0.0


def test_add_from_file(override_settings: Settings, temp_dir: Path):
    vectors = temp_dir / "vectors.jsonl"
    vectors.write_text("[0.1, 0.2, 0.3, 0.4]\n\n[0.4, 0.3, 0.2, 0.1]\n", encoding="utf-8")

    result = runner.invoke(app, ["add", "--file", str(vectors), "--json"])

    assert result.exit_code == 0, result.output
    assert json.loads(result.stdout)["ids"] == [1, 2]


def test_add_rejects_wrong_dimension(override_settings: Settings):
    result = runner.invoke(app, ["add", "[1, 2, 3]"])

    assert result.exit_code == 1
    info = runner.invoke(app, ["info", "--json"])
    assert json.loads(info.stdout)["record_count"] == 0


def test_add_rejects_malformed_vector(override_settings: Settings):
    result = runner.invoke(app, ["add", "[1, \"x\"]"])

    assert result.exit_code == 2


def test_add_requires_exactly_one_source(override_settings: Settings):
    result = runner.invoke(app, ["add"])

    assert result.exit_code == 2


def test_explicit_path_and_dim(temp_dir: Path, override_settings: Settings):
    path = temp_dir / "custom" / "other.index"

    created = runner.invoke(app, ["init", "--path", str(path), "--dim", "3"])
    added = runner.invoke(app, ["add", "[0, 0, 1]", "--path", str(path)])
    info = runner.invoke(app, ["info", "--path", str(path)])

    assert created.exit_code == 0, created.output
    assert added.exit_code == 0, added.output
    assert "Dimension: 3" in info.stdout
    assert "Records: 1" in info.stdout
    assert "Next ID: 2" in info.stdout


def test_search_empty_store(override_settings: Settings):
    result = runner.invoke(app, ["search", "[1, 0, 0, 0]"])

    assert result.exit_code == 0, result.output
    assert "No results found" in result.stdout


def test_verify_reports_truncation(override_settings: Settings):
    runner.invoke(app, ["add", "[1, 0, 0, 0]"])
    ok = runner.invoke(app, ["verify"])
    assert ok.exit_code == 0, ok.output
    assert "1 records" in ok.stdout

    with open(override_settings.get_index_path(), "ab") as handle:
        handle.write(b"\x00\x01")

    broken = runner.invoke(app, ["verify"])
    assert broken.exit_code == 1


def test_info_on_missing_index_does_not_create_it(temp_dir: Path, override_settings: Settings):
    path = temp_dir / "absent.index"

    result = runner.invoke(app, ["info", "--path", str(path)])

    assert result.exit_code == 1
    assert "Index not found" in result.output
    assert not path.exists()


def test_verify_on_missing_index_does_not_create_it(override_settings: Settings):
    result = runner.invoke(app, ["verify"])

    assert result.exit_code == 1
    assert "Index not found" in result.output
    assert not override_settings.get_index_path().exists()
