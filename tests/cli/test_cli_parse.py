"""Tests for the parse command."""

import json

import pytest
from typer.testing import CliRunner

from taskmark.cli.main import app

runner = CliRunner()


@pytest.fixture
def note(tmp_path):
    path = tmp_path / "groceries.md"
    path.write_text(
        "---\nproject: Household\n---\n"
        "- [ ] Pay rent 📅 2024-02-01 ⏫\n"
        "    - [x] Find checkbook\n"
        "Some prose\n"
        "- [ ] Call landlord [project::Flat]\n",
        encoding="utf-8",
    )
    return path


def test_parse_json(cli_env, note):
    result = runner.invoke(app, ["parse", str(note), "--json"])

    assert result.exit_code == 0, result.output
    tasks = json.loads(result.stdout)
    assert [task["content"] for task in tasks] == ["Pay rent", "Find checkbook", "Call landlord"]
    assert tasks[0]["metadata"]["priority"] == 4
    assert tasks[0]["metadata"]["effective_project"] == "Household"
    assert tasks[1]["parent_id"] == tasks[0]["id"]
    assert tasks[1]["completed"] is True
    assert tasks[2]["metadata"]["project"] == "Flat"


def test_parse_markdown_dataview(cli_env, note):
    result = runner.invoke(app, ["parse", str(note), "--markdown", "dataview"])

    assert result.exit_code == 0, result.output
    assert result.stdout.splitlines()[0] == "- [ ] Pay rent [priority::high] [due::2024-02-01]"


def test_parse_unknown_markdown_style(cli_env, note):
    result = runner.invoke(app, ["parse", str(note), "--markdown", "html"])

    assert result.exit_code == 1
    assert "Unknown markdown style" in result.stdout


def test_parse_table(cli_env, note):
    result = runner.invoke(app, ["parse", str(note)])

    assert result.exit_code == 0, result.output
    assert "groceries.md" in result.stdout


def test_parse_with_config_file(cli_env, note, tmp_path):
    config = tmp_path / "config.json"
    config.write_text(json.dumps({"metadata_parse_mode": "DataviewOnly"}), encoding="utf-8")

    result = runner.invoke(app, ["parse", str(note), "--json", "--config", str(config)])

    assert result.exit_code == 0, result.output
    first = json.loads(result.stdout)[0]
    assert first["metadata"]["priority"] is None
    assert "📅" in first["content"]


def test_parse_invalid_config(cli_env, note, tmp_path):
    config = tmp_path / "config.json"
    config.write_text(json.dumps({"max_parse_iterations": 0}), encoding="utf-8")

    result = runner.invoke(app, ["parse", str(note), "--config", str(config)])

    assert result.exit_code == 1
    assert "Invalid configuration" in result.stdout


def test_parse_missing_file(cli_env, tmp_path):
    result = runner.invoke(app, ["parse", str(tmp_path / "missing.md")])

    assert result.exit_code != 0
