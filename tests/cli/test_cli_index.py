"""Tests for the index command and top-level options."""

import json

from typer.testing import CliRunner

import taskmark
from taskmark.cli.main import app

runner = CliRunner()


def test_index_json(cli_env, vault):
    result = runner.invoke(app, ["index", str(vault), "--json", "--workers", "2"])

    assert result.exit_code == 0, result.output
    assert json.loads(result.stdout) == {"files": 2, "failed": {}, "tasks": 5, "completed": 1}


def test_index_reports_unreadable_files(cli_env, vault):
    (vault / "Home" / "broken.md").write_bytes(b"\xff\xfe- [ ] bad\n")

    result = runner.invoke(app, ["--log-level", "CRITICAL", "index", str(vault), "--json"])

    assert result.exit_code == 0, result.output
    report = json.loads(result.stdout)
    assert list(report["failed"]) == ["Home/broken.md"]
    assert report["files"] == 3


def test_index_table(cli_env, vault):
    result = runner.invoke(app, ["index", str(vault)])

    assert result.exit_code == 0, result.output
    assert "5 tasks in 2 files" in result.stdout


def test_index_uses_saved_config(cli_env, vault):
    (cli_env / "config.json").write_text(
        json.dumps({"project_config": {"path_mappings": [{"path_pattern": "Work", "project_name": "Job"}]}}),
        encoding="utf-8",
    )

    result = runner.invoke(app, ["filter", str(vault), "--json", "-q", "ship"])

    assert result.exit_code == 0, result.output
    assert json.loads(result.stdout)[0]["metadata"]["effective_project"] == "Job"


def test_index_rejects_file(cli_env, vault):
    result = runner.invoke(app, ["index", str(vault / "Work" / "sprint.md")])

    assert result.exit_code != 0


def test_version(cli_env):
    result = runner.invoke(app, ["--version"])

    assert result.exit_code == 0
    assert taskmark.__version__ in result.stdout
