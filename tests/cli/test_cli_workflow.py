"""Tests for the workflow commands."""

import json

import pytest
from typer.testing import CliRunner

from taskmark.cli.main import app

runner = CliRunner()


@pytest.fixture
def workflow_file(tmp_path):
    path = tmp_path / "writing.json"
    path.write_text(
        json.dumps(
            {
                "id": "writing",
                "name": "Writing",
                "stages": [
                    {"id": "idea", "name": "Idea", "type": "linear"},
                    {
                        "id": "drafting",
                        "name": "Drafting",
                        "type": "cycle",
                        "canProceedTo": ["done"],
                        "subStages": [
                            {"id": "write", "name": "Write", "next": "edit"},
                            {"id": "edit", "name": "Edit"},
                        ],
                    },
                    {"id": "done", "name": "Done", "type": "terminal"},
                ],
            }
        ),
        encoding="utf-8",
    )
    return path


def test_validate(cli_env, workflow_file):
    result = runner.invoke(app, ["workflow", "validate", str(workflow_file)])

    assert result.exit_code == 0, result.output
    assert "3 stages valid" in result.stdout


def test_validate_invalid(cli_env, tmp_path):
    path = tmp_path / "broken.json"
    path.write_text(
        json.dumps({"id": "wf", "name": "WF", "stages": [{"id": "a", "name": "A", "type": "linear", "next": "b"}]}),
        encoding="utf-8",
    )

    result = runner.invoke(app, ["workflow", "validate", str(path)])

    assert result.exit_code == 1
    assert "Invalid workflow" in result.stdout


@pytest.mark.parametrize(
    "args,marker",
    [
        (["root"], "[stage::idea]"),
        (["idea"], "[stage::drafting.write]"),
        (["drafting", "--sub-stage", "write"], "[stage::drafting.edit]"),
        (["drafting", "-s", "edit"], "[stage::done]"),
    ],
)
def test_next(cli_env, workflow_file, args, marker):
    result = runner.invoke(app, ["workflow", "next", str(workflow_file), *args])

    assert result.exit_code == 0, result.output
    assert result.stdout.strip() == marker


def test_next_from_terminal(cli_env, workflow_file):
    result = runner.invoke(app, ["workflow", "next", str(workflow_file), "done"])

    assert result.exit_code == 1
    assert "No next stage" in result.stdout
