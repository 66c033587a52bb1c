"""Command module for workflow definitions."""

from pathlib import Path
from typing import Optional

import typer
from rich.tree import Tree

from taskmark.cli.app import workflow_app
from taskmark.cli.commands.command_utils import console
from taskmark.errors import WorkflowDefinitionError
from taskmark.workflow import CycleStage, WorkflowDefinition


def _load(file: Path) -> WorkflowDefinition:
    try:
        return WorkflowDefinition.from_file(file)
    except WorkflowDefinitionError as e:
        console.print(f"[red]Invalid workflow: {e}[/red]")
        raise typer.Exit(1)


@workflow_app.command("validate")
def validate(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Workflow JSON or YAML file"),
) -> None:
    """Validate a workflow definition and show its stages."""
    definition = _load(file)

    tree = Tree(f"[bold]{definition.name}[/bold] ({definition.id})")
    for stage in definition.stages:
        branch = tree.add(f"{stage.id} [dim]{stage.type}[/dim]")
        if isinstance(stage, CycleStage):
            for sub in stage.sub_stages:
                branch.add(f"{sub.id} -> {sub.next or stage.sub_stages[0].id}")
    console.print(tree)
    console.print(f"[green]✓ {len(definition.stages)} stages valid[/green]")


@workflow_app.command("next")
def next_stage(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Workflow JSON or YAML file"),
    stage: str = typer.Argument(..., help="Current stage id, or 'root'"),
    sub_stage: Optional[str] = typer.Option(None, "--sub-stage", "-s", help="Current sub-stage id"),
) -> None:
    """Print the stage marker a task moves to next."""
    definition = _load(file)
    transition = definition.next_stage(stage, sub_stage)
    if transition is None:
        console.print("[yellow]No next stage[/yellow]")
        raise typer.Exit(1)
    typer.echo(transition.marker)
