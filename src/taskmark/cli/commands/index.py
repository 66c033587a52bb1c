"""Command module for indexing a folder of markdown files."""

import asyncio
from pathlib import Path
from typing import Optional

import typer
from rich.table import Table

from taskmark.cli.app import app
from taskmark.cli.commands.command_utils import build_parser, console, load_config, print_json
from taskmark.config import TaskmarkSettings
from taskmark.index import TaskIndex


@app.command()
def index(
    ctx: typer.Context,
    directory: Path = typer.Argument(..., exists=True, file_okay=False, help="Folder to index"),
    workers: Optional[int] = typer.Option(None, "--workers", "-w", min=1, help="Parallel parse workers"),
    as_json: bool = typer.Option(False, "--json", help="Print the report as JSON"),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Parser config JSON file"),
) -> None:
    """Index every markdown file under DIRECTORY and summarize its tasks."""
    settings = ctx.obj if isinstance(ctx.obj, TaskmarkSettings) else TaskmarkSettings()
    parser = build_parser(load_config(ctx, config), root=directory)
    task_index = TaskIndex(parser, workers=workers or settings.index_workers)

    report = asyncio.run(task_index.index_directory(directory))
    tasks = task_index.get_tasks()

    if as_json:
        print_json(
            {
                "files": report.total,
                "failed": report.failed,
                "tasks": report.task_count,
                "completed": sum(1 for task in tasks if task.completed),
            }
        )
        return

    projects: dict[str, int] = {}
    for task in tasks:
        name = task.project or "(none)"
        projects[name] = projects.get(name, 0) + 1

    table = Table(title=f"{report.task_count} tasks in {report.total} files")
    table.add_column("Project", style="green")
    table.add_column("Tasks", justify="right")
    for name, count in sorted(projects.items()):
        table.add_row(name, str(count))
    console.print(table)

    for file_path, error in sorted(report.failed.items()):
        console.print(f"[red]✗ {file_path}: {error}[/red]")
