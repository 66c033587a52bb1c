"""Command module for filtering the tasks of a file or folder."""

import asyncio
import json
from pathlib import Path
from typing import Optional

import typer

from taskmark.cli.app import app
from taskmark.cli.commands.command_utils import (
    build_parser,
    console,
    load_config,
    print_json,
    task_table,
)
from taskmark.errors import FilterDefinitionError
from taskmark.filters import RootFilterState, ViewConfig
from taskmark.index import TaskIndex


@app.command("filter")
def filter_command(
    ctx: typer.Context,
    path: Path = typer.Argument(..., exists=True, help="Markdown file or folder"),
    filter_file: Optional[Path] = typer.Option(
        None, "--filter", "-f", help="Advanced filter JSON (rootCondition/filterGroups)"
    ),
    view_file: Optional[Path] = typer.Option(None, "--view", help="View config JSON"),
    query: Optional[str] = typer.Option(None, "--query", "-q", help="Free-text query"),
    hide_done: bool = typer.Option(False, "--hide-done", help="Hide completed and abandoned tasks"),
    as_json: bool = typer.Option(False, "--json", help="Print tasks as JSON"),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Parser config JSON file"),
) -> None:
    """Print the tasks under PATH that pass a filter."""
    try:
        advanced = RootFilterState.from_file(filter_file) if filter_file else None
        view = _load_view(view_file, hide_done)
    except FilterDefinitionError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    root = path if path.is_dir() else path.parent
    index = TaskIndex(build_parser(load_config(ctx, config), root=root))

    async def _load() -> None:
        if path.is_dir():
            await index.index_directory(path)
        else:
            await index.index_file(path, root)

    asyncio.run(_load())
    tasks = index.query(advanced_filter=advanced, view=view, text_query=query)

    if as_json:
        print_json([task.to_dict() for task in tasks])
    else:
        console.print(task_table(tasks, title=f"{len(tasks)} matching tasks", show_file=True))


def _load_view(view_file: Optional[Path], hide_done: bool) -> ViewConfig:
    data = {}
    if view_file is not None:
        try:
            data = json.loads(view_file.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise FilterDefinitionError(f"Could not read view file {view_file}: {e}") from e
    if hide_done:
        data["hideCompletedAndAbandonedTasks"] = True
    try:
        return ViewConfig.model_validate(data)
    except ValueError as e:
        raise FilterDefinitionError(f"Invalid view config: {e}") from e
