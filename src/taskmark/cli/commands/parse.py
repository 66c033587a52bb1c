"""Command module for parsing a single markdown file."""

import asyncio
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
from taskmark.errors import FileParseError
from taskmark.file_utils import read_markdown


@app.command()
def parse(
    ctx: typer.Context,
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Markdown file to parse"),
    as_json: bool = typer.Option(False, "--json", help="Print tasks as JSON"),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Parser config JSON file"),
    style: Optional[str] = typer.Option(
        None, "--markdown", help="Print tasks re-rendered as markdown (emoji or dataview)"
    ),
) -> None:
    """Parse the tasks in a markdown file."""
    parser = build_parser(load_config(ctx, config), root=file.parent)

    try:
        content, metadata = asyncio.run(read_markdown(file))
    except FileParseError as e:
        console.print(f"[red]Error reading {file}: {e}[/red]")
        raise typer.Exit(1)

    tasks = parser.parse(content, file.as_posix(), metadata)

    if as_json:
        print_json([task.to_dict() for task in tasks])
    elif style:
        if style not in ("emoji", "dataview"):
            console.print(f"[red]Unknown markdown style: {style}[/red]")
            raise typer.Exit(1)
        for task in tasks:
            typer.echo(task.to_markdown(style=style))
    else:
        console.print(task_table(tasks, title=f"Tasks in {file.name}"))
