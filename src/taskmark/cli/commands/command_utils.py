"""Shared helpers for CLI commands."""

import json
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from taskmark.config import ConfigManager, ParserConfig, TaskmarkSettings
from taskmark.errors import ConfigurationError
from taskmark.models import Task
from taskmark.parsing import MarkdownTaskParser, ProjectConfigReader, format_timestamp

console = Console()


def load_config(ctx: typer.Context, config_path: Optional[Path] = None) -> ParserConfig:
    """Parser config from ``--config`` or the config file under the home directory."""
    try:
        if config_path is not None:
            return ParserConfig.load(json.loads(config_path.read_text(encoding="utf-8")))
        settings = ctx.obj if isinstance(ctx.obj, TaskmarkSettings) else TaskmarkSettings()
        return ConfigManager(settings).load_parser_config()
    except (OSError, json.JSONDecodeError, ConfigurationError) as e:
        console.print(f"[red]Invalid configuration: {e}[/red]")
        raise typer.Exit(1)


def build_parser(config: ParserConfig, root: Optional[Path] = None) -> MarkdownTaskParser:
    reader = None
    if config.project_config is not None:
        reader = ProjectConfigReader(config.project_config.config_file, root=root)
    return MarkdownTaskParser(config, config_reader=reader)


def print_json(data) -> None:
    # typer.echo keeps JSON free of rich markup and wrapping
    typer.echo(json.dumps(data, indent=2, ensure_ascii=False))


def task_table(tasks: list[Task], title: str, show_file: bool = False) -> Table:
    table = Table(title=title)
    table.add_column("Line", style="dim", justify="right")
    table.add_column("Status", style="magenta")
    table.add_column("Task", style="cyan")
    table.add_column("Project", style="green")
    table.add_column("Priority", justify="right")
    table.add_column("Due", style="yellow")
    table.add_column("Tags")

    for task in tasks:
        indent = "  " * task.indent_level
        due = format_timestamp(task.metadata.due_date) if task.metadata.due_date is not None else ""
        table.add_row(
            f"{task.file_path}:{task.line_number}" if show_file else str(task.line_number),
            f"[{task.status}]",
            f"{indent}{task.content}",
            task.project or "",
            str(task.priority or ""),
            due,
            " ".join(f"#{tag}" for tag in task.tags),
        )
    return table
