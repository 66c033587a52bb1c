from typing import Optional

import typer

from taskmark.config import TaskmarkSettings
from taskmark.utils import setup_logging


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:  # pragma: no cover
        import taskmark

        typer.echo(f"taskmark version: {taskmark.__version__}")
        raise typer.Exit()


app = typer.Typer(name="taskmark")


@app.callback()
def app_callback(
    ctx: typer.Context,
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        help="Log level (defaults to TASKMARK_LOG_LEVEL)",
    ),
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """taskmark - parse, filter and index markdown tasks."""
    settings = TaskmarkSettings()
    ctx.obj = settings

    level = log_level or settings.log_level
    setup_logging(level=level.upper(), log_file=settings.log_file)


workflow_app = typer.Typer(help="Validate and inspect workflow definitions")
app.add_typer(workflow_app, name="workflow")
