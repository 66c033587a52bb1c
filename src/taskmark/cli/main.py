"""Main CLI entry point for taskmark."""  # pragma: no cover

from taskmark.cli.app import app  # pragma: no cover

# Register commands
from taskmark.cli.commands import filter, index, parse, workflow  # noqa: F401  # pragma: no cover

if __name__ == "__main__":  # pragma: no cover
    app()
