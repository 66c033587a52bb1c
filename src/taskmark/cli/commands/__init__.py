"""CLI commands for taskmark."""

from . import filter, index, parse, workflow

__all__ = [
    "filter",
    "index",
    "parse",
    "workflow",
]
