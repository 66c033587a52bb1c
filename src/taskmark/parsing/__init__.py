"""
Task parsing and metadata resolution.

This package turns markdown task lines into structured tasks: line scanning,
inline metadata extraction, priority/date/recurrence resolution, project
inference, frontmatter inheritance and the indentation tree.
"""

from taskmark.parsing.dates import DateResolver, format_timestamp
from taskmark.parsing.extractor import (
    ExtractionResult,
    MetadataExtractor,
    MetadataToken,
    TokenKind,
)
from taskmark.parsing.inheritance import InheritanceResolver
from taskmark.parsing.parser import MarkdownTaskParser
from taskmark.parsing.priority import resolve_priority
from taskmark.parsing.projects import (
    ProjectConfigReader,
    ProjectResolver,
    ResolutionMode,
    ResolvedProject,
)
from taskmark.parsing.recurrence import parse_recurrence
from taskmark.parsing.scanner import ScannedLine, scan_line
from taskmark.parsing.serializer import task_to_markdown
from taskmark.parsing.tree import TaskNode, TaskTreeBuilder


def clear_date_cache() -> None:
    """Drop all memoized date literals."""
    DateResolver.clear_cache()


__all__ = [
    # Scanner
    "ScannedLine",
    "scan_line",
    # Extraction
    "ExtractionResult",
    "MetadataExtractor",
    "MetadataToken",
    "TokenKind",
    # Resolvers
    "DateResolver",
    "clear_date_cache",
    "format_timestamp",
    "resolve_priority",
    "parse_recurrence",
    "ProjectConfigReader",
    "ProjectResolver",
    "ResolutionMode",
    "ResolvedProject",
    "InheritanceResolver",
    # Tree
    "TaskNode",
    "TaskTreeBuilder",
    # Parser
    "MarkdownTaskParser",
    "task_to_markdown",
]
