"""
Line scanner for markdown task lines.

Splits a raw line into indentation width, list marker, status mark and the
remaining content. Pure and total: any line either scans or is "not a task".
"""

import re
from dataclasses import dataclass

# Leading whitespace and blockquote markers, list marker, checkbox, content
TASK_LINE = re.compile(r"^(?P<indent>[\s>]*)(?P<marker>[-*+]|\d+[.)])\s\[(?P<status>.)\]\s*(?P<content>.*)$")
HEADING_LINE = re.compile(r"^\s*(?P<hashes>#{1,6})\s+(?P<text>\S.*?)\s*#*\s*$")
FENCE_PREFIXES = ("```", "~~~")


@dataclass(frozen=True)
class ScannedLine:
    """Result of scanning a single task line."""

    indent: int  # indentation width in spaces after tab expansion
    list_marker: str
    status: str
    content: str


def normalize_indent(prefix: str, tab_size: int = 4) -> int:
    """Measure an indentation prefix in spaces.

    Tabs advance to the next multiple of ``tab_size``; blockquote ``>`` markers
    count as a single column, like a space.
    """
    width = 0
    for char in prefix:
        if char == "\t":
            width += tab_size - (width % tab_size)
        else:
            width += 1
    return width


def scan_line(line: str, tab_size: int = 4) -> ScannedLine | None:
    """Scan a line, returning None when it is not a task line."""
    match = TASK_LINE.match(line.rstrip("\r\n"))
    if not match:
        return None

    return ScannedLine(
        indent=normalize_indent(match.group("indent"), tab_size),
        list_marker=match.group("marker"),
        status=match.group("status"),
        content=match.group("content").strip(),
    )


def is_task_line(line: str) -> bool:
    return TASK_LINE.match(line.rstrip("\r\n")) is not None


def is_fence(line: str) -> bool:
    return line.strip().startswith(FENCE_PREFIXES)


def scan_heading(line: str) -> tuple[int, str] | None:
    """Return ``(level, text)`` for an ATX heading line."""
    match = HEADING_LINE.match(line)
    if not match:
        return None
    return len(match.group("hashes")), match.group("text")


def leading_width(line: str, tab_size: int = 4) -> int:
    """Indentation width of any line, task or not."""
    stripped = line.lstrip(" \t")
    return normalize_indent(line[: len(line) - len(stripped)], tab_size)
