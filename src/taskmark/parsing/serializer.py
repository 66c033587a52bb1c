"""
Render tasks back to markdown lines.

Only metadata authored on the task is written; inherited values and inferred
projects stay implicit so re-parsing the line in the same file yields the
same task.
"""

import re
from typing import TYPE_CHECKING, Literal

from taskmark.config import DEFAULT_EMOJI_MAPPING
from taskmark.models import RecurrenceRule
from taskmark.parsing.dates import format_timestamp
from taskmark.parsing.priority import PRIORITY_SYMBOLS, PRIORITY_WORDS
from taskmark.parsing.scanner import TASK_LINE

if TYPE_CHECKING:
    from taskmark.models import Task

FIELD_SYMBOLS = {}
for _symbol, _field in DEFAULT_EMOJI_MAPPING.items():
    FIELD_SYMBOLS.setdefault(_field, _symbol)

# Written in this order after the content
DATE_ORDER = (
    ("createdDate", "created_date", "created"),
    ("startDate", "start_date", "start"),
    ("scheduledDate", "scheduled_date", "scheduled"),
    ("dueDate", "due_date", "due"),
    ("completedDate", "completed_date", "completion"),
)

PLAIN_TAG_VALUE = re.compile(r"^[\w/-]+$")


def _indent_prefix(task: "Task") -> str:
    match = TASK_LINE.match(task.original_markdown or "")
    if match:
        return match.group("indent")
    return "\t" * task.indent_level


def _recurrence_text(value: RecurrenceRule | str) -> str:
    if isinstance(value, RecurrenceRule):
        return value.to_phrase()
    return value


def task_to_markdown(task: "Task", style: Literal["emoji", "dataview"] = "emoji") -> str:
    """Render ``task`` as a single markdown task line."""
    metadata = task.metadata
    inherited = metadata.inherited_fields
    parts: list[str] = [task.content] if task.content else []

    parts.extend(f"#{tag}" for tag in metadata.tags)

    def authored(name: str, value) -> bool:
        return value is not None and name not in inherited

    for name, value in (("project", metadata.project), ("area", metadata.area), ("context", metadata.context)):
        if not authored(name, value):
            continue
        if style == "emoji" and PLAIN_TAG_VALUE.match(value):
            parts.append(f"@{value}" if name == "context" else f"#{name}/{value}")
        else:
            parts.append(f"[{name}::{value}]")

    if authored("priority", metadata.priority):
        if style == "emoji":
            parts.append(PRIORITY_SYMBOLS[metadata.priority])
        else:
            parts.append(f"[priority::{PRIORITY_WORDS[metadata.priority]}]")

    if authored("recurrence", metadata.recurrence):
        phrase = _recurrence_text(metadata.recurrence)
        if style == "emoji":
            parts.append(f"{FIELD_SYMBOLS['recurrence']} {phrase}")
        else:
            parts.append(f"[repeat::{phrase}]")

    for name, attribute, key in DATE_ORDER:
        timestamp = getattr(metadata, attribute)
        if not authored(name, timestamp):
            continue
        if style == "emoji":
            parts.append(f"{FIELD_SYMBOLS[name]} {format_timestamp(timestamp)}")
        else:
            parts.append(f"[{key}::{format_timestamp(timestamp)}]")

    for key, value in metadata.custom.items():
        if key not in inherited:
            parts.append(f"[{key}::{value}]")

    body = " ".join(parts)
    line = f"{_indent_prefix(task)}{task.list_marker} [{task.status}]"
    return f"{line} {body}" if body else line
