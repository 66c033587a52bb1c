"""
Task data model.

A Task is created once per scan of a file and wholly replaced on re-scan.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from taskmark.config import StatusCategory


class ProjectSource(str, Enum):
    """Where an inferred project came from."""

    PATH = "path"
    METADATA = "metadata"
    CONFIG = "config"
    DEFAULT = "default"


@dataclass(frozen=True)
class TgProject:
    """A project inferred for a task rather than authored on its line.

    Inferred projects are readonly: they can be overridden by an explicit
    project on the task, never cleared.
    """

    type: ProjectSource
    name: str
    source: str
    readonly: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "name": self.name,
            "source": self.source,
            "readonly": self.readonly,
        }


@dataclass(frozen=True)
class RecurrenceRule:
    """Structured recurrence, e.g. ``every 2 weeks`` or ``every monday``.

    ``weekday`` follows Python's convention: 0 is Monday, 6 is Sunday.
    """

    unit: str  # day | week | month | year
    interval: int = 1
    weekday: int | None = None
    when_done: bool = False

    def to_phrase(self) -> str:
        if self.weekday is not None:
            from taskmark.parsing.recurrence import WEEKDAY_NAMES

            phrase = f"every {WEEKDAY_NAMES[self.weekday]}"
        elif self.interval == 1:
            phrase = f"every {self.unit}"
        else:
            phrase = f"every {self.interval} {self.unit}s"
        if self.when_done:
            phrase += " when done"
        return phrase

    def to_dict(self) -> dict[str, Any]:
        return {
            "unit": self.unit,
            "interval": self.interval,
            "weekday": self.weekday,
            "when_done": self.when_done,
        }


# Attribute name for each camelCase field name used in markup and filters
FIELD_ATTRIBUTES = {
    "dueDate": "due_date",
    "startDate": "start_date",
    "scheduledDate": "scheduled_date",
    "completedDate": "completed_date",
    "createdDate": "created_date",
    "priority": "priority",
    "project": "project",
    "context": "context",
    "area": "area",
    "recurrence": "recurrence",
    "tags": "tags",
}

DATE_FIELDS = ("dueDate", "startDate", "scheduledDate", "completedDate", "createdDate")


@dataclass
class TaskMetadata:
    """Resolved metadata for a task.

    Dates are epoch milliseconds in local time. ``project`` is only ever the
    explicitly authored project; ``tg_project`` holds the inferred one.
    """

    due_date: int | None = None
    start_date: int | None = None
    scheduled_date: int | None = None
    completed_date: int | None = None
    created_date: int | None = None
    priority: int | None = None
    project: str | None = None
    tg_project: TgProject | None = None
    tags: list[str] = field(default_factory=list)
    context: str | None = None
    area: str | None = None
    recurrence: RecurrenceRule | str | None = None
    heading: str | None = None
    heading_level: int | None = None
    custom: dict[str, Any] = field(default_factory=dict)
    inherited_fields: set[str] = field(default_factory=set)

    @property
    def effective_project(self) -> str | None:
        """Explicit project if present, otherwise the inferred project name."""
        if self.project:
            return self.project
        if self.tg_project:
            return self.tg_project.name
        return None

    def get(self, key: str, default: Any = None) -> Any:
        """Look up a field by its markup name (``dueDate``) or any custom key."""
        attribute = FIELD_ATTRIBUTES.get(key)
        if attribute is not None:
            value = getattr(self, attribute)
            return default if value is None else value
        return self.custom.get(key, default)

    def has(self, key: str) -> bool:
        attribute = FIELD_ATTRIBUTES.get(key)
        if attribute is not None:
            value = getattr(self, attribute)
            return value is not None and value != []
        return key in self.custom

    def to_dict(self) -> dict[str, Any]:
        recurrence = self.recurrence
        if isinstance(recurrence, RecurrenceRule):
            recurrence = recurrence.to_dict()
        return {
            "due_date": self.due_date,
            "start_date": self.start_date,
            "scheduled_date": self.scheduled_date,
            "completed_date": self.completed_date,
            "created_date": self.created_date,
            "priority": self.priority,
            "project": self.project,
            "tg_project": self.tg_project.to_dict() if self.tg_project else None,
            "effective_project": self.effective_project,
            "tags": list(self.tags),
            "context": self.context,
            "area": self.area,
            "recurrence": recurrence,
            "heading": self.heading,
            "custom": dict(self.custom),
        }


@dataclass
class Task:
    """A task extracted from a markdown line."""

    id: str
    file_path: str
    line: int  # 0-based line index in the file
    content: str
    status: str
    status_category: StatusCategory
    completed: bool
    original_markdown: str
    indent_level: int = 0
    actual_indent: int = 0
    list_marker: str = "-"
    metadata: TaskMetadata = field(default_factory=TaskMetadata)
    parent_id: str | None = None
    children: list[str] = field(default_factory=list)
    comment: str | None = None

    @property
    def line_number(self) -> int:
        """1-based line number for display."""
        return self.line + 1

    @property
    def project(self) -> str | None:
        return self.metadata.effective_project

    @property
    def tags(self) -> list[str]:
        return self.metadata.tags

    @property
    def priority(self) -> int | None:
        return self.metadata.priority

    @property
    def is_root(self) -> bool:
        return self.parent_id is None

    def to_markdown(self, style: str = "emoji") -> str:
        """Render the task back to a single markdown line."""
        from taskmark.parsing.serializer import task_to_markdown

        return task_to_markdown(self, style=style)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "file_path": self.file_path,
            "line": self.line,
            "content": self.content,
            "status": self.status,
            "status_category": self.status_category.value,
            "completed": self.completed,
            "indent_level": self.indent_level,
            "list_marker": self.list_marker,
            "parent_id": self.parent_id,
            "children": list(self.children),
            "comment": self.comment,
            "original_markdown": self.original_markdown,
            "metadata": self.metadata.to_dict(),
        }
