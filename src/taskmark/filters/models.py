"""Schemas for advanced filter trees and view filter rules."""

import json
from pathlib import Path
from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from taskmark.errors import FilterDefinitionError

Combinator = Literal["all", "any", "none"]


class Filter(BaseModel):
    """A single property comparison, e.g. ``dueDate < 2024-06-01``."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: Optional[str] = Field(None, description="Client-side identifier")
    property: str = Field(..., description="Task property to compare")
    condition: str = Field("", description="Comparison, specific to the property type")
    value: Optional[str] = Field(None, description="Comparison operand")

    @field_validator("value", mode="before")
    @classmethod
    def _stringify(cls, value: Union[str, int, float, None]) -> Optional[str]:
        if value is None or isinstance(value, str):
            return value
        return str(value)


class FilterGroup(BaseModel):
    """Filters combined by ``all``, ``any`` or ``none``."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: Optional[str] = Field(None, description="Client-side identifier")
    group_condition: Combinator = Field("all", alias="groupCondition")
    filters: list[Filter] = Field(default_factory=list)


class RootFilterState(BaseModel):
    """Filter groups combined by a root combinator."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    root_condition: Combinator = Field("any", alias="rootCondition")
    filter_groups: list[FilterGroup] = Field(default_factory=list, alias="filterGroups")

    @property
    def is_empty(self) -> bool:
        return not self.filter_groups

    @classmethod
    def load(cls, data: dict) -> "RootFilterState":
        """Validate a raw filter tree, raising FilterDefinitionError on failure."""
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise FilterDefinitionError(f"Invalid filter definition: {e}") from e

    @classmethod
    def from_file(cls, path: Path) -> "RootFilterState":
        try:
            data = json.loads(Path(path).read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise FilterDefinitionError(f"Could not read filter file {path}: {e}") from e
        if not isinstance(data, dict):
            raise FilterDefinitionError(f"Filter file {path} must contain a JSON object")
        return cls.load(data)


HasDate = Literal["any", "hasDate", "noDate"]


class ViewFilterRules(BaseModel):
    """Simple per-view rules, applied before any advanced filter."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    text_contains: Optional[str] = Field(None, alias="textContains")
    tags_include: list[str] = Field(default_factory=list, alias="tagsInclude")
    tags_exclude: list[str] = Field(default_factory=list, alias="tagsExclude")
    project: Optional[str] = None
    priority: Optional[str] = Field(None, description="'none', a level, or comma-separated levels")
    status_include: list[str] = Field(default_factory=list, alias="statusInclude")
    status_exclude: list[str] = Field(default_factory=list, alias="statusExclude")
    path_includes: Optional[str] = Field(None, alias="pathIncludes", description="Comma-separated substrings")
    path_excludes: Optional[str] = Field(None, alias="pathExcludes", description="Comma-separated substrings")
    due_date: Optional[str] = Field(None, alias="dueDate")
    start_date: Optional[str] = Field(None, alias="startDate")
    scheduled_date: Optional[str] = Field(None, alias="scheduledDate")
    has_due_date: Optional[HasDate] = Field(None, alias="hasDueDate")
    has_start_date: Optional[HasDate] = Field(None, alias="hasStartDate")
    has_scheduled_date: Optional[HasDate] = Field(None, alias="hasScheduledDate")
    has_completed_date: Optional[HasDate] = Field(None, alias="hasCompletedDate")

    @field_validator("priority", mode="before")
    @classmethod
    def _stringify_priority(cls, value: Union[str, int, None]) -> Optional[str]:
        if value is None or isinstance(value, str):
            return value
        return str(value)


class ViewConfig(BaseModel):
    """View-level filtering settings."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    hide_completed_and_abandoned: bool = Field(False, alias="hideCompletedAndAbandonedTasks")
    filter_blanks: bool = Field(False, alias="filterBlanks")
    filter_rules: ViewFilterRules = Field(default_factory=ViewFilterRules, alias="filterRules")
