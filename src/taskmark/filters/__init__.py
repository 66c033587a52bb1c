"""Filter evaluation over parsed tasks."""

from taskmark.filters.engine import FilterEngine, evaluate
from taskmark.filters.models import (
    Filter,
    FilterGroup,
    RootFilterState,
    ViewConfig,
    ViewFilterRules,
)
from taskmark.filters.view_rules import filter_tasks

__all__ = [
    "Filter",
    "FilterEngine",
    "FilterGroup",
    "RootFilterState",
    "ViewConfig",
    "ViewFilterRules",
    "evaluate",
    "filter_tasks",
]
