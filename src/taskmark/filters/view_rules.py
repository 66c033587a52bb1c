"""
View-level task filtering.

``filter_tasks`` applies, in order:

1. the view's base flags (hide completed/abandoned, hide blank tasks)
2. the view's simple filter rules
3. the advanced filter tree, when one is given
4. a free-text query over content, project, context and tags

The first two steps always run, with or without an advanced filter.
"""

from typing import Callable, Iterable, Optional

from taskmark.config import StatusCategory
from taskmark.filters.engine import FilterEngine
from taskmark.filters.models import HasDate, RootFilterState, ViewConfig, ViewFilterRules
from taskmark.models import Task

HIDDEN_CATEGORIES = frozenset({StatusCategory.COMPLETED, StatusCategory.ABANDONED})


def is_visible(task: Task, view: ViewConfig) -> bool:
    """Base flags of a view."""
    if view.hide_completed_and_abandoned and (task.completed or task.status_category in HIDDEN_CATEGORIES):
        return False
    if view.filter_blanks and not task.content.strip():
        return False
    return True


def matches_text(task: Task, query: str) -> bool:
    needle = query.lower()
    return (
        needle in task.content.lower()
        or needle in (task.project or "").lower()
        or needle in (task.metadata.context or "").lower()
        or any(needle in tag.lower() for tag in task.tags)
    )


def _split_paths(value: str) -> list[str]:
    return [part.strip().lower() for part in value.split(",") if part.strip()]


def _has_date(timestamp: Optional[int], rule: Optional[HasDate]) -> bool:
    if rule == "hasDate":
        return timestamp is not None
    if rule == "noDate":
        return timestamp is None
    return True


class ViewRuleMatcher:
    """Applies ``ViewFilterRules`` to single tasks."""

    def __init__(self, rules: ViewFilterRules, engine: FilterEngine):
        self.rules = rules
        self.engine = engine
        self._checks = self._build_checks()

    def __call__(self, task: Task) -> bool:
        return all(check(task) for check in self._checks)

    def _build_checks(self) -> list[Callable[[Task], bool]]:
        rules = self.rules
        checks: list[Callable[[Task], bool]] = []

        if rules.text_contains:
            query = rules.text_contains.lower()
            checks.append(lambda task: query in task.content.lower())

        if rules.tags_include:
            wanted = {tag.lower().lstrip("#") for tag in rules.tags_include}
            checks.append(lambda task: any(tag.lower() in wanted for tag in task.tags))

        if rules.tags_exclude:
            excluded = {tag.lower().lstrip("#") for tag in rules.tags_exclude}
            checks.append(lambda task: not any(tag.lower() in excluded for tag in task.tags))

        if rules.project:
            project = rules.project.strip()
            checks.append(lambda task: (task.project or "").strip() == project)

        if rules.priority is not None:
            checks.append(self._priority_check(rules.priority))

        if rules.status_include:
            included = set(rules.status_include)
            checks.append(lambda task: task.status in included)

        if rules.status_exclude:
            excluded_status = set(rules.status_exclude)
            checks.append(lambda task: task.status not in excluded_status)

        if rules.path_includes:
            includes = _split_paths(rules.path_includes)
            if includes:
                checks.append(lambda task: any(part in task.file_path.lower() for part in includes))

        if rules.path_excludes:
            excludes = _split_paths(rules.path_excludes)
            checks.append(lambda task: not any(part in task.file_path.lower() for part in excludes))

        for keyword, attribute in (
            (rules.due_date, "due_date"),
            (rules.start_date, "start_date"),
            (rules.scheduled_date, "scheduled_date"),
        ):
            if keyword:
                checks.append(self._same_day_check(keyword, attribute))

        for rule, attribute in (
            (rules.has_due_date, "due_date"),
            (rules.has_start_date, "start_date"),
            (rules.has_scheduled_date, "scheduled_date"),
            (rules.has_completed_date, "completed_date"),
        ):
            if rule and rule != "any":
                checks.append(lambda task, rule=rule, attribute=attribute: _has_date(getattr(task.metadata, attribute), rule))

        return checks

    def _priority_check(self, priority: str) -> Callable[[Task], bool]:
        if priority == "none":
            return lambda task: task.priority is None
        if "," in priority:
            levels = {part.strip() for part in priority.split(",")}
            return lambda task: str(task.priority or 0) in levels
        try:
            level = int(priority)
        except ValueError:
            level = 0
        return lambda task: task.priority == level

    def _same_day_check(self, keyword: str, attribute: str) -> Callable[[Task], bool]:
        target = self.engine.resolve_day(keyword)
        if target is None:
            # Unparseable keywords don't restrict the view
            return lambda task: True

        def check(task: Task) -> bool:
            timestamp = getattr(task.metadata, attribute)
            return timestamp is not None and self.engine.resolve_day(timestamp) == target

        return check


def filter_tasks(
    tasks: Iterable[Task],
    view: Optional[ViewConfig] = None,
    advanced_filter: Optional[RootFilterState] = None,
    text_query: Optional[str] = None,
    engine: Optional[FilterEngine] = None,
) -> list[Task]:
    """Filter tasks for a view. See the module docstring for the order of steps."""
    view = view or ViewConfig()
    engine = engine or FilterEngine()
    rules = ViewRuleMatcher(view.filter_rules, engine)

    filtered = [task for task in tasks if is_visible(task, view) and rules(task)]

    if advanced_filter is not None and not advanced_filter.is_empty:
        filtered = [task for task in filtered if engine.evaluate(task, advanced_filter)]

    if text_query:
        filtered = [task for task in filtered if matches_text(task, text_query)]

    return filtered
