"""
Evaluator for advanced filter trees.

Evaluation is pure and stateless: a ``FilterEngine`` can be shared across
threads and views. Comparators never raise; a property missing from the
task is treated as its type's empty value.
"""

from datetime import date
from typing import Any, Callable, Optional

from taskmark.filters.models import Combinator, Filter, FilterGroup, RootFilterState
from taskmark.models import Task
from taskmark.parsing.dates import DateResolver, from_timestamp
from taskmark.parsing.priority import resolve_priority

ORDERING_CONDITIONS = frozenset({"is", "isNot", ">", "<", ">=", "<="})


def combine(condition: Combinator, results: list[bool]) -> bool:
    """Combine results with all (AND), any (OR) or none (NOR)."""
    if condition == "all":
        return all(results)
    if condition == "any":
        return any(results)
    if condition == "none":
        return not any(results)
    return True


def compare_text(text: Optional[str], condition: str, value: Optional[str]) -> bool:
    """Case-insensitive string comparison."""
    text = (text or "").lower()
    value = (value or "").lower()

    if condition == "contains":
        return value in text
    if condition == "doesNotContain":
        return value not in text
    if condition == "is":
        return text == value
    if condition == "isNot":
        return text != value
    if condition == "startsWith":
        return text.startswith(value)
    if condition == "endsWith":
        return text.endswith(value)
    if condition == "isEmpty":
        return text.strip() == ""
    if condition == "isNotEmpty":
        return text.strip() != ""
    return True


def compare_tags(tags: list[str], condition: str, value: Optional[str]) -> bool:
    needle = (value or "").lower().lstrip("#")
    lowered = [tag.lower() for tag in tags or []]

    if condition == "contains":
        return any(needle in tag for tag in lowered)
    if condition == "doesNotContain":
        return not any(needle in tag for tag in lowered)
    if condition == "isEmpty":
        return not lowered
    if condition == "isNotEmpty":
        return bool(lowered)
    return True


def compare_completed(completed: bool, condition: str) -> bool:
    if condition == "isTrue":
        return completed is True
    if condition == "isFalse":
        return completed is False
    return True


def compare_priority(priority: Optional[int], condition: str, value: Optional[str]) -> bool:
    if condition == "isEmpty":
        return priority is None
    if condition == "isNotEmpty":
        return priority is not None
    if priority is None or not value:
        return condition not in ORDERING_CONDITIONS

    target = resolve_priority(value)
    if target is None:
        return False

    if condition == "is":
        return priority == target
    if condition == "isNot":
        return priority != target
    if condition == ">":
        return priority > target
    if condition == "<":
        return priority < target
    if condition == ">=":
        return priority >= target
    if condition == "<=":
        return priority <= target
    return True


class FilterEngine:
    """Evaluates ``RootFilterState`` trees against tasks.

    Args:
        date_resolver: Resolves date operands (ISO dates or relative keywords)
    """

    def __init__(self, date_resolver: Optional[DateResolver] = None):
        self.dates = date_resolver or DateResolver()
        self._comparators: dict[str, Callable[[Task, Filter], bool]] = {
            "content": lambda task, f: compare_text(task.content, f.condition, f.value),
            "status": lambda task, f: compare_text(task.status, f.condition, f.value),
            "filePath": lambda task, f: compare_text(task.file_path, f.condition, f.value),
            "project": lambda task, f: compare_text(task.project, f.condition, f.value),
            "context": lambda task, f: compare_text(task.metadata.context, f.condition, f.value),
            "area": lambda task, f: compare_text(task.metadata.area, f.condition, f.value),
            "priority": lambda task, f: compare_priority(task.priority, f.condition, f.value),
            "dueDate": lambda task, f: self.compare_date(task.metadata.due_date, f.condition, f.value),
            "startDate": lambda task, f: self.compare_date(task.metadata.start_date, f.condition, f.value),
            "scheduledDate": lambda task, f: self.compare_date(task.metadata.scheduled_date, f.condition, f.value),
            "completedDate": lambda task, f: self.compare_date(task.metadata.completed_date, f.condition, f.value),
            "createdDate": lambda task, f: self.compare_date(task.metadata.created_date, f.condition, f.value),
            "tags": lambda task, f: compare_tags(task.tags, f.condition, f.value),
            "completed": lambda task, f: compare_completed(task.completed, f.condition),
        }

    def evaluate(self, task: Task, state: RootFilterState) -> bool:
        """Whether ``task`` passes the filter tree. Empty trees pass everything."""
        if not state.filter_groups:
            return True
        results = [self.evaluate_group(task, group) for group in state.filter_groups]
        return combine(state.root_condition, results)

    def evaluate_group(self, task: Task, group: FilterGroup) -> bool:
        if not group.filters:
            return True
        results = [self.evaluate_filter(task, f) for f in group.filters]
        return combine(group.group_condition, results)

    def evaluate_filter(self, task: Task, f: Filter) -> bool:
        if not f.condition:
            return True
        comparator = self._comparators.get(f.property)
        if comparator is None:
            return True
        return comparator(task, f)

    def compare_date(self, timestamp: Optional[int], condition: str, value: Optional[str]) -> bool:
        """Day-granularity comparison of a task date against an operand."""
        if condition == "isEmpty":
            return timestamp is None
        if condition == "isNotEmpty":
            return timestamp is not None

        if timestamp is None or not value:
            return condition not in ORDERING_CONDITIONS

        target = self.resolve_day(value)
        if target is None:
            return False
        day = from_timestamp(timestamp).date()

        if condition == "is":
            return day == target
        if condition == "isNot":
            return day != target
        if condition == ">":
            return day > target
        if condition == "<":
            return day < target
        if condition == ">=":
            return day >= target
        if condition == "<=":
            return day <= target
        return True

    def resolve_day(self, value: Any) -> Optional[date]:
        timestamp = self.dates.resolve(value)
        if timestamp is None:
            return None
        return from_timestamp(timestamp).date()


_default_engine = FilterEngine()


def evaluate(task: Task, state: RootFilterState) -> bool:
    """Evaluate with a module-level engine."""
    return _default_engine.evaluate(task, state)
