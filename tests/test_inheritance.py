"""Tests for frontmatter inheritance."""

from datetime import date

import pytest

from taskmark.config import MetadataConfig, MetadataMapping, ProjectConfig
from taskmark.models import TaskMetadata
from taskmark.parsing.dates import start_of_day
from taskmark.parsing.inheritance import InheritanceResolver, apply_metadata_mappings


def make_resolver(date_resolver, inherit=True, for_subtasks=False, mappings=()) -> InheritanceResolver:
    config = ProjectConfig(
        metadata_config=MetadataConfig(
            inherit_from_frontmatter=inherit,
            inherit_from_frontmatter_for_subtasks=for_subtasks,
        ),
        metadata_mappings=list(mappings),
    )
    return InheritanceResolver(config, date_resolver)


class TestShouldInherit:
    @pytest.mark.parametrize(
        "inherit,for_subtasks,is_subtask,expected",
        [
            (True, False, False, True),
            (True, False, True, False),
            (True, True, True, True),
            (False, True, False, False),
            (False, True, True, False),
        ],
    )
    def test_flags(self, date_resolver, inherit, for_subtasks, is_subtask, expected):
        resolver = make_resolver(date_resolver, inherit, for_subtasks)

        assert resolver.should_inherit(is_subtask) is expected


class TestApply:
    def test_fills_gaps_only(self, date_resolver):
        resolver = make_resolver(date_resolver)
        metadata = TaskMetadata(priority=2)

        resolver.apply(metadata, {"priority": "high", "due": "2024-01-15", "category": "work"}, is_subtask=False)

        assert metadata.priority == 2
        assert metadata.due_date == start_of_day(date(2024, 1, 15))
        assert metadata.custom == {"category": "work"}
        assert metadata.inherited_fields == {"dueDate", "category"}

    def test_converts_values(self, date_resolver):
        resolver = make_resolver(date_resolver)
        metadata = TaskMetadata()

        resolver.apply(
            metadata,
            {"dueDate": date(2024, 1, 15), "priority": "high", "repeat": "every week", "context": "home"},
            is_subtask=False,
        )

        assert metadata.due_date == start_of_day(date(2024, 1, 15))
        assert metadata.priority == 4
        assert metadata.recurrence.unit == "week"
        assert metadata.context == "home"

    def test_task_level_keys_not_inherited(self, date_resolver):
        resolver = make_resolver(date_resolver)
        metadata = TaskMetadata()

        resolver.apply(metadata, {"project": "P", "tags": ["a"], "status": "x", "aliases": ["n"]}, is_subtask=False)

        assert metadata.project is None
        assert metadata.tags == []
        assert metadata.custom == {}

    def test_unrecognized_value_skipped(self, date_resolver):
        resolver = make_resolver(date_resolver)
        metadata = TaskMetadata()

        resolver.apply(metadata, {"priority": "whenever", "due": "someday"}, is_subtask=False)

        assert metadata.priority is None
        assert metadata.due_date is None
        assert metadata.inherited_fields == set()

    def test_existing_custom_value_kept(self, date_resolver):
        resolver = make_resolver(date_resolver)
        metadata = TaskMetadata(custom={"category": "home"})

        resolver.apply(metadata, {"category": "work"}, is_subtask=False)

        assert metadata.custom == {"category": "home"}

    def test_subtasks_skipped_by_default(self, date_resolver):
        resolver = make_resolver(date_resolver)
        metadata = TaskMetadata()

        resolver.apply(metadata, {"priority": "high"}, is_subtask=True)

        assert metadata.priority is None


class TestSources:
    def test_frontmatter_overrides_config_data(self, date_resolver):
        resolver = make_resolver(date_resolver)

        source = resolver.merged_source({"priority": "high"}, {"priority": "low", "area": "home"})

        assert source == {"priority": "high", "area": "home"}

    def test_metadata_mappings(self, date_resolver):
        resolver = make_resolver(
            date_resolver, mappings=[MetadataMapping(source_key="deadline", target_key="due")]
        )
        metadata = TaskMetadata()

        source = resolver.merged_source({"deadline": "2024-01-15"})
        resolver.apply(metadata, source, is_subtask=False)

        assert source["due"] == "2024-01-15"
        assert metadata.due_date == start_of_day(date(2024, 1, 15))

    def test_disabled_mapping(self):
        mappings = [MetadataMapping(source_key="deadline", target_key="due", enabled=False)]

        assert apply_metadata_mappings({"deadline": "x"}, mappings) == {"deadline": "x"}
