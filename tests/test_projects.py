"""Tests for project resolution."""

import os

import pytest

from taskmark.config import (
    ConfigFileSettings,
    MetadataConfig,
    PathMapping,
    ProjectConfig,
    ProjectNamingStrategy,
)
from taskmark.models import ProjectSource
from taskmark.parsing.projects import (
    ProjectConfigReader,
    ProjectResolver,
    ResolutionMode,
    matches_path_pattern,
)


@pytest.fixture
def resolver() -> ProjectResolver:
    return ProjectResolver(
        ProjectConfig(
            path_mappings=[
                PathMapping(path_pattern="Work", project_name="Work Project"),
                PathMapping(path_pattern="Work/Client", project_name="Client Project"),
                PathMapping(path_pattern="Archive", project_name="Old", enabled=False),
            ]
        )
    )


class TestMatchesPathPattern:
    def test_folder_prefix(self):
        assert matches_path_pattern("Work/notes.md", "Work")
        assert matches_path_pattern("./Work/notes.md", "Work/")
        assert matches_path_pattern("Work\\notes.md", "Work")

    def test_segment_boundary(self):
        assert not matches_path_pattern("Workshop/notes.md", "Work")

    def test_glob_is_case_insensitive(self):
        assert matches_path_pattern("Areas/Projects/plan.md", "*/projects")
        assert matches_path_pattern("notes/todo.md", "*.MD")
        assert not matches_path_pattern("notes/todo.txt", "*.md")

    def test_empty_pattern_never_matches(self):
        assert not matches_path_pattern("notes.md", "")


class TestProjectResolver:
    def test_explicit_project_wins(self, resolver):
        result = resolver.resolve("Work/notes.md", explicit="Mine")

        assert result.name == "Mine"
        assert result.mode == ResolutionMode.EXPLICIT
        assert result.tg_project is None

    def test_path_mapping(self, resolver):
        result = resolver.resolve("Work/notes.md")

        assert result.mode == ResolutionMode.PATH
        assert result.tg_project.type == ProjectSource.PATH
        assert result.tg_project.name == "Work Project"
        assert result.tg_project.readonly is True

    def test_longest_mapping_wins(self, resolver):
        assert resolver.resolve("Work/Client/call.md").name == "Client Project"

    def test_disabled_mapping_ignored(self, resolver):
        result = resolver.resolve("Archive/old.md")

        assert result.mode == ResolutionMode.NONE
        assert result.is_resolved is False

    def test_path_beats_config_file(self, resolver):
        result = resolver.resolve("Work/notes.md", config_data={"project": "Configured"})

        assert result.tg_project.type == ProjectSource.PATH

    def test_falls_back_to_metadata_then_config(self, resolver):
        metadata_result = resolver.resolve(
            "Home/notes.md", file_metadata={"project": "Meta"}, config_data={"project": "Configured"}
        )
        config_result = resolver.resolve("Home/notes.md", file_metadata={}, config_data={"project": "Configured"})

        assert metadata_result.tg_project.type == ProjectSource.METADATA
        assert metadata_result.name == "Meta"
        assert config_result.tg_project.type == ProjectSource.CONFIG
        assert config_result.name == "Configured"

    def test_metadata_respects_subtask_flag(self, resolver):
        result = resolver.resolve("Home/notes.md", file_metadata={"project": "Meta"}, is_subtask=True)

        assert result.mode == ResolutionMode.NONE

    def test_custom_metadata_key(self):
        resolver = ProjectResolver(ProjectConfig(metadata_config=MetadataConfig(metadata_key="client")))

        result = resolver.resolve("notes.md", file_metadata={"client": "Acme", "project": "Ignored"})

        assert result.name == "Acme"
        assert result.tg_project.source == "client"

    def test_non_scalar_metadata_ignored(self, resolver):
        assert resolver.resolve("notes.md", file_metadata={"project": ["a", "b"]}).name is None

    def test_parent_project_reused(self, resolver):
        parent = resolver.resolve("Work/notes.md")

        child = resolver.resolve("Work/notes.md", is_subtask=True, parent=parent)

        assert child.mode == ResolutionMode.PARENT
        assert child.tg_project == parent.tg_project

    def test_parent_metadata_project_not_reused(self, resolver):
        parent = resolver.resolve("notes.md", file_metadata={"project": "Meta"})

        child = resolver.resolve("notes.md", file_metadata={"project": "Meta"}, is_subtask=True, parent=parent)

        assert child.name is None

    def test_inference_disabled(self):
        resolver = ProjectResolver(
            ProjectConfig(
                enable_enhanced_project=False,
                path_mappings=[PathMapping(path_pattern="Work", project_name="Work Project")],
            )
        )

        assert resolver.resolve("Work/notes.md").mode == ResolutionMode.NONE
        assert resolver.resolve("Work/notes.md", explicit="Mine").name == "Mine"

    def test_no_config(self):
        resolver = ProjectResolver(None)

        assert resolver.enabled is False
        assert resolver.resolve("Work/notes.md").name is None


class TestDefaultNaming:
    @pytest.mark.parametrize(
        "strategy,strip_extension,expected",
        [
            ("filename", True, "plan"),
            ("filename", False, "plan.md"),
            ("foldername", True, "Garden"),
        ],
    )
    def test_strategies(self, strategy, strip_extension, expected):
        resolver = ProjectResolver(
            ProjectConfig(
                default_project_naming=ProjectNamingStrategy(
                    strategy=strategy, strip_extension=strip_extension, enabled=True
                )
            )
        )

        result = resolver.resolve("Home/Garden/plan.md")

        assert result.name == expected
        assert result.mode == ResolutionMode.DEFAULT
        assert result.tg_project.type == ProjectSource.DEFAULT

    def test_metadata_strategy(self):
        resolver = ProjectResolver(
            ProjectConfig(
                default_project_naming=ProjectNamingStrategy(strategy="metadata", metadata_key="title", enabled=True)
            )
        )

        assert resolver.resolve("plan.md", file_metadata={"title": "Garden"}).name == "Garden"
        assert resolver.resolve("plan.md", file_metadata={}).name is None

    def test_disabled_by_default(self, resolver):
        assert resolver.resolve("Home/plan.md").name is None


class TestProjectConfigReader:
    @pytest.fixture
    def project_folder(self, tmp_path):
        folder = tmp_path / "Garden"
        (folder / "beds").mkdir(parents=True)
        (folder / "project.md").write_text(
            "---\nowner: sam\n---\nproject: Garden\n# a comment\n// another\npriority: 'high'\n",
            encoding="utf-8",
        )
        return folder

    def test_reads_frontmatter_and_body(self, tmp_path, project_folder):
        reader = ProjectConfigReader(ConfigFileSettings(enabled=True), root=tmp_path)

        data = reader.read(project_folder / "beds" / "tomatoes.md")

        assert data == {"owner": "sam", "project": "Garden", "priority": "high"}

    def test_disabled(self, tmp_path, project_folder):
        reader = ProjectConfigReader(ConfigFileSettings(enabled=False), root=tmp_path)

        assert reader.read(project_folder / "plan.md") is None

    def test_non_recursive_search(self, tmp_path, project_folder):
        reader = ProjectConfigReader(ConfigFileSettings(enabled=True, search_recursively=False), root=tmp_path)

        assert reader.read(project_folder / "beds" / "tomatoes.md") is None
        assert reader.read(project_folder / "plan.md")["project"] == "Garden"

    def test_search_stops_at_root(self, tmp_path, project_folder):
        reader = ProjectConfigReader(ConfigFileSettings(enabled=True), root=project_folder / "beds")

        assert reader.read(project_folder / "beds" / "tomatoes.md") is None

    def test_cache_refreshes_on_change(self, tmp_path, project_folder):
        reader = ProjectConfigReader(ConfigFileSettings(enabled=True), root=tmp_path)
        config_file = project_folder / "project.md"
        assert reader.read(project_folder / "plan.md")["project"] == "Garden"

        config_file.write_text("project: Orchard\n", encoding="utf-8")
        stat = config_file.stat()
        os.utime(config_file, (stat.st_atime, stat.st_mtime + 10))

        assert reader.read(project_folder / "plan.md") == {"project": "Orchard"}

    def test_invalid_frontmatter_is_skipped(self, tmp_path):
        (tmp_path / "project.md").write_text("---\n[broken\n---\nproject: X\n", encoding="utf-8")
        reader = ProjectConfigReader(ConfigFileSettings(enabled=True), root=tmp_path)

        assert reader.read(tmp_path / "plan.md") is None
