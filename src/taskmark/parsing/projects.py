"""Project resolution for tasks.

A task's effective project is its explicit project when it has one. Otherwise
a project is inferred through a fixed priority chain, stopping at the first
source that yields a value:

1. EXPLICIT: ``#project/x`` tag or ``[project::x]`` field on the task line
2. PATH: longest matching path mapping for the file
3. METADATA: the configured frontmatter key (subject to inheritance flags)
4. CONFIG: ``project`` entry of the nearest project config file
5. DEFAULT: name derived from the file path, when default naming is enabled

Inferred projects are returned as a readonly ``TgProject``.
"""

import fnmatch
from dataclasses import dataclass
from enum import Enum, auto
from pathlib import Path
from typing import Any, Optional

from loguru import logger

from taskmark.config import ConfigFileSettings, PathMapping, ProjectConfig
from taskmark.errors import FileParseError
from taskmark.file_utils import parse_config_content, parse_frontmatter, remove_frontmatter
from taskmark.models import ProjectSource, TgProject


class ResolutionMode(Enum):
    """How the project was resolved."""

    EXPLICIT = auto()  # Authored on the task line
    PATH = auto()  # Path mapping
    METADATA = auto()  # File frontmatter
    CONFIG = auto()  # Project config file
    DEFAULT = auto()  # Default naming strategy
    PARENT = auto()  # Reused from the parent task
    NONE = auto()  # No project


@dataclass(frozen=True)
class ResolvedProject:
    """Result of project resolution.

    Attributes:
        explicit: Project authored on the task, if any
        tg_project: Inferred project, only set when there is no explicit project
        mode: How the project was resolved
        reason: Human-readable explanation of resolution
    """

    explicit: Optional[str]
    tg_project: Optional[TgProject]
    mode: ResolutionMode
    reason: str

    @property
    def name(self) -> Optional[str]:
        """Effective project name."""
        if self.explicit:
            return self.explicit
        return self.tg_project.name if self.tg_project else None

    @property
    def is_resolved(self) -> bool:
        return self.name is not None


def _normalize(path: str) -> str:
    path = path.replace("\\", "/")
    while path.startswith("./"):
        path = path[2:]
    return path.strip("/")


def matches_path_pattern(file_path: str, pattern: str) -> bool:
    """Whether ``file_path`` falls under ``pattern``.

    Plain patterns match a folder prefix at a path-segment boundary (or the
    exact file). Patterns with ``*`` or ``?`` are matched case-insensitively
    as globs against the whole path or any of its parent folders.
    """
    path = _normalize(file_path)
    pattern = _normalize(pattern)
    if not pattern:
        return False

    if "*" in pattern or "?" in pattern:
        candidate = path.lower()
        glob = pattern.lower()
        if fnmatch.fnmatchcase(candidate, glob):
            return True
        parts = candidate.split("/")
        return any(fnmatch.fnmatchcase("/".join(parts[:i]), glob) for i in range(1, len(parts)))

    return path == pattern or path.startswith(pattern + "/")


class ProjectResolver:
    """Computes the explicit and inferred project of a task.

    Args:
        config: Project resolution policy. ``None`` disables inference.
    """

    def __init__(self, config: Optional[ProjectConfig] = None):
        self.config = config
        self._mappings = [m for m in config.path_mappings if m.enabled] if config else []

    @property
    def enabled(self) -> bool:
        return self.config is not None and self.config.enable_enhanced_project

    def resolve(
        self,
        file_path: str,
        explicit: Optional[str] = None,
        file_metadata: Optional[dict[str, Any]] = None,
        config_data: Optional[dict[str, Any]] = None,
        is_subtask: bool = False,
        parent: Optional[ResolvedProject] = None,
    ) -> ResolvedProject:
        """Resolve the project for one task using the priority chain.

        Args:
            file_path: Path of the file owning the task
            explicit: Project parsed from the task line
            file_metadata: Frontmatter of the owning file
            config_data: Data read from the nearest project config file
            is_subtask: Whether the task is nested under another task
            parent: Already-resolved project of the parent task

        Returns:
            ResolvedProject with the explicit project or an inferred TgProject
        """
        # --- Priority 1: explicit project on the task line ---
        if explicit and explicit.strip():
            return ResolvedProject(
                explicit=explicit.strip(),
                tg_project=None,
                mode=ResolutionMode.EXPLICIT,
                reason=f"Explicit project: {explicit.strip()}",
            )

        if not self.enabled:
            return ResolvedProject(None, None, ResolutionMode.NONE, "Project inference disabled")

        # Path, config and default projects are per file, so a subtask can
        # reuse its parent's. Metadata projects depend on the subtask flag.
        if parent is not None and parent.tg_project is not None:
            if parent.tg_project.type != ProjectSource.METADATA:
                return ResolvedProject(
                    explicit=None,
                    tg_project=parent.tg_project,
                    mode=ResolutionMode.PARENT,
                    reason=f"Parent task project: {parent.tg_project.name}",
                )

        # --- Priority 2: path mapping ---
        mapping = self.match_path_mapping(file_path)
        if mapping is not None:
            logger.debug(f"Path mapping {mapping.path_pattern} matched {file_path}")
            return ResolvedProject(
                explicit=None,
                tg_project=TgProject(ProjectSource.PATH, mapping.project_name, mapping.path_pattern),
                mode=ResolutionMode.PATH,
                reason=f"Path mapping: {mapping.path_pattern}",
            )

        # --- Priority 3: frontmatter metadata ---
        metadata_config = self.config.metadata_config
        if (
            file_metadata
            and metadata_config.enabled
            and metadata_config.inherit_from_frontmatter
            and (not is_subtask or metadata_config.inherit_from_frontmatter_for_subtasks)
        ):
            name = _project_value(file_metadata.get(metadata_config.metadata_key))
            if name:
                return ResolvedProject(
                    explicit=None,
                    tg_project=TgProject(ProjectSource.METADATA, name, metadata_config.metadata_key),
                    mode=ResolutionMode.METADATA,
                    reason=f"Frontmatter key: {metadata_config.metadata_key}",
                )

        # --- Priority 4: project config file ---
        if config_data:
            name = _project_value(config_data.get("project"))
            if name:
                return ResolvedProject(
                    explicit=None,
                    tg_project=TgProject(ProjectSource.CONFIG, name, self.config.config_file.file_name),
                    mode=ResolutionMode.CONFIG,
                    reason=f"Config file: {self.config.config_file.file_name}",
                )

        # --- Priority 5: default naming ---
        naming = self.config.default_project_naming
        if naming.enabled:
            name = self.default_project_name(file_path, file_metadata)
            if name:
                return ResolvedProject(
                    explicit=None,
                    tg_project=TgProject(ProjectSource.DEFAULT, name, naming.strategy),
                    mode=ResolutionMode.DEFAULT,
                    reason=f"Default naming: {naming.strategy}",
                )

        return ResolvedProject(None, None, ResolutionMode.NONE, "No project source matched")

    def match_path_mapping(self, file_path: str) -> Optional[PathMapping]:
        """Longest matching enabled path mapping for a file."""
        best: Optional[PathMapping] = None
        for mapping in self._mappings:
            if not matches_path_pattern(file_path, mapping.path_pattern):
                continue
            if best is None or len(_normalize(mapping.path_pattern)) > len(_normalize(best.path_pattern)):
                best = mapping
        return best

    def default_project_name(self, file_path: str, file_metadata: Optional[dict[str, Any]] = None) -> Optional[str]:
        naming = self.config.default_project_naming
        path = _normalize(file_path)

        if naming.strategy == "filename":
            file_name = path.rsplit("/", 1)[-1]
            if naming.strip_extension and "." in file_name:
                file_name = file_name.rsplit(".", 1)[0]
            return file_name or None

        if naming.strategy == "foldername":
            parts = path.split("/")
            return parts[-2] if len(parts) > 1 and parts[-2] else None

        # metadata
        if not naming.metadata_key or not file_metadata:
            return None
        return _project_value(file_metadata.get(naming.metadata_key))


def _project_value(value: Any) -> Optional[str]:
    if value is None or isinstance(value, (bool, list, dict)):
        return None
    text = str(value).strip()
    return text or None


class ProjectConfigReader:
    """Finds and reads per-folder project config files.

    The nearest config file is looked up in the task file's folder and, when
    ``search_recursively`` is set, in each parent folder up to ``root``.
    Parsed data is cached per config file and refreshed when its mtime changes.
    """

    def __init__(self, settings: ConfigFileSettings, root: Optional[Path] = None):
        self.settings = settings
        self.root = root.resolve() if root else None
        self._cache: dict[Path, tuple[float, dict[str, Any]]] = {}

    def find_config_file(self, file_path: Path) -> Optional[Path]:
        folder = Path(file_path).resolve().parent
        while True:
            candidate = folder / self.settings.file_name
            if candidate.is_file():
                return candidate
            if not self.settings.search_recursively:
                return None
            if self.root is not None and folder == self.root:
                return None
            if folder.parent == folder:
                return None
            folder = folder.parent

    def read(self, file_path: Path) -> Optional[dict[str, Any]]:
        """Config data for the file, or None when disabled or absent."""
        if not self.settings.enabled:
            return None

        config_path = self.find_config_file(file_path)
        if config_path is None:
            return None

        try:
            mtime = config_path.stat().st_mtime
            cached = self._cache.get(config_path)
            if cached and cached[0] == mtime:
                return cached[1]

            text = config_path.read_text(encoding="utf-8")
            data: dict[str, Any] = parse_frontmatter(text)
            data.update(parse_config_content(remove_frontmatter(text)))
        except (OSError, FileParseError) as e:
            logger.warning(f"Failed to read project config {config_path}: {e}")
            return None

        self._cache[config_path] = (mtime, data)
        return data

    def clear_cache(self) -> None:
        self._cache.clear()
