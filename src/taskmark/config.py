"""Configuration models for taskmark.

Parser configuration is a frozen snapshot consumed read-only by every parse.
Process-level settings (home directory, log level, worker count) come from the
environment via pydantic-settings, and ``ConfigManager`` persists the parser
configuration as JSON under the home directory.
"""

import json
from enum import Enum
from pathlib import Path
from typing import Literal, Optional

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from taskmark.errors import ConfigurationError


class MetadataParseMode(str, Enum):
    """Which inline metadata grammar(s) are active."""

    EMOJI_ONLY = "EmojiOnly"
    DATAVIEW_ONLY = "DataviewOnly"
    BOTH = "Both"

    @property
    def allows_emoji(self) -> bool:
        return self in (MetadataParseMode.EMOJI_ONLY, MetadataParseMode.BOTH)

    @property
    def allows_dataview(self) -> bool:
        return self in (MetadataParseMode.DATAVIEW_ONLY, MetadataParseMode.BOTH)


class StatusCategory(str, Enum):
    """Lifecycle category a status mark belongs to."""

    NOT_STARTED = "notStarted"
    IN_PROGRESS = "inProgress"
    ABANDONED = "abandoned"
    PLANNED = "planned"
    COMPLETED = "completed"


class DateType(str, Enum):
    """Date field a daily-note path date is mapped onto."""

    DUE = "due"
    START = "start"
    SCHEDULED = "scheduled"


# Fields an emoji symbol may map onto
EMOJI_FIELDS = frozenset(
    {
        "dueDate",
        "startDate",
        "scheduledDate",
        "completedDate",
        "createdDate",
        "recurrence",
        "priority",
    }
)

DEFAULT_EMOJI_MAPPING: dict[str, str] = {
    "📅": "dueDate",
    "🛫": "startDate",
    "⏳": "scheduledDate",
    "✅": "completedDate",
    "➕": "createdDate",
    "🔁": "recurrence",
    "🔺": "priority",
    "⏫": "priority",
    "🔼": "priority",
    "🔽": "priority",
    "⏬": "priority",
}


class StatusMapping(BaseModel):
    """Status marks per category, each a ``|``-separated list of characters."""

    model_config = ConfigDict(frozen=True)

    completed: str = "x|X"
    in_progress: str = ">|/"
    abandoned: str = "-"
    planned: str = "?"
    not_started: str = " "
    count_other_statuses_as: StatusCategory = StatusCategory.NOT_STARTED

    def lookup_table(self) -> dict[str, StatusCategory]:
        """Build the mark -> category table. Earlier categories win on conflicts."""
        table: dict[str, StatusCategory] = {}
        for marks, category in (
            (self.completed, StatusCategory.COMPLETED),
            (self.abandoned, StatusCategory.ABANDONED),
            (self.in_progress, StatusCategory.IN_PROGRESS),
            (self.planned, StatusCategory.PLANNED),
            (self.not_started, StatusCategory.NOT_STARTED),
        ):
            for mark in marks.split("|"):
                if mark and mark not in table:
                    table[mark] = category
        return table

    def marks_for(self, category: StatusCategory) -> list[str]:
        raw = {
            StatusCategory.COMPLETED: self.completed,
            StatusCategory.IN_PROGRESS: self.in_progress,
            StatusCategory.ABANDONED: self.abandoned,
            StatusCategory.PLANNED: self.planned,
            StatusCategory.NOT_STARTED: self.not_started,
        }[category]
        return [mark for mark in raw.split("|") if mark]


class PathMapping(BaseModel):
    """Maps a folder prefix (or ``*``/``?`` glob) onto a project name."""

    model_config = ConfigDict(frozen=True)

    path_pattern: str
    project_name: str
    enabled: bool = True


class MetadataConfig(BaseModel):
    """Frontmatter-driven project detection and inheritance flags."""

    model_config = ConfigDict(frozen=True)

    metadata_key: str = "project"
    inherit_from_frontmatter: bool = True
    inherit_from_frontmatter_for_subtasks: bool = False
    enabled: bool = True


class ConfigFileSettings(BaseModel):
    """Location policy for per-folder project config files."""

    model_config = ConfigDict(frozen=True)

    file_name: str = "project.md"
    search_recursively: bool = True
    enabled: bool = False


class MetadataMapping(BaseModel):
    """Renames a frontmatter key before inheritance (e.g. ``deadline`` -> ``dueDate``)."""

    model_config = ConfigDict(frozen=True)

    source_key: str
    target_key: str
    enabled: bool = True


class ProjectNamingStrategy(BaseModel):
    """Fallback project naming when no other source yields a project."""

    model_config = ConfigDict(frozen=True)

    strategy: Literal["filename", "foldername", "metadata"] = "filename"
    metadata_key: Optional[str] = None
    strip_extension: bool = True
    enabled: bool = False


class ProjectConfig(BaseModel):
    """Project resolution policy."""

    model_config = ConfigDict(frozen=True)

    enable_enhanced_project: bool = True
    path_mappings: list[PathMapping] = Field(default_factory=list)
    metadata_config: MetadataConfig = Field(default_factory=MetadataConfig)
    config_file: ConfigFileSettings = Field(default_factory=ConfigFileSettings)
    metadata_mappings: list[MetadataMapping] = Field(default_factory=list)
    default_project_naming: ProjectNamingStrategy = Field(default_factory=ProjectNamingStrategy)


class ParserConfig(BaseModel):
    """Read-only configuration snapshot for a parse."""

    model_config = ConfigDict(frozen=True)

    parse_comments: bool = False
    parse_metadata: bool = True
    parse_tags: bool = True
    parse_headings: bool = False
    metadata_parse_mode: MetadataParseMode = MetadataParseMode.BOTH

    max_parse_iterations: int = Field(default=4000, ge=1)
    max_metadata_iterations: int = Field(default=400, ge=1)
    tab_size: int = Field(default=4, ge=1)

    emoji_mapping: dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_EMOJI_MAPPING))
    special_tag_prefixes: dict[str, str] = Field(
        default_factory=lambda: {"project": "project", "area": "area", "context": "context"}
    )
    status_mapping: StatusMapping = Field(default_factory=StatusMapping)
    project_config: Optional[ProjectConfig] = Field(default_factory=ProjectConfig)

    use_daily_note_path_as_date: bool = False
    daily_note_format: str = "YYYY-MM-DD"
    daily_note_path: str = ""
    use_as_date_type: DateType = DateType.DUE

    @field_validator("emoji_mapping")
    @classmethod
    def _known_emoji_fields(cls, value: dict[str, str]) -> dict[str, str]:
        unknown = sorted({field for field in value.values() if field not in EMOJI_FIELDS})
        if unknown:
            raise ValueError(f"emoji_mapping targets unknown fields: {', '.join(unknown)}")
        return value

    @field_validator("special_tag_prefixes")
    @classmethod
    def _normalize_prefixes(cls, value: dict[str, str]) -> dict[str, str]:
        return {prefix.lower(): field for prefix, field in value.items() if prefix}

    @classmethod
    def for_format(cls, metadata_format: Literal["tasks", "dataview"], **overrides) -> "ParserConfig":
        """Build the default config for a metadata format.

        ``tasks`` reads both grammars; ``dataview`` reads inline fields only.
        """
        if metadata_format == "dataview":
            base = {"metadata_parse_mode": MetadataParseMode.DATAVIEW_ONLY}
        else:
            base = {"metadata_parse_mode": MetadataParseMode.BOTH}
        base.update(overrides)
        return cls.load(base)

    @classmethod
    def load(cls, data: dict) -> "ParserConfig":
        """Validate raw configuration data, raising ConfigurationError on failure."""
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            first = e.errors()[0]
            field = ".".join(str(part) for part in first.get("loc", ()))
            raise ConfigurationError(first.get("msg", str(e)), field=field or None) from e


class TaskmarkSettings(BaseSettings):
    """Process-level settings read from ``TASKMARK_*`` environment variables."""

    model_config = SettingsConfigDict(env_prefix="TASKMARK_", extra="ignore")

    home: Path = Field(default_factory=lambda: Path.home() / ".taskmark")
    log_level: str = "WARNING"
    log_file: Optional[Path] = None
    index_workers: int = Field(default=4, ge=1)

    @property
    def config_file(self) -> Path:
        return self.home / "config.json"


class ConfigManager:
    """Loads and saves the parser configuration file."""

    def __init__(self, settings: Optional[TaskmarkSettings] = None):
        self.settings = settings or TaskmarkSettings()

    @property
    def config_file(self) -> Path:
        return self.settings.config_file

    def load_parser_config(self) -> ParserConfig:
        """Read the parser config, falling back to defaults when no file exists."""
        if not self.config_file.exists():
            logger.debug(f"No config file at {self.config_file}, using defaults")
            return ParserConfig()

        try:
            data = json.loads(self.config_file.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON in {self.config_file}: {e}") from e

        return ParserConfig.load(data)

    def save_parser_config(self, config: ParserConfig) -> None:
        self.config_file.parent.mkdir(parents=True, exist_ok=True)
        self.config_file.write_text(config.model_dump_json(indent=2), encoding="utf-8")
        logger.info(f"Saved parser config to {self.config_file}")
