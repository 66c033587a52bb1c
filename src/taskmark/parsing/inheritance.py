"""Inheritance of file-level metadata onto tasks."""

from typing import Any, Optional

from loguru import logger

from taskmark.config import MetadataConfig, MetadataMapping, ProjectConfig
from taskmark.models import DATE_FIELDS, FIELD_ATTRIBUTES, TaskMetadata
from taskmark.parsing.dates import DateResolver
from taskmark.parsing.extractor import DATAVIEW_KEYS
from taskmark.parsing.priority import resolve_priority
from taskmark.parsing.recurrence import parse_recurrence

# Keys describing the task itself or its position; never copied from a file
NON_INHERITABLE_KEYS = frozenset(
    {
        "id",
        "content",
        "status",
        "rawstatus",
        "completed",
        "line",
        "linenumber",
        "originalmarkdown",
        "filepath",
        "heading",
        "parent",
        "parentid",
        "children",
        "tags",
        "comment",
        "indentlevel",
        "actualindent",
        "listmarker",
        "tgproject",
        "project",
        "aliases",
        "cssclasses",
    }
)


def apply_metadata_mappings(metadata: dict[str, Any], mappings: list[MetadataMapping]) -> dict[str, Any]:
    """Copy values from each mapping's source key onto its target key."""
    mapped = dict(metadata)
    for mapping in mappings:
        if not mapping.enabled or mapping.source_key not in metadata:
            continue
        mapped[mapping.target_key] = metadata[mapping.source_key]
    return mapped


class InheritanceResolver:
    """Fills gaps in task metadata from the owning file's metadata.

    Top-level tasks inherit when ``inherit_from_frontmatter`` is enabled;
    subtasks additionally need ``inherit_from_frontmatter_for_subtasks``.
    Values already present on the task are never overwritten. The project key
    is left to ``ProjectResolver``.
    """

    def __init__(self, project_config: Optional[ProjectConfig] = None, date_resolver: Optional[DateResolver] = None):
        self.metadata_config = project_config.metadata_config if project_config else MetadataConfig()
        self.mappings = list(project_config.metadata_mappings) if project_config else []
        self.dates = date_resolver or DateResolver()
        self._skip = NON_INHERITABLE_KEYS | {self.metadata_config.metadata_key.lower()}

    def should_inherit(self, is_subtask: bool) -> bool:
        if not self.metadata_config.inherit_from_frontmatter:
            return False
        return not is_subtask or self.metadata_config.inherit_from_frontmatter_for_subtasks

    def merged_source(
        self,
        file_metadata: Optional[dict[str, Any]],
        config_data: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]:
        """Config file data overlaid by frontmatter, with metadata mappings applied."""
        source: dict[str, Any] = dict(config_data or {})
        source.update(file_metadata or {})
        return apply_metadata_mappings(source, self.mappings)

    def apply(
        self,
        metadata: TaskMetadata,
        source: dict[str, Any],
        is_subtask: bool,
    ) -> TaskMetadata:
        """Copy inheritable values from ``source`` onto ``metadata`` in place."""
        if not source or not self.should_inherit(is_subtask):
            return metadata

        for key, value in source.items():
            if value is None or str(key).lower() in self._skip:
                continue

            name = DATAVIEW_KEYS.get(str(key).lower())
            if name is None or name not in FIELD_ATTRIBUTES:
                if key not in metadata.custom:
                    metadata.custom[key] = value
                    metadata.inherited_fields.add(key)
                continue

            if metadata.has(name):
                continue

            converted = self.convert(name, value)
            if converted is None:
                logger.debug(f"Skipping inherited {key}: unrecognized value {value!r}")
                continue

            setattr(metadata, FIELD_ATTRIBUTES[name], converted)
            metadata.inherited_fields.add(name)

        return metadata

    def convert(self, name: str, value: Any) -> Any:
        """Convert a raw file-level value into the task field's type."""
        if name in DATE_FIELDS:
            return self.dates.resolve(value)
        if name == "priority":
            return resolve_priority(value)
        if name == "recurrence":
            return parse_recurrence(str(value))
        if isinstance(value, (list, dict)):
            return None
        text = str(value).strip()
        return text or None
