"""
Markdown task parser.

Turns a file's text plus its frontmatter into a flat list of tasks. Each line
is scanned and its metadata extracted; the indentation tree is then walked
top-down so project inference and inheritance see each parent before its
children.
"""

import re
from pathlib import Path
from typing import Any, Optional

from loguru import logger

from taskmark.config import DateType, MetadataParseMode, ParserConfig, StatusCategory
from taskmark.errors import ConfigurationError, FileParseError
from taskmark.file_utils import frontmatter_end_line, has_frontmatter, parse_frontmatter
from taskmark.models import DATE_FIELDS, FIELD_ATTRIBUTES, Task, TaskMetadata
from taskmark.parsing.dates import DateResolver
from taskmark.parsing.extractor import ExtractionResult, MetadataExtractor
from taskmark.parsing.inheritance import InheritanceResolver
from taskmark.parsing.priority import resolve_priority
from taskmark.parsing.projects import ProjectConfigReader, ProjectResolver, ResolvedProject
from taskmark.parsing.recurrence import parse_recurrence
from taskmark.parsing.scanner import ScannedLine, is_fence, is_task_line, leading_width, scan_heading, scan_line
from taskmark.parsing.tree import TaskTreeBuilder

LINE_BREAK = re.compile(r"\r?\n")

DAILY_NOTE_ATTRIBUTES = {
    DateType.DUE: "due_date",
    DateType.START: "start_date",
    DateType.SCHEDULED: "scheduled_date",
}


class MarkdownTaskParser:
    """Parses markdown text into tasks using a fixed configuration snapshot.

    Args:
        config: Parser configuration
        date_resolver: Resolver for date tokens (injectable for a fixed "today")
        config_reader: Reads project config files when no config data is passed to ``parse``

    Raises:
        ConfigurationError: If the configuration is missing or invalid
    """

    def __init__(
        self,
        config: ParserConfig | dict,
        date_resolver: Optional[DateResolver] = None,
        config_reader: Optional[ProjectConfigReader] = None,
    ):
        if isinstance(config, dict):
            config = ParserConfig.load(config)
        if not isinstance(config, ParserConfig):
            raise ConfigurationError(f"Expected ParserConfig, got {type(config).__name__}")
        if not isinstance(config.metadata_parse_mode, MetadataParseMode):
            raise ConfigurationError(
                f"Unknown metadata parse mode: {config.metadata_parse_mode!r}",
                field="metadata_parse_mode",
            )

        self.config = config
        self.dates = date_resolver or DateResolver()
        self.config_reader = config_reader
        self.extractor = MetadataExtractor(config, self.dates)
        self.projects = ProjectResolver(config.project_config)
        self.inheritance = InheritanceResolver(config.project_config, self.dates)
        self.status_table = config.status_mapping.lookup_table()

    def parse(
        self,
        content: str,
        file_path: str = "",
        file_metadata: Optional[dict[str, Any]] = None,
        project_config_data: Optional[dict[str, Any]] = None,
    ) -> list[Task]:
        """Parse all tasks in a file.

        Args:
            content: Full text of the file
            file_path: Path used for task ids and project inference
            file_metadata: Frontmatter of the file; read from ``content`` when omitted
            project_config_data: Data from the nearest project config file

        Returns:
            Tasks in line order, hierarchy encoded by ``parent_id``/``children``
        """
        lines = LINE_BREAK.split(content)

        start = 0
        end = frontmatter_end_line(content)
        if end is not None:
            start = end + 1
            if file_metadata is None:
                file_metadata = self._read_frontmatter(content, file_path)

        if project_config_data is None and self.config_reader is not None and file_path:
            project_config_data = self.config_reader.read(Path(file_path))

        builder = self._build_tree(lines, start, file_path)
        self._resolve(builder, file_path, file_metadata or {}, project_config_data)

        return [node.payload for node in builder.nodes]

    def parse_task(self, line: str, file_path: str = "", line_number: int = 0) -> Optional[Task]:
        """Parse a single task line, or return None if it isn't one."""
        tasks = self.parse(line, file_path, file_metadata={})
        if not tasks:
            return None
        task = tasks[0]
        task.line = line_number
        task.id = f"{file_path}-L{line_number}"
        return task

    def _read_frontmatter(self, content: str, file_path: str) -> dict[str, Any]:
        if not has_frontmatter(content):
            return {}
        try:
            return parse_frontmatter(content)
        except FileParseError as e:
            logger.warning(f"Ignoring frontmatter of {file_path or '<text>'}: {e}")
            return {}

    def _build_tree(self, lines: list[str], start: int, file_path: str) -> TaskTreeBuilder:
        builder = TaskTreeBuilder()
        heading: Optional[tuple[int, str]] = None
        in_fence = False
        iterations = 0

        index = start
        while index < len(lines):
            iterations += 1
            if iterations > self.config.max_parse_iterations:
                logger.warning(f"Maximum parse iterations reached in {file_path or '<text>'}, stopping")
                break

            line = lines[index]
            if is_fence(line):
                in_fence = not in_fence
                index += 1
                continue
            if in_fence:
                index += 1
                continue

            if self.config.parse_headings:
                found = scan_heading(line)
                if found:
                    heading = found
                    index += 1
                    continue

            scanned = scan_line(line, self.config.tab_size)
            if scanned is None:
                index += 1
                continue

            comment, consumed = None, 0
            if self.config.parse_comments:
                comment, consumed = self._collect_comment(lines, index + 1, scanned.indent)

            task = self._build_task(scanned, line, index, file_path, heading, comment)
            builder.add(index, scanned.indent, payload=task)
            index += 1 + consumed

        return builder

    def _collect_comment(self, lines: list[str], start: int, indent: int) -> tuple[Optional[str], int]:
        """Gather non-task lines indented deeper than the task right below it."""
        collected: list[str] = []
        for line in lines[start:]:
            if not line.strip() or is_task_line(line) or is_fence(line):
                break
            if leading_width(line, self.config.tab_size) <= indent:
                break
            collected.append(line.strip())
        if not collected:
            return None, 0
        return "\n".join(collected), len(collected)

    def _build_task(
        self,
        scanned: ScannedLine,
        line: str,
        index: int,
        file_path: str,
        heading: Optional[tuple[int, str]],
        comment: Optional[str],
    ) -> Task:
        result = self.extractor.extract(scanned.content)
        category = self.status_table.get(scanned.status, self.config.status_mapping.count_other_statuses_as)

        return Task(
            id=f"{file_path}-L{index}",
            file_path=file_path,
            line=index,
            content=result.content,
            status=scanned.status,
            status_category=category,
            completed=category == StatusCategory.COMPLETED,
            original_markdown=line,
            actual_indent=scanned.indent,
            list_marker=scanned.list_marker,
            metadata=self._metadata_from(result, heading),
            comment=comment,
        )

    def _metadata_from(self, result: ExtractionResult, heading: Optional[tuple[int, str]]) -> TaskMetadata:
        metadata = TaskMetadata(tags=list(result.tags), custom=dict(result.custom))
        if heading:
            metadata.heading_level, metadata.heading = heading

        for name, raw in result.fields.items():
            if name in DATE_FIELDS:
                value = self.dates.resolve(raw)
            elif name == "priority":
                value = resolve_priority(raw)
                if value is None:
                    logger.debug(f"Unrecognized priority token: {raw!r}")
            elif name == "recurrence":
                value = parse_recurrence(raw)
            else:
                value = raw.strip() or None
            if value is not None:
                setattr(metadata, FIELD_ATTRIBUTES[name], value)

        return metadata

    def _resolve(
        self,
        builder: TaskTreeBuilder,
        file_path: str,
        file_metadata: dict[str, Any],
        project_config_data: Optional[dict[str, Any]],
    ) -> None:
        """Link parents and children, then resolve projects and inheritance top-down."""
        source = self.inheritance.merged_source(file_metadata, project_config_data)
        path_date = self._daily_note_date(file_path)
        resolved: dict[int, ResolvedProject] = {}

        for node in builder.walk():
            task: Task = node.payload
            parent = builder.parent_of(node)
            is_subtask = parent is not None

            task.indent_level = node.depth
            if parent is not None:
                task.parent_id = parent.payload.id
                parent.payload.children.append(task.id)

            project = self.projects.resolve(
                file_path,
                explicit=task.metadata.project,
                file_metadata=file_metadata,
                config_data=project_config_data,
                is_subtask=is_subtask,
                parent=resolved.get(parent.index) if parent is not None else None,
            )
            resolved[node.index] = project
            task.metadata.project = project.explicit
            task.metadata.tg_project = project.tg_project

            self.inheritance.apply(task.metadata, source, is_subtask)

            if path_date is not None:
                attribute = DAILY_NOTE_ATTRIBUTES[self.config.use_as_date_type]
                if getattr(task.metadata, attribute) is None:
                    setattr(task.metadata, attribute, path_date)

    def _daily_note_date(self, file_path: str) -> Optional[int]:
        if not self.config.use_daily_note_path_as_date or not file_path:
            return None
        return self.dates.date_from_path(file_path, self.config.daily_note_format, self.config.daily_note_path)
