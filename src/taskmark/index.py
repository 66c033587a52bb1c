"""Whole-vault task index.

Files are parsed independently on worker threads and merged into one task
collection keyed by task id. Re-parsing a file replaces all of its previous
tasks. Each update takes a per-file version number, and a parse result is
only applied if no newer update for the same file was issued while it ran,
so an older result never overwrites a newer one.
"""

import asyncio
import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, AsyncIterator, Optional

from loguru import logger

from taskmark.errors import FileParseError
from taskmark.file_utils import compute_checksum, read_markdown
from taskmark.filters import FilterEngine, RootFilterState, ViewConfig, filter_tasks
from taskmark.models import Task
from taskmark.parsing import MarkdownTaskParser, ProjectConfigReader

MARKDOWN_SUFFIXES = (".md", ".markdown")


@dataclass
class IndexReport:
    """Summary of an ``index_directory`` run."""

    indexed: list[str] = field(default_factory=list)
    unchanged: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)
    removed: list[str] = field(default_factory=list)
    task_count: int = 0

    @property
    def total(self) -> int:
        return len(self.indexed) + len(self.unchanged) + len(self.failed)


class TaskIndex:
    """In-memory task index over many files.

    Args:
        parser: Parser used for every file
        workers: Maximum number of files parsed concurrently
        config_reader: Supplies project config file data per file
    """

    def __init__(
        self,
        parser: MarkdownTaskParser,
        workers: int = 4,
        config_reader: Optional[ProjectConfigReader] = None,
    ):
        self.parser = parser
        self.config_reader = config_reader
        self.engine = FilterEngine(parser.dates)
        self._semaphore = asyncio.Semaphore(workers)
        self._tasks: dict[str, Task] = {}
        self._file_tasks: dict[str, list[str]] = {}
        self._checksums: dict[str, str] = {}
        self._versions: dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._tasks)

    @property
    def files(self) -> list[str]:
        return sorted(self._file_tasks)

    def get_task(self, task_id: str) -> Optional[Task]:
        return self._tasks.get(task_id)

    def get_tasks(self) -> list[Task]:
        """All tasks, grouped by file and in line order within a file."""
        return [self._tasks[task_id] for path in self.files for task_id in self._file_tasks[path]]

    def get_file_tasks(self, file_path: str) -> list[Task]:
        return [self._tasks[task_id] for task_id in self._file_tasks.get(file_path, [])]

    def _next_version(self, file_path: str) -> int:
        version = self._versions.get(file_path, 0) + 1
        self._versions[file_path] = version
        return version

    async def update_file(
        self,
        file_path: str,
        content: str,
        file_metadata: Optional[dict[str, Any]] = None,
        project_config_data: Optional[dict[str, Any]] = None,
    ) -> Optional[list[Task]]:
        """Parse a file's content and replace its tasks.

        Returns:
            The file's tasks, or None when a newer update superseded this one
        """
        version = self._next_version(file_path)
        checksum = await compute_checksum(_parse_input(content, file_metadata, project_config_data))

        if self._checksums.get(file_path) == checksum:
            logger.debug(f"Skipping unchanged file: {file_path}")
            return self.get_file_tasks(file_path)

        async with self._semaphore:
            tasks = await asyncio.to_thread(
                self.parser.parse, content, file_path, file_metadata, project_config_data
            )

        if self._versions.get(file_path) != version:
            logger.debug(f"Discarding stale parse of {file_path} (version {version})")
            return None

        self._replace(file_path, tasks, checksum)
        logger.debug(f"Indexed {len(tasks)} tasks from {file_path}")
        return tasks

    def remove_file(self, file_path: str) -> int:
        """Drop every task of a file. Returns the number of tasks removed."""
        self._next_version(file_path)
        self._checksums.pop(file_path, None)
        task_ids = self._file_tasks.pop(file_path, [])
        for task_id in task_ids:
            self._tasks.pop(task_id, None)
        return len(task_ids)

    def _replace(self, file_path: str, tasks: list[Task], checksum: str) -> None:
        for task_id in self._file_tasks.pop(file_path, []):
            self._tasks.pop(task_id, None)
        self._file_tasks[file_path] = [task.id for task in tasks]
        self._tasks.update((task.id, task) for task in tasks)
        self._checksums[file_path] = checksum

    def query(
        self,
        advanced_filter: Optional[RootFilterState] = None,
        view: Optional[ViewConfig] = None,
        text_query: Optional[str] = None,
    ) -> list[Task]:
        return filter_tasks(self.get_tasks(), view, advanced_filter, text_query, engine=self.engine)

    async def index_file(self, path: Path, root: Path) -> Optional[list[Task]]:
        """Read and index one file, keyed by its path relative to ``root``."""
        file_path = path.relative_to(root).as_posix()
        content, metadata = await read_markdown(path)
        config_data = self.config_reader.read(path) if self.config_reader else None
        return await self.update_file(file_path, content, metadata, config_data)

    async def index_directory(self, directory: Path) -> IndexReport:
        """Index every markdown file under ``directory``.

        Files that were indexed before but no longer exist are removed. A file
        that can't be read is logged and skipped.
        """
        directory = Path(directory)
        report = IndexReport()

        paths = [Path(entry) async for entry in scan_markdown_files(directory)]
        seen = {path.relative_to(directory).as_posix() for path in paths}
        previous = {file_path: self._checksums.get(file_path) for file_path in seen}

        async def _index(path: Path) -> None:
            file_path = path.relative_to(directory).as_posix()
            try:
                await self.index_file(path, directory)
            except FileParseError as e:
                logger.warning(f"Skipping {file_path}: {e}")
                report.failed[file_path] = str(e)
                return
            if previous.get(file_path) is not None and previous[file_path] == self._checksums.get(file_path):
                report.unchanged.append(file_path)
            else:
                report.indexed.append(file_path)

        await asyncio.gather(*(_index(path) for path in paths))

        for file_path in set(self._file_tasks) - seen:
            self.remove_file(file_path)
            report.removed.append(file_path)

        report.indexed.sort()
        report.unchanged.sort()
        report.removed.sort()
        report.task_count = len(self._tasks)
        logger.info(
            f"Indexed {directory}: {len(report.indexed)} changed, {len(report.unchanged)} unchanged, "
            f"{len(report.failed)} failed, {report.task_count} tasks"
        )
        return report


async def scan_markdown_files(directory: Path) -> AsyncIterator[str]:
    """Stream markdown file paths under ``directory``, skipping hidden folders."""

    def _sync_scandir(dir_path: Path):
        try:
            entries = list(os.scandir(dir_path))
        except PermissionError:
            logger.warning(f"Permission denied scanning directory: {dir_path}")
            return [], []

        files = []
        subdirs = []
        for entry in entries:
            if entry.name.startswith("."):
                continue
            if entry.is_dir(follow_symlinks=False):
                subdirs.append(Path(entry.path))
            elif entry.is_file(follow_symlinks=False) and entry.name.lower().endswith(MARKDOWN_SUFFIXES):
                files.append(entry.path)
        return sorted(files), sorted(subdirs)

    files, subdirs = await asyncio.to_thread(_sync_scandir, directory)

    for file_path in files:
        yield file_path

    for subdir in subdirs:
        async for file_path in scan_markdown_files(subdir):
            yield file_path


def _parse_input(
    content: str,
    file_metadata: Optional[dict[str, Any]],
    project_config_data: Optional[dict[str, Any]],
) -> str:
    """Everything a parse depends on, so a changed project config forces a re-parse."""
    context = json.dumps([file_metadata, project_config_data], sort_keys=True, default=str)
    return f"{content}\n{context}"
