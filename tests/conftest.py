"""Common test fixtures."""

from datetime import date
from typing import Callable

import pytest

from taskmark.config import ParserConfig
from taskmark.models import Task
from taskmark.parsing import DateResolver, MarkdownTaskParser, clear_date_cache

# A Wednesday
TODAY = date(2024, 3, 13)


@pytest.fixture(autouse=True)
def fresh_date_cache():
    clear_date_cache()
    yield
    clear_date_cache()


@pytest.fixture
def today() -> date:
    return TODAY


@pytest.fixture
def date_resolver() -> DateResolver:
    return DateResolver(today=lambda: TODAY)


@pytest.fixture
def parser_config() -> ParserConfig:
    return ParserConfig()


@pytest.fixture
def parser(parser_config, date_resolver) -> MarkdownTaskParser:
    return MarkdownTaskParser(parser_config, date_resolver)


@pytest.fixture
def make_parser(date_resolver) -> Callable[..., MarkdownTaskParser]:
    """Build a parser from raw config overrides."""

    def _make(**overrides) -> MarkdownTaskParser:
        return MarkdownTaskParser(ParserConfig.load(overrides), date_resolver)

    return _make


@pytest.fixture
def make_task(parser) -> Callable[..., Task]:
    """Parse a single task line with the default parser."""

    def _make(line: str, file_path: str = "notes/today.md") -> Task:
        task = parser.parse_task(line, file_path)
        assert task is not None, f"not a task line: {line!r}"
        return task

    return _make


@pytest.fixture
def vault(tmp_path):
    """A small folder of markdown notes."""
    (tmp_path / "Work").mkdir()
    (tmp_path / "Home").mkdir()
    (tmp_path / ".obsidian").mkdir()

    (tmp_path / "Work" / "sprint.md").write_text(
        "---\npriority: high\n---\n"
        "- [ ] Ship release 📅 2024-03-15\n"
        "\t- [x] Write changelog ✅ 2024-03-10\n"
        "- [ ] Review PR #review\n",
        encoding="utf-8",
    )
    (tmp_path / "Home" / "chores.md").write_text(
        "# Chores\n\n- [ ] Water plants 🔁 every week\n- [-] Paint fence\n",
        encoding="utf-8",
    )
    (tmp_path / "README.txt").write_text("- [ ] not markdown\n", encoding="utf-8")
    (tmp_path / ".obsidian" / "hidden.md").write_text("- [ ] hidden\n", encoding="utf-8")
    return tmp_path
