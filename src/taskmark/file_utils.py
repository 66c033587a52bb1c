"""Utilities for reading markdown files."""

import hashlib
from pathlib import Path
from typing import Any, Dict, Union

import aiofiles
import frontmatter
import yaml
from loguru import logger

from taskmark.errors import FileParseError

FRONTMATTER_DELIMITER = "---"


async def compute_checksum(content: Union[str, bytes]) -> str:
    """
    Compute SHA-256 checksum of content.

    Args:
        content: Content to hash (either text string or bytes)

    Returns:
        SHA-256 hex digest
    """
    if isinstance(content, str):
        content = content.encode()
    return hashlib.sha256(content).hexdigest()


def has_frontmatter(content: str) -> bool:
    """
    Check if content starts with a YAML frontmatter block.

    Args:
        content: Content to check

    Returns:
        True if content has frontmatter markers (---), False otherwise
    """
    if not content:
        return False

    content = content.lstrip("\ufeff")
    if not content.startswith(FRONTMATTER_DELIMITER):
        return False

    return frontmatter_end_line(content) is not None


def frontmatter_end_line(content: str) -> int | None:
    """Index of the closing ``---`` line of a leading frontmatter block, if any."""
    lines = content.lstrip("\ufeff").split("\n")
    if not lines or lines[0].rstrip() != FRONTMATTER_DELIMITER:
        return None
    for index in range(1, len(lines)):
        if lines[index].rstrip() == FRONTMATTER_DELIMITER:
            return index
    return None


def parse_frontmatter(content: str) -> Dict[str, Any]:
    """
    Parse YAML frontmatter from content.

    Args:
        content: Content with YAML frontmatter

    Returns:
        Dictionary of frontmatter values (empty when there is no frontmatter)

    Raises:
        FileParseError: If frontmatter is present but invalid
    """
    if not has_frontmatter(content):
        return {}

    try:
        post = frontmatter.loads(content.lstrip("\ufeff"))
    except yaml.YAMLError as e:
        error_msg = str(e)
        if "could not find expected ':'" in error_msg:
            raise FileParseError(
                f"Invalid YAML in frontmatter: {error_msg}\n\n"
                "Suggestion: YAML requires 'key: value' not 'key:value'"
            ) from e
        raise FileParseError(f"Invalid YAML in frontmatter: {error_msg}") from e
    except (TypeError, ValueError) as e:
        raise FileParseError("Frontmatter must be a YAML dictionary") from e

    return dict(post.metadata)


def remove_frontmatter(content: str) -> str:
    """
    Remove YAML frontmatter from content.

    Args:
        content: Content with frontmatter

    Returns:
        Content with frontmatter removed, or original content if no frontmatter
    """
    end = frontmatter_end_line(content)
    if end is None:
        return content
    return "\n".join(content.lstrip("\ufeff").split("\n")[end + 1 :])


def parse_config_content(content: str) -> Dict[str, str]:
    """
    Read simple ``key: value`` lines from a project config note body.

    Blank lines and lines starting with ``#`` or ``//`` are ignored, and
    surrounding quotes are stripped from values.
    """
    config: Dict[str, str] = {}
    for line in content.split("\n"):
        stripped = line.strip()
        if not stripped or stripped.startswith(("#", "//")):
            continue

        key, colon, value = stripped.partition(":")
        key, value = key.strip(), value.strip()
        if colon and key and value:
            config[key] = value.strip("\"'")
    return config


async def read_markdown(path: Union[Path, str]) -> tuple[str, Dict[str, Any]]:
    """
    Read a markdown file and its frontmatter.

    Returns:
        Tuple of (full text, frontmatter metadata)

    Raises:
        FileParseError: If the file can't be read or its frontmatter is invalid
    """
    path = Path(path)
    try:
        async with aiofiles.open(path, mode="r", encoding="utf-8") as f:
            content = await f.read()
    except (OSError, UnicodeDecodeError) as e:
        logger.error(f"Failed to read file {path}: {e}")
        raise FileParseError(f"Failed to read file {path}: {e}") from e

    return content, parse_frontmatter(content)
