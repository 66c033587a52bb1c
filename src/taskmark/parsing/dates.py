"""
Date resolution.

Parses date tokens into epoch-millisecond timestamps (local time):
  - strict ``YYYY-MM-DD`` literals with an optional ``HH:MM[:SS]`` time
  - relative keywords (today, tomorrow, next week, ...) normalized to start of day
  - daily-note file paths matched against a moment-style format template

Unparseable tokens resolve to None; the caller keeps them visible in content.
"""

import re
import threading
from collections.abc import Callable
from datetime import date, datetime, timedelta
from typing import Any

from loguru import logger

DATE_LITERAL = re.compile(
    r"^(?P<year>\d{4})-(?P<month>\d{2})-(?P<day>\d{2})"
    r"(?:[ T](?P<hour>\d{1,2}):(?P<minute>\d{2})(?::(?P<second>\d{2}))?)?$"
)

_MISSING = object()

RELATIVE_KEYWORDS = (
    "today",
    "tomorrow",
    "yesterday",
    "next week",
    "last week",
    "next month",
    "last month",
)

# moment.js style tokens supported in daily note formats
FORMAT_TOKENS = re.compile(r"YYYY|YY|MM|M|DD|D|\[[^\]]*\]")
TOKEN_PATTERNS = {
    "YYYY": r"(?P<year>\d{4})",
    "YY": r"(?P<short_year>\d{2})",
    "MM": r"(?P<month>\d{2})",
    "M": r"(?P<month>\d{1,2})",
    "DD": r"(?P<day>\d{2})",
    "D": r"(?P<day>\d{1,2})",
}


def to_timestamp(value: datetime) -> int:
    """Epoch milliseconds for a naive local datetime."""
    return int(value.timestamp() * 1000)


def start_of_day(value: date) -> int:
    return to_timestamp(datetime(value.year, value.month, value.day))


def from_timestamp(timestamp: int) -> datetime:
    return datetime.fromtimestamp(timestamp / 1000)


def format_timestamp(timestamp: int) -> str:
    """Format a timestamp as ``YYYY-MM-DD``, adding ``HH:MM`` when not midnight."""
    moment = from_timestamp(timestamp)
    if (moment.hour, moment.minute, moment.second) == (0, 0, 0):
        return moment.strftime("%Y-%m-%d")
    if moment.second:
        return moment.strftime("%Y-%m-%d %H:%M:%S")
    return moment.strftime("%Y-%m-%d %H:%M")


def _start_of_week(value: date) -> date:
    # Weeks start on Sunday
    return value - timedelta(days=(value.weekday() + 1) % 7)


def _add_months(value: date, months: int) -> date:
    month_index = value.year * 12 + (value.month - 1) + months
    return date(month_index // 12, month_index % 12 + 1, 1)


class DateResolver:
    """Resolves date tokens to timestamps.

    Absolute literals are memoized in a bounded class-level cache; relative
    keywords are always computed against ``today``.
    """

    MAX_CACHE_SIZE = 10000
    _cache: dict[str, int | None] = {}
    _cache_lock = threading.Lock()

    def __init__(self, today: Callable[[], date] | None = None):
        self._today = today or date.today

    @classmethod
    def clear_cache(cls) -> None:
        with cls._cache_lock:
            cls._cache.clear()

    @classmethod
    def cache_stats(cls) -> dict[str, int]:
        return {"size": len(cls._cache), "max_size": cls.MAX_CACHE_SIZE}

    def resolve(self, value: Any) -> int | None:
        """Resolve a date token, date object or timestamp."""
        if value is None or isinstance(value, bool):
            return None
        if isinstance(value, datetime):
            return to_timestamp(value)
        if isinstance(value, date):
            return start_of_day(value)
        if isinstance(value, int):
            return value

        text = str(value).strip()
        if not text:
            return None

        relative = self.parse_relative(text)
        if relative is not None:
            return relative

        return self.parse_literal(text)

    def is_date(self, value: Any) -> bool:
        return self.resolve(value) is not None

    def parse_literal(self, text: str) -> int | None:
        """Parse a strict ``YYYY-MM-DD[ HH:MM[:SS]]`` literal."""
        cached = self._cache.get(text, _MISSING)
        if cached is not _MISSING:
            return cached

        result = self._parse_literal_uncached(text)

        with self._cache_lock:
            if len(self._cache) >= self.MAX_CACHE_SIZE:
                # FIFO eviction: dicts keep insertion order
                del self._cache[next(iter(self._cache))]
            self._cache[text] = result
        return result

    def _parse_literal_uncached(self, text: str) -> int | None:
        match = DATE_LITERAL.match(text)
        if not match:
            return None
        try:
            moment = datetime(
                int(match.group("year")),
                int(match.group("month")),
                int(match.group("day")),
                int(match.group("hour") or 0),
                int(match.group("minute") or 0),
                int(match.group("second") or 0),
            )
        except ValueError:
            logger.debug(f"Invalid calendar date: {text}")
            return None
        return to_timestamp(moment)

    def parse_relative(self, text: str) -> int | None:
        """Resolve a relative keyword to the start of the matching day."""
        keyword = " ".join(text.lower().split())
        today = self._today()

        if keyword == "today":
            target = today
        elif keyword == "tomorrow":
            target = today + timedelta(days=1)
        elif keyword == "yesterday":
            target = today - timedelta(days=1)
        elif keyword == "next week":
            target = _start_of_week(today + timedelta(weeks=1))
        elif keyword == "last week":
            target = _start_of_week(today - timedelta(weeks=1))
        elif keyword == "next month":
            target = _add_months(today, 1)
        elif keyword == "last month":
            target = _add_months(today, -1)
        else:
            return None

        return start_of_day(target)

    def date_from_path(
        self,
        file_path: str,
        daily_note_format: str,
        daily_note_path: str = "",
    ) -> int | None:
        """Extract a date from a daily-note file path.

        The path (without extension) must end with the ``daily_note_format``
        template; when ``daily_note_path`` is set the file must live under it.
        """
        path = file_path.replace("\\", "/")
        folder = daily_note_path.replace("\\", "/").strip("/")
        if folder and not (path == folder or path.startswith(folder + "/")):
            return None

        stem = re.sub(r"\.[^/.]+$", "", path)
        pattern = compile_date_format(daily_note_format)
        match = pattern.search(stem)
        if not match:
            return None

        groups = match.groupdict()
        if groups.get("year"):
            year = int(groups["year"])
        elif groups.get("short_year"):
            year = 2000 + int(groups["short_year"])
        else:
            return None

        try:
            return start_of_day(date(year, int(groups.get("month") or 1), int(groups.get("day") or 1)))
        except ValueError:
            logger.debug(f"Daily note path {file_path} does not name a real date")
            return None


def compile_date_format(daily_note_format: str) -> re.Pattern:
    """Translate a moment-style date format into an end-anchored regex."""
    parts: list[str] = []
    seen: set[str] = set()
    position = 0
    for match in FORMAT_TOKENS.finditer(daily_note_format):
        parts.append(re.escape(daily_note_format[position : match.start()]))
        token = match.group(0)
        if token.startswith("["):
            parts.append(re.escape(token[1:-1]))
        else:
            group = TOKEN_PATTERNS[token]
            name = re.search(r"\?P<(\w+)>", group).group(1)
            # Repeated tokens become plain digit matches
            parts.append(group if name not in seen else group.replace(f"?P<{name}>", ""))
            seen.add(name)
        position = match.end()
    parts.append(re.escape(daily_note_format[position:]))
    return re.compile(r"(?:^|/)" + "".join(parts) + "$")
