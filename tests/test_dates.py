"""Tests for date resolution."""

from datetime import date, datetime

import pytest

from taskmark.parsing.dates import (
    DateResolver,
    compile_date_format,
    format_timestamp,
    start_of_day,
    to_timestamp,
)


def day(year: int, month: int, day_of_month: int) -> int:
    return start_of_day(date(year, month, day_of_month))


class TestDateLiterals:
    def test_date_only(self, date_resolver):
        assert date_resolver.resolve("2024-01-15") == day(2024, 1, 15)

    def test_date_with_time(self, date_resolver):
        assert date_resolver.resolve("2024-01-15 14:30") == to_timestamp(datetime(2024, 1, 15, 14, 30))
        assert date_resolver.resolve("2024-01-15T09:05:07") == to_timestamp(datetime(2024, 1, 15, 9, 5, 7))

    @pytest.mark.parametrize("text", ["2024-02-30", "15/01/2024", "2024-1-5", "soon", "2024-01-15x"])
    def test_unparseable(self, date_resolver, text):
        assert date_resolver.resolve(text) is None
        assert date_resolver.is_date(text) is False

    def test_python_values(self, date_resolver):
        assert date_resolver.resolve(date(2024, 1, 15)) == day(2024, 1, 15)
        assert date_resolver.resolve(datetime(2024, 1, 15, 8, 0)) == to_timestamp(datetime(2024, 1, 15, 8, 0))
        assert date_resolver.resolve(1700000000000) == 1700000000000

    @pytest.mark.parametrize("value", [None, "", "   ", True, False])
    def test_empty_values(self, date_resolver, value):
        assert date_resolver.resolve(value) is None


class TestRelativeKeywords:
    """Relative keywords resolve against Wednesday 2024-03-13."""

    @pytest.mark.parametrize(
        "keyword,expected",
        [
            ("today", (2024, 3, 13)),
            ("tomorrow", (2024, 3, 14)),
            ("yesterday", (2024, 3, 12)),
            # weeks start on Sunday
            ("next week", (2024, 3, 17)),
            ("last week", (2024, 3, 3)),
            ("next month", (2024, 4, 1)),
            ("last month", (2024, 2, 1)),
        ],
    )
    def test_keywords(self, date_resolver, keyword, expected):
        assert date_resolver.resolve(keyword) == day(*expected)

    def test_case_and_spacing(self, date_resolver):
        assert date_resolver.resolve("Next   Week") == day(2024, 3, 17)
        assert date_resolver.resolve("TODAY") == day(2024, 3, 13)

    def test_year_boundary(self):
        resolver = DateResolver(today=lambda: date(2024, 12, 20))
        assert resolver.resolve("next month") == day(2025, 1, 1)


class TestLiteralCache:
    def test_literals_are_cached_once(self, date_resolver):
        date_resolver.resolve("2024-01-15")
        date_resolver.resolve("2024-01-15")

        assert DateResolver.cache_stats()["size"] == 1

    def test_relative_keywords_are_not_cached(self, date_resolver):
        date_resolver.resolve("tomorrow")

        assert DateResolver.cache_stats()["size"] == 0

    def test_oldest_entry_evicted(self, date_resolver, monkeypatch):
        monkeypatch.setattr(DateResolver, "MAX_CACHE_SIZE", 2)

        for text in ("2024-01-01", "2024-01-02", "2024-01-03"):
            date_resolver.resolve(text)

        assert DateResolver.cache_stats()["size"] == 2
        assert "2024-01-01" not in DateResolver._cache
        assert date_resolver.resolve("2024-01-01") == day(2024, 1, 1)

    def test_cache_shared_across_resolvers(self, date_resolver):
        date_resolver.resolve("2024-05-01")

        assert "2024-05-01" in DateResolver._cache
        assert DateResolver().resolve("2024-05-01") == day(2024, 5, 1)


class TestFormatTimestamp:
    def test_midnight(self):
        assert format_timestamp(day(2024, 1, 15)) == "2024-01-15"

    def test_with_time(self):
        assert format_timestamp(to_timestamp(datetime(2024, 1, 15, 14, 30))) == "2024-01-15 14:30"
        assert format_timestamp(to_timestamp(datetime(2024, 1, 15, 14, 30, 5))) == "2024-01-15 14:30:05"


class TestDailyNotePath:
    def test_matches_format(self, date_resolver):
        assert date_resolver.date_from_path("Daily/2024-03-13.md", "YYYY-MM-DD") == day(2024, 3, 13)

    def test_nested_format(self, date_resolver):
        assert date_resolver.date_from_path("journal/2024/03/13.md", "YYYY/MM/DD") == day(2024, 3, 13)

    def test_literal_text_and_short_year(self, date_resolver):
        assert date_resolver.date_from_path("Daily-2024-03-13.md", "[Daily-]YYYY-MM-DD") == day(2024, 3, 13)
        assert date_resolver.date_from_path("notes/24-03-13.md", "YY-MM-DD") == day(2024, 3, 13)

    def test_daily_note_folder(self, date_resolver):
        assert date_resolver.date_from_path("Daily/2024-03-13.md", "YYYY-MM-DD", "Daily") == day(2024, 3, 13)
        assert date_resolver.date_from_path("Other/2024-03-13.md", "YYYY-MM-DD", "Daily") is None

    @pytest.mark.parametrize("path", ["notes.md", "Daily/2024-13-45.md", "Daily/2024-03-13 meeting.md"])
    def test_no_date(self, date_resolver, path):
        assert date_resolver.date_from_path(path, "YYYY-MM-DD") is None

    def test_compile_date_format_is_anchored(self):
        pattern = compile_date_format("YYYY-MM-DD")

        assert pattern.search("a/2024-03-13")
        assert not pattern.search("a/x2024-03-13")
