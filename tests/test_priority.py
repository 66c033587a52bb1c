"""Tests for priority resolution."""

import pytest

from taskmark.parsing.priority import is_priority_word, resolve_priority


class TestResolvePriority:
    @pytest.mark.parametrize(
        "token,expected",
        [("⏬", 1), ("🔽", 2), ("🔼", 3), ("⏫", 4), ("🔺", 5)],
    )
    def test_emoji(self, token, expected):
        assert resolve_priority(token) == expected

    @pytest.mark.parametrize(
        "token,expected",
        [("lowest", 1), ("low", 2), ("medium", 3), ("high", 4), ("highest", 5)],
    )
    def test_words_case_insensitive(self, token, expected):
        assert resolve_priority(token) == expected
        assert resolve_priority(token.upper()) == expected
        assert resolve_priority(token.capitalize()) == expected

    @pytest.mark.parametrize(
        "token,expected",
        [("[#A]", 5), ("[#B]", 3), ("[#C]", 1), ("[#D]", 1), ("[#E]", 1), ("[#b]", 3)],
    )
    def test_bracket_codes(self, token, expected):
        assert resolve_priority(token) == expected

    def test_aliases(self):
        assert resolve_priority("urgent") == 5
        assert resolve_priority("important") == 4
        assert resolve_priority("normal") == 3
        assert resolve_priority("minor") == 2
        assert resolve_priority("trivial") == 1

    def test_digits_and_ints(self):
        assert resolve_priority("3") == 3
        assert resolve_priority(5) == 5
        assert resolve_priority(0) is None
        assert resolve_priority("6") is None

    def test_variation_selector(self):
        assert resolve_priority("🔺\ufe0f") == 5

    @pytest.mark.parametrize("token", [None, "", "   ", "whenever", True, "[#Z]"])
    def test_unrecognized_is_absent(self, token):
        assert resolve_priority(token) is None


def test_is_priority_word():
    assert is_priority_word("Medium")
    assert not is_priority_word("Buy")
