"""
Priority resolution.

Maps a raw priority token (emoji, bracket code, word or digit) to a canonical
integer from 1 (lowest) to 5 (highest). Unrecognized tokens resolve to None.
"""

from typing import Any

VARIATION_SELECTOR = "\ufe0f"

EMOJI_PRIORITIES: dict[str, int] = {
    "⏬": 1,
    "🔽": 2,
    "🔼": 3,
    "⏫": 4,
    "🔺": 5,
}

# [#A] highest, [#B] medium, [#C] lowest; D/E fall back to their nearest neighbor C
BRACKET_PRIORITIES: dict[str, int] = {
    "[#A]": 5,
    "[#B]": 3,
    "[#C]": 1,
    "[#D]": 1,
    "[#E]": 1,
}

WORD_PRIORITIES: dict[str, int] = {
    "lowest": 1,
    "low": 2,
    "medium": 3,
    "high": 4,
    "highest": 5,
    # aliases
    "trivial": 1,
    "minor": 2,
    "normal": 3,
    "moderate": 3,
    "important": 4,
    "urgent": 5,
    "critical": 5,
}

PRIORITY_SYMBOLS: dict[int, str] = {level: emoji for emoji, level in EMOJI_PRIORITIES.items()}
PRIORITY_WORDS: dict[int, str] = {
    1: "lowest",
    2: "low",
    3: "medium",
    4: "high",
    5: "highest",
}


def resolve_priority(token: Any) -> int | None:
    """Resolve a raw priority token to 1-5, or None if unrecognized."""
    if token is None or isinstance(token, bool):
        return None

    if isinstance(token, int):
        return token if 1 <= token <= 5 else None

    text = str(token).strip().replace(VARIATION_SELECTOR, "")
    if not text:
        return None

    if text in EMOJI_PRIORITIES:
        return EMOJI_PRIORITIES[text]

    upper = text.upper()
    if upper in BRACKET_PRIORITIES:
        return BRACKET_PRIORITIES[upper]

    lowered = text.lower()
    if lowered in WORD_PRIORITIES:
        return WORD_PRIORITIES[lowered]

    if lowered.isdigit():
        value = int(lowered)
        return value if 1 <= value <= 5 else None

    return None


def is_priority_word(token: str) -> bool:
    """Whether a bare word may follow a priority emoji as its value."""
    return token.strip().lower() in WORD_PRIORITIES
