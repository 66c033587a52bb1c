"""Recurrence phrase parsing."""

import re

from taskmark.models import RecurrenceRule

WEEKDAY_NAMES = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")

UNITS = {
    "day": "day",
    "days": "day",
    "week": "week",
    "weeks": "week",
    "month": "month",
    "months": "month",
    "year": "year",
    "years": "year",
}

ADVERBS = {
    "daily": "day",
    "weekly": "week",
    "monthly": "month",
    "yearly": "year",
    "annually": "year",
}

WHEN_DONE = re.compile(r"\s+when\s+done$")
EVERY_INTERVAL = re.compile(r"^every\s+(?:(?P<interval>\d+|other)\s+)?(?P<unit>[a-z]+)$")


def _weekday(word: str) -> int | None:
    word = word.rstrip("s")
    for index, name in enumerate(WEEKDAY_NAMES):
        if word == name or (len(word) >= 3 and name.startswith(word)):
            return index
    return None


def parse_recurrence(phrase: str) -> RecurrenceRule | str | None:
    """Parse a recurrence phrase into a RecurrenceRule.

    Phrases that don't follow a known shape are returned verbatim (stripped),
    and empty input returns None.

    Examples:
        >>> parse_recurrence("every 2 weeks")
        RecurrenceRule(unit='week', interval=2, weekday=None, when_done=False)
        >>> parse_recurrence("every monday")
        RecurrenceRule(unit='week', interval=1, weekday=0, when_done=False)
        >>> parse_recurrence("on the third full moon")
        'on the third full moon'
    """
    original = phrase.strip() if phrase else ""
    if not original:
        return None

    text = " ".join(original.lower().split())
    when_done = False
    if WHEN_DONE.search(text):
        when_done = True
        text = WHEN_DONE.sub("", text)

    if text in ADVERBS:
        return RecurrenceRule(unit=ADVERBS[text], when_done=when_done)

    match = EVERY_INTERVAL.match(text)
    if not match:
        return original

    raw_interval = match.group("interval")
    word = match.group("unit")

    if word in UNITS:
        if raw_interval == "other":
            interval = 2
        else:
            interval = int(raw_interval) if raw_interval else 1
        if interval < 1:
            return original
        return RecurrenceRule(unit=UNITS[word], interval=interval, when_done=when_done)

    weekday = _weekday(word)
    if weekday is not None and raw_interval is None:
        return RecurrenceRule(unit="week", weekday=weekday, when_done=when_done)

    return original
