"""
Inline metadata extraction.

Runs the configured grammars over a task's content and collects raw metadata
tokens, returning the content with all consumed markup removed:

  - dataview fields: ``[due:: 2024-01-01]``
  - emoji fields: ``📅 2024-01-01``, ``🔺``, ``🔁 every week``
  - tags: ``#tag``, ``#project/name``, and ``@context``

Wiki links, markdown links and inline code are swapped for placeholders
before any grammar runs and restored afterwards, so stripping never damages
them. When more than one grammar sets the same field, dataview beats emoji,
and emoji beats tags. Within one grammar the first occurrence wins.
"""

import re
from dataclasses import dataclass, field
from enum import Enum

from loguru import logger

from taskmark.config import ParserConfig
from taskmark.models import FIELD_ATTRIBUTES
from taskmark.parsing.dates import DateResolver
from taskmark.parsing.priority import VARIATION_SELECTOR, is_priority_word, resolve_priority

# Spans that must survive extraction verbatim
PROTECTED_SPAN = re.compile(r"`[^`\n]*`|!?\[\[[^\]\n]*\]\]|!?\[[^\[\]\n]*\]\([^()\s]*\)")
PLACEHOLDER = re.compile("\ue000(\\d+)\ue001")

DATAVIEW_FIELD = re.compile(r"\[(?P<key>[^\[\]:]+?)::(?P<value>[^\[\]]*)\]")
TAG = re.compile(r"(?<![A-Za-z0-9#@$%^&*])#(?P<tag>[\w/-]+)")
CONTEXT = re.compile(r"(?<![A-Za-z0-9#@$%^&*])@(?P<context>[\w-]+)")

# A date value after an emoji: literal with optional time, or a relative keyword.
# Values must be whole tokens so "todays" or "2024-01-015" are not cut short.
EMOJI_DATE_VALUE = re.compile(
    r"\s*(?P<value>(?:\d{4}-\d{2}-\d{2}(?:[ T]\d{1,2}:\d{2}(?::\d{2})?)?"
    r"|(?:next|last)\s+(?:week|month)|today|tomorrow|yesterday)(?=\s|$)|\S+)",
    re.IGNORECASE,
)
PRIORITY_WORD = re.compile(r"\s*(?P<word>[A-Za-z]+)(?=\s|$)")

# Recognized dataview keys (lowercased) and the field they fill
DATAVIEW_KEYS: dict[str, str] = {
    "due": "dueDate",
    "start": "startDate",
    "scheduled": "scheduledDate",
    "completion": "completedDate",
    "completed": "completedDate",
    "created": "createdDate",
    "priority": "priority",
    "repeat": "recurrence",
    "recurrence": "recurrence",
    "project": "project",
    "context": "context",
    "area": "area",
}
DATAVIEW_KEYS.update({name.lower(): name for name in FIELD_ATTRIBUTES if name != "tags"})

DATE_FIELD_NAMES = frozenset({"dueDate", "startDate", "scheduledDate", "completedDate", "createdDate"})


class TokenKind(str, Enum):
    """Grammar a metadata token was read from."""

    DATAVIEW = "dataview"
    EMOJI = "emoji"
    TAG = "tag"
    CONTEXT = "context"


# Higher wins when two grammars set the same field
GRAMMAR_RANK = {
    TokenKind.TAG: 0,
    TokenKind.CONTEXT: 0,
    TokenKind.EMOJI: 1,
    TokenKind.DATAVIEW: 2,
}


@dataclass(frozen=True)
class MetadataToken:
    """One piece of metadata markup consumed from the content."""

    kind: TokenKind
    field: str  # logical field name, custom key, or "tags"
    value: str
    raw: str

    def __repr__(self) -> str:
        return f"MetadataToken({self.kind.value}, {self.field}={self.value!r})"


@dataclass
class ExtractionResult:
    """Raw metadata collected from one line's content."""

    content: str
    fields: dict[str, str] = field(default_factory=dict)
    custom: dict[str, str] = field(default_factory=dict)
    tags: list[str] = field(default_factory=list)
    tokens: list[MetadataToken] = field(default_factory=list)
    truncated: bool = False


class _Budget:
    """Shared iteration guard across grammars for one line."""

    def __init__(self, limit: int):
        self.limit = limit
        self.used = 0
        self.exhausted = False

    def take(self) -> bool:
        if self.used >= self.limit:
            self.exhausted = True
            return False
        self.used += 1
        return True


class MetadataExtractor:
    """Extracts inline metadata according to a parser configuration.

    Lookup tables are built once per extractor; ``extract`` is pure with
    respect to its input line.
    """

    def __init__(self, config: ParserConfig, date_resolver: DateResolver | None = None):
        self.config = config
        self.dates = date_resolver or DateResolver()
        self.emoji_mapping = {symbol.replace(VARIATION_SELECTOR, ""): name for symbol, name in config.emoji_mapping.items()}
        self.special_tag_prefixes = dict(config.special_tag_prefixes)

        symbols = sorted(self.emoji_mapping, key=len, reverse=True)
        self.emoji_pattern = (
            re.compile("(?P<symbol>" + "|".join(re.escape(s) for s in symbols) + ")" + VARIATION_SELECTOR + "?")
            if symbols
            else None
        )

    def extract(self, content: str) -> ExtractionResult:
        """Extract metadata from task content (the text after the checkbox)."""
        protected: list[str] = []
        text = protect_spans(content, protected)

        budget = _Budget(self.config.max_metadata_iterations)
        tokens: list[MetadataToken] = []

        mode = self.config.metadata_parse_mode
        if self.config.parse_metadata and mode.allows_dataview:
            text = self._tokenize_dataview(text, tokens, budget)
        if self.config.parse_metadata and mode.allows_emoji:
            text = self._tokenize_emoji(text, tokens, budget)
        if self.config.parse_tags:
            text = self._tokenize_tags(text, tokens, budget)
            text = self._tokenize_context(text, tokens, budget)

        result = ExtractionResult(content=restore_spans(" ".join(text.split()), protected))
        result.truncated = budget.exhausted
        if result.truncated:
            logger.debug(f"Metadata iteration limit reached, leaving markup in: {content!r}")

        winners: dict[str, MetadataToken] = {}
        for token in tokens:
            token = MetadataToken(
                kind=token.kind,
                field=token.field,
                value=restore_spans(token.value, protected),
                raw=restore_spans(token.raw, protected),
            )
            result.tokens.append(token)

            if token.field == "tags":
                if token.value not in result.tags:
                    result.tags.append(token.value)
                continue

            current = winners.get(token.field)
            if current is None or GRAMMAR_RANK[token.kind] > GRAMMAR_RANK[current.kind]:
                winners[token.field] = token

        for name, token in winners.items():
            if name in FIELD_ATTRIBUTES:
                result.fields[name] = token.value
            else:
                result.custom[name] = token.value

        return result

    # Grammar tokenizers. Each consumes matches from ``text`` and returns the
    # remaining text; first occurrence per field wins within a grammar.

    def _tokenize_dataview(self, text: str, tokens: list[MetadataToken], budget: _Budget) -> str:
        seen: set[str] = set()
        position = 0
        while True:
            match = DATAVIEW_FIELD.search(text, position)
            if not match:
                return text
            if not budget.take():
                return text

            key = match.group("key").strip()
            value = match.group("value").strip()
            if not key or not value:
                position = match.end()
                continue

            name = self.dataview_field(key)
            if name in DATE_FIELD_NAMES and self.dates.resolve(value) is None:
                logger.debug(f"Unparseable date in inline field: {match.group(0)}")
                position = match.end()
                continue
            if name == "priority" and resolve_priority(value) is None:
                logger.debug(f"Unrecognized priority in inline field: {match.group(0)}")
                position = match.end()
                continue

            if name not in seen:
                seen.add(name)
                tokens.append(MetadataToken(TokenKind.DATAVIEW, name, value, match.group(0)))

            text = text[: match.start()] + " " + text[match.end() :]
            position = match.start() + 1

    def _tokenize_emoji(self, text: str, tokens: list[MetadataToken], budget: _Budget) -> str:
        if self.emoji_pattern is None:
            return text

        seen: set[str] = set()
        position = 0
        while True:
            match = self.emoji_pattern.search(text, position)
            if not match:
                return text
            if not budget.take():
                return text

            symbol = match.group("symbol")
            name = self.emoji_mapping[symbol]

            if name == "priority":
                value, end = symbol, match.end()
                word = PRIORITY_WORD.match(text, match.end())
                if word and is_priority_word(word.group("word")):
                    value, end = word.group("word"), word.end()
            elif name == "recurrence":
                end = self._phrase_end(text, match.end())
                value = text[match.end() : end].strip()
                if not value:
                    position = match.end()
                    continue
            else:
                date_match = EMOJI_DATE_VALUE.match(text, match.end())
                value = date_match.group("value") if date_match else ""
                if not value or self.dates.resolve(value) is None:
                    logger.debug(f"Unparseable date after {symbol}: {value!r}")
                    position = match.end()
                    continue
                end = date_match.end()

            if name not in seen:
                seen.add(name)
                tokens.append(MetadataToken(TokenKind.EMOJI, name, value, text[match.start() : end]))

            text = text[: match.start()] + " " + text[end:]
            position = match.start() + 1

    def _phrase_end(self, text: str, start: int) -> int:
        """A recurrence phrase runs until the next recognized marker or end of line."""
        end = len(text)
        candidates = [
            self.emoji_pattern.search(text, start) if self.emoji_pattern else None,
            DATAVIEW_FIELD.search(text, start),
            TAG.search(text, start),
            CONTEXT.search(text, start),
        ]
        for candidate in candidates:
            if candidate is not None and candidate.start() < end:
                end = candidate.start()
        return end

    def _tokenize_tags(self, text: str, tokens: list[MetadataToken], budget: _Budget) -> str:
        seen: set[str] = set()
        position = 0
        while True:
            match = TAG.search(text, position)
            if not match:
                return text

            tag = match.group("tag")
            if tag.isdigit() or not tag.strip("/"):
                # "#123" is an issue reference, not a tag
                position = match.end()
                continue
            if not budget.take():
                return text

            prefix, slash, value = tag.partition("/")
            name = self.special_tag_prefixes.get(prefix.lower()) if slash else None
            if name and value:
                if name not in seen:
                    seen.add(name)
                    tokens.append(MetadataToken(TokenKind.TAG, name, value, match.group(0)))
            else:
                tokens.append(MetadataToken(TokenKind.TAG, "tags", tag, match.group(0)))

            text = text[: match.start()] + " " + text[match.end() :]
            position = match.start() + 1

    def _tokenize_context(self, text: str, tokens: list[MetadataToken], budget: _Budget) -> str:
        found = False
        position = 0
        while True:
            match = CONTEXT.search(text, position)
            if not match:
                return text
            if not budget.take():
                return text

            if not found:
                found = True
                tokens.append(MetadataToken(TokenKind.CONTEXT, "context", match.group("context"), match.group(0)))

            text = text[: match.start()] + " " + text[match.end() :]
            position = match.start() + 1

    def dataview_field(self, key: str) -> str:
        """Map a dataview key onto a logical field name, or keep it as a custom key."""
        lowered = key.lower()
        if lowered in DATAVIEW_KEYS:
            return DATAVIEW_KEYS[lowered]
        if lowered in self.special_tag_prefixes:
            return self.special_tag_prefixes[lowered]
        return key


def protect_spans(text: str, store: list[str]) -> str:
    """Replace links and inline code with numbered placeholders."""

    def _swap(match: re.Match) -> str:
        store.append(match.group(0))
        return f"\ue000{len(store) - 1}\ue001"

    return PROTECTED_SPAN.sub(_swap, text)


def restore_spans(text: str, store: list[str]) -> str:
    if not store:
        return text
    return PLACEHOLDER.sub(lambda match: store[int(match.group(1))], text)
