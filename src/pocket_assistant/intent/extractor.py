"""
Local intent extractor.

Turns free-text transcriptions into a CommandIntent with a layered, pattern
based classifier:

1. Keyword membership routes the text into a bucket. Buckets are checked in a
   fixed order (event, expense, navigation, query) and the first match wins.
2. Within the bucket, slots are pulled from the raw text (case is preserved so
   proper nouns survive) by a fixed sequence of patterns.

Known limitation: title/description/location use "keyword + following words
up to the next keyword" patterns, so keywords spoken out of the expected order
produce odd captures ("client call at 3 PM" yields location "3 PM ...").
"""

from __future__ import annotations

import logging
import re
from datetime import date as date_cls, timedelta

from pocket_assistant.intent.schemas import CommandAction, CommandIntent, ParsedDate, ParsedTime

logger = logging.getLogger(__name__)

EVENT_KEYWORDS = (
    "schedule",
    "meeting",
    "event",
    "appointment",
    "call",
    "title",
    "description",
    "location",
    "time",
    "date",
)
EXPENSE_KEYWORDS = (
    "expense",
    "cost",
    "spent",
    "paid",
    "amount",
    "dollar",
    "lunch",
    "dinner",
    "coffee",
    "transport",
    "gas",
)
NAVIGATION_KEYWORDS = (
    "show",
    "open",
    "go to",
    "navigate",
    "view",
    "display",
    "calendar",
    "expenses",
    "home",
    "profile",
)
QUERY_KEYWORDS = (
    "what",
    "when",
    "where",
    "how",
    "why",
    "tell me",
    "show me",
    "find",
    "search",
)
EXPENSE_CATEGORIES = (
    "lunch",
    "dinner",
    "coffee",
    "transport",
    "gas",
    "food",
    "entertainment",
)
# Checked in order; "expense" also matches "expenses".
NAVIGATION_TARGETS = (
    ("calendar", "calendar"),
    ("expense", "expenses"),
    ("home", "home"),
    ("profile", "profile"),
)

MATCHED_CONFIDENCE = 0.8
UNKNOWN_CONFIDENCE = 0.4

_TITLE_RE = re.compile(
    r"(?:title|event|meeting)\s+(.+?)(?:\s+(?:description|location|time|date|at)|$)",
    re.IGNORECASE,
)
_EVENT_DESCRIPTION_RE = re.compile(
    r"(?:description|details|about)\s+(.+?)(?:\s+(?:location|time|date|at)|$)",
    re.IGNORECASE,
)
_LOCATION_RE = re.compile(
    r"(?:location|place|at|in)\s+(.+?)(?:\s+(?:time|date|on)|$)",
    re.IGNORECASE,
)
_DURATION_RE = re.compile(r"(\d+)\s*(?:hour|hr|minute|min)s?", re.IGNORECASE)
_AMOUNT_RE = re.compile(r"\$?(\d+(?:\.\d+)?)")
_EXPENSE_DESCRIPTION_RE = re.compile(
    r"(?:for|on|about)\s+(.+?)(?:\s+(?:amount|cost|dollar)|$)",
    re.IGNORECASE,
)
_TIME_PATTERNS = (
    re.compile(r"(\d{1,2})(?::(\d{2}))?\s*(am|pm)", re.IGNORECASE),
    re.compile(r"(\d{1,2})\s*o'clock\s*(am|pm)", re.IGNORECASE),
)
_DATE_RE = re.compile(r"(\d{1,2})/(\d{1,2})(?:/(\d{4}))?")

_SLOT_TRIM = " \t,.;:"


def _contains_any(text: str, keywords: tuple[str, ...]) -> bool:
    return any(keyword in text for keyword in keywords)


def _capture(pattern: re.Pattern[str], text: str) -> str | None:
    match = pattern.search(text)
    if not match:
        return None
    value = match.group(1).strip(_SLOT_TRIM)
    return value or None


def parse_time(text: str) -> ParsedTime | None:
    """Parse the first 12-hour time ("2:30 PM", "2 pm", "3 o'clock pm")."""
    for pattern in _TIME_PATTERNS:
        match = pattern.search(text)
        if not match:
            continue
        groups = match.groups()
        hours = int(groups[0])
        # The o'clock pattern has no minutes group.
        minutes = int(groups[1]) if len(groups) == 3 and groups[1] else 0
        period = groups[-1].upper()
        return ParsedTime(hours=hours, minutes=minutes, period=period)
    return None


def parse_date(text: str, today: date_cls | None = None) -> ParsedDate | None:
    """
    Parse a date from text.

    Relative keywords (today, tomorrow, next week) are checked before absolute
    M/D[/YYYY] dates and take priority when both appear.

    Args:
        text: Text to search.
        today: Reference date for relative keywords and the default year.

    Returns:
        The parsed date, or None when the text mentions no date.
    """
    lower = text.lower()
    today = today or date_cls.today()

    if "today" in lower:
        return ParsedDate(day=today.day, month=today.month, year=today.year, relative="today")

    if "tomorrow" in lower:
        tomorrow = today + timedelta(days=1)
        return ParsedDate(day=tomorrow.day, month=tomorrow.month, year=tomorrow.year, relative="tomorrow")

    if "next week" in lower:
        return ParsedDate(day=0, month=0, year=0, relative="next_week")

    match = _DATE_RE.search(text)
    if match:
        month = int(match.group(1))
        day = int(match.group(2))
        year = int(match.group(3)) if match.group(3) else today.year
        return ParsedDate(day=day, month=month, year=year)

    return None


class LocalExtractor:
    """
    Pattern-based intent extractor.

    Stateless; ``extract`` is a pure function of its input (plus the reference
    date used for absolute dates without a year).
    """

    def __init__(self, today: date_cls | None = None) -> None:
        self._today = today

    def extract(self, text: str) -> CommandIntent:
        """
        Extract a CommandIntent from transcribed text.

        Never raises; unmatched input yields an UNKNOWN intent with degraded
        confidence.
        """
        raw = text or ""
        lower = raw.lower()

        if _contains_any(lower, EVENT_KEYWORDS):
            intent = self._extract_event(raw)
        elif _contains_any(lower, EXPENSE_KEYWORDS):
            intent = self._extract_expense(raw)
        elif _contains_any(lower, NAVIGATION_KEYWORDS):
            intent = self._extract_navigation(lower)
        elif _contains_any(lower, QUERY_KEYWORDS):
            intent = CommandIntent(action=CommandAction.QUERY, description=raw, confidence=MATCHED_CONFIDENCE)
        else:
            intent = CommandIntent(action=CommandAction.UNKNOWN, confidence=UNKNOWN_CONFIDENCE)

        logger.debug(f"[INTENT] action={intent.action.value} text={raw[:80]!r}")
        return intent

    def _extract_event(self, text: str) -> CommandIntent:
        lower = text.lower()
        parsed_time = parse_time(text)
        parsed_date = parse_date(text, today=self._today)
        duration = _DURATION_RE.search(text)

        return CommandIntent(
            action=CommandAction.CREATE_EVENT,
            title=_capture(_TITLE_RE, text),
            description=_capture(_EVENT_DESCRIPTION_RE, text),
            location=_capture(_LOCATION_RE, text),
            time=parsed_time.format() if parsed_time else None,
            date=parsed_date.format() if parsed_date else None,
            is_all_day=True if ("all day" in lower or "all-day" in lower) else None,
            duration=duration.group(0) if duration else None,
            confidence=MATCHED_CONFIDENCE,
        )

    def _extract_expense(self, text: str) -> CommandIntent:
        lower = text.lower()
        amount = _AMOUNT_RE.search(text)
        category = next((c for c in EXPENSE_CATEGORIES if c in lower), None)

        return CommandIntent(
            action=CommandAction.ADD_EXPENSE,
            amount=float(amount.group(1)) if amount else None,
            category=category,
            description=_capture(_EXPENSE_DESCRIPTION_RE, text),
            confidence=MATCHED_CONFIDENCE,
        )

    def _extract_navigation(self, lower: str) -> CommandIntent:
        target = next((dest for keyword, dest in NAVIGATION_TARGETS if keyword in lower), None)
        return CommandIntent(action=CommandAction.NAVIGATE, target=target, confidence=MATCHED_CONFIDENCE)


def extract(text: str) -> CommandIntent:
    """Module-level convenience wrapper around LocalExtractor.extract."""
    return LocalExtractor().extract(text)
