"""
Tests for the local intent extractor.

Covers bucket priority, slot patterns, and the spoken confirmations built
from extracted intents.
"""

from datetime import date

import pytest

from pocket_assistant.intent import CommandAction, CommandIntent, LocalExtractor, describe_intent, extract
from pocket_assistant.intent.extractor import parse_date, parse_time
from pocket_assistant.intent.schemas import ParsedDate, ParsedTime

TODAY = date(2026, 1, 10)


@pytest.fixture
def extractor() -> LocalExtractor:
    return LocalExtractor(today=TODAY)


class TestParseTime:
    def test_hours_and_minutes(self) -> None:
        assert parse_time("2:30 PM") == ParsedTime(hours=2, minutes=30, period="PM")

    def test_hours_only(self) -> None:
        assert parse_time("2 PM") == ParsedTime(hours=2, minutes=0, period="PM")
        assert parse_time("at 11am sharp") == ParsedTime(hours=11, minutes=0, period="AM")

    def test_oclock(self) -> None:
        assert parse_time("3 o'clock pm") == ParsedTime(hours=3, minutes=0, period="PM")

    def test_no_time(self) -> None:
        assert parse_time("sometime next week") is None

    def test_format_pads_to_two_digits(self) -> None:
        assert ParsedTime(hours=2, minutes=0, period="PM").format() == "02:00 PM"
        assert ParsedTime(hours=11, minutes=5, period="AM").format() == "11:05 AM"


class TestParseDate:
    def test_relative_keywords(self) -> None:
        assert parse_date("today", today=TODAY).relative == "today"
        tomorrow = parse_date("tomorrow", today=TODAY)
        assert (tomorrow.day, tomorrow.month, tomorrow.year) == (11, 1, 2026)
        assert parse_date("next week please", today=TODAY).format() == "next_week"

    def test_relative_wins_over_absolute(self) -> None:
        assert parse_date("tomorrow 3/15/2026", today=TODAY).format() == "tomorrow"

    def test_absolute_with_and_without_year(self) -> None:
        assert parse_date("on 3/15/2027", today=TODAY) == ParsedDate(day=15, month=3, year=2027)
        assert parse_date("on 3/15", today=TODAY).format() == "3/15/2026"

    def test_no_date(self) -> None:
        assert parse_date("whenever", today=TODAY) is None


class TestEventExtraction:
    def test_full_command(self, extractor: LocalExtractor) -> None:
        intent = extractor.extract(
            "Title team meeting, description weekly standup, location conference room, time 2 PM tomorrow"
        )

        assert intent.action == CommandAction.CREATE_EVENT
        assert intent.title == "team meeting"
        assert intent.description == "weekly standup"
        assert intent.location == "conference room"
        assert intent.time == "02:00 PM"
        assert intent.date == "tomorrow"
        assert intent.confidence == 0.8

    def test_event_bucket_wins_over_expense(self, extractor: LocalExtractor) -> None:
        intent = extractor.extract("schedule a lunch expense meeting")
        assert intent.action == CommandAction.CREATE_EVENT
        assert intent.amount is None

    def test_all_day_and_duration(self, extractor: LocalExtractor) -> None:
        all_day = extractor.extract("Meeting budget review all day tomorrow")
        assert all_day.is_all_day is True
        assert all_day.date == "tomorrow"

        timed = extractor.extract("Schedule a meeting for 2 hours")
        assert timed.duration == "2 hours"
        assert timed.is_all_day is None

    def test_deterministic(self, extractor: LocalExtractor) -> None:
        text = "Event client call at 3 PM today in virtual meeting"
        assert extractor.extract(text) == extractor.extract(text)
        assert extract(text).action == CommandAction.CREATE_EVENT


class TestOtherBuckets:
    def test_expense(self, extractor: LocalExtractor) -> None:
        intent = extractor.extract("Add expense for lunch $25")

        assert intent.action == CommandAction.ADD_EXPENSE
        assert intent.amount == 25.0
        assert intent.category == "lunch"
        assert intent.description == "lunch $25"

    def test_expense_with_decimal_amount(self, extractor: LocalExtractor) -> None:
        intent = extractor.extract("spent 12.50 on coffee")
        assert intent.amount == 12.5
        assert intent.category == "coffee"

    @pytest.mark.parametrize(
        "text,target",
        [
            ("open my calendar", "calendar"),
            ("go to home", "home"),
            ("navigate to profile", "profile"),
        ],
    )
    def test_navigation(self, extractor: LocalExtractor, text: str, target: str) -> None:
        intent = extractor.extract(text)
        assert intent.action == CommandAction.NAVIGATE
        assert intent.target == target

    def test_query_keeps_raw_text(self, extractor: LocalExtractor) -> None:
        intent = extractor.extract("What is on my list")
        assert intent.action == CommandAction.QUERY
        assert intent.description == "What is on my list"

    def test_unknown_has_low_confidence(self, extractor: LocalExtractor) -> None:
        intent = extractor.extract("hello there")
        assert intent.action == CommandAction.UNKNOWN
        assert intent.confidence == 0.4

    def test_empty_text(self, extractor: LocalExtractor) -> None:
        assert extractor.extract("").action == CommandAction.UNKNOWN


class TestDescribeIntent:
    def test_event(self) -> None:
        intent = CommandIntent(
            action=CommandAction.CREATE_EVENT,
            title="team meeting",
            time="02:00 PM",
            date="tomorrow",
            location="conference room",
        )
        assert describe_intent(intent) == "Creating event: team meeting at 02:00 PM on tomorrow in conference room..."
        assert describe_intent(CommandIntent(action=CommandAction.CREATE_EVENT)) == "Creating event..."

    def test_expense(self) -> None:
        intent = CommandIntent(action=CommandAction.ADD_EXPENSE, amount=12.5, category="coffee", description="latte")
        assert describe_intent(intent) == "Adding expense: $12.50 for coffee - latte..."
        assert describe_intent(CommandIntent(action=CommandAction.ADD_EXPENSE, amount=25.0)) == "Adding expense: $25..."

    def test_navigation(self) -> None:
        intent = CommandIntent(action=CommandAction.NAVIGATE, target="calendar")
        assert describe_intent(intent) == "Opening your calendar..."

    def test_fallback(self) -> None:
        query = CommandIntent(action=CommandAction.QUERY, description="what time is it")
        assert describe_intent(query) == 'I heard: "what time is it". How can I help you with that?'
        assert describe_intent(CommandIntent()) == 'I heard: "your command". How can I help you with that?'
