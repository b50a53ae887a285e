"""
Pydantic schemas for command intents.

A CommandIntent is derived purely from transcribed text; it never carries
side effects or references to the pipeline that produced it.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class CommandAction(str, Enum):
    """Top-level action a voice command asks for."""

    CREATE_EVENT = "create_event"
    ADD_EXPENSE = "add_expense"
    NAVIGATE = "navigate"
    QUERY = "query"
    UNKNOWN = "unknown"


RelativeDate = Literal["today", "tomorrow", "next_week"]


@dataclass(frozen=True)
class ParsedTime:
    hours: int
    minutes: int
    period: Literal["AM", "PM"]

    def format(self) -> str:
        return f"{self.hours:02d}:{self.minutes:02d} {self.period}"


@dataclass(frozen=True)
class ParsedDate:
    day: int
    month: int
    year: int
    relative: RelativeDate | None = None

    def format(self) -> str:
        if self.relative:
            return self.relative
        return f"{self.month}/{self.day}/{self.year}"


class CommandIntent(BaseModel):
    """Structured action and slot values extracted from a voice command."""

    model_config = ConfigDict(frozen=True)

    action: CommandAction = Field(default=CommandAction.UNKNOWN, description="Detected action")
    title: str | None = Field(default=None, description="Event title")
    description: str | None = Field(default=None, description="Event/expense description or query text")
    location: str | None = Field(default=None, description="Event location")
    date: str | None = Field(
        default=None,
        description="Relative keyword (today, tomorrow, next_week) or M/D/YYYY",
    )
    time: str | None = Field(default=None, description="12-hour time, e.g. '02:00 PM'")
    duration: str | None = Field(default=None, description="Spoken duration, e.g. '2 hours'")
    is_all_day: bool | None = Field(default=None, description="True for all-day events")
    amount: float | None = Field(default=None, description="Expense amount")
    category: str | None = Field(default=None, description="Expense category")
    target: str | None = Field(default=None, description="Navigation destination")
    confidence: float = Field(default=0.8, ge=0.0, le=1.0, description="Confidence score")
