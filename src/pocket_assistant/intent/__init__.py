"""
Intent module: local, pattern-based understanding of voice commands.
"""

from pocket_assistant.intent.extractor import LocalExtractor, extract, parse_date, parse_time
from pocket_assistant.intent.responses import describe_intent
from pocket_assistant.intent.schemas import CommandAction, CommandIntent, ParsedDate, ParsedTime

__all__ = [
    "CommandAction",
    "CommandIntent",
    "LocalExtractor",
    "ParsedDate",
    "ParsedTime",
    "describe_intent",
    "extract",
    "parse_date",
    "parse_time",
]
