"""Short spoken confirmations for locally extracted intents."""

from __future__ import annotations

from pocket_assistant.intent.schemas import CommandAction, CommandIntent

_NAVIGATION_PHRASES = {
    "calendar": "Opening your calendar...",
    "expenses": "Opening expenses...",
    "home": "Going to home screen...",
    "profile": "Opening your profile...",
}


def _format_amount(amount: float) -> str:
    return f"{amount:g}" if amount == int(amount) else f"{amount:.2f}"


def describe_intent(intent: CommandIntent) -> str:
    """Build the natural-language confirmation for an intent."""
    if intent.action is CommandAction.CREATE_EVENT:
        text = "Creating event"
        if intent.title:
            text += f": {intent.title}"
        if intent.time:
            text += f" at {intent.time}"
        if intent.date:
            text += f" on {intent.date}"
        if intent.location:
            text += f" in {intent.location}"
        return text + "..."

    if intent.action is CommandAction.ADD_EXPENSE:
        text = "Adding expense"
        if intent.amount:
            text += f": ${_format_amount(intent.amount)}"
        if intent.category:
            text += f" for {intent.category}"
        if intent.description:
            text += f" - {intent.description}"
        return text + "..."

    if intent.action is CommandAction.NAVIGATE and intent.target in _NAVIGATION_PHRASES:
        return _NAVIGATION_PHRASES[intent.target]

    return f'I heard: "{intent.description or "your command"}". How can I help you with that?'
