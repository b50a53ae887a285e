"""Utilities for turning assistant replies into short, speakable text.

Voice output must never read aloud:
- JSON blobs / code
- markup tags
- arbitrarily long replies

This module enforces that.
"""

from __future__ import annotations

import re
from typing import Any

_CODE_FENCE_RE = re.compile(r"```", re.DOTALL)
_TAG_RE = re.compile(r"</?\w+?>")


def _looks_like_json(text: str) -> bool:
    t = (text or "").strip()
    if not t:
        return False

    # Valid or not, a reply opening with a bracket is not speakable.
    if t.startswith("{") or t.startswith("["):
        return True

    # JSON-y inline blobs
    if '"' in t and ":" in t and ("{" in t or "[" in t):
        return True

    return False


def _split_sentences(text: str) -> list[str]:
    t = (text or "").strip()
    if not t:
        return []

    parts = re.split(r"(?<=[.!?])\s+", t)
    return [p.strip() for p in parts if p and p.strip()]


def to_speakable_text(
    text: str,
    *,
    max_chars: int = 300,
    max_sentences: int = 3,
) -> tuple[str | None, dict[str, Any]]:
    """Return (speakable_text_or_None, debug_info).

    Rules:
    - Empty, JSON or code-fenced content is not spoken.
    - Markup tags are removed.
    - At most ``max_sentences`` sentences and ``max_chars`` characters.
    """

    debug: dict[str, Any] = {
        "input_chars": len(text or ""),
        "skipped": False,
        "skip_reason": None,
        "truncated": False,
        "output_chars": 0,
    }

    raw = (text or "").strip()
    if not raw:
        debug.update({"skipped": True, "skip_reason": "empty"})
        return None, debug

    if _CODE_FENCE_RE.search(raw):
        debug.update({"skipped": True, "skip_reason": "contained_code_fence"})
        return None, debug

    if _looks_like_json(raw):
        debug.update({"skipped": True, "skip_reason": "contained_json"})
        return None, debug

    raw = _TAG_RE.sub("", raw).strip()

    sentences = _split_sentences(raw)
    speak = raw
    if len(sentences) > max_sentences:
        speak = " ".join(sentences[:max_sentences]).strip()
        debug["truncated"] = True

    if len(speak) > max_chars:
        speak = speak[: max(0, max_chars - 1)].rstrip() + "…"
        debug["truncated"] = True

    speak = speak.strip()
    if not speak:
        debug.update({"skipped": True, "skip_reason": "empty_after_filter"})
        return None, debug

    debug["output_chars"] = len(speak)
    return speak, debug
