"""
Category generator — turns a prompt into CategoryDescriptors via Gemini.

Parsing is field-by-field and forgiving: objects missing a required field are
dropped, optional fields fall back to fixed defaults, and an unparseable
response yields an empty list. Nothing here raises.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Awaitable, Callable, Optional

from planit.schemas.category import (
    DEFAULT_CONFIDENCE,
    DEFAULT_EMOJI,
    DEFAULT_VIBE,
    CategoryDescriptor,
)
from planit.schemas.place import PlaceCategory
from planit.services.gemini import GeminiError, call_gemini, strip_fences

logger = logging.getLogger(__name__)

TextGenerator = Callable[[str], Awaitable[str]]

_REQUIRED_FIELDS = ("id", "title", "subtitle", "reasoning", "searchQuery", "category")


def _optional_str(raw: dict[str, Any], key: str, default: Optional[str]) -> Optional[str]:
    value = raw.get(key)
    return value if isinstance(value, str) else default


def _confidence(raw: dict[str, Any]) -> float:
    value = raw.get("confidence")
    # bool is an int subclass; true/false is not a confidence
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return DEFAULT_CONFIDENCE
    return float(value)


def parse_category(raw: dict[str, Any]) -> Optional[CategoryDescriptor]:
    """Build one descriptor, or None when a required field is missing."""
    missing = [k for k in _REQUIRED_FIELDS if not isinstance(raw.get(k), str)]
    if missing:
        logger.warning("Dropping generated category %r — missing %s", raw.get("id"), missing)
        return None

    category = PlaceCategory.parse(raw["category"])
    if category is None:
        logger.warning(
            "Unknown category %r for %r — defaulting to restaurants",
            raw["category"],
            raw["id"],
        )
        category = PlaceCategory.RESTAURANTS

    return CategoryDescriptor(
        id=raw["id"],
        title=raw["title"],
        subtitle=raw["subtitle"],
        reasoning=raw["reasoning"],
        search_query=raw["searchQuery"],
        category=category,
        confidence=_confidence(raw),
        personalized_emoji=_optional_str(raw, "personalizedEmoji", DEFAULT_EMOJI),
        vibe_description=_optional_str(raw, "vibeDescription", DEFAULT_VIBE),
        social_proof_text=_optional_str(raw, "socialProofText", None),
        psychology_hook=_optional_str(raw, "psychologyHook", None),
    )


def parse_categories(text: str) -> list[CategoryDescriptor]:
    """
    Parse a raw model response into descriptors.
    Returns [] if the top level is not a JSON array.
    """
    try:
        data = json.loads(strip_fences(text))
    except json.JSONDecodeError as exc:
        logger.error("Failed to parse category JSON: %s\nRaw: %s", exc, text[:500])
        return []

    if not isinstance(data, list):
        logger.error("Category response is %s, expected a JSON array", type(data).__name__)
        return []

    categories: list[CategoryDescriptor] = []
    for item in data:
        if not isinstance(item, dict):
            continue
        parsed = parse_category(item)
        if parsed is not None:
            categories.append(parsed)

    logger.info("Parsed %d/%d generated categories", len(categories), len(data))
    return categories


async def generate_categories(
    prompt: str,
    generate: TextGenerator = call_gemini,
) -> list[CategoryDescriptor]:
    """Send the prompt and parse the reply. Any failure yields []."""
    try:
        raw = await generate(prompt)
    except GeminiError as exc:
        logger.warning("Category generation failed: %s", exc)
        return []
    return parse_categories(raw)
