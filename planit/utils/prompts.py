"""
Prompt template builders for all Gemini calls.
All prompt strings live here — no hardcoded prompts elsewhere in the codebase.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from planit.schemas.fingerprint import UserFingerprint
from planit.schemas.place import Coordinates

CATEGORY_COUNT = 12
RECENT_INTERACTION_WINDOW = 10


# ── Context helpers ──────────────────────────────────────────────────────────


def time_of_day(now: datetime) -> str:
    """Bucket the hour into Morning / Afternoon / Evening / Night."""
    hour = now.hour
    if 5 <= hour < 12:
        return "Morning"
    if 12 <= hour < 17:
        return "Afternoon"
    if 17 <= hour < 21:
        return "Evening"
    return "Night"


def day_of_week(now: datetime) -> str:
    return now.strftime("%A")


def build_onboarding_context(fingerprint: UserFingerprint) -> str:
    """One 'question: option, option' line per onboarding answer."""
    if not fingerprint.onboarding_responses:
        return "No onboarding preferences available"

    lines = [
        f"{r.question_id}: {', '.join(r.selected_options)}"
        for r in fingerprint.onboarding_responses
        if r.selected_options
    ]
    return "\n".join(lines) if lines else "No preferences available"


def build_interaction_context(fingerprint: UserFingerprint) -> str:
    """Summarise the liked places among the most recent interaction log entries."""
    if not fingerprint.interaction_logs:
        return "No interaction history available"

    recent = fingerprint.interaction_logs[-RECENT_INTERACTION_WINDOW:]
    liked = [
        str(entry.get("place_name"))
        for entry in recent
        if entry.get("interaction") == "liked" and entry.get("place_name")
    ]
    if not liked:
        return "No recent interaction patterns"
    return f"Recently liked: {', '.join(liked)}"


# ── Category generation ──────────────────────────────────────────────────────


def build_category_prompt(
    fingerprint: Optional[UserFingerprint],
    location: Coordinates,
    now: datetime,
    weather: str,
) -> str:
    """
    Build the prompt asking Gemini for exactly 12 personalised category
    descriptors as a bare JSON array.

    The response is parsed as raw JSON — any prose or markdown around the
    array makes the whole attempt count as a failure.
    """
    if fingerprint is not None:
        likes = ", ".join(fingerprint.likes) or "general places"
        dislikes = ", ".join(fingerprint.dislikes) or "none specified"
        preferences = build_onboarding_context(fingerprint)
        patterns = build_interaction_context(fingerprint)
    else:
        likes = "general places"
        dislikes = "none specified"
        preferences = "No onboarding preferences available"
        patterns = "No interaction history available"

    period = time_of_day(now)

    return f"""RESPOND WITH ONLY A VALID JSON ARRAY - NO OTHER TEXT OR MARKDOWN!

Create {CATEGORY_COUNT} highly personalized place categories for this user based on their behavioral data.

## USER DATA
Location: {location.lat}, {location.lng}
Time: {period} - {day_of_week(now)}
Likes: {likes}
Dislikes: {dislikes}
Preferences: {preferences}
Interaction Patterns: {patterns}
Weather: {weather}

## CATEGORY REQUIREMENTS
- Use VERY specific, personalized titles (not generic like "restaurants")
- Include emotional/vibe descriptors (cozy, trendy, intimate, energetic)
- Reference specific cuisine types, atmospheres, or unique features
- Make reasoning personal using "you" and specific user data
- Vary confidence (0.0–1.0) based on how well it matches user patterns
- Include time-sensitive categories for the current time and weather
- "category" MUST be one of: restaurants, cafes, bars, venues, shopping
- "searchQuery" is sent verbatim to a places text search

## OUTPUT FORMAT
Output exactly {CATEGORY_COUNT} objects in a single JSON array.
No markdown fences. No preamble. No explanation after the array.
Every object must have: id, title, subtitle, reasoning, searchQuery, category,
confidence, personalizedEmoji, vibeDescription.

Example:
[
  {{
    "id": "cozy_italian_hideaways",
    "title": "Cozy Italian Hideaways You'll Love",
    "subtitle": "Intimate pasta spots with that warm, authentic vibe",
    "reasoning": "You love cozy atmospheres and Italian food based on your recent likes",
    "searchQuery": "italian restaurant cozy intimate authentic pasta",
    "category": "restaurants",
    "confidence": 0.95,
    "personalizedEmoji": "🍝",
    "vibeDescription": "Warm, intimate Italian dining with authentic charm"
  }},
  {{
    "id": "artisanal_coffee_culture",
    "title": "Artisanal Coffee Culture Spots",
    "subtitle": "Third-wave coffee with laptop-friendly vibes",
    "reasoning": "Your {period.lower()} routine shows you appreciate quality coffee",
    "searchQuery": "specialty coffee third wave artisanal laptop friendly",
    "category": "cafes",
    "confidence": 0.92,
    "personalizedEmoji": "☕",
    "vibeDescription": "Serious coffee craft in welcoming, productive spaces"
  }}
]

CRITICAL: Make each category hyper-personalized using the user's specific data. Avoid generic titles."""
