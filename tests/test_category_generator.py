import json

import pytest

from planit.schemas.category import DEFAULT_CONFIDENCE, DEFAULT_EMOJI, DEFAULT_VIBE
from planit.schemas.place import PlaceCategory
from planit.services.category_generator import generate_categories, parse_categories, parse_category
from planit.services import gemini
from planit.services.gemini import GeminiError, call_gemini, strip_fences

from conftest import StubGenerator, category_json


def test_parse_category_full_object():
    raw = category_json("late_night_ramen", "ramen late night", confidence=0.93, category="restaurant")
    raw["socialProofText"] = "Popular with night owls"

    parsed = parse_category(raw)

    assert parsed.id == "late_night_ramen"
    assert parsed.search_query == "ramen late night"
    assert parsed.category is PlaceCategory.RESTAURANTS
    assert parsed.confidence == pytest.approx(0.93)
    assert parsed.social_proof_text == "Popular with night owls"
    assert parsed.psychology_hook is None
    assert parsed.places == []


def test_optional_fields_fall_back_to_defaults():
    raw = category_json("quiet_cafes", "quiet cafe", category="cafes")
    del raw["confidence"], raw["personalizedEmoji"], raw["vibeDescription"]

    parsed = parse_category(raw)

    assert parsed.confidence == DEFAULT_CONFIDENCE
    assert parsed.personalized_emoji == DEFAULT_EMOJI
    assert parsed.vibe_description == DEFAULT_VIBE


@pytest.mark.parametrize("bad", [True, "0.9", None, [0.9]])
def test_wrongly_typed_confidence_uses_default(bad):
    raw = category_json("x", "bar", category="bars")
    raw["confidence"] = bad
    assert parse_category(raw).confidence == DEFAULT_CONFIDENCE


@pytest.mark.parametrize("field", ["id", "title", "subtitle", "reasoning", "searchQuery", "category"])
def test_missing_required_field_drops_object(field):
    raw = category_json("x", "bar", category="bars")
    del raw[field]
    assert parse_category(raw) is None


def test_unknown_category_defaults_to_restaurants():
    raw = category_json("museums", "art museum", category="museums")
    assert parse_category(raw).category is PlaceCategory.RESTAURANTS


def test_parse_categories_skips_bad_items():
    good = category_json("a", "q", category="venue")
    incomplete = {"id": "b", "title": "B"}
    text = json.dumps([good, incomplete, "not an object", 3])

    parsed = parse_categories(text)

    assert [c.id for c in parsed] == ["a"]
    assert parsed[0].category is PlaceCategory.VENUES


def test_parse_categories_accepts_fenced_json():
    body = json.dumps([category_json("a", "q")])
    assert [c.id for c in parse_categories(f"```json\n{body}\n```")] == ["a"]


@pytest.mark.parametrize(
    "text",
    [
        "Sure! Here are some categories you might enjoy.",
        json.dumps({"categories": [category_json("a", "q")]}),
        "",
    ],
)
def test_non_array_response_yields_nothing(text):
    assert parse_categories(text) == []


def test_strip_fences_without_closing_fence():
    assert strip_fences("```json\n[1, 2]") == "[1, 2]"
    assert strip_fences("  [1]  ") == "[1]"


async def test_generate_categories_swallows_generation_failure():
    generate = StubGenerator(GeminiError("both models down"))
    assert await generate_categories("prompt", generate) == []
    assert generate.prompts == ["prompt"]


async def test_generate_categories_parses_reply():
    generate = StubGenerator([category_json("a", "q"), category_json("b", "r", category="shopping")])
    parsed = await generate_categories("prompt", generate)
    assert [(c.id, c.category) for c in parsed] == [
        ("a", PlaceCategory.RESTAURANTS),
        ("b", PlaceCategory.SHOPPING),
    ]


@pytest.fixture
def model_replies(monkeypatch):
    replies = {}
    calls = []

    async def fake_generate(model, prompt, timeout):
        role = "primary" if model is gemini._primary_model else "fallback"
        calls.append(role)
        reply = replies[role]
        if isinstance(reply, Exception):
            raise reply
        return reply

    monkeypatch.setattr(gemini, "_generate", fake_generate)
    return replies, calls


async def test_primary_reply_is_used_as_is(model_replies):
    replies, calls = model_replies
    replies["primary"] = '[{"id": "a"}]'

    assert await call_gemini("prompt") == '[{"id": "a"}]'
    assert calls == ["primary"]


async def test_any_primary_failure_falls_back(model_replies):
    replies, calls = model_replies
    replies["primary"] = TimeoutError()
    replies["fallback"] = "```json\n[]\n```"

    text = await call_gemini("prompt")

    assert strip_fences(text) == "[]"
    assert calls == ["primary", "fallback"]


async def test_both_models_failing_raises(model_replies):
    replies, _ = model_replies
    replies["primary"] = RuntimeError("429 quota")
    replies["fallback"] = GeminiError("Empty response from gemma")

    with pytest.raises(GeminiError, match="Both"):
        await call_gemini("prompt")
