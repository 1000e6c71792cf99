"""
Gemini service — turns a category prompt into raw JSON text.

Primary model  : GEMINI_MODEL          (default: gemini-2.5-flash)
Fallback model : GEMINI_FALLBACK_MODEL (default: gemma-3-12b-it)

The primary model runs in JSON mode (response_mime_type=application/json), so
its reply is a bare JSON document. Gemma models do not support JSON mode; their
replies are plain text and may arrive wrapped in markdown fences, which
strip_fences removes before parsing.
"""

from __future__ import annotations

import asyncio
import logging

import google.generativeai as genai

from planit.config import settings

logger = logging.getLogger(__name__)

genai.configure(api_key=settings.google_api_key)

PRIMARY_TIMEOUT_SECONDS = 30
FALLBACK_TIMEOUT_SECONDS = 60   # larger model

# Twelve category objects need more room than a chat reply
MAX_OUTPUT_TOKENS = 4096
TEMPERATURE = 0.7

_primary_model = genai.GenerativeModel(
    settings.gemini_model,
    generation_config=genai.GenerationConfig(
        temperature=TEMPERATURE,
        max_output_tokens=MAX_OUTPUT_TOKENS,
        response_mime_type="application/json",
    ),
)
_fallback_model = genai.GenerativeModel(
    settings.gemini_fallback_model,
    generation_config=genai.GenerationConfig(
        temperature=TEMPERATURE,
        max_output_tokens=MAX_OUTPUT_TOKENS,
    ),
)


class GeminiError(Exception):
    """Raised when both primary and fallback models fail."""


async def _generate(model: genai.GenerativeModel, prompt: str, timeout: int) -> str:
    """One bounded call. An empty reply counts as a failure."""
    response = await asyncio.wait_for(
        asyncio.to_thread(model.generate_content, prompt),
        timeout=timeout,
    )
    text = (response.text or "").strip()
    if not text:
        raise GeminiError(f"Empty response from {model.model_name}")
    return text


async def call_gemini(prompt: str) -> str:
    """
    Ask the primary model for the category array; on any failure (quota,
    timeout, blocked or empty reply) retry once on the fallback model.

    Raises GeminiError if both models fail.
    """
    logger.debug("Category prompt (%s):\n%s", settings.gemini_model, prompt)

    try:
        text = await _generate(_primary_model, prompt, PRIMARY_TIMEOUT_SECONDS)
        logger.debug("Primary model response:\n%s", text)
        return text
    except Exception as primary_exc:
        logger.warning(
            "Primary model '%s' failed (%r), retrying on '%s'",
            settings.gemini_model,
            primary_exc,
            settings.gemini_fallback_model,
        )

    try:
        text = await _generate(_fallback_model, prompt, FALLBACK_TIMEOUT_SECONDS)
    except Exception as fallback_exc:
        logger.error(
            "Fallback model '%s' also failed: %r",
            settings.gemini_fallback_model,
            fallback_exc,
        )
        raise GeminiError(
            f"Both {settings.gemini_model} and {settings.gemini_fallback_model} failed; "
            f"last error: {fallback_exc!r}"
        ) from fallback_exc

    logger.info("Fallback model '%s' produced the categories.", settings.gemini_fallback_model)
    logger.debug("Fallback model response:\n%s", text)
    return text


def strip_fences(text: str) -> str:
    """Remove a surrounding markdown code fence (```json ... ```)."""
    cleaned = text.strip()
    if cleaned.startswith("```"):
        lines = cleaned.split("\n")
        body = lines[1:-1] if lines[-1].startswith("```") else lines[1:]
        cleaned = "\n".join(body)
    return cleaned.strip()
