"""
Gemini service — wraps Google Generative AI calls for text and vision.

Primary model  : GEMINI_MODEL          (default: gemini-2.5-flash)
Fallback model : GEMINI_FALLBACK_MODEL (default: gemma-3-12b-it)

Any error from the primary (quota exhaustion, 429, network, etc.) retries the
same request once on the fallback model before raising GeminiError. Image
requests go to the primary model only; the fallback is text-only.
When no API key is configured every call raises GeminiError immediately.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import logging
import re
from typing import Any, Optional

import google.generativeai as genai

from menuguard.config import settings

logger = logging.getLogger(__name__)

if settings.ai_configured:
    genai.configure(api_key=settings.google_api_key)

PRIMARY_TIMEOUT_SECONDS = 30
FALLBACK_TIMEOUT_SECONDS = 60
VISION_TIMEOUT_SECONDS = 90

_QUOTA_INDICATORS = ("RESOURCE_EXHAUSTED", "429", "quota", "rate limit")

_DATA_URL_RE = re.compile(r"^data:(?P<mime>[\w/+.-]+);base64,(?P<data>.*)$", re.DOTALL)


class GeminiError(Exception):
    """Raised when the model is unconfigured or every attempt failed."""


def _is_quota_error(exc: Exception) -> bool:
    """Return True if the exception looks like a quota / rate-limit error."""
    msg = str(exc).lower()
    return any(indicator.lower() in msg for indicator in _QUOTA_INDICATORS)


def decode_image(image: str) -> tuple[str, bytes]:
    """
    Split a base64 image (plain or data: URL) into (mime_type, bytes).
    Plain base64 is assumed to be JPEG. Raises GeminiError on bad base64.
    """
    mime_type = "image/jpeg"
    payload = image.strip()
    match = _DATA_URL_RE.match(payload)
    if match:
        mime_type = match.group("mime")
        payload = match.group("data")
    try:
        return mime_type, base64.b64decode(payload, validate=False)
    except (binascii.Error, ValueError) as exc:
        raise GeminiError(f"Image payload is not valid base64: {exc}") from exc


async def _call_model(
    model_name: str,
    contents: Any,
    timeout: int,
    temperature: float,
    max_output_tokens: int,
) -> str:
    """Call a single model; the caller decides whether to retry."""
    model = genai.GenerativeModel(model_name)
    response = await asyncio.wait_for(
        asyncio.to_thread(
            model.generate_content,
            contents,
            generation_config=genai.GenerationConfig(
                temperature=temperature,
                max_output_tokens=max_output_tokens,
            ),
        ),
        timeout=timeout,
    )
    return response.text.strip()


async def call_gemini(
    prompt: str,
    image: Optional[str] = None,
    temperature: float = 0.2,
    max_output_tokens: int = 2048,
) -> str:
    """
    Send a prompt (and optionally one image) and return the raw text reply.

    Text prompts try the primary model, then the fallback. Image prompts
    only try the primary model.
    """
    if not settings.ai_configured:
        raise GeminiError("GOOGLE_API_KEY is not configured")

    contents: Any = prompt
    if image is not None:
        mime_type, data = decode_image(image)
        contents = [prompt, {"mime_type": mime_type, "data": data}]

    logger.debug("Gemini prompt (%s):\n%s", settings.gemini_model, prompt)

    # ── Attempt 1: primary model ─────────────────────────────────────────────
    try:
        text = await _call_model(
            settings.gemini_model,
            contents,
            VISION_TIMEOUT_SECONDS if image is not None else PRIMARY_TIMEOUT_SECONDS,
            temperature,
            max_output_tokens,
        )
        logger.debug("Primary model response:\n%s", text)
        return text
    except Exception as primary_exc:
        if image is not None:
            logger.error("Vision call on '%s' failed: %s", settings.gemini_model, primary_exc)
            raise GeminiError(f"Vision model failed: {primary_exc}") from primary_exc
        if _is_quota_error(primary_exc):
            logger.warning(
                "Primary model '%s' quota exhausted, switching to fallback '%s'",
                settings.gemini_model,
                settings.gemini_fallback_model,
            )
        else:
            logger.warning(
                "Primary model '%s' failed (%s), switching to fallback '%s'",
                settings.gemini_model,
                primary_exc,
                settings.gemini_fallback_model,
            )

    # ── Attempt 2: fallback model ─────────────────────────────────────────────
    try:
        text = await _call_model(
            settings.gemini_fallback_model,
            contents,
            FALLBACK_TIMEOUT_SECONDS,
            temperature,
            max_output_tokens,
        )
        logger.info("Fallback model '%s' succeeded.", settings.gemini_fallback_model)
        logger.debug("Fallback model response:\n%s", text)
        return text
    except Exception as fallback_exc:
        logger.error(
            "Fallback model '%s' also failed: %s",
            settings.gemini_fallback_model,
            fallback_exc,
        )
        raise GeminiError(
            f"Both primary ({settings.gemini_model}) and fallback "
            f"({settings.gemini_fallback_model}) models failed. "
            f"Last error: {fallback_exc}"
        ) from fallback_exc
