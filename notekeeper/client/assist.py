"""
Text Improvement Service (client side).

Two interchangeable implementations behind the AssistService protocol:

    TextImprovementService       POSTs to the gateway's improve-text endpoint
    LocalTextImprovementService  offline heuristics, no network

Both are advisory single-flight: while a request is outstanding,
is_available() is False and improve() returns None immediately.
"""

import asyncio
import re
from typing import Any, Protocol

import httpx

from notekeeper.backend.core.config_schema import AssistClientSchema
from notekeeper.backend.core.logging import get_logger, log_with_source
from notekeeper.client.api import APIClient
from notekeeper.client.errors import AssistError, AssistReason, ValidationError
from notekeeper.rendering.normalize import clean_improved_text

logger = get_logger(__name__)

DEFAULT_ENDPOINT = "/api/v1/improve-text"
DEFAULT_MAX_LENGTH = 512
DEFAULT_TEMPERATURE = 0.3
TEST_PROBE_TEXT = "test"


class AssistService(Protocol):
    """What the editor controller needs from an assist implementation."""

    def is_available(self) -> bool: ...

    async def improve(self, text: str) -> str | None: ...

    async def test_connection(self) -> dict[str, Any]: ...


def _require_text(text: str | None) -> str:
    if text is None or not text.strip():
        raise ValidationError("No text to improve")
    return text.strip()


class TextImprovementService:
    """
    Client for the text improvement gateway.

    The raw paragraph is sent; the gateway owns the instruction prompt.
    max_length is twice the text length, capped at max_length.
    """

    def __init__(
        self,
        api: APIClient,
        endpoint: str = DEFAULT_ENDPOINT,
        max_length: int = DEFAULT_MAX_LENGTH,
        temperature: float = DEFAULT_TEMPERATURE,
    ) -> None:
        self._api = api
        self._endpoint = endpoint
        self._max_length = max_length
        self._temperature = temperature
        self._processing = False

    def is_available(self) -> bool:
        return not self._processing

    def build_payload(self, text: str) -> dict[str, Any]:
        """Request body for the gateway."""
        return {
            "text": text,
            "max_length": max(1, min(self._max_length, len(text) * 2)),
            "temperature": self._temperature,
        }

    async def improve(self, text: str) -> str | None:
        """
        Improve a paragraph through the gateway.

        Returns:
            Cleaned improved text, or None if a request is already in flight

        Raises:
            ValidationError: Empty or whitespace-only text (no network call)
            AssistError: Transport failure, gateway error status or empty output
        """
        if self._processing:
            return None
        clean_text = _require_text(text)

        self._processing = True
        try:
            return await self._request(clean_text)
        finally:
            self._processing = False

    async def _request(self, text: str) -> str:
        log_with_source(
            logger,
            "client",
            "info",
            "Requesting text improvement",
            text_length=len(text),
        )
        try:
            response = await self._api.post(self._endpoint, json=self.build_payload(text))
        except httpx.HTTPError as e:
            raise AssistError(AssistReason.NETWORK, detail=str(e)) from e

        if response.is_error:
            detail = _error_detail(response)
            log_with_source(
                logger,
                "client",
                "warning",
                "Text improvement failed",
                status_code=response.status_code,
                detail=detail,
            )
            raise AssistError.from_status(response.status_code, detail)

        try:
            body = response.json()
        except ValueError as e:
            raise AssistError(AssistReason.UPSTREAM, detail="Invalid JSON from gateway") from e

        generated = ""
        if isinstance(body, dict):
            generated = body.get("generated_text") or body.get("text") or ""
        if not generated.strip():
            raise AssistError(AssistReason.EMPTY_RESPONSE)

        cleaned = clean_improved_text(generated)
        if not cleaned:
            raise AssistError(AssistReason.EMPTY_RESPONSE)
        return cleaned

    async def test_connection(self) -> dict[str, Any]:
        """Send the gateway test probe. Never raises."""
        try:
            response = await self._api.post(self._endpoint, json={"text": TEST_PROBE_TEXT})
        except httpx.HTTPError as e:
            return {"success": False, "error": str(e)}
        return {"success": response.is_success, "status": response.status_code}


def _error_detail(response: httpx.Response) -> str | None:
    try:
        body = response.json()
    except ValueError:
        return response.text or None
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict):
            return error.get("message")
        return error
    return None


# =============================================================================
# Offline heuristics
# =============================================================================

FILLER_WORDS = (
    "like", "you know", "um", "uh", "basically", "actually", "literally",
    "totally", "really", "very", "quite", "pretty", "just", "only", "maybe",
    "perhaps", "probably", "definitely", "absolutely", "completely",
    "entirely", "extremely", "incredibly", "amazing", "awesome", "super",
    "mega", "ultra",
)
REDUNDANT_PHRASES = (
    "I think that", "I believe that", "in my opinion", "it seems like",
    "it appears that", "I feel like", "the fact that", "the thing is",
)
WORDY_PHRASES = {
    "in order to": "to",
    "due to the fact that": "because",
    "at this point in time": "now",
    "in the event that": "if",
    "for the reason that": "because",
    "until such time as": "until",
    "with regard to": "about",
    "in relation to": "about",
    "at the present time": "now",
    "in spite of the fact that": "although",
    "on the basis of": "based on",
    "for the purpose of": "to",
    "in the process of": "while",
    "a large number of": "many",
    "a great deal of": "much",
    "prior to": "before",
    "subsequent to": "after",
    "in the vicinity of": "near",
}
LOCAL_BULLET = "•"
MAX_BULLETS = 8

_FILLER_RE = re.compile(r"\b(?:" + "|".join(FILLER_WORDS) + r")\b", re.IGNORECASE)
_REDUNDANT_RE = re.compile(r"\b(?:" + "|".join(REDUNDANT_PHRASES) + r")\b", re.IGNORECASE)
_WORDY_RES = [
    (re.compile(rf"\b{re.escape(wordy)}\b", re.IGNORECASE), simple)
    for wordy, simple in WORDY_PHRASES.items()
]


def _capitalize(text: str) -> str:
    return text[:1].upper() + text[1:]


def _tidy_sentence(sentence: str) -> str:
    s = _FILLER_RE.sub("", sentence)
    s = _REDUNDANT_RE.sub("", s)
    for pattern, simple in _WORDY_RES:
        s = pattern.sub(simple, s)
    s = re.sub(r"\s+", " ", s)
    s = re.sub(r",\s*,", ",", s)
    return s.strip()


def should_convert_to_bullets(text: str) -> bool:
    and_count = len(re.findall(r"\band\b", text, re.IGNORECASE))
    return (and_count >= 2 or text.count(",") >= 3) and len(text) > 50


def convert_to_bullets(text: str) -> str:
    """Split a run-on list on " and " (or ", ") into one bullet per item."""
    if " and " in text:
        parts = re.split(r"\sand\s", text)
    elif ", " in text:
        parts = re.split(r",\s*", text)
    else:
        return text

    if len(parts) <= 1 or len(parts) > MAX_BULLETS:
        return text

    bullets = []
    for index, part in enumerate(parts):
        item = part.strip()
        if index < len(parts) - 1:
            item = re.sub(r"[.!?]+$", "", item)
        bullets.append(f"{LOCAL_BULLET} {_capitalize(item)}")
    return "\n".join(bullets)


def improve_text_locally(text: str) -> str:
    """
    Tighten text without a model.

    Drops filler words and redundant phrases, replaces wordy phrases,
    turns run-on lists into bullets and capitalizes the first letter.
    Falls back to the input when nothing is left.
    """
    sentences = [s for s in re.split(r"[.!?]+", text) if s.strip()]
    improved = ". ".join(s for s in (_tidy_sentence(s) for s in sentences) if s)

    if improved and not re.search(r"[.!?]$", improved):
        improved += "."
    if should_convert_to_bullets(improved):
        improved = convert_to_bullets(improved)

    return _capitalize(improved) or text


class LocalTextImprovementService:
    """Offline assist using improve_text_locally."""

    def __init__(self, delay: float = 0.5) -> None:
        self._delay = delay
        self._processing = False

    def is_available(self) -> bool:
        return not self._processing

    async def improve(self, text: str) -> str | None:
        if self._processing:
            return None
        clean_text = _require_text(text)

        self._processing = True
        try:
            if self._delay:
                await asyncio.sleep(self._delay)
            return improve_text_locally(clean_text)
        finally:
            self._processing = False

    async def test_connection(self) -> dict[str, Any]:
        return {
            "success": True,
            "status": 200,
            "data": {"message": "Local text improvement is working"},
        }


def build_assist_service(api: APIClient, config: AssistClientSchema) -> AssistService:
    """Assist implementation selected by editor.yaml assist.mode."""
    if config.mode == "local":
        return LocalTextImprovementService()
    return TextImprovementService(
        api,
        endpoint=config.endpoint,
        max_length=config.max_length,
        temperature=config.temperature,
    )
