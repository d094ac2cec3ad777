"""Validation of raw generator output against the expected envelope."""

import json
import re
from typing import Any, Optional

import structlog
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from chat2portfolio.schemas.envelopes import (
    ChatEnvelope,
    EnvelopeKind,
    ProfileAndCodeEnvelope,
    ValidationResult,
    VisionDescription,
)

logger = structlog.get_logger(__name__)

# A single fenced block, optionally tagged (```json, ```JSON, ```), possibly surrounded by prose
_FENCE_RE = re.compile(r"```[A-Za-z0-9_-]*[ \t]*\r?\n(.*?)\r?\n?```", re.DOTALL)

ENVELOPE_MODELS: dict[EnvelopeKind, type[BaseModel]] = {
    EnvelopeKind.CHAT: ChatEnvelope,
    EnvelopeKind.PROFILE_AND_CODE: ProfileAndCodeEnvelope,
    EnvelopeKind.VISION: VisionDescription,
}

# How much raw text to keep in logs
PREVIEW_CHARS = 200


def strip_code_fences(text: Optional[str]) -> str:
    """
    Remove incidental markdown code-fence wrapping.

    Only the outer wrapping is touched: when the text starts with a fence the
    opening line goes, and a closing fence at the very end goes with it.
    Fences inside the content are kept.

    Args:
        text: Raw generator text

    Returns:
        The unwrapped text, stripped.
    """
    if not text:
        return ""

    cleaned = text.strip()
    if not cleaned.startswith("```"):
        return cleaned

    # Remove first line (```json or ```) and the closing ``` if present
    lines = cleaned.split("\n")
    body = "\n".join(lines[1:]).rstrip()
    if body.endswith("```"):
        body = body[:-3]
    return body.strip()


def extract_fenced_block(text: Optional[str]) -> Optional[str]:
    """Content of the first fenced block in ``text``, for answers with prose around the fence."""
    match = _FENCE_RE.search(text or "")
    return match.group(1).strip() if match else None


def _loads(text: Optional[str]) -> Optional[Any]:
    if not text:
        return None
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return None


def parse_json_response(text: Optional[str]) -> Optional[Any]:
    """
    Parse generator JSON after fence stripping.

    Falls back to the first fenced block, then to the outermost braces, only
    when the unwrapped text itself is not JSON.

    Args:
        text: Raw generator text

    Returns:
        Parsed value, or None on failure.
    """
    cleaned = strip_code_fences(text)
    if not cleaned:
        return None

    parsed = _loads(cleaned)
    if parsed is not None:
        return parsed

    # Prose before/after a fenced block
    parsed = _loads(extract_fenced_block(text))
    if parsed is not None:
        return parsed

    # Prose before/after a bare object: take the outermost braces
    start = cleaned.find("{")
    end = cleaned.rfind("}")
    if 0 <= start < end:
        return _loads(cleaned[start : end + 1])

    return None


def _describe_errors(error: PydanticValidationError) -> str:
    parts = []
    for item in error.errors():
        location = ".".join(str(p) for p in item["loc"]) or "<root>"
        parts.append(f"{location}: {item['msg']}")
    return "; ".join(parts)


class ResponseValidator:
    """
    Check generator output against the envelope for a request kind.

    Never raises: every parse or shape failure becomes an invalid
    ValidationResult carrying the reason and the raw text.
    """

    def validate(self, raw_text: Optional[str], kind: EnvelopeKind) -> ValidationResult:
        raw = raw_text or ""

        if not raw.strip():
            return self._invalid(kind, "Empty response", raw)

        parsed = parse_json_response(raw)

        if kind is EnvelopeKind.VISION and not isinstance(parsed, dict):
            # Vision models answer in prose: the text itself is the description
            description = strip_code_fences(raw)
            if not description:
                return self._invalid(kind, "Required field is empty: description", raw)
            return ValidationResult(
                kind=kind,
                valid=True,
                envelope=VisionDescription(description=description),
                raw_text=raw,
            )

        if parsed is None:
            return self._invalid(kind, "Response is not valid JSON", raw)
        if not isinstance(parsed, dict):
            return self._invalid(kind, f"Expected a JSON object, got {type(parsed).__name__}", raw)

        model = ENVELOPE_MODELS[kind]
        try:
            envelope = model.model_validate(parsed, strict=True)
        except PydanticValidationError as e:
            return self._invalid(kind, f"Envelope shape mismatch: {_describe_errors(e)}", raw)

        empty = self._empty_required_text(envelope)
        if empty:
            return self._invalid(kind, f"Required field is empty: {empty}", raw)

        return ValidationResult(kind=kind, valid=True, envelope=envelope, raw_text=raw)

    @staticmethod
    def _empty_required_text(envelope: BaseModel) -> Optional[str]:
        if isinstance(envelope, ChatEnvelope) and not envelope.next_question.strip():
            return "nextQuestion"
        if isinstance(envelope, VisionDescription) and not envelope.description.strip():
            return "description"
        return None

    @staticmethod
    def _invalid(kind: EnvelopeKind, reason: str, raw: str) -> ValidationResult:
        logger.warning(
            "Generator response rejected",
            kind=kind.value,
            reason=reason,
            preview=raw[:PREVIEW_CHARS],
        )
        return ValidationResult(kind=kind, valid=False, reason=reason, raw_text=raw)
