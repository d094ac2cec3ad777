"""Generation orchestrator: build the request, call the generator, validate the answer."""

import time
from typing import Any, Callable, Optional, Protocol

import structlog

from chat2portfolio.config import Settings
from chat2portfolio.errors import ProviderError
from chat2portfolio.prompts import (
    CHAT_PROMPT,
    REGENERATION_PROMPT,
    SYSTEM_PROMPT,
    VISION_PROMPT,
    format_conversation,
    format_profile,
)
from chat2portfolio.schemas.envelopes import EnvelopeKind, GenerationResult
from chat2portfolio.validator import ResponseValidator

logger = structlog.get_logger(__name__)


class Generator(Protocol):
    """The external text/vision collaborator. Raises ProviderError when it cannot answer."""

    def complete(self, prompt: str, system_prompt: str, json_mode: bool = True) -> str: ...

    def describe_image(self, prompt: str, image_bytes: bytes, mime_type: str) -> str: ...


class GenerationOrchestrator:
    """
    Owns the external call and its validation, nothing else.

    Pure with respect to local state: it receives documents as arguments and
    returns a GenerationResult. It never touches the store and never retries.
    """

    def __init__(
        self,
        generator: Generator,
        settings: Settings,
        validator: Optional[ResponseValidator] = None,
    ):
        self.generator = generator
        self.settings = settings
        self.validator = validator or ResponseValidator()

    @property
    def language(self) -> str:
        return self.settings.language

    def request_chat_turn(self, history: list[dict[str, Any]], profile: dict[str, Any]) -> GenerationResult:
        """
        Ask for the next question and an updated profile.

        Args:
            history: Turns including the pending one carrying the latest user message
            profile: Current committed profile
        """
        prompt = CHAT_PROMPT[self.language].format(
            conversation=format_conversation(history),
            profile=format_profile(profile),
        )
        return self._run(
            EnvelopeKind.CHAT,
            lambda: self.generator.complete(prompt, SYSTEM_PROMPT[self.language]),
        )

    def request_regeneration(
        self,
        profile: dict[str, Any],
        history: list[dict[str, Any]],
        current_code: dict[str, str],
    ) -> GenerationResult:
        """Ask for an updated profile and a full three-file site."""
        prompt = REGENERATION_PROMPT[self.language].format(
            conversation=format_conversation(history),
            profile=format_profile(profile),
            markup=current_code.get("markup", ""),
            style=current_code.get("style", ""),
            script=current_code.get("script", ""),
        )
        return self._run(
            EnvelopeKind.PROFILE_AND_CODE,
            lambda: self.generator.complete(prompt, SYSTEM_PROMPT[self.language]),
        )

    def request_image_description(self, image_bytes: bytes, mime_type: str) -> GenerationResult:
        """Ask the vision model to describe one image."""
        return self._run(
            EnvelopeKind.VISION,
            lambda: self.generator.describe_image(VISION_PROMPT[self.language], image_bytes, mime_type),
        )

    def _run(self, kind: EnvelopeKind, call: Callable[[], str]) -> GenerationResult:
        started = time.monotonic()

        try:
            raw = call()
        except ProviderError as e:
            duration = time.monotonic() - started
            logger.warning("Generator unavailable", kind=kind.value, error=e.message)
            return GenerationResult(status="provider_error", reason=e.message, duration_seconds=duration)

        validation = self.validator.validate(raw, kind)
        duration = time.monotonic() - started

        if not validation.valid:
            return GenerationResult(
                status="invalid",
                reason=validation.reason,
                raw_text=validation.raw_text,
                duration_seconds=duration,
            )

        logger.info("Generator answer accepted", kind=kind.value, duration_seconds=round(duration, 2))
        return GenerationResult(
            status="valid",
            envelope=validation.envelope,
            raw_text=raw,
            duration_seconds=duration,
        )
