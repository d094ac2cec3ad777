"""LLM client wrapper for OpenAI-compatible API calls."""

import base64
import time
from typing import Any, Optional

import httpx
import openai
import structlog
from openai import OpenAI

from chat2portfolio.config import Settings
from chat2portfolio.errors import ProviderError

logger = structlog.get_logger(__name__)

# SDK errors that mean "the provider did not answer usably": connection,
# rate-limit and status errors, and responses the SDK could not parse
PROVIDER_EXCEPTIONS = (
    openai.APIError,
    httpx.HTTPError,
)


class OpenAIGenerator:
    """
    The external generator: text completions and image descriptions.

    Every call is a single bounded request. SDK retries are disabled;
    retrying is a caller policy (see utils.retry).
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self._client: Optional[OpenAI] = None

    def get_client(self) -> OpenAI:
        """
        Get or create the OpenAI client.

        Raises:
            ProviderError: if no API key is configured.
        """
        if self._client is None:
            if not self.settings.openai_api_key:
                logger.warning("OpenAI API key not configured")
                raise ProviderError("Generator is not configured (set OPENAI_API_KEY)")

            timeout = httpx.Timeout(
                connect=min(10.0, self.settings.generator_timeout),
                read=self.settings.generator_timeout,
                write=30.0,
                pool=30.0,
            )
            self._client = OpenAI(
                api_key=self.settings.openai_api_key,
                base_url=self.settings.openai_base_url,
                timeout=self.settings.generator_timeout,
                max_retries=0,
                http_client=httpx.Client(timeout=timeout),
            )

        return self._client

    def complete(self, prompt: str, system_prompt: str, json_mode: bool = True) -> str:
        """
        Call the chat model with a single system + user prompt.

        Args:
            prompt: User prompt
            system_prompt: System prompt
            json_mode: Ask for a JSON object response

        Returns:
            Raw response text.

        Raises:
            ProviderError: on timeout, connection, rate-limit or status errors.
        """
        kwargs: dict[str, Any] = {
            "model": self.settings.chat_model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": prompt},
            ],
            "temperature": self.settings.generator_temperature,
            "max_tokens": self.settings.generator_max_tokens,
        }
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        return self._create(kwargs)

    def describe_image(self, prompt: str, image_bytes: bytes, mime_type: str) -> str:
        """
        Ask the vision model to describe one image.

        Args:
            prompt: Instruction for the description
            image_bytes: Raw image content
            mime_type: e.g. image/png

        Returns:
            Raw response text.
        """
        b64 = base64.b64encode(image_bytes).decode("ascii")
        kwargs: dict[str, Any] = {
            "model": self.settings.vision_model,
            "messages": [
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": prompt},
                        {
                            "type": "image_url",
                            "image_url": {"url": f"data:{mime_type};base64,{b64}"},
                        },
                    ],
                }
            ],
            "max_tokens": 1000,
        }
        return self._create(kwargs)

    def _create(self, kwargs: dict[str, Any]) -> str:
        client = self.get_client()
        model = kwargs["model"]
        started = time.monotonic()

        try:
            response = client.chat.completions.create(**kwargs)
        except openai.APITimeoutError as e:
            logger.error("LLM call timed out", model=model, timeout=self.settings.generator_timeout)
            raise ProviderError(f"Generator timed out after {self.settings.generator_timeout}s") from e
        except PROVIDER_EXCEPTIONS as e:
            logger.error("LLM call failed", model=model, error=str(e))
            raise ProviderError(f"Generator call failed: {e}") from e

        content = response.choices[0].message.content if response.choices else None
        result = (content or "").strip()
        logger.debug(
            "LLM call successful",
            model=model,
            response_length=len(result),
            elapsed_seconds=round(time.monotonic() - started, 2),
        )
        return result
