"""Shared fixtures: isolated store directories and a scripted generator."""

import json
import re
import time
from typing import Callable, Optional

import pytest

from chat2portfolio.config import Settings
from chat2portfolio.errors import ProviderError
from chat2portfolio.orchestrator import GenerationOrchestrator
from chat2portfolio.store import DocumentStore


def echo_chat_answer(prompt: str) -> str:
    """Valid chat envelope answering the latest user line of the prompt."""
    users = re.findall(r"^User: (.*)$", prompt, re.MULTILINE)
    latest = users[-1] if users else ""
    return json.dumps(
        {
            "nextQuestion": f"Nice! What else about {latest}?",
            "updatedUserProfile": {"name": "Ada", "lastMessage": latest},
        }
    )


def site_answer(prompt: str) -> str:
    """Valid regeneration envelope."""
    return json.dumps(
        {
            "updatedUserProfile": {"name": "Ada", "skills": ["python"]},
            "updatedCode": {
                "markup": "<html><body><h1>Ada</h1></body></html>",
                "style": "h1 { color: teal; }",
                "script": "console.log('ada');",
            },
        }
    )


class FakeGenerator:
    """
    Scripted stand-in for the external generator.

    ``responder(prompt)`` and ``vision(image_bytes, mime_type)`` return raw
    text or raise ProviderError.
    """

    def __init__(
        self,
        responder: Optional[Callable[[str], str]] = None,
        vision: Optional[Callable[[bytes, str], str]] = None,
        delay: float = 0.0,
    ):
        self.responder = responder or echo_chat_answer
        self.vision = vision or (lambda data, mime: f"A picture of {data.decode(errors='ignore')}")
        self.delay = delay
        self.prompts: list[str] = []
        self.images: list[bytes] = []

    def complete(self, prompt: str, system_prompt: str, json_mode: bool = True) -> str:
        self.prompts.append(prompt)
        if self.delay:
            time.sleep(self.delay)
        return self.responder(prompt)

    def describe_image(self, prompt: str, image_bytes: bytes, mime_type: str) -> str:
        self.images.append(image_bytes)
        return self.vision(image_bytes, mime_type)


def failing(message: str = "connection refused") -> Callable[..., str]:
    def _raise(*args, **kwargs) -> str:
        raise ProviderError(message)

    return _raise


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        data_dir=tmp_path / "data",
        site_dir=tmp_path / "portfolio",
        log_dir=tmp_path / "logs",
        openai_api_key="",
        provider_retries=0,
        provider_retry_delay=0.0,
        concurrency_mode="pessimistic",
    )


@pytest.fixture
def store(settings) -> DocumentStore:
    store = DocumentStore.from_settings(settings)
    store.init_defaults()
    return store


@pytest.fixture
def generator() -> FakeGenerator:
    return FakeGenerator()


@pytest.fixture
def orchestrator(generator, settings) -> GenerationOrchestrator:
    return GenerationOrchestrator(generator, settings)


def read_bytes(store: DocumentStore) -> dict[str, bytes]:
    """Raw bytes of every persisted document file."""
    paths = [
        store.data_dir / "chat-history.json",
        store.data_dir / "user-profile.json",
        store.site_dir / "index.html",
        store.site_dir / "style.css",
        store.site_dir / "script.js",
    ]
    return {path.name: path.read_bytes() for path in paths}
