"""Tests for LANGUAGE=zh localization support."""

import pytest

from chat2portfolio.config import Settings
from chat2portfolio.orchestrator import GenerationOrchestrator
from chat2portfolio.prompts import CHAT_PROMPT, REGENERATION_PROMPT, SYSTEM_PROMPT, VISION_PROMPT

from conftest import FakeGenerator


# --- Config defaults ---


def test_config_default_language_en():
    """Default language is 'en'."""
    s = Settings(language="en")
    assert s.language == "en"


def test_config_language_zh():
    s = Settings(language="zh")
    assert s.language == "zh"


def test_config_rejects_unknown_concurrency_mode():
    with pytest.raises(ValueError):
        Settings(concurrency_mode="yolo")


# --- Prompt selection ---


@pytest.mark.parametrize("prompts", [SYSTEM_PROMPT, CHAT_PROMPT, REGENERATION_PROMPT, VISION_PROMPT])
def test_prompt_has_both_languages(prompts):
    assert set(prompts) == {"en", "zh"}


@pytest.mark.parametrize("language", ["en", "zh"])
def test_chat_prompt_placeholders(language):
    assert "{conversation}" in CHAT_PROMPT[language]
    assert "{profile}" in CHAT_PROMPT[language]


@pytest.mark.parametrize("language", ["en", "zh"])
def test_regeneration_prompt_placeholders(language):
    for placeholder in ("{conversation}", "{profile}", "{markup}", "{style}", "{script}"):
        assert placeholder in REGENERATION_PROMPT[language]


def test_orchestrator_uses_zh_prompt(tmp_path):
    generator = FakeGenerator()
    orchestrator = GenerationOrchestrator(generator, Settings(language="zh", data_dir=tmp_path))

    result = orchestrator.request_chat_turn([{"user": "你好", "bot": ""}], {})

    assert result.ok
    assert "以下是现有的聊天记录" in generator.prompts[0]
    assert "User: 你好" in generator.prompts[0]
