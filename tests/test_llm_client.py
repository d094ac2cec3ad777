"""Tests for OpenAIGenerator: client construction and provider error mapping."""

from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import httpx
import openai
import pytest

from chat2portfolio.config import Settings
from chat2portfolio.errors import ProviderError
from chat2portfolio.utils.llm_client import OpenAIGenerator

REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")


def _response(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


def _generator(**overrides) -> OpenAIGenerator:
    values = {"openai_api_key": "sk-test", "generator_timeout": 5.0}
    values.update(overrides)
    return OpenAIGenerator(Settings(**values))


def _with_client(generator: OpenAIGenerator, create) -> MagicMock:
    client = MagicMock()
    client.chat.completions.create.side_effect = create
    generator._client = client
    return client


class TestGetClient:
    def test_missing_key_is_provider_error(self):
        with pytest.raises(ProviderError):
            _generator(openai_api_key="").get_client()

    def test_sdk_retries_disabled_and_timeout_bounded(self):
        with patch("chat2portfolio.utils.llm_client.OpenAI") as mock_openai:
            _generator().get_client()

        kwargs = mock_openai.call_args.kwargs
        assert kwargs["max_retries"] == 0
        assert kwargs["timeout"] == 5.0
        assert kwargs["api_key"] == "sk-test"

    def test_client_is_reused(self):
        generator = _generator()
        with patch("chat2portfolio.utils.llm_client.OpenAI") as mock_openai:
            assert generator.get_client() is generator.get_client()
        assert mock_openai.call_count == 1


class TestComplete:
    def test_returns_stripped_content(self):
        generator = _generator()
        client = _with_client(generator, lambda **kwargs: _response('  {"a": 1}\n'))

        assert generator.complete("prompt", "system") == '{"a": 1}'

        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["response_format"] == {"type": "json_object"}
        assert kwargs["messages"][0] == {"role": "system", "content": "system"}
        assert kwargs["messages"][1] == {"role": "user", "content": "prompt"}

    def test_json_mode_off(self):
        generator = _generator()
        client = _with_client(generator, lambda **kwargs: _response("hi"))

        generator.complete("prompt", "system", json_mode=False)

        assert "response_format" not in client.chat.completions.create.call_args.kwargs

    def test_empty_choices_give_empty_text(self):
        generator = _generator()
        _with_client(generator, lambda **kwargs: SimpleNamespace(choices=[]))
        assert generator.complete("prompt", "system") == ""

    def test_timeout_is_provider_error(self):
        generator = _generator()
        _with_client(generator, openai.APITimeoutError(request=REQUEST))

        with pytest.raises(ProviderError) as excinfo:
            generator.complete("prompt", "system")

        assert "timed out" in excinfo.value.message
        assert excinfo.value.retryable

    @pytest.mark.parametrize(
        "error",
        [
            openai.APIConnectionError(request=REQUEST),
            openai.RateLimitError("slow down", response=httpx.Response(429, request=REQUEST), body=None),
            openai.APIStatusError("bad gateway", response=httpx.Response(502, request=REQUEST), body=None),
            openai.APIResponseValidationError(response=httpx.Response(200, request=REQUEST), body=None),
            httpx.ReadError("connection reset", request=REQUEST),
        ],
    )
    def test_sdk_errors_are_provider_errors(self, error):
        generator = _generator()
        _with_client(generator, error)

        with pytest.raises(ProviderError):
            generator.complete("prompt", "system")


class TestDescribeImage:
    def test_sends_base64_data_url(self):
        generator = _generator(vision_model="vision-x")
        client = _with_client(generator, lambda **kwargs: _response("A cat on a keyboard."))

        assert generator.describe_image("Describe", b"\x89PNG", "image/png") == "A cat on a keyboard."

        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "vision-x"
        content = kwargs["messages"][0]["content"]
        assert content[0] == {"type": "text", "text": "Describe"}
        assert content[1]["image_url"]["url"] == "data:image/png;base64,iVBORw=="

    def test_failure_is_provider_error(self):
        generator = _generator()
        _with_client(generator, openai.APIConnectionError(request=REQUEST))

        with pytest.raises(ProviderError):
            generator.describe_image("Describe", b"x", "image/png")
