"""Tests for generator response validation."""

import json

from chat2portfolio.schemas.envelopes import ChatEnvelope, EnvelopeKind, ProfileAndCodeEnvelope
from chat2portfolio.validator import (
    ResponseValidator,
    extract_fenced_block,
    parse_json_response,
    strip_code_fences,
)

CHAT_JSON = '{"nextQuestion": "Where do you work?", "updatedUserProfile": {"name": "Ada"}}'


class TestStripCodeFences:
    """Test removal of incidental markdown wrapping."""

    def test_plain_text_untouched(self):
        assert strip_code_fences('{"a": 1}') == '{"a": 1}'

    def test_json_fence(self):
        assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_bare_fence(self):
        assert strip_code_fences('```\n{"a": 1}\n```') == '{"a": 1}'

    def test_prose_around_fence_left_alone(self):
        text = 'Here you go:\n```json\n{"a": 1}\n```'
        assert strip_code_fences(text) == text

    def test_inner_fences_kept(self):
        inner = '{"code": "```python\\nprint(1)\\n```"}'
        assert strip_code_fences(f"```json\n{inner}\n```") == inner

    def test_extract_block_from_prose(self):
        text = 'Here you go:\n```json\n{"a": 1}\n```\nHope this helps!'
        assert extract_fenced_block(text) == '{"a": 1}'
        assert extract_fenced_block("no fence") is None

    def test_unterminated_fence(self):
        assert strip_code_fences('```json\n{"a": 1}') == '{"a": 1}'

    def test_none_input(self):
        assert strip_code_fences(None) == ""


class TestParseJsonResponse:
    """Test parse_json_response handles various generator output formats."""

    def test_clean_json(self):
        assert parse_json_response('{"key": "value"}') == {"key": "value"}

    def test_markdown_code_block(self):
        assert parse_json_response('```json\n{"key": "value"}\n```') == {"key": "value"}

    def test_whitespace_around(self):
        assert parse_json_response('  \n  {"key": "value"}  \n  ') == {"key": "value"}

    def test_prose_before_object(self):
        assert parse_json_response('Sure! {"key": "value"}') == {"key": "value"}

    def test_invalid_json(self):
        assert parse_json_response("not json at all") is None

    def test_empty_string(self):
        assert parse_json_response("") is None

    def test_prose_around_fenced_block(self):
        text = 'Here you go:\n```json\n{"key": "value"}\n```\nHope this helps!'
        assert parse_json_response(text) == {"key": "value"}

    def test_fenced_value_inside_fenced_answer(self):
        data = {"snippet": "```js\nlet a = `x`;\n```", "n": 1}
        text = "```json\n" + json.dumps(data, indent=2) + "\n```"
        assert parse_json_response(text) == data


class TestChatEnvelope:
    """Shape checks for chatEnvelope."""

    def test_valid(self):
        result = ResponseValidator().validate(CHAT_JSON, EnvelopeKind.CHAT)
        assert result.valid
        assert isinstance(result.envelope, ChatEnvelope)
        assert result.envelope.next_question == "Where do you work?"
        assert result.envelope.updated_profile == {"name": "Ada"}

    def test_valid_inside_fence(self):
        result = ResponseValidator().validate(f"```json\n{CHAT_JSON}\n```", EnvelopeKind.CHAT)
        assert result.valid

    def test_profile_value_with_code_block(self):
        """A code block the user pasted survives inside a fenced answer."""
        snippet = "```python\nprint(1)\n```"
        data = {"nextQuestion": "Nice snippet! What does it do?", "updatedUserProfile": {"projects": [snippet]}}
        raw = "```json\n" + json.dumps(data, indent=2) + "\n```"

        result = ResponseValidator().validate(raw, EnvelopeKind.CHAT)

        assert result.valid, result.reason
        assert result.envelope.updated_profile["projects"] == [snippet]

    def test_extra_keys_ignored(self):
        data = json.loads(CHAT_JSON)
        data["confidence"] = 0.9
        assert ResponseValidator().validate(json.dumps(data), EnvelopeKind.CHAT).valid

    def test_nested_profile_values(self):
        data = {
            "nextQuestion": "Anything else?",
            "updatedUserProfile": {"projects": [{"name": "x", "stars": 3}], "age": 30, "remote": True},
        }
        assert ResponseValidator().validate(json.dumps(data), EnvelopeKind.CHAT).valid

    def test_missing_next_question(self):
        result = ResponseValidator().validate('{"updatedUserProfile": {}}', EnvelopeKind.CHAT)
        assert not result.valid
        assert "nextQuestion" in result.reason

    def test_next_question_wrong_type(self):
        result = ResponseValidator().validate(
            '{"nextQuestion": 42, "updatedUserProfile": {}}', EnvelopeKind.CHAT
        )
        assert not result.valid

    def test_blank_next_question(self):
        result = ResponseValidator().validate(
            '{"nextQuestion": "  ", "updatedUserProfile": {}}', EnvelopeKind.CHAT
        )
        assert not result.valid
        assert "empty" in result.reason

    def test_profile_must_be_object(self):
        result = ResponseValidator().validate(
            '{"nextQuestion": "Hi?", "updatedUserProfile": ["a"]}', EnvelopeKind.CHAT
        )
        assert not result.valid

    def test_unparsable_keeps_raw_text(self):
        raw = "I'm sorry, I can't help with that."
        result = ResponseValidator().validate(raw, EnvelopeKind.CHAT)
        assert not result.valid
        assert result.raw_text == raw

    def test_top_level_array_rejected(self):
        result = ResponseValidator().validate("[1, 2]", EnvelopeKind.CHAT)
        assert not result.valid
        assert "list" in result.reason

    def test_empty_response(self):
        assert not ResponseValidator().validate("", EnvelopeKind.CHAT).valid
        assert not ResponseValidator().validate(None, EnvelopeKind.CHAT).valid


class TestProfileAndCodeEnvelope:
    """Shape checks for profileAndCodeEnvelope."""

    def _payload(self, **code):
        updated_code = {"markup": "<html></html>", "style": "body{}", "script": ""}
        updated_code.update(code)
        return json.dumps({"updatedUserProfile": {"name": "Ada"}, "updatedCode": updated_code})

    def test_valid(self):
        result = ResponseValidator().validate(self._payload(), EnvelopeKind.PROFILE_AND_CODE)
        assert result.valid
        assert isinstance(result.envelope, ProfileAndCodeEnvelope)
        assert result.envelope.updated_code.markup == "<html></html>"

    def test_script_must_be_string(self):
        result = ResponseValidator().validate(self._payload(script=None), EnvelopeKind.PROFILE_AND_CODE)
        assert not result.valid
        assert "updatedCode.script" in result.reason

    def test_script_with_fence_in_template_literal(self):
        script = "const help = `\n```js\nrun();\n```\n`;"
        raw = "```json\n" + self._payload(script=script) + "\n```"

        result = ResponseValidator().validate(raw, EnvelopeKind.PROFILE_AND_CODE)

        assert result.valid, result.reason
        assert result.envelope.updated_code.script == script

    def test_missing_code(self):
        result = ResponseValidator().validate('{"updatedUserProfile": {}}', EnvelopeKind.PROFILE_AND_CODE)
        assert not result.valid


class TestVisionDescription:
    """visionDescription accepts JSON or prose."""

    def test_json_description(self):
        result = ResponseValidator().validate('{"description": "A cat"}', EnvelopeKind.VISION)
        assert result.valid
        assert result.envelope.description == "A cat"

    def test_prose_description(self):
        result = ResponseValidator().validate("A laptop covered in stickers.", EnvelopeKind.VISION)
        assert result.valid
        assert result.envelope.description == "A laptop covered in stickers."

    def test_blank_json_description(self):
        assert not ResponseValidator().validate('{"description": ""}', EnvelopeKind.VISION).valid

    def test_empty_fence(self):
        assert not ResponseValidator().validate("```\n```", EnvelopeKind.VISION).valid
