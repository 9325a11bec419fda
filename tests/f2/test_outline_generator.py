"""Tests for outline generation."""

import json

import pytest

from coursegen.core.markdown_parser import OutlineParseError
from coursegen.core.outline_generator import (
    DEFAULT_TITLE_INSTRUCTION,
    TRUNCATION_MARKER,
    OutlineGenerationError,
    build_outline_prompt,
    extract_json_outline,
    generate_outline,
    parse_outline_response,
    truncate_source_text,
)
from coursegen.llm.errors import ApiConnectionError


def _prompt_sent(chat) -> str:
    messages = chat.complete.call_args.args[0]
    assert len(messages) == 1
    assert messages[0].role == "user"
    return messages[0].content


class TestPrompt:
    """Prompt construction."""

    def test_truncation_adds_marker(self):
        text = "x" * 20

        assert truncate_source_text(text, 10) == "x" * 10 + TRUNCATION_MARKER
        assert truncate_source_text(text, 20) == text

    def test_prompt_contains_constraints(self):
        prompt = build_outline_prompt("SOURCE", "My Course", "For beginners", "fr")

        assert "Course title: My Course" in prompt
        assert "Instructions: For beginners" in prompt
        assert "Language: fr" in prompt
        assert "## Module 1:" in prompt
        assert "3-8 modules with 2-5 lessons" in prompt
        assert prompt.endswith("SOURCE")

    def test_prompt_without_title_or_instructions(self):
        prompt = build_outline_prompt("SOURCE")

        assert f"Course title: {DEFAULT_TITLE_INSTRUCTION}" in prompt
        assert "Instructions:" not in prompt


class TestJsonExtraction:
    """JSON-first reply handling."""

    def test_fenced_json(self):
        reply = '```json\n{"title": "T", "modules": [{"title": "M", "lessons": [{"title": "L"}]}]}\n```'
        outline = extract_json_outline(reply, "Hint")

        assert outline.title == "T"
        assert outline.modules[0].lessons[0].title == "L"

    def test_bare_json_title_defaults_to_hint(self):
        reply = json.dumps({"modules": [{"title": "M", "lessons": []}]})
        assert extract_json_outline(reply, "Hint").title == "Hint"

    def test_empty_modules_rejected(self):
        assert extract_json_outline('{"title": "T", "modules": []}') is None

    def test_modules_without_objects_rejected(self):
        """String module entries leave nothing to build from."""
        assert extract_json_outline('{"title": "T", "modules": ["Intro", "Advanced"]}') is None

    def test_modules_without_objects_fail_to_parse(self):
        reply = '```json\n{"title": "T", "modules": ["Intro", "Advanced"]}\n```'

        with pytest.raises(OutlineParseError):
            parse_outline_response(reply, "Hint")

    def test_non_object_rejected(self):
        assert extract_json_outline("[1, 2]") is None

    def test_markdown_is_not_json(self):
        assert extract_json_outline("## Module 1: A\n1. L") is None

    def test_parse_prefers_json(self):
        reply = json.dumps({"title": "T", "modules": [{"title": "From JSON", "lessons": []}]})
        assert parse_outline_response(reply).modules[0].title == "From JSON"

    def test_parse_falls_back_to_markdown(self):
        outline = parse_outline_response("## Module 1: From markdown\n1. L", "Hint")

        assert outline.title == "Hint"
        assert outline.modules[0].title == "From markdown"


class TestGenerateOutline:
    """End-to-end generation with a mocked chat backend."""

    def test_markdown_reply(self, mock_chat, ledger):
        outline = generate_outline("Source text", "Course", chat=mock_chat, ledger=ledger, user_id=7)

        assert outline.title == "Course"
        assert [m.title for m in outline.modules] == ["Foundations", "Practice"]
        assert outline.modules[0].description == "What the course covers."
        assert [l.title for l in outline.modules[0].lessons] == ["Course overview", "Key terms"]
        assert outline.lesson_count == 5

    def test_single_call_with_truncated_source(self, mock_chat):
        generate_outline("y" * 200, chat=mock_chat, max_source_chars=50)

        assert mock_chat.complete.call_count == 1
        prompt = _prompt_sent(mock_chat)
        assert "y" * 50 + TRUNCATION_MARKER in prompt
        assert "y" * 51 not in prompt

    def test_usage_recorded(self, mock_chat, ledger):
        generate_outline("Source", chat=mock_chat, ledger=ledger, user_id=7)

        rows = ledger.by_action()
        assert [(r.key, r.requests, r.tokens_in, r.tokens_out) for r in rows] == [
            ("generate_outline", 1, 120, 80)
        ]
        assert ledger.by_user()[0].key == "7"

    def test_usage_recorded_even_when_parse_fails(self, mock_chat, ledger, completion):
        mock_chat.complete.return_value = completion("I cannot help with that.")

        with pytest.raises(OutlineParseError):
            generate_outline("Source", chat=mock_chat, ledger=ledger)

        assert ledger.summary().total_requests == 1

    def test_empty_content_raises(self, mock_chat, ledger, completion):
        mock_chat.complete.return_value = completion(None)

        with pytest.raises(OutlineGenerationError, match="no content"):
            generate_outline("Source", chat=mock_chat, ledger=ledger)

        assert ledger.summary().total_requests == 1

    def test_api_error_propagates_without_usage(self, mock_chat, ledger):
        mock_chat.complete.side_effect = ApiConnectionError("Connection error: timed out")

        with pytest.raises(ApiConnectionError):
            generate_outline("Source", chat=mock_chat, ledger=ledger)

        assert ledger.summary().total_requests == 0

    def test_json_reply(self, mock_chat, completion):
        mock_chat.complete.return_value = completion(
            '```json\n{"modules": [{"title": "A", "lessons": [{"title": "a1"}]}, '
            '{"name": "B", "topics": ["b1", "b2"]}]}\n```'
        )

        outline = generate_outline("Source", "Hint", chat=mock_chat)

        assert outline.title == "Hint"
        assert [m.title for m in outline.modules] == ["A", "B"]
        assert outline.lesson_count == 3
