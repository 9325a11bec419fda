"""Fixtures for F4 tests - CLI and web API."""

from unittest.mock import MagicMock

import pytest

from coursegen.config.app_config import clear_config_cache
from coursegen.core.draft_store import reset_draft_store
from coursegen.llm.client import CompletionResult
from coursegen.web.services import reset_services


OUTLINE_REPLY = """## Module 1: Foundations
The basics.
1. Overview
2. Terms

## Module 2: Practice
- Example
- Exercises
- Review
"""


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Config file pointing all storage into tmp_path."""
    config_path = tmp_path / "coursegen.yaml"
    config_path.write_text(
        f"""
api:
  base_url: https://ai.example.test
storage:
  usage_db: {tmp_path / "db" / "usage.db"}
  courses_dir: {tmp_path / "courses"}
  categories: [1, 2]
""",
        encoding="utf-8",
    )
    monkeypatch.setenv("COURSEGEN_CONFIG", str(config_path))
    monkeypatch.setenv("COURSEGEN_API_KEY", "test-key")
    monkeypatch.delenv("COURSEGEN_API_BASE_URL", raising=False)

    clear_config_cache()
    reset_services()
    reset_draft_store()
    yield tmp_path
    clear_config_cache()
    reset_services()
    reset_draft_store()


@pytest.fixture
def chat():
    """Chat backend: outline prompts get an outline, lesson prompts get HTML."""

    def complete(messages):
        if "course design assistant" in messages[0].content:
            text = OUTLINE_REPLY
        else:
            text = "<h2>Heading</h2><p>Lesson body</p>"
        return CompletionResult(text=text, tokens_in=100, tokens_out=50, credits_charged=0.5)

    mock = MagicMock()
    mock.complete.side_effect = complete
    return mock
