"""Fixtures for F2 tests - API clients, extraction and generators."""

from unittest.mock import MagicMock

import pytest

from coursegen.config.app_config import ApiConfig, clear_config_cache
from coursegen.core.usage_ledger import UsageLedger
from coursegen.llm.api_client import ApiClient
from coursegen.llm.client import CompletionResult
from coursegen.prompts.registry import clear_cache


OUTLINE_MARKDOWN = """## Module 1: Foundations
What the course covers.

1. Course overview
2. Key terms - vocabulary used throughout

## Module 2: Practice
- Worked example
- Exercises
- Review
"""


@pytest.fixture(autouse=True)
def _fresh_caches():
    """Config and prompt caches are process-wide."""
    clear_config_cache()
    clear_cache()
    yield
    clear_config_cache()


@pytest.fixture
def completion():
    """Factory for completion results."""

    def make(text, tokens_in=120, tokens_out=80, credits=0.5):
        return CompletionResult(
            text=text,
            tokens_in=tokens_in,
            tokens_out=tokens_out,
            credits_charged=credits,
        )

    return make


@pytest.fixture
def mock_chat(completion):
    """Chat backend returning a markdown outline."""
    chat = MagicMock()
    chat.complete.return_value = completion(OUTLINE_MARKDOWN)
    return chat


@pytest.fixture
def ledger(tmp_path):
    """Usage ledger in a temporary database."""
    return UsageLedger(tmp_path / "db" / "usage.db")


@pytest.fixture
def mock_session():
    """requests.Session stand-in."""
    return MagicMock()


@pytest.fixture
def api(mock_session):
    """API client with a mocked session."""
    return ApiClient(
        ApiConfig(base_url="https://ai.example.test"),
        api_key="secret",
        session=mock_session,
    )


@pytest.fixture
def json_response():
    """Factory for mocked requests.Response objects."""

    def make(status_code=200, body=None, invalid=False):
        response = MagicMock()
        response.status_code = status_code
        if invalid:
            response.json.side_effect = ValueError("Expecting value")
        else:
            response.json.return_value = body if body is not None else {}
        return response

    return make
