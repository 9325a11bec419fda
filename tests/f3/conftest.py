"""Fixtures for F3 tests - course building, drafts and usage."""

from unittest.mock import MagicMock

import pytest

from coursegen.core.outline import Lesson, Module, Outline
from coursegen.core.usage_ledger import UsageLedger
from coursegen.hosts.memory import MemoryCourseHost
from coursegen.llm.client import CompletionResult


@pytest.fixture
def two_module_outline():
    """2 modules with 2 and 3 lessons."""
    return Outline(
        title="Introduction to Python",
        modules=[
            Module(
                title="Basics",
                description="Getting started",
                lessons=[Lesson("Installing"), Lesson("Hello world")],
            ),
            Module(
                title="Data",
                description="Working with data",
                lessons=[Lesson("Numbers"), Lesson("Strings"), Lesson("Lists")],
            ),
        ],
    )


@pytest.fixture
def lesson_chat():
    """Chat backend echoing a heading plus a paragraph."""
    chat = MagicMock()
    chat.complete.return_value = CompletionResult(
        text="<h2>Title</h2><p>Generated body</p>",
        tokens_in=200,
        tokens_out=400,
        credits_charged=1.0,
    )
    return chat


@pytest.fixture
def memory_host():
    return MemoryCourseHost(categories=[1, 5])


@pytest.fixture
def ledger(tmp_path):
    return UsageLedger(tmp_path / "usage.db")
