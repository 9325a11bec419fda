"""Lesson content generation module.

Generates the HTML body of one lesson page from the shared source text.
This step is fail-soft: any failure yields placeholder HTML so a course
build never stops on a single lesson.
"""

from __future__ import annotations

import html
import re
from dataclasses import dataclass

import structlog

from coursegen.core.usage_ledger import ACTION_GENERATE_LESSON, UsageLedger
from coursegen.llm.client import ChatBackend, Message
from coursegen.prompts.registry import get_prompt

logger = structlog.get_logger(__name__)

LESSON_CONTEXT_MAX_CHARS = 10000

# One leading markdown heading (# .. ####) and the blank lines after it
LEADING_MARKDOWN_HEADING = re.compile(r"^\s*#{1,4}\s+.*?\n+")
# One leading <h1>..<h4> element and the whitespace after it
LEADING_HTML_HEADING = re.compile(r"^\s*<h[1-4][^>]*>.*?</h[1-4]>\s*", re.IGNORECASE)


@dataclass
class LessonContent:
    """Outcome of one lesson generation attempt.

    ``html`` is always usable; ``generated`` tells whether it came from
    the model or is the placeholder.
    """

    title: str
    html: str
    generated: bool
    error: str | None = None


def truncate_context(source_text: str, max_chars: int = LESSON_CONTEXT_MAX_CHARS) -> str:
    """Cut the shared source text once per course build."""
    return source_text[:max_chars]


def build_lesson_prompt(
    lesson_title: str,
    module_title: str,
    source_text: str,
    language: str = "en",
) -> str:
    return get_prompt(
        "lesson_content",
        module_title=module_title,
        lesson_title=lesson_title,
        language=language,
        source_text=source_text,
    )


def strip_leading_headings(content: str) -> str:
    """Remove a leading heading that would repeat the lesson title.

    Only the first markdown heading and then the first HTML heading at the
    very start are removed; later headings are left alone.
    """
    content = LEADING_MARKDOWN_HEADING.sub("", content, count=1)
    content = LEADING_HTML_HEADING.sub("", content, count=1)
    return content.strip()


def placeholder_content(lesson_title: str) -> str:
    """Filler HTML for a lesson whose content still has to be written."""
    return (
        f'<p><em>Content for "{html.escape(lesson_title)}" will be added. '
        "Edit this page to complete.</em></p>"
    )


def generate_lesson(
    lesson_title: str,
    module_title: str,
    source_text: str,
    language: str = "en",
    *,
    chat: ChatBackend,
    ledger: UsageLedger | None = None,
    user_id: int = 0,
    course_id: int | None = None,
) -> LessonContent:
    """Generate HTML content for one lesson. Never raises.

    Args:
        lesson_title: Title of the lesson
        module_title: Title of the parent module, for context
        source_text: Source material, already truncated by the caller
        language: Language code for the content
        chat: Chat backend to call
        ledger: Usage ledger (skipped if None)
        user_id: User the usage is charged to
        course_id: Course being built, if already created

    Returns:
        LessonContent with generated HTML or the placeholder
    """
    prompt = build_lesson_prompt(lesson_title, module_title, source_text, language)

    try:
        completion = chat.complete([Message(role="user", content=prompt)])
    except Exception as e:
        logger.warning(
            "lesson_generation_failed",
            lesson=lesson_title,
            module=module_title,
            error=str(e),
        )
        return LessonContent(
            title=lesson_title,
            html=placeholder_content(lesson_title),
            generated=False,
            error=str(e),
        )

    if ledger is not None:
        ledger.record_completion(
            ACTION_GENERATE_LESSON, completion, user_id=user_id, course_id=course_id
        )

    if completion.text:
        return LessonContent(
            title=lesson_title,
            html=strip_leading_headings(completion.text),
            generated=True,
        )

    logger.warning("lesson_generation_empty", lesson=lesson_title, module=module_title)
    return LessonContent(
        title=lesson_title,
        html=placeholder_content(lesson_title),
        generated=False,
        error="empty content",
    )


def generate_lesson_content(
    lesson_title: str,
    module_title: str,
    source_text: str,
    language: str = "en",
    *,
    chat: ChatBackend,
    ledger: UsageLedger | None = None,
    user_id: int = 0,
    course_id: int | None = None,
) -> str:
    """Generate lesson HTML, falling back to the placeholder on failure."""
    return generate_lesson(
        lesson_title,
        module_title,
        source_text,
        language,
        chat=chat,
        ledger=ledger,
        user_id=user_id,
        course_id=course_id,
    ).html
