"""Course materialization.

Turns an edited Outline into course structure in a host platform:
one section per module (1-based, section 0 stays the host's default
section) and one page per lesson, with lesson HTML generated on the way.

Structural host calls are fail-fast: any exception aborts the run and the
course is left as far as it got. Lesson generation is fail-soft and never
stops the run.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Protocol

import structlog

from coursegen.core.lesson_generator import (
    LESSON_CONTEXT_MAX_CHARS,
    generate_lesson,
    truncate_context,
)
from coursegen.core.outline import Module, Outline
from coursegen.core.usage_ledger import UsageLedger
from coursegen.llm.client import ChatBackend

logger = structlog.get_logger(__name__)

SHORTNAME_FALLBACK = "LUM"
SHORTNAME_MAX_CHARS = 15
DEFAULT_LESSON_TITLE = "Lesson"

_NON_ALPHANUMERIC = re.compile(r"[^a-zA-Z0-9]")


@dataclass
class CourseHandle:
    """A course created in the host."""

    course_id: int
    shortname: str
    title: str
    category_id: int


class CourseHost(Protocol):
    """Course-structure operations of the host learning platform."""

    def category_exists(self, category_id: int) -> bool: ...

    def default_category_id(self) -> int: ...

    def course_exists(self, shortname: str) -> bool: ...

    def create_course(
        self, title: str, shortname: str, category_id: int, section_count: int
    ) -> CourseHandle: ...

    def rename_section(
        self, course: CourseHandle, index: int, title: str, summary: str
    ) -> None: ...

    def create_page_activity(
        self, course: CourseHandle, section_index: int, title: str, html_body: str
    ) -> int: ...


@dataclass
class MaterializationResult:
    """Counts reported after a course build."""

    course: CourseHandle
    sections: int = 0
    activities: int = 0
    placeholders: int = 0

    def to_dict(self) -> dict[str, int | str]:
        return {
            "course_id": self.course.course_id,
            "shortname": self.course.shortname,
            "sections": self.sections,
            "activities": self.activities,
            "placeholders": self.placeholders,
        }


# Called after each lesson with (module_index, lesson_title, generated)
LessonCallback = Callable[[int, str, bool], None]


# =============================================================================
# IDENTITY
# =============================================================================


def derive_shortname(title: str) -> str:
    """Uppercase alphanumeric prefix of the title, or the fallback token."""
    base = _NON_ALPHANUMERIC.sub("", title)[:SHORTNAME_MAX_CHARS].upper()
    return base or SHORTNAME_FALLBACK


def generate_unique_shortname(title: str, exists: Callable[[str], bool]) -> str:
    """Derive a shortname, adding -1, -2, ... until it is free."""
    base = derive_shortname(title)
    shortname = base
    counter = 1
    while exists(shortname):
        shortname = f"{base}-{counter}"
        counter += 1
    return shortname


def resolve_category(host: CourseHost, category_id: int | None) -> int:
    """Use the requested category, or the host default when it is 0/unknown."""
    if category_id and host.category_exists(category_id):
        return category_id
    fallback = host.default_category_id()
    logger.info("category_fallback", requested=category_id, category_id=fallback)
    return fallback


def module_section_title(module: Module, position: int) -> str:
    """Section name for a module at a 1-based position."""
    return module.title.strip() or f"Module {position}"


# =============================================================================
# MAIN ENTRY POINT
# =============================================================================


def materialize_course(
    outline: Outline,
    title: str,
    category_id: int | None,
    *,
    host: CourseHost,
    chat: ChatBackend,
    source_text: str = "",
    language: str = "en",
    ledger: UsageLedger | None = None,
    user_id: int = 0,
    context_chars: int = LESSON_CONTEXT_MAX_CHARS,
    on_lesson: LessonCallback | None = None,
) -> MaterializationResult:
    """Create a course from an outline.

    Args:
        outline: Edited outline to consume
        title: Course full name (outline title if empty)
        category_id: Target category (host default when 0/unknown)
        host: Host course-structure collaborator
        chat: Chat backend for lesson content
        source_text: Extracted source material, truncated once here
        language: Language code for lesson content
        ledger: Usage ledger (skipped if None)
        user_id: User the usage is charged to
        context_chars: Source budget shared by all lesson prompts
        on_lesson: Optional progress callback

    Returns:
        MaterializationResult with the created course and counts

    Raises:
        Exception: Whatever the host raises on a structural call
    """
    course_title = title.strip() or outline.title.strip()
    category = resolve_category(host, category_id)
    shortname = generate_unique_shortname(course_title, host.course_exists)

    course = host.create_course(course_title, shortname, category, len(outline.modules))
    logger.info(
        "course_created",
        course_id=course.course_id,
        shortname=shortname,
        category_id=category,
        modules=len(outline.modules),
    )

    context = truncate_context(source_text, context_chars)
    result = MaterializationResult(course=course)

    for position, module in enumerate(outline.modules, start=1):
        section_title = module_section_title(module, position)
        host.rename_section(course, position, section_title, module.description)
        result.sections += 1

        for lesson in module.lessons:
            lesson_title = lesson.title.strip() or DEFAULT_LESSON_TITLE
            content = generate_lesson(
                lesson_title,
                section_title,
                context,
                language,
                chat=chat,
                ledger=ledger,
                user_id=user_id,
                course_id=course.course_id,
            )
            lesson.content = content.html

            host.create_page_activity(course, position, lesson_title, content.html)
            result.activities += 1
            if not content.generated:
                result.placeholders += 1

            if on_lesson is not None:
                on_lesson(position, lesson_title, content.generated)

    logger.info(
        "course_materialized",
        course_id=course.course_id,
        sections=result.sections,
        activities=result.activities,
        placeholders=result.placeholders,
    )
    return result
