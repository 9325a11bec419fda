"""Markdown outline parser.

Turns free-form model output into an ordered module -> lesson tree with a
single forward pass over the lines:

    ## Module 1: Introduction        <- heading opens a module
    A short overview.                <- description (until first lesson)
    1. What is Python                <- numbered lesson
    - Installing Python - the basics <- bulleted lesson, " - ..." dropped

Lines before the first heading and blank lines are ignored. Description
text that appears after a module's first lesson is dropped.
"""

from __future__ import annotations

import re

import structlog

from coursegen.core.outline import Lesson, Module, Outline

logger = structlog.get_logger(__name__)

# "## Module 1: Title", "# Module. Title", "### Title" (1-3 hashes)
MODULE_HEADING_PATTERN = re.compile(r"^#{1,3}\s+(?:Module\s*\d*[:.]\s*)?(.+)", re.IGNORECASE)

# "1. Title" or "1) Title"
NUMBERED_LESSON_PATTERN = re.compile(r"^\d+[.)]\s+(.+)")

# "- Title" or "* Title"
BULLET_LESSON_PATTERN = re.compile(r"^[-*]\s+(.+)")

# Trailing " - description" or " – description"
LESSON_DESCRIPTION_PATTERN = re.compile(r"\s*[-–]\s+.*$")


class OutlineParseError(Exception):
    """No module headings could be found in the text."""

    pass


def clean_lesson_title(title: str) -> str:
    """Drop everything from the first " - " (or en dash) separator on."""
    return LESSON_DESCRIPTION_PATTERN.sub("", title.strip(), count=1)


def _match_lesson(line: str) -> str | None:
    match = NUMBERED_LESSON_PATTERN.match(line) or BULLET_LESSON_PATTERN.match(line)
    if match:
        return match.group(1)
    return None


def parse_markdown_outline(text: str, title: str = "") -> Outline:
    """Parse a markdown-formatted outline.

    Args:
        text: Model output (markdown or plain text)
        title: Course title to put on the result

    Returns:
        Outline with the modules in source order

    Raises:
        OutlineParseError: If no module heading was found
    """
    modules: list[Module] = []
    current: Module | None = None

    for raw_line in text.split("\n"):
        line = raw_line.strip()

        heading = MODULE_HEADING_PATTERN.match(line)
        if heading:
            if current is not None:
                modules.append(current)
            current = Module(title=heading.group(1).strip())
            continue

        if current is None:
            continue

        lesson_title = _match_lesson(line)
        if lesson_title is not None:
            current.lessons.append(Lesson(title=clean_lesson_title(lesson_title)))
            continue

        if line and not current.lessons:
            current.description = f"{current.description} {line}" if current.description else line

    if current is not None:
        modules.append(current)

    if not modules:
        raise OutlineParseError("Could not parse course outline from AI response")

    logger.debug(
        "markdown_outline_parsed",
        modules=len(modules),
        lessons=sum(len(m.lessons) for m in modules),
    )
    return Outline(title=title, modules=modules)
