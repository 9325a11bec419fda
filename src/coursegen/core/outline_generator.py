"""Outline generation module.

Responsibilities:
- Build the outline prompt from extracted source text and user constraints
- Call the chat backend once
- Turn the reply into an Outline: JSON first, markdown parser as fallback
- Record one usage entry per call, whatever the parse outcome
"""

from __future__ import annotations

import json
import re
from typing import Any

import structlog

from coursegen.core.markdown_parser import parse_markdown_outline
from coursegen.core.outline import Outline
from coursegen.core.usage_ledger import ACTION_GENERATE_OUTLINE, UsageLedger
from coursegen.llm.client import ChatBackend, Message
from coursegen.prompts.registry import get_prompt

logger = structlog.get_logger(__name__)

# =============================================================================
# CONSTANTS
# =============================================================================

OUTLINE_SOURCE_MAX_CHARS = 15000
TRUNCATION_MARKER = "\n\n[... content truncated for outline generation ...]"
DEFAULT_TITLE_INSTRUCTION = "Generate an appropriate title"

# ```json ... ``` or ``` ... ```
CODE_FENCE_PATTERN = re.compile(r"```(?:json)?\s*([\s\S]*?)```")


class OutlineGenerationError(Exception):
    """The model returned no usable outline content."""

    pass


# =============================================================================
# PROMPT
# =============================================================================


def truncate_source_text(text: str, max_chars: int = OUTLINE_SOURCE_MAX_CHARS) -> str:
    """Cut source text to the prompt budget, marking the cut."""
    if len(text) > max_chars:
        return text[:max_chars] + TRUNCATION_MARKER
    return text


def build_outline_prompt(
    source_text: str,
    title: str = "",
    instructions: str = "",
    language: str = "en",
) -> str:
    """Build the single user prompt for outline generation."""
    return get_prompt(
        "outline_generate",
        title=title or DEFAULT_TITLE_INSTRUCTION,
        instructions_line=f"Instructions: {instructions}\n" if instructions else "",
        language=language,
        source_text=source_text,
    )


# =============================================================================
# RESPONSE PARSING
# =============================================================================


def extract_json_outline(text: str, title: str = "") -> Outline | None:
    """Try to read the reply as a JSON outline.

    A fenced code block is unwrapped first. Returns None unless the JSON
    is an object whose "modules" list holds at least one module object.
    """
    candidate = text
    fence = CODE_FENCE_PATTERN.search(candidate)
    if fence:
        candidate = fence.group(1)

    try:
        data: Any = json.loads(candidate.strip())
    except json.JSONDecodeError:
        return None

    if not isinstance(data, dict):
        return None
    modules = data.get("modules")
    if not isinstance(modules, list) or not modules:
        return None

    outline = Outline.from_dict(data, default_title=title)
    # Non-object module entries are dropped; nothing usable left means no JSON outline
    if not outline.modules:
        return None
    return outline


def parse_outline_response(text: str, title: str = "") -> Outline:
    """Turn model output into an Outline (JSON first, then markdown).

    Raises:
        OutlineParseError: If neither JSON nor markdown yields modules
    """
    outline = extract_json_outline(text, title)
    if outline is not None:
        logger.debug("outline_parsed_from_json", modules=len(outline.modules))
        return outline

    return parse_markdown_outline(text, title)


# =============================================================================
# MAIN ENTRY POINT
# =============================================================================


def generate_outline(
    source_text: str,
    title: str = "",
    instructions: str = "",
    language: str = "en",
    *,
    chat: ChatBackend,
    ledger: UsageLedger | None = None,
    user_id: int = 0,
    max_source_chars: int = OUTLINE_SOURCE_MAX_CHARS,
) -> Outline:
    """Generate a course outline from extracted document text.

    Args:
        source_text: Extracted document text
        title: Course title hint (the model picks one if empty)
        instructions: Extra constraints such as audience, tone or scope
        language: Language code for the outline
        chat: Chat backend to call
        ledger: Usage ledger (skipped if None)
        user_id: User the usage is charged to
        max_source_chars: Prompt budget for source text

    Returns:
        Parsed Outline

    Raises:
        ApiError: If the upstream call fails
        OutlineGenerationError: If the reply has no string content
        OutlineParseError: If no modules could be parsed
    """
    prompt = build_outline_prompt(
        truncate_source_text(source_text, max_source_chars),
        title=title,
        instructions=instructions,
        language=language,
    )

    logger.info(
        "outline_generation.start",
        source_chars=len(source_text),
        title=title,
        language=language,
    )

    completion = chat.complete([Message(role="user", content=prompt)])

    if ledger is not None:
        ledger.record_completion(ACTION_GENERATE_OUTLINE, completion, user_id=user_id)

    if not completion.text:
        raise OutlineGenerationError("The AI service returned no content")

    outline = parse_outline_response(completion.text, title)

    logger.info(
        "outline_generation.success",
        modules=len(outline.modules),
        lessons=outline.lesson_count,
        tokens_in=completion.tokens_in,
        tokens_out=completion.tokens_out,
    )
    return outline
