"""Prompt Registry - Load prompt templates shipped with the package.

Templates are Markdown files in prompts/templates/ with {variable}
placeholders. Substitution is a single pass over the template, so values
(source material in particular) are inserted verbatim even when they
contain braces.

Usage:
    from coursegen.prompts.registry import get_prompt

    prompt = get_prompt(
        "lesson_content",
        module_title="Basics",
        lesson_title="Variables",
        language="en",
        source_text=context,
    )
"""

from __future__ import annotations

import re
from functools import lru_cache
from pathlib import Path

import structlog

logger = structlog.get_logger(__name__)

TEMPLATES_DIR = Path(__file__).parent / "templates"

PLACEHOLDER_PATTERN = re.compile(r"\{([a-z_]+)\}")


def _read_template(key: str) -> str:
    """Read a template file.

    Raises:
        FileNotFoundError: If no template exists for the key
    """
    path = TEMPLATES_DIR / f"{key}.md"
    if not path.is_file():
        raise FileNotFoundError(f"Prompt not found: {key} (looked at {path})")
    return path.read_text(encoding="utf-8").rstrip("\n")


@lru_cache(maxsize=16)
def _cached_template(key: str) -> str:
    return _read_template(key)


def template_variables(key: str) -> list[str]:
    """Placeholder names used by a template, in order of first use."""
    names: list[str] = []
    for name in PLACEHOLDER_PATTERN.findall(_cached_template(key)):
        if name not in names:
            names.append(name)
    return names


def get_prompt(key: str, use_cache: bool = True, **variables: str) -> str:
    """Render a template with the given variables.

    Placeholders without a value are left in place.

    Raises:
        FileNotFoundError: If no template exists for the key
    """
    template = _cached_template(key) if use_cache else _read_template(key)

    missing: set[str] = set()

    def substitute(match: re.Match[str]) -> str:
        name = match.group(1)
        if name in variables:
            return str(variables[name])
        missing.add(name)
        return match.group(0)

    rendered = PLACEHOLDER_PATTERN.sub(substitute, template)
    if missing and variables:
        logger.debug("prompt_variables_missing", prompt=key, missing=sorted(missing))
    return rendered


def list_prompts() -> list[str]:
    """Keys of all shipped templates."""
    if not TEMPLATES_DIR.exists():
        logger.warning("prompt_templates_dir_not_found", path=str(TEMPLATES_DIR))
        return []
    return sorted(path.stem for path in TEMPLATES_DIR.glob("*.md"))


def clear_cache() -> None:
    """Clear the template cache."""
    _cached_template.cache_clear()
