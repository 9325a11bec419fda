"""Course outline model.

An outline is an ordered tree: course title -> modules -> lessons. It is
produced by the outline generator, edited by a human (through the JSON
wire format or the review YAML), then consumed once by the course builder.

Wire format (what the editor sends back):
    [
      {"title": "...", "description": "...", "lessons": [{"title": "..."}]},
      ...
    ]
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import structlog
import yaml

logger = structlog.get_logger(__name__)

REVIEW_YAML_HEADER = (
    "# Course outline draft - edit and save\n"
    "# Add, remove or rename modules and lessons as needed\n"
    "# Run 'coursegen build <this file>' to create the course\n\n"
)


class OutlineEditError(Exception):
    """Invalid edit of an outline or invalid edited payload."""

    pass


@dataclass
class Lesson:
    """A lesson; content is filled in after generation."""

    title: str
    content: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"title": self.title}
        if self.content is not None:
            data["content"] = self.content
        return data


@dataclass
class Module:
    """A module groups lessons and becomes one course section."""

    title: str
    description: str = ""
    lessons: list[Lesson] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "description": self.description,
            "lessons": [lesson.to_dict() for lesson in self.lessons],
        }


@dataclass
class Outline:
    """Complete course outline."""

    title: str
    modules: list[Module] = field(default_factory=list)

    @property
    def lesson_count(self) -> int:
        return sum(len(m.lessons) for m in self.modules)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON/YAML serialization."""
        return {
            "title": self.title,
            "modules": [m.to_dict() for m in self.modules],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any], default_title: str = "") -> Outline:
        """Build an outline from a loosely-shaped dictionary."""
        title = data.get("title")
        if title is None:
            title = default_title
        return cls(title=str(title), modules=modules_from_list(data.get("modules") or []))


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def module_from_dict(data: dict[str, Any]) -> Module:
    """Build a module, accepting the alternate keys name/topics."""
    title = data.get("title")
    if title is None:
        title = data.get("name")

    raw_lessons = data.get("lessons")
    if raw_lessons is None:
        raw_lessons = data.get("topics") or []

    lessons = []
    for raw in raw_lessons:
        if isinstance(raw, dict):
            lesson_title = raw.get("title")
            if lesson_title is None:
                lesson_title = raw.get("name")
            lessons.append(Lesson(title=_text(lesson_title), content=raw.get("content")))
        elif isinstance(raw, str):
            lessons.append(Lesson(title=raw.strip()))

    return Module(
        title=_text(title),
        description=_text(data.get("description")),
        lessons=lessons,
    )


def modules_from_list(items: list[Any]) -> list[Module]:
    """Build modules from a list of dictionaries, skipping anything else."""
    return [module_from_dict(item) for item in items if isinstance(item, dict)]


def modules_from_json(payload: str | None) -> list[Module]:
    """Decode the editor's JSON payload.

    Invalid JSON or anything other than a list yields an empty list.
    """
    if not payload:
        return []
    try:
        data = json.loads(payload)
    except json.JSONDecodeError:
        logger.warning("edited_outline_invalid_json", length=len(payload))
        return []
    if not isinstance(data, list):
        return []
    return modules_from_list(data)


def modules_to_json(modules: list[Module]) -> str:
    """Encode modules into the editor's JSON payload."""
    return json.dumps([m.to_dict() for m in modules], ensure_ascii=False)


# =============================================================================
# Editing operations
# =============================================================================


def _module_at(outline: Outline, index: int) -> Module:
    if index < 0 or index >= len(outline.modules):
        raise OutlineEditError(f"Module {index + 1} does not exist")
    return outline.modules[index]


def add_module(outline: Outline, title: str = "") -> Module:
    """Append a module with one empty lesson."""
    module = Module(title=title, lessons=[Lesson(title="")])
    outline.modules.append(module)
    return module


def remove_module(outline: Outline, index: int) -> Module:
    """Remove a module; the last remaining module cannot be removed."""
    _module_at(outline, index)
    if len(outline.modules) <= 1:
        raise OutlineEditError("An outline must keep at least one module")
    return outline.modules.pop(index)


def rename_module(outline: Outline, index: int, title: str) -> None:
    _module_at(outline, index).title = title


def add_lesson(outline: Outline, module_index: int, title: str = "") -> Lesson:
    """Append a lesson to a module."""
    lesson = Lesson(title=title)
    _module_at(outline, module_index).lessons.append(lesson)
    return lesson


def remove_lesson(outline: Outline, module_index: int, lesson_index: int) -> Lesson:
    """Remove a lesson; a module's last lesson cannot be removed."""
    module = _module_at(outline, module_index)
    if lesson_index < 0 or lesson_index >= len(module.lessons):
        raise OutlineEditError(
            f"Lesson {lesson_index + 1} does not exist in module {module_index + 1}"
        )
    if len(module.lessons) <= 1:
        raise OutlineEditError("A module must keep at least one lesson")
    return module.lessons.pop(lesson_index)


def rename_lesson(outline: Outline, module_index: int, lesson_index: int, title: str) -> None:
    module = _module_at(outline, module_index)
    if lesson_index < 0 or lesson_index >= len(module.lessons):
        raise OutlineEditError(
            f"Lesson {lesson_index + 1} does not exist in module {module_index + 1}"
        )
    module.lessons[lesson_index].title = title


def apply_edit(
    outline: Outline, op: str, module: int = 0, lesson: int = 0, title: str = ""
) -> None:
    """Apply one named editing operation (indices are 0-based).

    Raises:
        OutlineEditError: Unknown operation or invalid edit
    """
    if op == "add_module":
        add_module(outline, title)
    elif op == "remove_module":
        remove_module(outline, module)
    elif op == "rename_module":
        rename_module(outline, module, title)
    elif op == "add_lesson":
        add_lesson(outline, module, title)
    elif op == "remove_lesson":
        remove_lesson(outline, module, lesson)
    elif op == "rename_lesson":
        rename_lesson(outline, module, lesson, title)
    else:
        raise OutlineEditError(f"Unknown edit operation: {op}")


# =============================================================================
# Review YAML
# =============================================================================


def validate_outline_data(data: Any) -> list[str]:
    """Validate an outline dictionary loaded from YAML."""
    errors = []

    if not isinstance(data, dict):
        return ["Outline must be a mapping with 'title' and 'modules'"]

    modules = data.get("modules", [])
    if not isinstance(modules, list):
        errors.append("modules must be a list")
        return errors

    if len(modules) < 1:
        errors.append("At least one module required")

    for i, module in enumerate(modules):
        if not isinstance(module, dict):
            errors.append(f"Module {i + 1}: must be a mapping")
            continue
        lessons = module.get("lessons", [])
        if not isinstance(lessons, list):
            errors.append(f"Module {i + 1}: lessons must be a list")

    return errors


def write_review_yaml(document: dict[str, Any], path: Path) -> Path:
    """Write a draft document (outline plus course settings) for manual editing."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write(REVIEW_YAML_HEADER)
        yaml.safe_dump(document, f, default_flow_style=False, allow_unicode=True, sort_keys=False)

    logger.info("outline_review_yaml_written", path=str(path))
    return path


def read_review_yaml(path: Path) -> tuple[dict[str, Any], Outline]:
    """Load an edited draft document and its outline.

    Raises:
        FileNotFoundError: If the draft doesn't exist
        OutlineEditError: If the outline part is malformed
    """
    if not path.exists():
        raise FileNotFoundError(f"Draft not found: {path}")

    with open(path, "r", encoding="utf-8") as f:
        document = yaml.safe_load(f) or {}

    outline_data = document.get("outline") if isinstance(document, dict) else None
    errors = validate_outline_data(outline_data)
    if errors:
        raise OutlineEditError("; ".join(errors))

    return document, Outline.from_dict(outline_data, default_title=document.get("title") or "")
