"""Pydantic schemas for the web API.

Serialization models for outline drafts, built courses and usage reports.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, Field

API_VERSION = "0.1.0"

# =============================================================================
# OUTLINE SCHEMAS
# =============================================================================


class LessonSchema(BaseModel):
    """A lesson in an outline."""

    title: str = ""


class ModuleSchema(BaseModel):
    """A module in an outline."""

    title: str = ""
    description: str = ""
    lessons: list[LessonSchema] = Field(default_factory=list)


class OutlineSchema(BaseModel):
    """A complete outline."""

    title: str = ""
    modules: list[ModuleSchema] = Field(default_factory=list)


class OutlineCreateRequest(BaseModel):
    """Request to generate an outline from extracted source text."""

    source_text: str = Field(..., min_length=1)
    title: str = Field(default="", max_length=254)
    instructions: str = Field(default="", max_length=2000)
    language: str | None = Field(default=None, max_length=10)
    category_id: int = Field(default=0, ge=0)


class OutlineUpdateRequest(BaseModel):
    """Edited outline sent back by the editor.

    Either ``modules`` (a list) or ``modules_json`` (the editor's serialized
    payload) carries the tree; ``modules_json`` wins when both are given.
    Modules are loosely shaped: "name" and "topics" are accepted in place
    of "title" and "lessons".
    """

    modules: list[dict[str, Any]] | None = None
    modules_json: str | None = None
    title: str | None = Field(default=None, max_length=254)
    category_id: int | None = Field(default=None, ge=0)


class OutlineEditRequest(BaseModel):
    """One editing operation on a draft (indices are 0-based)."""

    op: Literal[
        "add_module",
        "remove_module",
        "rename_module",
        "add_lesson",
        "remove_lesson",
        "rename_lesson",
    ]
    module: int = Field(default=0, ge=0)
    lesson: int = Field(default=0, ge=0)
    title: str = Field(default="", max_length=254)


class DraftResponse(BaseModel):
    """An outline draft awaiting review."""

    draft_id: str
    title: str
    category_id: int
    language: str
    outline: OutlineSchema
    modules_json: str


# =============================================================================
# COURSE SCHEMAS
# =============================================================================


class CourseResponse(BaseModel):
    """Result of materializing a draft."""

    course_id: int
    shortname: str
    sections: int
    activities: int
    placeholders: int = 0


# =============================================================================
# USAGE SCHEMAS
# =============================================================================


class UsageSummarySchema(BaseModel):
    """Usage totals."""

    total_requests: int
    total_tokens_in: int
    total_tokens_out: int
    total_credits: float


class UsageBreakdownSchema(BaseModel):
    """Usage for one day, action or user."""

    key: str
    requests: int
    tokens_in: int
    tokens_out: int
    credits: float


class UsageResponse(BaseModel):
    """Usage report over a period."""

    days: int
    summary: UsageSummarySchema
    daily: list[UsageBreakdownSchema]
    by_action: list[UsageBreakdownSchema]
    by_user: list[UsageBreakdownSchema]


# =============================================================================
# HEALTH SCHEMAS
# =============================================================================


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    version: str = API_VERSION
    backend: str
    api_configured: bool
    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
