"""Outline draft endpoints.

Flow: POST generates a draft, GET/PUT and POST .../edits let the editor
review it, and POST .../course materializes it. A draft is discarded once
its course is built; a failed build keeps it so the user can retry
without re-uploading.
"""

import structlog
from fastapi import APIRouter, Header, HTTPException, status

from coursegen.config.app_config import ConfigurationError
from coursegen.core.course_builder import materialize_course
from coursegen.core.draft_store import OutlineDraft
from coursegen.core.markdown_parser import OutlineParseError
from coursegen.core.outline import (
    OutlineEditError,
    apply_edit,
    modules_from_json,
    modules_from_list,
)
from coursegen.core.outline_generator import OutlineGenerationError, generate_outline
from coursegen.llm.errors import ApiError
from coursegen.web.schemas import (
    CourseResponse,
    DraftResponse,
    OutlineCreateRequest,
    OutlineEditRequest,
    OutlineUpdateRequest,
)
from coursegen.web.services import get_services

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/outlines", tags=["outlines"])


def _draft_response(draft: OutlineDraft) -> DraftResponse:
    return DraftResponse(**draft.to_dict())


def _get_draft_or_404(draft_id: str, user_id: int) -> OutlineDraft:
    draft = get_services().drafts.get(draft_id, user_id)
    if draft is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Draft '{draft_id}' not found",
        )
    return draft


@router.post("", response_model=DraftResponse, status_code=status.HTTP_201_CREATED)
def create_outline(
    request: OutlineCreateRequest,
    x_user_id: int = Header(default=0),
) -> DraftResponse:
    """Generate an outline from source text and store it as a draft."""
    services = get_services()
    language = request.language or services.config.generation.default_language

    try:
        outline = generate_outline(
            request.source_text,
            title=request.title,
            instructions=request.instructions,
            language=language,
            chat=services.chat,
            ledger=services.ledger,
            user_id=x_user_id,
            max_source_chars=services.config.generation.outline_source_chars,
        )
    except ConfigurationError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    except ApiError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
    except (OutlineGenerationError, OutlineParseError) as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))

    if not outline.title:
        outline.title = request.title

    draft = services.drafts.create(
        user_id=x_user_id,
        outline=outline,
        source_text=request.source_text,
        category_id=request.category_id,
        language=language,
    )
    return _draft_response(draft)


@router.get("/{draft_id}", response_model=DraftResponse)
def get_outline(draft_id: str, x_user_id: int = Header(default=0)) -> DraftResponse:
    """Get a draft owned by the caller."""
    return _draft_response(_get_draft_or_404(draft_id, x_user_id))


@router.put("/{draft_id}", response_model=DraftResponse)
def update_outline(
    draft_id: str,
    request: OutlineUpdateRequest,
    x_user_id: int = Header(default=0),
) -> DraftResponse:
    """Replace the draft's modules with the edited tree."""
    _get_draft_or_404(draft_id, x_user_id)

    if request.modules_json is not None:
        modules = modules_from_json(request.modules_json)
    else:
        modules = modules_from_list(request.modules or [])
    if not modules:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="At least one module required",
        )

    draft = get_services().drafts.update_outline(
        draft_id,
        x_user_id,
        modules,
        title=request.title,
        category_id=request.category_id,
    )
    if draft is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Draft '{draft_id}' not found",
        )
    return _draft_response(draft)


@router.post("/{draft_id}/edits", response_model=DraftResponse)
def edit_outline(
    draft_id: str,
    request: OutlineEditRequest,
    x_user_id: int = Header(default=0),
) -> DraftResponse:
    """Apply one editing operation (add/remove/rename a module or lesson)."""
    _get_draft_or_404(draft_id, x_user_id)

    try:
        draft = get_services().drafts.edit(
            draft_id,
            x_user_id,
            lambda outline: apply_edit(
                outline,
                request.op,
                module=request.module,
                lesson=request.lesson,
                title=request.title,
            ),
        )
    except OutlineEditError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    if draft is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Draft '{draft_id}' not found",
        )
    return _draft_response(draft)


@router.post("/{draft_id}/course", response_model=CourseResponse)
def create_course(draft_id: str, x_user_id: int = Header(default=0)) -> CourseResponse:
    """Materialize a draft as a course. The draft is consumed on success."""
    services = get_services()
    draft = _get_draft_or_404(draft_id, x_user_id)

    try:
        if not draft.outline.modules:
            raise OutlineEditError("At least one module required")
        if not draft.outline.title.strip():
            raise OutlineEditError("Course title is required")

        result = materialize_course(
            draft.outline,
            draft.outline.title,
            draft.category_id,
            host=services.host,
            chat=services.chat,
            source_text=draft.source_text,
            language=draft.language,
            ledger=services.ledger,
            user_id=x_user_id,
            context_chars=services.config.generation.lesson_context_chars,
        )
    except OutlineEditError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except ConfigurationError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    except (OSError, KeyError, IndexError, ValueError) as e:
        logger.error("course_creation_failed", draft_id=draft_id, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Course creation failed: {e}",
        )

    services.drafts.discard(draft_id)
    return CourseResponse(**result.to_dict())
