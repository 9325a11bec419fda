"""Short-lived store for in-flight outlines.

An outline lives here between generation and course creation: keyed by an
opaque draft id, owned by the user who generated it, and gone after its
TTL or once its course has been built.
"""

from __future__ import annotations

import threading
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable

import structlog

from coursegen.core.outline import Module, Outline, modules_to_json

logger = structlog.get_logger(__name__)

DEFAULT_TTL_SECONDS = 3600


@dataclass
class OutlineDraft:
    """An outline awaiting review, with the settings chosen at upload."""

    draft_id: str
    user_id: int
    outline: Outline
    source_text: str = ""
    category_id: int = 0
    language: str = "en"
    created_at: float = field(default_factory=time.time)

    def to_dict(self) -> dict[str, Any]:
        return {
            "draft_id": self.draft_id,
            "title": self.outline.title,
            "category_id": self.category_id,
            "language": self.language,
            "outline": self.outline.to_dict(),
            "modules_json": modules_to_json(self.outline.modules),
        }


class DraftStore:
    """In-process draft store with per-user ownership and TTL expiry."""

    def __init__(
        self,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._drafts: dict[str, OutlineDraft] = {}
        self._lock = threading.Lock()

    def _expired(self, draft: OutlineDraft) -> bool:
        return self._clock() - draft.created_at > self.ttl_seconds

    def _purge_expired(self) -> None:
        for draft_id in [k for k, d in self._drafts.items() if self._expired(d)]:
            del self._drafts[draft_id]
            logger.debug("draft_expired", draft_id=draft_id)

    def create(
        self,
        user_id: int,
        outline: Outline,
        source_text: str = "",
        category_id: int = 0,
        language: str = "en",
    ) -> OutlineDraft:
        """Store a new draft and return it."""
        draft = OutlineDraft(
            draft_id=uuid.uuid4().hex,
            user_id=user_id,
            outline=outline,
            source_text=source_text,
            category_id=category_id,
            language=language,
            created_at=self._clock(),
        )
        with self._lock:
            self._purge_expired()
            self._drafts[draft.draft_id] = draft

        logger.info(
            "draft_created",
            draft_id=draft.draft_id,
            user_id=user_id,
            modules=len(outline.modules),
        )
        return draft

    def get(self, draft_id: str, user_id: int) -> OutlineDraft | None:
        """Look up a draft; None if unknown, expired or owned by someone else."""
        with self._lock:
            draft = self._drafts.get(draft_id)
            if draft is None:
                return None
            if self._expired(draft):
                del self._drafts[draft_id]
                logger.debug("draft_expired", draft_id=draft_id)
                return None
        if draft.user_id != user_id:
            logger.warning("draft_owner_mismatch", draft_id=draft_id, user_id=user_id)
            return None
        return draft

    def update_outline(
        self,
        draft_id: str,
        user_id: int,
        modules: list[Module],
        title: str | None = None,
        category_id: int | None = None,
    ) -> OutlineDraft | None:
        """Replace the modules (and optionally title/category) of a draft."""
        draft = self.get(draft_id, user_id)
        if draft is None:
            return None

        with self._lock:
            draft.outline.modules = modules
            if title is not None:
                draft.outline.title = title
            if category_id is not None:
                draft.category_id = category_id
        return draft

    def edit(
        self, draft_id: str, user_id: int, change: Callable[[Outline], None]
    ) -> OutlineDraft | None:
        """Apply an in-place change to a draft's outline.

        Exceptions raised by ``change`` propagate; the outline keeps
        whatever the change did before raising.
        """
        draft = self.get(draft_id, user_id)
        if draft is None:
            return None

        with self._lock:
            change(draft.outline)
        return draft

    def discard(self, draft_id: str) -> bool:
        """Remove a draft. Returns False if it was not there."""
        with self._lock:
            removed = self._drafts.pop(draft_id, None)
        if removed is not None:
            logger.debug("draft_discarded", draft_id=draft_id)
        return removed is not None

    def __len__(self) -> int:
        with self._lock:
            self._purge_expired()
            return len(self._drafts)


# Global draft store instance
_draft_store: DraftStore | None = None


def get_draft_store(ttl_seconds: int | None = None) -> DraftStore:
    """Get the process-wide draft store."""
    global _draft_store
    if _draft_store is None:
        _draft_store = DraftStore(ttl_seconds or DEFAULT_TTL_SECONDS)
    return _draft_store


def reset_draft_store() -> None:
    """Reset the draft store (for testing)."""
    global _draft_store
    _draft_store = None
