"""Collaborators shared by the web routes.

Builds the chat backend, course host and usage ledger from the app config
on first use. The chat backend is only built when a route needs it, so a
missing API key does not break the usage and health routes.
"""

from __future__ import annotations

from pathlib import Path

import structlog

from coursegen.config.app_config import AppConfig, load_app_config, require_api_config
from coursegen.core.course_builder import CourseHost
from coursegen.core.draft_store import DraftStore, get_draft_store
from coursegen.core.usage_ledger import UsageLedger
from coursegen.hosts.filesystem import FileSystemCourseHost
from coursegen.llm.client import ChatBackend, build_chat_client

logger = structlog.get_logger(__name__)


class WebServices:
    """Lazily-built collaborators for request handling."""

    def __init__(
        self,
        config: AppConfig | None = None,
        chat: ChatBackend | None = None,
        host: CourseHost | None = None,
        ledger: UsageLedger | None = None,
        drafts: DraftStore | None = None,
    ):
        self.config = config or load_app_config()
        self._chat = chat
        self._host = host
        self._ledger = ledger
        self._drafts = drafts

    @property
    def chat(self) -> ChatBackend:
        """Chat backend; checks API settings the first time.

        Raises:
            ConfigurationError: If the agent backend has no base URL or key
        """
        if self._chat is None:
            if self.config.generation.backend == "agent":
                require_api_config(self.config)
            self._chat = build_chat_client(self.config)
            logger.info("web_chat_backend_ready", backend=self.config.generation.backend)
        return self._chat

    @property
    def host(self) -> CourseHost:
        if self._host is None:
            self._host = FileSystemCourseHost(
                Path(self.config.storage.courses_dir),
                categories=self.config.storage.categories,
            )
        return self._host

    @property
    def ledger(self) -> UsageLedger:
        if self._ledger is None:
            self._ledger = UsageLedger(Path(self.config.storage.usage_db))
        return self._ledger

    @property
    def drafts(self) -> DraftStore:
        if self._drafts is None:
            self._drafts = get_draft_store(self.config.storage.draft_ttl_seconds)
        return self._drafts


# Global services instance
_services: WebServices | None = None


def get_services() -> WebServices:
    """Get the global services instance."""
    global _services
    if _services is None:
        _services = WebServices()
    return _services


def set_services(services: WebServices) -> None:
    """Install a services instance (for testing)."""
    global _services
    _services = services


def reset_services() -> None:
    """Reset the services instance (for testing)."""
    global _services
    _services = None
