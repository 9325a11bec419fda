"""Application configuration loader.

Loads centralized configuration from data/config/coursegen.yaml
(or the path in $COURSEGEN_CONFIG) with fallback to built-in defaults.

Usage:
    from coursegen.config.app_config import load_app_config, require_api_config

    config = load_app_config()
    require_api_config(config)
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal

import structlog
import yaml

logger = structlog.get_logger(__name__)

# Config file path (relative to working directory)
CONFIG_FILE = Path("data/config/coursegen.yaml")
CONFIG_ENV = "COURSEGEN_CONFIG"

BASE_URL_ENV = "COURSEGEN_API_BASE_URL"
DEFAULT_BASE_URL = "https://ai-sv-production.lumination.ai"
DEFAULT_API_KEY_ENV = "COURSEGEN_API_KEY"

Backend = Literal["agent", "openai"]


class ConfigurationError(Exception):
    """Required configuration (API base URL / credentials) is missing."""

    pass


@dataclass
class ApiConfig:
    """Connection settings for the AI API."""

    base_url: str = DEFAULT_BASE_URL
    api_key_env: str = DEFAULT_API_KEY_ENV
    timeout: int = 120
    connect_timeout: int = 10

    def get_api_key(self) -> str | None:
        """Get API key from environment variable."""
        if self.api_key_env:
            return os.environ.get(self.api_key_env) or None
        return None


@dataclass
class GenerationConfig:
    """Settings for outline and lesson generation."""

    backend: Backend = "agent"
    default_language: str = "en"
    outline_source_chars: int = 15000
    lesson_context_chars: int = 10000
    # OpenAI-compatible backend only
    provider: str = "lmstudio"
    model: str = "default"
    temperature: float = 0.7
    max_tokens: int = 4096


@dataclass
class StorageConfig:
    """Local storage locations."""

    usage_db: str = "db/usage.db"
    courses_dir: str = "data/courses"
    draft_ttl_seconds: int = 3600
    categories: list[int] = field(default_factory=lambda: [1])


@dataclass
class AppConfig:
    """Application-wide configuration."""

    api: ApiConfig = field(default_factory=ApiConfig)
    generation: GenerationConfig = field(default_factory=GenerationConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)


# Module-level cache
_cached_config: AppConfig | None = None


def _get_defaults() -> dict[str, Any]:
    """Get default configuration values."""
    return {
        "api": {
            "base_url": DEFAULT_BASE_URL,
            "api_key_env": DEFAULT_API_KEY_ENV,
            "timeout": 120,
            "connect_timeout": 10,
        },
        "generation": {
            "backend": "agent",
            "default_language": "en",
            "outline_source_chars": 15000,
            "lesson_context_chars": 10000,
            "provider": "lmstudio",
            "model": "default",
            "temperature": 0.7,
            "max_tokens": 4096,
        },
        "storage": {
            "usage_db": "db/usage.db",
            "courses_dir": "data/courses",
            "draft_ttl_seconds": 3600,
            "categories": [1],
        },
    }


def _parse_config(data: dict[str, Any]) -> AppConfig:
    """Parse configuration dictionary into AppConfig object."""
    defaults = _get_defaults()

    api_data = {**defaults["api"], **(data.get("api") or {})}
    gen_data = {**defaults["generation"], **(data.get("generation") or {})}
    storage_data = {**defaults["storage"], **(data.get("storage") or {})}

    # Environment wins over file for the base URL
    base_url = os.environ.get(BASE_URL_ENV) or api_data.get("base_url") or ""

    backend = gen_data.get("backend", "agent")
    if backend not in ("agent", "openai"):
        logger.warning("unknown_backend_using_agent", backend=backend)
        backend = "agent"

    return AppConfig(
        api=ApiConfig(
            base_url=base_url.rstrip("/"),
            api_key_env=api_data.get("api_key_env") or DEFAULT_API_KEY_ENV,
            timeout=int(api_data.get("timeout", 120)),
            connect_timeout=int(api_data.get("connect_timeout", 10)),
        ),
        generation=GenerationConfig(
            backend=backend,
            default_language=gen_data.get("default_language", "en"),
            outline_source_chars=int(gen_data.get("outline_source_chars", 15000)),
            lesson_context_chars=int(gen_data.get("lesson_context_chars", 10000)),
            provider=gen_data.get("provider", "lmstudio"),
            model=gen_data.get("model", "default"),
            temperature=float(gen_data.get("temperature", 0.7)),
            max_tokens=int(gen_data.get("max_tokens", 4096)),
        ),
        storage=StorageConfig(
            usage_db=storage_data.get("usage_db", "db/usage.db"),
            courses_dir=storage_data.get("courses_dir", "data/courses"),
            draft_ttl_seconds=int(storage_data.get("draft_ttl_seconds", 3600)),
            categories=[int(c) for c in storage_data.get("categories") or [1]],
        ),
    )


def _config_path() -> Path:
    env_path = os.environ.get(CONFIG_ENV)
    return Path(env_path) if env_path else CONFIG_FILE


def load_app_config(force_reload: bool = False) -> AppConfig:
    """Load application config, falling back to defaults.

    Args:
        force_reload: If True, ignore cached config and reload from file.

    Returns:
        AppConfig object with all settings.
    """
    global _cached_config

    if _cached_config is not None and not force_reload:
        return _cached_config

    config_path = _config_path()
    data: dict[str, Any]

    if config_path.exists():
        logger.debug("loading_app_config", source=str(config_path))
        data = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
    else:
        logger.info("using_default_config")
        data = _get_defaults()

    _cached_config = _parse_config(data)
    return _cached_config


def require_api_config(config: AppConfig | None = None) -> AppConfig:
    """Ensure the AI API base URL and key are available.

    Called once before a workflow starts.

    Raises:
        ConfigurationError: If the base URL or API key is missing.
    """
    if config is None:
        config = load_app_config()

    missing = []
    if not config.api.base_url:
        missing.append("api.base_url")
    if not config.api.get_api_key():
        missing.append(f"${config.api.api_key_env}")

    if missing:
        raise ConfigurationError(
            "AI API is not configured (missing: " + ", ".join(missing) + ")"
        )
    return config


def clear_config_cache() -> None:
    """Clear the configuration cache.

    Useful for testing or when config is modified at runtime.
    """
    global _cached_config
    _cached_config = None
