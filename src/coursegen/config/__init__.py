"""Configuration package for coursegen."""

from coursegen.config.app_config import (
    ApiConfig,
    AppConfig,
    ConfigurationError,
    GenerationConfig,
    StorageConfig,
    clear_config_cache,
    load_app_config,
    require_api_config,
)

__all__ = [
    "ApiConfig",
    "AppConfig",
    "ConfigurationError",
    "GenerationConfig",
    "StorageConfig",
    "clear_config_cache",
    "load_app_config",
    "require_api_config",
]
