"""Tests for application configuration."""

import pytest

from coursegen.config.app_config import (
    ApiConfig,
    AppConfig,
    ConfigurationError,
    DEFAULT_BASE_URL,
    load_app_config,
    require_api_config,
)


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """No config file and no API environment variables."""
    monkeypatch.setenv("COURSEGEN_CONFIG", str(tmp_path / "missing.yaml"))
    monkeypatch.delenv("COURSEGEN_API_BASE_URL", raising=False)
    monkeypatch.delenv("COURSEGEN_API_KEY", raising=False)
    return tmp_path


class TestLoadAppConfig:
    """Loading from YAML with defaults."""

    def test_defaults_without_file(self, clean_env):
        config = load_app_config(force_reload=True)

        assert config.api.base_url == DEFAULT_BASE_URL
        assert config.api.timeout == 120
        assert config.api.connect_timeout == 10
        assert config.generation.backend == "agent"
        assert config.generation.outline_source_chars == 15000
        assert config.generation.lesson_context_chars == 10000
        assert config.storage.draft_ttl_seconds == 3600
        assert config.storage.categories == [1]

    def test_values_from_file(self, clean_env, monkeypatch):
        path = clean_env / "coursegen.yaml"
        path.write_text(
            """
api:
  base_url: https://ai.example.test/
  timeout: 60
generation:
  backend: openai
  provider: openai
  model: gpt-4o-mini
storage:
  usage_db: /tmp/usage.db
  categories: [4, 7]
""",
            encoding="utf-8",
        )
        monkeypatch.setenv("COURSEGEN_CONFIG", str(path))

        config = load_app_config(force_reload=True)

        assert config.api.base_url == "https://ai.example.test"
        assert config.api.timeout == 60
        assert config.api.connect_timeout == 10
        assert config.generation.backend == "openai"
        assert config.generation.model == "gpt-4o-mini"
        assert config.storage.categories == [4, 7]
        assert config.storage.courses_dir == "data/courses"

    def test_env_base_url_overrides_file(self, clean_env, monkeypatch):
        path = clean_env / "coursegen.yaml"
        path.write_text("api:\n  base_url: https://from-file.test\n", encoding="utf-8")
        monkeypatch.setenv("COURSEGEN_CONFIG", str(path))
        monkeypatch.setenv("COURSEGEN_API_BASE_URL", "https://from-env.test")

        assert load_app_config(force_reload=True).api.base_url == "https://from-env.test"

    def test_unknown_backend_falls_back_to_agent(self, clean_env, monkeypatch):
        path = clean_env / "coursegen.yaml"
        path.write_text("generation:\n  backend: carrier-pigeon\n", encoding="utf-8")
        monkeypatch.setenv("COURSEGEN_CONFIG", str(path))

        assert load_app_config(force_reload=True).generation.backend == "agent"

    def test_config_is_cached(self, clean_env):
        assert load_app_config() is load_app_config()


class TestRequireApiConfig:
    """Configuration check before a workflow starts."""

    def test_missing_key_raises(self, clean_env):
        with pytest.raises(ConfigurationError, match="COURSEGEN_API_KEY"):
            require_api_config(AppConfig())

    def test_missing_base_url_raises(self, clean_env, monkeypatch):
        monkeypatch.setenv("COURSEGEN_API_KEY", "secret")
        config = AppConfig(api=ApiConfig(base_url=""))

        with pytest.raises(ConfigurationError, match="base_url"):
            require_api_config(config)

    def test_complete_config_passes(self, clean_env, monkeypatch):
        monkeypatch.setenv("COURSEGEN_API_KEY", "secret")
        config = AppConfig()

        assert require_api_config(config) is config
        assert config.api.get_api_key() == "secret"
