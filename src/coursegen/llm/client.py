"""Chat-completion backends.

Provides a unified interface for single-shot chat completions used by the
outline and lesson generators.

Supported backends:
- agent: Lumination AI agent chat endpoint (doubly-nested response envelope,
  token and credit accounting in the reply)
- openai: any OpenAI-compatible server (LM Studio, OpenAI)
"""

from __future__ import annotations

import os
import time
from dataclasses import dataclass, field
from typing import Any, Literal, Protocol

import structlog
from openai import APIConnectionError, APIStatusError, APITimeoutError, OpenAI, OpenAIError

from coursegen.config.app_config import AppConfig, GenerationConfig
from coursegen.llm.api_client import ApiClient
from coursegen.llm.errors import (
    ApiConnectionError,
    ApiContentError,
    ApiError,
    ApiResponseError,
)

logger = structlog.get_logger(__name__)

# =============================================================================
# CONSTANTS
# =============================================================================

AGENT_CHAT_PATH = "/lumination-ai/api/v1/agent/chat"

Provider = Literal["lmstudio", "openai"]

# Provider-specific defaults
PROVIDER_DEFAULTS: dict[str, dict[str, Any]] = {
    "lmstudio": {
        "base_url": "http://localhost:1234/v1",
        "api_key": "lm-studio",  # LM Studio doesn't need real API key
    },
    "openai": {
        "base_url": "https://api.openai.com/v1",
        "api_key_env": "OPENAI_API_KEY",
    },
}


# =============================================================================
# DATA CLASSES
# =============================================================================


@dataclass
class Message:
    """A chat message."""

    role: Literal["system", "user", "assistant"]
    content: str

    def to_dict(self) -> dict[str, str]:
        """Convert to dictionary for API call."""
        return {"role": self.role, "content": self.content}


@dataclass
class CompletionResult:
    """Result of one chat completion.

    ``text`` is None when the reply carried no usable string content;
    callers decide whether that is fatal.
    """

    text: str | None
    tokens_in: int = 0
    tokens_out: int = 0
    credits_charged: float = 0.0
    latency_ms: int = 0
    raw: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_agent_response(cls, result: dict[str, Any], latency_ms: int = 0) -> CompletionResult:
        """Build a result from the agent endpoint's reply.

        Text lookup order: response.response, then response (when a string).
        """
        return cls(
            text=extract_response_text(result),
            tokens_in=_as_int(result.get("token_count_input")),
            tokens_out=_as_int(result.get("token_count_output")),
            credits_charged=_as_float(result.get("credits_charged")),
            latency_ms=latency_ms,
            raw=result,
        )


def extract_response_text(result: dict[str, Any]) -> str | None:
    """Pull the reply text out of the doubly-nested agent envelope."""
    envelope = result.get("response")
    if isinstance(envelope, dict):
        inner = envelope.get("response")
        return inner if isinstance(inner, str) else None
    if isinstance(envelope, str):
        return envelope
    return None


def _as_int(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


def _as_float(value: Any) -> float:
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0


class ChatBackend(Protocol):
    """Anything that can run a single-shot, non-streaming completion."""

    def complete(self, messages: list[Message]) -> CompletionResult: ...


# =============================================================================
# AGENT BACKEND
# =============================================================================


class AgentChatClient:
    """Chat backend for the AI API agent endpoint.

    Requests are stateless on the remote side (persist=false, stream=false).
    """

    def __init__(self, api: ApiClient):
        self.api = api

    def complete(self, messages: list[Message]) -> CompletionResult:
        """Send one chat request.

        Raises:
            ApiError: On transport or HTTP failure
        """
        start_time = time.time()
        result = self.api.post(
            AGENT_CHAT_PATH,
            {
                "persist": False,
                "stream": False,
                "messages": [m.to_dict() for m in messages],
            },
        )
        latency_ms = int((time.time() - start_time) * 1000)

        completion = CompletionResult.from_agent_response(result, latency_ms=latency_ms)
        logger.debug(
            "agent_chat_response",
            tokens_in=completion.tokens_in,
            tokens_out=completion.tokens_out,
            credits=completion.credits_charged,
            latency_ms=latency_ms,
        )
        return completion


# =============================================================================
# OPENAI-COMPATIBLE BACKEND
# =============================================================================


@dataclass
class LLMConfig:
    """Configuration for an OpenAI-compatible server."""

    provider: str = "lmstudio"
    base_url: str = "http://localhost:1234/v1"
    model: str = "default"
    temperature: float = 0.7
    max_tokens: int = 4096
    timeout: int = 120
    api_key: str | None = None

    @classmethod
    def from_generation_config(cls, gen: GenerationConfig, timeout: int = 120) -> LLMConfig:
        """Build from the generation section of the app config."""
        defaults = PROVIDER_DEFAULTS.get(gen.provider, PROVIDER_DEFAULTS["lmstudio"])

        api_key = None
        if "api_key_env" in defaults:
            api_key = os.environ.get(defaults["api_key_env"])
        elif "api_key" in defaults:
            api_key = defaults["api_key"]

        return cls(
            provider=gen.provider,
            base_url=defaults["base_url"],
            model=gen.model,
            temperature=gen.temperature,
            max_tokens=gen.max_tokens,
            timeout=timeout,
            api_key=api_key,
        )


class OpenAIChatClient:
    """Chat backend for OpenAI-compatible servers (LM Studio, OpenAI)."""

    def __init__(self, config: LLMConfig | None = None):
        self.config = config or LLMConfig()
        self._client = OpenAI(
            base_url=self.config.base_url,
            api_key=self.config.api_key or "not-needed",
            timeout=self.config.timeout,
        )

        logger.info(
            "llm_client_initialized",
            provider=self.config.provider,
            model=self.config.model,
            base_url=self.config.base_url,
        )

    def complete(self, messages: list[Message]) -> CompletionResult:
        """Send chat completion request.

        Raises:
            ApiConnectionError: If cannot connect to server
            ApiResponseError: If server answers with an error status
            ApiError: On any other SDK failure
        """
        url = self.config.base_url
        start_time = time.time()

        try:
            response = self._client.chat.completions.create(
                model=self.config.model,
                messages=[m.to_dict() for m in messages],
                temperature=self.config.temperature,
                max_tokens=self.config.max_tokens,
            )
        except (APIConnectionError, APITimeoutError) as e:
            raise ApiConnectionError(
                f"Could not connect to {self.config.provider} at {url}: {e}", url=url
            ) from e
        except APIStatusError as e:
            raise ApiResponseError(
                f"HTTP {e.status_code}: {e.message}",
                url=url,
                status_code=e.status_code,
                detail=e.message,
            ) from e
        except OpenAIError as e:
            raise ApiError(f"LLM call failed: {e}", url=url) from e

        latency_ms = int((time.time() - start_time) * 1000)

        if not response.choices:
            raise ApiContentError("Empty response from LLM", url=url)

        tokens_in = tokens_out = 0
        if response.usage:
            tokens_in = response.usage.prompt_tokens
            tokens_out = response.usage.completion_tokens

        logger.debug(
            "llm_response",
            provider=self.config.provider,
            model=response.model,
            tokens_in=tokens_in,
            tokens_out=tokens_out,
            latency_ms=latency_ms,
        )

        return CompletionResult(
            text=response.choices[0].message.content,
            tokens_in=tokens_in,
            tokens_out=tokens_out,
            latency_ms=latency_ms,
        )


def build_chat_client(config: AppConfig, api: ApiClient | None = None) -> ChatBackend:
    """Create the chat backend selected in config."""
    if config.generation.backend == "openai":
        return OpenAIChatClient(
            LLMConfig.from_generation_config(config.generation, timeout=config.api.timeout)
        )
    return AgentChatClient(api or ApiClient(config.api))
