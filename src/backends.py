from __future__ import annotations

import logging
import os
from threading import Event
import time
from typing import Any, Callable, Iterator, TypeVar

from errors import (
    BenchmarkError,
    ConfigurationError,
    ProviderError,
    RateLimitError,
    RequestCancelledError,
    RequestTimeoutError,
    ValidationError,
)
from providers import ProviderConfig
from records import ChatRequest, StreamEvent
from streaming import ChatStream


logger = logging.getLogger(__name__)

T = TypeVar("T")

CHARS_PER_TOKEN = 4

COMMON_RETRYABLE_MARKERS = (
    "rate_limit",
    "rate limit",
    "429",
    "500",
    "502",
    "503",
    "504",
    "timeout",
    "timed out",
    "deadline exceeded",
    "connection refused",
    "no route to host",
    "network is unreachable",
)

NON_RETRYABLE_MARKERS = (
    "401",
    "403",
    "invalid api key",
    "invalid_api_key",
    "incorrect api key",
    "authentication",
    "permission denied",
)


class StreamingProvider:
    """Uniform contract every backend adapter presents to the runner."""

    kind = "base"
    temperature_range = (0.0, 2.0)
    retryable_markers: tuple[str, ...] = COMMON_RETRYABLE_MARKERS
    retry_delay_cap_s = 30.0
    retry_jitter_s = 0.1

    def __init__(self, config: ProviderConfig, clock: Callable[[], float] = time.time) -> None:
        self.config = config
        self.clock = clock

    @property
    def name(self) -> str:
        return self.config.name

    def stream_chat(
        self, request: ChatRequest, cancel_event: Event | None = None
    ) -> ChatStream:
        source = self._iter_events(request)
        return ChatStream(
            source,
            error_mapper=self._map_error,
            cancel_event=cancel_event,
            clock=self.clock,
            name=f"{self.name}-stream",
        )

    def _iter_events(self, request: ChatRequest) -> Iterator[StreamEvent]:
        raise NotImplementedError

    def _map_error(self, error: BaseException) -> BaseException:
        if isinstance(error, BenchmarkError):
            return error
        return ProviderError(self.name, "failed to receive stream response", error)

    def get_token_count(self, text: str) -> int:
        if not text:
            return 0
        return max(len(text) // CHARS_PER_TOKEN, 1)

    def token_count(self, event: StreamEvent) -> tuple[int, int, int]:
        output = self.get_token_count(event.content)
        return 0, output, output

    def validate_request(self, request: ChatRequest) -> None:
        if not request.model.strip():
            raise ValidationError("model", "model name is required")
        if not request.user_prompt.strip():
            raise ValidationError("user_prompt", "user prompt is required")
        if request.max_tokens is not None and request.max_tokens < 0:
            raise ValidationError("max_tokens", "max_tokens must be non-negative")

        low, high = self.temperature_range
        if request.temperature is not None and not low <= request.temperature <= high:
            raise ValidationError(
                "temperature", f"temperature must be between {low:g} and {high:g}"
            )
        if request.top_p is not None and not 0.0 <= request.top_p <= 1.0:
            raise ValidationError("top_p", "top_p must be between 0 and 1")

    def is_retryable_error(self, error: BaseException | None) -> bool:
        if error is None:
            return False
        if isinstance(error, (ValidationError, ConfigurationError, RequestCancelledError)):
            return False
        if isinstance(error, (RateLimitError, RequestTimeoutError)):
            return True

        text = str(error).lower()
        if any(marker in text for marker in NON_RETRYABLE_MARKERS):
            return False
        return any(marker in text for marker in self.retryable_markers)

    def get_retry_delay(self, attempt: int, error: BaseException | None = None) -> float:
        base_delay = min(float(attempt * attempt), self.retry_delay_cap_s)
        return base_delay + attempt * self.retry_jitter_s


class LiteLLMProvider(StreamingProvider):
    """Adapter that streams through ``litellm.completion``."""

    model_prefix = ""
    api_key_env: str | None = None
    api_base_env: str | None = None

    def __init__(self, config: ProviderConfig, clock: Callable[[], float] = time.time) -> None:
        super().__init__(config, clock)
        key_env = config.api_key_env or self.api_key_env
        self.api_key = os.getenv(key_env) if key_env else None
        if key_env and not self.api_key:
            raise ConfigurationError(
                key_env, f"API key for provider {config.name!r} is required"
            )
        self.api_base = config.api_base or (
            os.getenv(self.api_base_env) if self.api_base_env else None
        )

    @staticmethod
    def _configure_litellm() -> None:
        import litellm

        # Keep benchmark output clean by hiding LiteLLM guidance banners in error paths.
        litellm.suppress_debug_info = True

    def litellm_model(self, model: str) -> str:
        if not self.model_prefix or model.startswith(self.model_prefix):
            return model
        return f"{self.model_prefix}{model}"

    def build_request_options(self, request: ChatRequest) -> dict[str, Any]:
        options: dict[str, Any] = {}
        if request.max_tokens:
            options["max_tokens"] = request.max_tokens
        if request.temperature is not None:
            options["temperature"] = request.temperature
        if request.top_p is not None:
            options["top_p"] = request.top_p

        if self.api_key:
            options["api_key"] = self.api_key
        if self.api_base:
            options["api_base"] = self.api_base
        if self.config.extra_headers:
            options["extra_headers"] = dict(self.config.extra_headers)
        timeout = self.config.timeout_s if self.config.timeout_s is not None else request.timeout_s
        if timeout is not None:
            options["timeout"] = timeout

        options.update(request.overrides())
        options["model"] = self.litellm_model(request.model)
        options["messages"] = request.messages()
        options["stream"] = True
        return options

    def _iter_events(self, request: ChatRequest) -> Iterator[StreamEvent]:
        self._configure_litellm()
        from litellm import completion

        options = self.build_request_options(request)
        logger.debug("Streaming %s via %s", options["model"], self.name)
        stream = completion(**options)
        try:
            for chunk in stream:
                text = self.extract_delta(chunk)
                if text:
                    yield StreamEvent(content=text, timestamp=self.clock())
        finally:
            close = getattr(stream, "close", None)
            if callable(close):
                close()
        yield StreamEvent(is_complete=True, timestamp=self.clock())

    @staticmethod
    def extract_delta(chunk: object) -> str:
        # Supports both dict-style and object-style chunk payloads.
        if isinstance(chunk, dict):
            choices = chunk.get("choices") or []
            if not choices:
                return ""
            first_choice = choices[0] or {}
            delta = first_choice.get("delta") or {}
            content = delta.get("content")
            if content is None:
                content = first_choice.get("text")
            return str(content or "")

        choices = getattr(chunk, "choices", None)
        if not choices:
            return ""
        first_choice = choices[0]
        delta = getattr(first_choice, "delta", None)
        content = getattr(delta, "content", None) if delta is not None else None
        if content is None:
            content = getattr(first_choice, "text", None)
        return str(content or "")

    def _map_error(self, error: BaseException) -> BaseException:
        if isinstance(error, BenchmarkError):
            return error
        if _is_litellm_rate_limit(error):
            return RateLimitError(self.name, _retry_after_seconds(error), error)
        return ProviderError(self.name, "failed to receive stream response", error)


def _is_litellm_rate_limit(error: BaseException) -> bool:
    try:
        from litellm.exceptions import RateLimitError as LiteLLMRateLimitError
    except ImportError:
        return False
    return isinstance(error, LiteLLMRateLimitError)


def _retry_after_seconds(error: BaseException) -> float | None:
    response = getattr(error, "response", None)
    headers = getattr(response, "headers", None)
    if not headers:
        return None
    value = headers.get("retry-after")
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


class OpenAIProvider(LiteLLMProvider):
    kind = "openai"
    model_prefix = "openai/"
    api_key_env = "OPENAI_API_KEY"
    api_base_env = "OPENAI_BASE_URL"


class GroqProvider(LiteLLMProvider):
    kind = "groq"
    model_prefix = "groq/"
    api_key_env = "GROQ_API_KEY"
    api_base_env = "GROQ_BASE_URL"
    retryable_markers = COMMON_RETRYABLE_MARKERS + (
        "rate_limit_exceeded",
        "service_unavailable",
        "over capacity",
    )

    def build_request_options(self, request: ChatRequest) -> dict[str, Any]:
        options = super().build_request_options(request)
        # Groq names the output limit max_completion_tokens.
        if "max_completion_tokens" in options:
            options.pop("max_tokens", None)
        return options


class AnthropicProvider(LiteLLMProvider):
    kind = "anthropic"
    model_prefix = "anthropic/"
    api_key_env = "ANTHROPIC_API_KEY"
    api_base_env = "ANTHROPIC_BASE_URL"
    temperature_range = (0.0, 1.0)
    default_max_tokens = 1024
    retryable_markers = COMMON_RETRYABLE_MARKERS + ("overloaded", "529")

    def build_request_options(self, request: ChatRequest) -> dict[str, Any]:
        options = super().build_request_options(request)
        # The Messages API rejects requests without an explicit output limit.
        options.setdefault("max_tokens", self.default_max_tokens)
        return options


class AzureOpenAIProvider(LiteLLMProvider):
    kind = "azure_openai"
    model_prefix = "azure/"
    api_key_env = "AZURE_OPENAI_API_KEY"
    api_base_env = "AZURE_OPENAI_ENDPOINT"
    default_api_version = "2024-02-15-preview"
    retryable_markers = COMMON_RETRYABLE_MARKERS + ("too many requests", "throttl")

    def __init__(self, config: ProviderConfig, clock: Callable[[], float] = time.time) -> None:
        super().__init__(config, clock)
        if not self.api_base:
            raise ConfigurationError(
                "AZURE_OPENAI_ENDPOINT", "Azure OpenAI endpoint is required"
            )
        self.api_version = (
            config.api_version
            or os.getenv("AZURE_OPENAI_API_VERSION")
            or self.default_api_version
        )

    def build_request_options(self, request: ChatRequest) -> dict[str, Any]:
        options = super().build_request_options(request)
        options.setdefault("api_version", self.api_version)
        return options


class GeminiProvider(LiteLLMProvider):
    kind = "gemini"
    model_prefix = "gemini/"
    api_key_env = "GOOGLE_API_KEY"
    retryable_markers = COMMON_RETRYABLE_MARKERS + (
        "quota",
        "resource_exhausted",
        "unavailable",
        "internal",
        "connection",
        "network",
    )


BUILTIN_PROVIDER_TYPES: dict[str, type[LiteLLMProvider]] = {
    provider_type.kind: provider_type
    for provider_type in (
        OpenAIProvider,
        GroqProvider,
        AnthropicProvider,
        AzureOpenAIProvider,
        GeminiProvider,
    )
}


def retry_call(
    provider: StreamingProvider,
    operation: Callable[[], T],
    max_attempts: int = 3,
    sleep_fn: Callable[[float], None] = time.sleep,
) -> T:
    """Run ``operation`` and retry failures the provider classifies as transient."""
    if max_attempts < 1:
        raise ValueError("max_attempts must be >= 1")

    attempt = 1
    while True:
        try:
            return operation()
        except Exception as exc:
            if attempt >= max_attempts or not provider.is_retryable_error(exc):
                raise
            delay = provider.get_retry_delay(attempt, exc)
            logger.info(
                "Retrying %s after %s (attempt %d/%d, sleeping %.1fs)",
                provider.name, type(exc).__name__, attempt, max_attempts, delay,
            )
            sleep_fn(delay)
            attempt += 1
