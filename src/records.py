from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


RESERVED_REQUEST_KEYS = frozenset({"model", "stream", "messages"})


@dataclass(frozen=True, slots=True)
class ChatRequest:
    model: str
    user_prompt: str
    system_prompt: str | None = None
    max_tokens: int | None = None
    temperature: float | None = None
    top_p: float | None = None
    extra_params: dict[str, Any] = field(default_factory=dict)
    timeout_s: float | None = None

    @property
    def input_text(self) -> str:
        if not self.system_prompt:
            return self.user_prompt
        return f"{self.system_prompt}\n\n{self.user_prompt}"

    def messages(self) -> list[dict[str, str]]:
        messages: list[dict[str, str]] = []
        if self.system_prompt:
            messages.append({"role": "system", "content": self.system_prompt})
        messages.append({"role": "user", "content": self.user_prompt})
        return messages

    def overrides(self) -> dict[str, Any]:
        """Extra params minus the keys a backend must always control."""
        return {
            key: value
            for key, value in self.extra_params.items()
            if key not in RESERVED_REQUEST_KEYS
        }


@dataclass(frozen=True, slots=True)
class StreamEvent:
    content: str = ""
    is_complete: bool = False
    timestamp: float = 0.0
    error: BaseException | None = None

    @property
    def is_terminal(self) -> bool:
        return self.is_complete or self.error is not None


@dataclass(frozen=True, slots=True)
class BenchmarkResult:
    provider: str
    model: str
    prompt_name: str
    start_time: float
    first_token_time: float | None
    end_time: float | None
    ttft_s: float
    total_time_s: float
    input_tokens: int
    output_tokens: int
    total_tokens: int
    tokens_per_second: float
    cost: float
    response: str
    success: bool
    error_type: str | None = None
    error_message: str | None = None
