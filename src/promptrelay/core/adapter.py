"""ModelAdapter — uniform interface for LLM API calls.

Provides the ABC and the offline implementation:
- MockAdapter: deterministic, offline, for testing and demos
- OpenAIAdapter (also used for OpenRouter) and AnthropicAdapter live in
  their own modules and share AdapterResponse / AdapterError.

Every response carries a normalized FinishReason so the extraction
pipeline never has to know provider vocabulary.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable
import time

from promptrelay.core.extractor import FinishReason


class AdapterError(Exception):
    """Raised by adapters on API failures. Never let raw SDK exceptions propagate."""

    def __init__(
        self,
        error_type: str,
        model_id: str,
        details: str = "",
    ):
        # "timeout", "rate_limit", "api_error", "empty_response", "invalid_response"
        self.error_type = error_type
        self.model_id = model_id
        self.details = details
        super().__init__(f"{error_type} from {model_id}: {details}")


@dataclass(frozen=True)
class AdapterResponse:
    """Immutable response from a model query."""

    raw_text: str
    finish_reason: FinishReason
    input_tokens: int
    output_tokens: int
    latency_ms: float
    model_id: str
    model_version: str


class ModelAdapter(ABC):
    """Abstract base for all model adapters."""

    @property
    @abstractmethod
    def model_id(self) -> str:
        """Identifier reported in responses and errors."""

    @abstractmethod
    def query(
        self,
        messages: list[dict[str, str]],
        max_tokens: int,
        timeout_s: float,
        context: dict[str, Any] | None = None,
    ) -> AdapterResponse:
        """Send messages to the model and return its response."""


# Approximate chars per token for mock truncation
_CHARS_PER_TOKEN = 4


class MockAdapter(ModelAdapter):
    """Deterministic adapter for offline play and tests.

    Takes a strategy callable that receives (messages, context) and returns
    a raw text string. Output longer than the token cap is cut and reported
    as MAX_TOKENS, which is how truncation looks from a live provider too.
    """

    def __init__(
        self,
        model_id: str,
        strategy: Callable[[list[dict[str, str]], dict[str, Any]], str],
    ):
        self._model_id = model_id
        self._strategy = strategy

    @property
    def model_id(self) -> str:
        return self._model_id

    def query(
        self,
        messages: list[dict[str, str]],
        max_tokens: int,
        timeout_s: float,
        context: dict[str, Any] | None = None,
    ) -> AdapterResponse:
        start = time.monotonic()
        raw = self._strategy(messages, context or {})
        finish = FinishReason.STOP

        # Enforce token cap via character approximation
        max_chars = max_tokens * _CHARS_PER_TOKEN
        if len(raw) > max_chars:
            raw = raw[:max_chars]
            finish = FinishReason.MAX_TOKENS

        elapsed_ms = (time.monotonic() - start) * 1000

        return AdapterResponse(
            raw_text=raw,
            finish_reason=finish,
            input_tokens=sum(len(m.get("content", "")) for m in messages) // _CHARS_PER_TOKEN,
            output_tokens=max(1, len(raw) // _CHARS_PER_TOKEN),
            latency_ms=elapsed_ms,
            model_id=self._model_id,
            model_version=self._model_id,
        )
