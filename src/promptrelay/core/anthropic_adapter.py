"""Anthropic Messages API adapter.

Concatenates text blocks into raw_text and normalizes ``stop_reason``:
``end_turn``/``stop_sequence`` → STOP, ``max_tokens`` → MAX_TOKENS.
"""

import time
from typing import Any

import anthropic
from anthropic import Anthropic

from promptrelay.core.adapter import AdapterError, AdapterResponse, ModelAdapter
from promptrelay.core.extractor import FinishReason

_RATE_LIMIT_BACKOFF_S = 5.0

_STOP_REASONS = {
    "end_turn": FinishReason.STOP,
    "stop_sequence": FinishReason.STOP,
    "max_tokens": FinishReason.MAX_TOKENS,
}


class AnthropicAdapter(ModelAdapter):
    """Adapter for the Anthropic Messages API."""

    def __init__(
        self,
        model_id: str,
        api_key: str,
        temperature: float = 0.7,
    ):
        self._model_id = model_id
        self._temperature = temperature
        self._client = Anthropic(api_key=api_key)

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
        msg = self._call_api(messages, max_tokens, timeout_s)
        elapsed_ms = (time.monotonic() - start) * 1000

        raw_text = "".join(
            block.text for block in msg.content if block.type == "text"
        )

        return AdapterResponse(
            raw_text=raw_text,
            finish_reason=_STOP_REASONS.get(msg.stop_reason, FinishReason.OTHER),
            input_tokens=msg.usage.input_tokens,
            output_tokens=msg.usage.output_tokens,
            latency_ms=elapsed_ms,
            model_id=self._model_id,
            model_version=msg.model,
        )

    def _call_api(self, messages, max_tokens, timeout_s):
        """Call the API with one rate-limit retry."""
        # The Messages API takes the system prompt separately
        system = "\n\n".join(m["content"] for m in messages if m["role"] == "system")
        turns = [m for m in messages if m["role"] != "system"]
        kwargs: dict[str, Any] = {
            "model": self._model_id,
            "messages": turns,
            "max_tokens": max_tokens,
            "temperature": self._temperature,
            "timeout": timeout_s,
        }
        if system:
            kwargs["system"] = system
        for attempt in range(2):
            try:
                return self._client.messages.create(**kwargs)
            except anthropic.APITimeoutError as e:
                raise AdapterError("timeout", self._model_id, str(e)) from e
            except anthropic.RateLimitError as e:
                if attempt == 0:
                    time.sleep(_RATE_LIMIT_BACKOFF_S)
                    continue
                raise AdapterError("rate_limit", self._model_id, str(e)) from e
            except anthropic.APIError as e:
                raise AdapterError("api_error", self._model_id, str(e)) from e
            except Exception as e:
                raise AdapterError("api_error", self._model_id, str(e)) from e
        raise AdapterError("api_error", self._model_id, "max retries exceeded")
