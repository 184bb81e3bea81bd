from __future__ import annotations

import structlog

from signal_relay.llm.backend import LLMBackend, LLMCallResult

logger = structlog.get_logger(__name__)

__all__ = ["LLMCallResult", "LLMClient"]


class LLMClient:
    def __init__(
        self,
        *,
        backend: LLMBackend,
        model: str,
        temperature: float = 0.1,
        max_tokens: int = 2000,
        timeout: float | None = None,
    ) -> None:
        self.model = model
        self._backend = backend
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._timeout = timeout

    async def call(
        self,
        messages: list[dict[str, str]],
        *,
        model: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> LLMCallResult:
        effective_model = model or self.model

        result = await self._backend.complete(
            messages,
            model=effective_model,
            temperature=temperature if temperature is not None else self._temperature,
            max_tokens=max_tokens if max_tokens is not None else self._max_tokens,
            timeout=self._timeout,
        )

        logger.info(
            "llm_call_complete",
            model=effective_model,
            input_tokens=result.input_tokens,
            output_tokens=result.output_tokens,
            latency_ms=result.latency_ms,
        )

        return result
