"""English → Persian translation of channel posts via LLM.

Parenthetical asides are stripped from the model output: the prompt asks for
none, and models add them anyway ("(Take Profit)", "(note: ...)").
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

import structlog

from signal_relay.prompts import DEFAULT_TRANSLATION_PROMPT

if TYPE_CHECKING:
    from signal_relay.llm.client import LLMClient

logger = structlog.get_logger(__name__)

_PARENTHETICAL_RE = re.compile(r"\([^)]*\)")
_PREVIEW_CHARS = 50


def strip_parentheticals(text: str) -> str:
    """Remove every ``(...)`` span (first ``(`` to the next ``)``) and trim."""
    return _PARENTHETICAL_RE.sub("", text).strip()


def _preview(text: str) -> str:
    if len(text) > _PREVIEW_CHARS:
        return text[:_PREVIEW_CHARS] + "..."
    return text


class Translator:
    def __init__(
        self,
        llm_client: LLMClient,
        *,
        system_prompt: str = DEFAULT_TRANSLATION_PROMPT,
    ) -> None:
        self._llm_client = llm_client
        self._system_prompt = system_prompt

    def build_messages(self, text: str) -> list[dict[str, str]]:
        return [
            {"role": "system", "content": self._system_prompt},
            {"role": "user", "content": text},
        ]

    async def translate(self, text: str | None) -> str | None:
        """Return the translated text, or None when no translation was produced."""
        if not text or not text.strip():
            return None

        log = logger.bind(preview=_preview(text))
        log.info("translation_start")

        try:
            result = await self._llm_client.call(self.build_messages(text))
        except Exception as e:
            log.error("translation_error", error=str(e), error_type=type(e).__name__)
            return None

        translated = strip_parentheticals(result.content or "")
        if not translated:
            log.warning("translation_empty", model=result.model)
            return None

        log.info("translation_complete", latency_ms=result.latency_ms)
        return translated
