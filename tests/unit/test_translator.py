from unittest.mock import AsyncMock

import pytest

from signal_relay.llm.client import LLMCallResult, LLMClient
from signal_relay.translator import Translator, strip_parentheticals


def _make_client(content: str = "ترجمه") -> LLMClient:
    client = AsyncMock(spec=LLMClient)
    client.call.return_value = LLMCallResult(
        content=content,
        model="openai/gpt-4o-mini",
        input_tokens=40,
        output_tokens=20,
        latency_ms=12,
    )
    return client


class TestStripParentheticals:
    def test_removes_all_spans(self):
        assert strip_parentheticals("buy (خرید) EURUSD (یورو)") == "buy  EURUSD"

    def test_trims_result(self):
        assert strip_parentheticals("  (note) سیگنال  ") == "سیگنال"

    def test_non_nested_match(self):
        # "(a (b)" is removed up to the first ")", leaving the stray ")"
        assert strip_parentheticals("x (a (b) c) y") == "x  c) y"

    def test_unclosed_paren_kept(self):
        assert strip_parentheticals("TP 1.0850 (pips") == "TP 1.0850 (pips"

    def test_only_parenthetical(self):
        assert strip_parentheticals("(just a note)") == ""


class TestTranslator:
    @pytest.mark.asyncio
    async def test_translate_returns_clean_text(self):
        client = _make_client("  خرید EURUSD (Buy EURUSD) در 1.0850 \n")
        translator = Translator(client)

        result = await translator.translate("Buy EURUSD at 1.0850")

        assert result == "خرید EURUSD  در 1.0850"
        assert "(" not in result

    @pytest.mark.asyncio
    async def test_translate_sends_system_and_user_turns(self):
        client = _make_client()
        translator = Translator(client, system_prompt="SYSTEM")

        await translator.translate("sell limit GBPUSD")

        client.call.assert_awaited_once_with([
            {"role": "system", "content": "SYSTEM"},
            {"role": "user", "content": "sell limit GBPUSD"},
        ])

    @pytest.mark.asyncio
    async def test_translate_error_returns_none(self):
        client = AsyncMock(spec=LLMClient)
        client.call.side_effect = RuntimeError("502 Bad Gateway")
        translator = Translator(client)

        assert await translator.translate("Buy gold") is None

    @pytest.mark.asyncio
    async def test_translate_timeout_returns_none(self):
        client = AsyncMock(spec=LLMClient)
        client.call.side_effect = TimeoutError()
        translator = Translator(client)

        assert await translator.translate("Buy gold") is None

    @pytest.mark.asyncio
    async def test_empty_content_returns_none(self):
        translator = Translator(_make_client(""))
        assert await translator.translate("Buy gold") is None

    @pytest.mark.asyncio
    async def test_content_only_parentheticals_returns_none(self):
        translator = Translator(_make_client(" (no translation needed) "))
        assert await translator.translate("XAUUSD") is None

    @pytest.mark.asyncio
    async def test_blank_input_skips_llm(self):
        client = _make_client()
        translator = Translator(client)

        assert await translator.translate("   ") is None
        assert await translator.translate(None) is None
        client.call.assert_not_called()
