from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from signal_relay.llm.backend import LiteLLMBackend, LLMBackend, to_openrouter_model
from signal_relay.llm.client import LLMCallResult, LLMClient


def _make_backend(content: str = "response") -> LLMBackend:
    backend = AsyncMock(spec=LLMBackend)
    backend.complete.return_value = LLMCallResult(
        content=content,
        model="test-model",
        input_tokens=50,
        output_tokens=25,
        latency_ms=10,
    )
    return backend


class TestLLMClient:
    def test_create_client(self):
        client = LLMClient(backend=_make_backend(), model="openai/gpt-4o-mini")
        assert client.model == "openai/gpt-4o-mini"

    @pytest.mark.asyncio
    async def test_call_delegates_params_to_backend(self):
        backend = _make_backend()
        client = LLMClient(
            backend=backend,
            model="openai/gpt-4o-mini",
            temperature=0.1,
            max_tokens=500,
            timeout=30.0,
        )

        result = await client.call([{"role": "user", "content": "test"}])

        assert result.content == "response"
        backend.complete.assert_called_once_with(
            [{"role": "user", "content": "test"}],
            model="openai/gpt-4o-mini",
            temperature=0.1,
            max_tokens=500,
            timeout=30.0,
        )

    @pytest.mark.asyncio
    async def test_call_with_zero_temperature(self):
        backend = _make_backend()
        client = LLMClient(backend=backend, model="m", temperature=0.5)

        await client.call([{"role": "user", "content": "test"}], temperature=0.0)

        assert backend.complete.call_args.kwargs["temperature"] == 0.0

    @pytest.mark.asyncio
    async def test_backend_error_propagates(self):
        backend = AsyncMock(spec=LLMBackend)
        backend.complete.side_effect = RuntimeError("boom")
        client = LLMClient(backend=backend, model="m")

        with pytest.raises(RuntimeError):
            await client.call([{"role": "user", "content": "test"}])


class TestOpenRouterModel:
    def test_bare_slug_gets_prefix(self):
        assert to_openrouter_model("openai/gpt-4o-mini") == "openrouter/openai/gpt-4o-mini"

    def test_prefixed_slug_unchanged(self):
        assert to_openrouter_model("openrouter/openai/gpt-4o") == "openrouter/openai/gpt-4o"


class TestLiteLLMBackend:
    @pytest.mark.asyncio
    async def test_complete_maps_response(self):
        response = MagicMock()
        response.choices[0].message.content = "سلام"
        response.usage.prompt_tokens = 11
        response.usage.completion_tokens = 7

        with patch(
            "signal_relay.llm.backend.acompletion", new=AsyncMock(return_value=response)
        ) as mock_completion:
            backend = LiteLLMBackend(api_key="sk-or-test")
            result = await backend.complete(
                [{"role": "user", "content": "hello"}],
                model="openai/gpt-4o-mini",
                temperature=0.1,
                max_tokens=100,
                timeout=5.0,
            )

        assert result.content == "سلام"
        assert result.input_tokens == 11
        assert result.output_tokens == 7
        kwargs = mock_completion.call_args.kwargs
        assert kwargs["model"] == "openrouter/openai/gpt-4o-mini"
        assert kwargs["api_key"] == "sk-or-test"
        assert kwargs["temperature"] == 0.1
        assert kwargs["timeout"] == 5.0

    @pytest.mark.asyncio
    async def test_complete_none_content(self):
        response = MagicMock()
        response.choices[0].message.content = None
        response.usage = None

        with patch("signal_relay.llm.backend.acompletion", new=AsyncMock(return_value=response)):
            result = await LiteLLMBackend(api_key="k").complete(
                [], model="m", temperature=0.1, max_tokens=10,
            )

        assert result.content == ""
        assert result.input_tokens == 0
