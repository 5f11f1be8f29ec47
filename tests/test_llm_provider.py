"""Tests for agents.llm_provider module."""

from __future__ import annotations

import asyncio
import json
from types import SimpleNamespace

import pytest

from agents.llm_provider import (
    CONTINUE_PROMPT,
    OPENING_PROMPT,
    LLMResponse,
    ResponseSchema,
    create_provider,
)
from agents.schemas import VERDICT_SCHEMA, VERDICT_SCHEMA_NAME
from errors import ProviderError
from orchestration.debate_manager import DebateManager
from tests.conftest import MockProvider, verdict_json


class TestMockProvider:
    """Verify the mock provider works correctly for downstream tests."""

    @pytest.mark.asyncio
    async def test_generate_returns_llm_response(self, mock_provider: MockProvider):
        resp = await mock_provider.generate(
            [{"role": "user", "content": "Hello"}],
            temperature=0.5,
            max_tokens=100,
        )
        assert isinstance(resp, LLMResponse)
        assert resp.provider == "mock"
        assert resp.model == "mock-v1"
        assert len(resp.text) > 0
        assert resp.tokens_used > 0
        assert resp.latency_ms >= 0

    @pytest.mark.asyncio
    async def test_multiple_responses_cycle(self):
        provider = MockProvider(responses=["first", "second", "third"])
        texts = [
            await provider.complete([{"role": "user", "content": c}]) for c in "abcd"
        ]
        assert texts == ["first", "second", "third", "first"]

    @pytest.mark.asyncio
    async def test_call_log_records_parameters(self, mock_provider: MockProvider):
        await mock_provider.generate(
            [{"role": "system", "content": "sys"}, {"role": "user", "content": "hi"}],
            temperature=0.9,
            max_tokens=200,
        )
        assert len(mock_provider.call_log) == 1
        log = mock_provider.call_log[0]
        assert log["temperature"] == 0.9
        assert log["max_tokens"] == 200
        assert len(log["messages"]) == 2
        assert log["schema"] is None


class TestCompletionContract:
    @pytest.mark.asyncio
    async def test_empty_messages_raise_provider_error(self, mock_provider: MockProvider):
        with pytest.raises(ProviderError, match="empty"):
            await mock_provider.complete([])
        assert mock_provider.call_log == []

    @pytest.mark.asyncio
    async def test_backend_failure_becomes_provider_error(self):
        provider = MockProvider(error=ConnectionError("connection reset"))
        with pytest.raises(ProviderError, match="connection reset") as exc_info:
            await provider.complete([{"role": "user", "content": "hi"}])
        assert exc_info.value.kind == "provider_error"
        assert isinstance(exc_info.value.__cause__, ConnectionError)

    @pytest.mark.asyncio
    async def test_single_attempt_only(self):
        provider = MockProvider(error=TimeoutError("slow"))
        with pytest.raises(ProviderError):
            await provider.complete([{"role": "user", "content": "hi"}])
        assert len(provider.call_log) == 1

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self):
        provider = MockProvider(error=asyncio.CancelledError())
        with pytest.raises(asyncio.CancelledError):
            await provider.complete([{"role": "user", "content": "hi"}])

    @pytest.mark.asyncio
    async def test_complete_structured_passes_schema(self, mock_provider: MockProvider):
        text = await mock_provider.complete_structured(
            [{"role": "user", "content": "judge this"}],
            VERDICT_SCHEMA_NAME,
            VERDICT_SCHEMA,
        )
        assert json.loads(text) == json.loads(verdict_json("pro"))
        assert mock_provider.call_log[0]["schema"] == VERDICT_SCHEMA_NAME


class TestCreateProvider:
    def test_unknown_provider_raises(self):
        with pytest.raises(ValueError, match="Unknown provider"):
            create_provider("nonexistent", api_key="k")

    def test_missing_api_key_raises(self, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        with pytest.raises(ValueError, match="No API key"):
            create_provider("openai")  # no key, no env var

    def test_api_key_from_env(self, monkeypatch):
        monkeypatch.setenv("MY_DEBATE_KEY", "secret")
        provider = create_provider("openai", api_key_env="MY_DEBATE_KEY")
        assert provider.api_key == "secret"
        assert provider.model == "gpt-4o-mini"

    def test_openrouter_provider_created(self):
        provider = create_provider("openrouter", api_key="test-key", model="openai/gpt-4")
        assert provider.name == "openrouter"
        assert provider.model == "openai/gpt-4"
        assert provider.base_url == "https://openrouter.ai/api/v1"


class TestLLMResponse:
    def test_frozen_dataclass(self):
        resp = LLMResponse(
            text="hi", tokens_used=5, model="m", provider="p", latency_ms=10.0
        )
        assert resp.text == "hi"
        with pytest.raises(AttributeError):
            resp.text = "modified"  # type: ignore[misc]


# ---------------------------------------------------------------------------
# Backend adapters with stubbed clients
# ---------------------------------------------------------------------------

def _recorder(response):
    """Async stand-in for a client method that records its kwargs."""
    calls: list[dict] = []

    async def create(**kwargs):
        calls.append(kwargs)
        return response

    create.calls = calls
    return create


def _openai_response(content: str | None, choices: bool = True) -> SimpleNamespace:
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))] if choices else [],
        usage=SimpleNamespace(total_tokens=12),
        model_dump=lambda: {"id": "chatcmpl-1"},
    )


def _anthropic_response(*blocks: SimpleNamespace) -> SimpleNamespace:
    return SimpleNamespace(
        content=list(blocks),
        usage=SimpleNamespace(input_tokens=5, output_tokens=7),
    )


class TestOpenAIAdapter:
    @pytest.fixture
    def provider(self):
        return create_provider("openai", api_key="test-key")

    @pytest.mark.asyncio
    async def test_structured_sends_strict_json_schema(self, provider):
        create = _recorder(_openai_response(verdict_json("con")))
        provider._client = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))

        text = await provider.complete_structured(
            [{"role": "user", "content": "judge"}], VERDICT_SCHEMA_NAME, VERDICT_SCHEMA
        )

        assert json.loads(text)["winner"] == "con"
        sent = create.calls[0]
        assert sent["model"] == "gpt-4o-mini"
        assert sent["response_format"] == {
            "type": "json_schema",
            "json_schema": {"name": VERDICT_SCHEMA_NAME, "schema": VERDICT_SCHEMA, "strict": True},
        }

    @pytest.mark.asyncio
    async def test_plain_completion_has_no_response_format(self, provider):
        create = _recorder(_openai_response("Buses are cheaper."))
        provider._client = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))

        response = await provider.generate([{"role": "user", "content": "argue"}])
        assert response.text == "Buses are cheaper."
        assert response.tokens_used == 12
        assert "response_format" not in create.calls[0]

    @pytest.mark.asyncio
    async def test_no_choices_raises_provider_error(self, provider):
        create = _recorder(_openai_response(None, choices=False))
        provider._client = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))

        with pytest.raises(ProviderError, match="no choices"):
            await provider.complete([{"role": "user", "content": "argue"}])


class TestAnthropicAdapter:
    @pytest.fixture
    def provider(self):
        return create_provider("anthropic", api_key="test-key")

    @pytest.mark.asyncio
    async def test_system_only_prompt_gets_opening_user_turn(self, provider):
        create = _recorder(_anthropic_response(SimpleNamespace(type="text", text="Opening.")))
        provider._client = SimpleNamespace(messages=SimpleNamespace(create=create))

        text = await provider.complete([{"role": "system", "content": "You argue pro."}])

        assert text == "Opening."
        sent = create.calls[0]
        assert sent["system"] == "You argue pro."
        assert sent["messages"] == [{"role": "user", "content": OPENING_PROMPT}]

    @pytest.mark.asyncio
    async def test_leading_assistant_turn_gets_user_turn_first(self, provider):
        create = _recorder(_anthropic_response(SimpleNamespace(type="text", text="Rebuttal.")))
        provider._client = SimpleNamespace(messages=SimpleNamespace(create=create))

        await provider.complete(
            [
                {"role": "system", "content": "You argue pro."},
                {"role": "assistant", "content": "My opening."},
                {"role": "user", "content": "Their reply."},
            ]
        )

        roles = [m["role"] for m in create.calls[0]["messages"]]
        assert roles == ["user", "assistant", "user"]
        assert create.calls[0]["messages"][0]["content"] == CONTINUE_PROMPT

    @pytest.mark.asyncio
    async def test_user_first_prompt_unchanged(self, provider):
        create = _recorder(_anthropic_response(SimpleNamespace(type="text", text="ok")))
        provider._client = SimpleNamespace(messages=SimpleNamespace(create=create))

        await provider.complete([{"role": "user", "content": "Cars are dangerous."}])
        assert create.calls[0]["messages"] == [{"role": "user", "content": "Cars are dangerous."}]
        assert "system" not in create.calls[0]

    @pytest.mark.asyncio
    async def test_structured_forces_tool_and_returns_its_input(self, provider):
        verdict = json.loads(verdict_json("pro"))
        create = _recorder(
            _anthropic_response(
                SimpleNamespace(type="text", text="Recording the verdict."),
                SimpleNamespace(type="tool_use", input=verdict),
            )
        )
        provider._client = SimpleNamespace(messages=SimpleNamespace(create=create))

        text = await provider.complete_structured(
            [{"role": "user", "content": "judge"}], VERDICT_SCHEMA_NAME, VERDICT_SCHEMA
        )

        assert json.loads(text) == verdict
        sent = create.calls[0]
        assert sent["tools"][0]["name"] == VERDICT_SCHEMA_NAME
        assert sent["tools"][0]["input_schema"] == VERDICT_SCHEMA
        assert sent["tool_choice"] == {"type": "tool", "name": VERDICT_SCHEMA_NAME}

    @pytest.mark.asyncio
    async def test_structured_without_tool_output_raises(self, provider):
        create = _recorder(_anthropic_response(SimpleNamespace(type="text", text="I refuse.")))
        provider._client = SimpleNamespace(messages=SimpleNamespace(create=create))

        with pytest.raises(ProviderError, match="no tool output"):
            await provider.complete_structured(
                [{"role": "user", "content": "judge"}], VERDICT_SCHEMA_NAME, VERDICT_SCHEMA
            )

    @pytest.mark.asyncio
    async def test_model_debate_steps_send_valid_message_lists(self, test_db, provider):
        create = _recorder(_anthropic_response(SimpleNamespace(type="text", text="A point.")))
        provider._client = SimpleNamespace(messages=SimpleNamespace(create=create))
        manager = DebateManager(test_db, provider)

        created = await manager.create("model_vs_model", topic="Cities should ban private cars")
        for _ in range(3):
            await manager.advance_step(created.session.id)

        assert len(create.calls) == 3
        for sent in create.calls:
            assert sent["messages"]
            assert sent["messages"][0]["role"] == "user"
        assert [m["role"] for m in create.calls[2]["messages"]] == ["user", "assistant", "user"]


class TestCohereAdapter:
    @pytest.mark.asyncio
    async def test_structured_sends_json_object_format(self):
        provider = create_provider("cohere", api_key="test-key")
        chat = _recorder(
            SimpleNamespace(
                message=SimpleNamespace(content=[SimpleNamespace(text=verdict_json("draw"))]),
                usage=SimpleNamespace(tokens=SimpleNamespace(input_tokens=4, output_tokens=6)),
            )
        )
        provider._client = SimpleNamespace(chat=chat)

        response = await provider.generate(
            [{"role": "user", "content": "judge"}],
            response_schema=ResponseSchema(name=VERDICT_SCHEMA_NAME, schema=VERDICT_SCHEMA),
        )

        assert json.loads(response.text)["winner"] == "draw"
        assert response.tokens_used == 10
        assert chat.calls[0]["response_format"] == {
            "type": "json_object",
            "json_schema": VERDICT_SCHEMA,
        }
