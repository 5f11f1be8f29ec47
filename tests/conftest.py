"""Shared fixtures for the test suite.

Provides a MockProvider that simulates LLM responses without network calls,
plus database and manager instances for integration tests.
"""

from __future__ import annotations

import json
import random
from typing import Any

import pytest
import pytest_asyncio

from agents.llm_provider import LLMProvider, ResponseSchema
from agents.schemas import TOPIC_SCHEMA_NAME, VERDICT_SCHEMA_NAME
from data.database import DebateDatabase
from data.models import DebateMode, MessageRecord, Position, Role, SessionRecord
from orchestration.debate_manager import DebateManager


def verdict_json(winner: str = "pro", **overrides: Any) -> str:
    """Serialized verdict as a judge model would return it."""
    verdict = {
        "winner": winner,
        "score": {"pro": 8, "con": 6} if winner == "pro" else {"pro": 5, "con": 7},
        "reasoning": "The winning side answered every rebuttal with evidence.",
        "pro_strengths": ["clear framing"],
        "pro_weaknesses": ["few numbers"],
        "con_strengths": ["strong examples"],
        "con_weaknesses": ["ignored the main claim"],
        "final_comment": f"{winner} argued more convincingly.",
    }
    verdict.update(overrides)
    return json.dumps(verdict)


def topic_json(topic: str = "Cities should ban private cars") -> str:
    return json.dumps(
        {
            "topic": topic,
            "pro_position": "Cars make city centres unsafe and polluted.",
            "con_position": "Banning cars hurts commuters and small businesses.",
            "background": "Several European cities have car-free districts.",
        }
    )


# ---------------------------------------------------------------------------
# Mock LLM provider
# ---------------------------------------------------------------------------

class MockProvider(LLMProvider):
    """Deterministic mock provider for testing – no network calls."""

    name = "mock"

    def __init__(
        self,
        model: str = "mock-v1",
        responses: list[str] | None = None,
        structured: dict[str, list[str]] | None = None,
        error: Exception | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(model=model, api_key="mock-key", timeout=kwargs.get("timeout", 30))

        self._responses = responses or [
            "Public transport is cheaper per passenger. "
            "For example, a bus replaces forty cars at rush hour."
        ]
        self._structured = {
            TOPIC_SCHEMA_NAME: [topic_json()],
            VERDICT_SCHEMA_NAME: [verdict_json("pro")],
            **(structured or {}),
        }
        self._structured_counts: dict[str, int] = {}
        self.error = error
        self._call_count = 0
        self.call_log: list[dict[str, Any]] = []

    async def _call_api(
        self,
        messages: list[dict[str, str]],
        *,
        temperature: float,
        max_tokens: int,
        response_schema: ResponseSchema | None,
        **kwargs: Any,
    ) -> dict[str, Any]:
        self.call_log.append(
            {
                "messages": messages,
                "temperature": temperature,
                "max_tokens": max_tokens,
                "schema": response_schema.name if response_schema else None,
            }
        )
        if self.error is not None:
            raise self.error

        if response_schema is not None:
            options = self._structured[response_schema.name]
            count = self._structured_counts.get(response_schema.name, 0)
            self._structured_counts[response_schema.name] = count + 1
            text = options[count % len(options)]
        else:
            text = self._responses[self._call_count % len(self._responses)]
            self._call_count += 1
        return {"text": text, "tokens_used": len(text.split()) * 2, "raw": {}}


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_provider() -> MockProvider:
    return MockProvider()


@pytest.fixture
def varied_provider() -> MockProvider:
    """Provider that returns different responses on successive calls."""
    return MockProvider(
        responses=[
            "Car-free centres cut pedestrian deaths, as Oslo showed after 2019.",
            "Delivery costs rose for shops in every pedestrianised zone studied.",
            "Shops in Pontevedra saw footfall increase once cars were removed.",
            "Footfall is not revenue, and suburban commuters lost access.",
        ]
    )


@pytest.fixture
def human_session() -> SessionRecord:
    return SessionRecord(
        id=1,
        user_id=1,
        topic="Cities should ban private cars",
        mode=DebateMode.HUMAN_VS_MODEL,
        human_position=Position.PRO,
    )


@pytest.fixture
def model_session() -> SessionRecord:
    return SessionRecord(
        id=2,
        topic="Cities should ban private cars",
        mode=DebateMode.MODEL_VS_MODEL,
    )


def make_messages(session_id: int, roles: list[Role]) -> list[MessageRecord]:
    """Transcript with one message per role, content naming its role."""
    return [
        MessageRecord(id=i + 1, session_id=session_id, role=role, content=f"{role.value} #{i + 1}")
        for i, role in enumerate(roles)
    ]


@pytest_asyncio.fixture
async def test_db(tmp_path) -> DebateDatabase:
    """Temp-file SQLite database for testing."""
    db = DebateDatabase(db_path=tmp_path / "test_debates.db")
    await db.connect()
    yield db
    await db.close()


@pytest_asyncio.fixture
async def manager(test_db: DebateDatabase, mock_provider: MockProvider) -> DebateManager:
    return DebateManager(test_db, mock_provider, rng=random.Random(7))
