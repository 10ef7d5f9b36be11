"""Unit test fixtures (mocks and stubs).

Provides a scripted inference client, a recording event sink and the
router wiring used across unit tests, without any network access.
"""

import copy
import random
from datetime import datetime
from typing import Any, Callable, Dict
from unittest.mock import AsyncMock, Mock

import pytest

from threat_inference.budget.governor import BudgetGovernor
from threat_inference.inference.base_client import BaseInferenceClient
from threat_inference.inference.prompt_builder import PromptBuilder
from threat_inference.models.events import ObservabilityEvent
from threat_inference.models.tiers import ModelCatalog
from threat_inference.observability.emitter import BoundedEventEmitter
from threat_inference.observability.sinks import BaseEventSink
from threat_inference.routing.router import StrategyRouter


class RecordingSink(BaseEventSink):
    """Sink that keeps every delivered event in memory."""

    def __init__(self):
        self.events: list[ObservabilityEvent] = []
        self.closed = False

    async def write(self, event: ObservabilityEvent) -> None:
        self.events.append(event)

    async def close(self):
        self.closed = True

    def names(self) -> list[str]:
        return [e.name for e in self.events]


class FixedRandom(random.Random):
    """random.Random whose randrange always returns the same value."""

    def __init__(self, value: int):
        super().__init__(0)
        self.value = value
        self.draws = 0

    def randrange(self, *args, **kwargs):
        self.draws += 1
        return self.value


def _chat_reply(payload: Any, prompt_tokens: int = 1000, completion_tokens: int = 200) -> Dict[str, Any]:
    """Workers AI text-generation reply with a usage block."""
    return {
        "response": payload,
        "usage": {
            "prompt_tokens": prompt_tokens,
            "completion_tokens": completion_tokens,
            "total_tokens": prompt_tokens + completion_tokens,
        },
    }


@pytest.fixture
def chat_reply() -> Callable[..., Dict[str, Any]]:
    """Builder for Workers AI text-generation replies."""
    return _chat_reply


@pytest.fixture
def fixed_rng() -> Callable[[int], FixedRandom]:
    """Factory for an RNG whose canary draw is pinned."""
    return FixedRandom


@pytest.fixture
def recording_sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def emitter(recording_sink: RecordingSink) -> BoundedEventEmitter:
    """Emitter without a running consumer; call drain() to deliver."""
    return BoundedEventEmitter(recording_sink, maxsize=100)


@pytest.fixture
def governor(catalog: ModelCatalog, fixed_now: datetime) -> BudgetGovernor:
    return BudgetGovernor(catalog.price_table(), daily_limit=10_000, clock=lambda: fixed_now)


@pytest.fixture
def prompt_builder() -> PromptBuilder:
    """Real prompt builder over the packaged templates."""
    return PromptBuilder()


@pytest.fixture
def classifier_data(full_analysis_data: Dict[str, Any]) -> Dict[str, Any]:
    keys = ("tldr", "category", "severity", "affected_sectors", "threat_actors")
    return {k: copy.deepcopy(full_analysis_data[k]) for k in keys}


@pytest.fixture
def extractor_data(full_analysis_data: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "key_points": list(full_analysis_data["key_points"]),
        "iocs": copy.deepcopy(full_analysis_data["iocs"]),
    }


@pytest.fixture
def make_client(catalog: ModelCatalog) -> Callable[..., AsyncMock]:
    """Factory for a mock inference client scripted per model endpoint.

    Usage:
        client = make_client({catalog.generalist.endpoint: chat_reply({...})})

    A scripted value that is an Exception instance is raised; anything else
    is returned. Unscripted endpoints raise KeyError.
    """
    def _create(replies: Dict[str, Any]) -> AsyncMock:
        client = AsyncMock(spec=BaseInferenceClient)

        async def _run(model_id, payload, options=None):
            reply = replies[model_id]
            if isinstance(reply, BaseException):
                raise reply
            if callable(reply):
                return await reply(payload)
            return reply

        client.run = AsyncMock(side_effect=_run)
        client.health_check = AsyncMock(return_value=True)
        return client

    return _create


@pytest.fixture
def make_router(prompt_builder, governor, emitter, catalog) -> Callable[..., StrategyRouter]:
    """Factory for a StrategyRouter wired to shared governor/emitter fixtures."""
    def _create(client, rng=None) -> StrategyRouter:
        return StrategyRouter(
            client=client,
            prompt_builder=prompt_builder,
            governor=governor,
            emitter=emitter,
            catalog=catalog,
            rng=rng,
        )

    return _create


@pytest.fixture
def mock_prompt_builder():
    """Mock PromptBuilder for tests that only care about dispatch."""
    mock = Mock(spec=PromptBuilder)
    payload = {"messages": [{"role": "user", "content": "x"}], "temperature": 0.1, "max_tokens": 8}
    mock.build_analysis_payload = Mock(return_value=payload)
    mock.build_classifier_payload = Mock(return_value=payload)
    mock.build_extractor_payload = Mock(return_value=payload)
    mock.build_trends_payload = Mock(return_value=payload)
    mock.build_embedding_payload = Mock(side_effect=lambda text: {"text": text[:2000]})
    return mock
