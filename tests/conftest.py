"""Shared pytest fixtures: fake clock, fake transport and a wired gateway."""

import asyncio
import os
from typing import List, Optional, Sequence, Tuple

import pytest

# Keep tests deterministic and offline
os.environ.setdefault("VOYAGE_CONFIG_PATH", "nonexistent-test-config.yml")

from voyage_gateway.config import Settings
from voyage_gateway.engine import RateLimiter, TaskBridge
from voyage_gateway.gateway import Gateway
from voyage_gateway.schemas import (
    EmbeddingData,
    EmbeddingsResponse,
    RerankResponse,
    RerankResult,
    Usage,
)


def make_rerank_response(ranking: Sequence[Tuple[int, float]], total_tokens: int = 10) -> RerankResponse:
    """Build a rerank response from (index, relevance_score) pairs, in service order."""
    return RerankResponse(
        object="list",
        data=[RerankResult(index=index, relevance_score=score) for index, score in ranking],
        model="rerank-2",
        usage=Usage(total_tokens=total_tokens),
    )


def make_embeddings_response(vectors: Sequence[List[float]], total_tokens: int = 10) -> EmbeddingsResponse:
    return EmbeddingsResponse(
        object="list",
        data=[EmbeddingData(embedding=list(vector), index=i) for i, vector in enumerate(vectors)],
        model="voyage-3-large",
        usage=Usage(total_tokens=total_tokens),
    )


class FakeClock:
    """Manually advanced monotonic clock; `sleep` advances it instead of waiting."""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.advance(seconds)


class FakeTransport:
    """Records requests and answers with canned responses or errors."""

    def __init__(
        self,
        rerank_response: Optional[RerankResponse] = None,
        embedding_response: Optional[EmbeddingsResponse] = None,
        error: Optional[Exception] = None,
        tokens_per_text: int = 3,
    ):
        self.rerank_response = rerank_response
        self.embedding_response = embedding_response
        self.error = error
        self.tokens_per_text = tokens_per_text
        self.gate: Optional[asyncio.Event] = None
        self.rerank_calls = []
        self.embedding_calls = []

    async def _wait_for_gate(self):
        if self.gate is not None:
            await self.gate.wait()

    async def send_rerank_request(self, request):
        self.rerank_calls.append(request)
        await self._wait_for_gate()
        if self.error is not None:
            raise self.error
        if self.rerank_response is not None:
            return self.rerank_response
        ranking = [(i, 1.0 - i * 0.01) for i in range(len(request.documents))]
        return make_rerank_response(ranking)

    async def send_embedding_request(self, request):
        self.embedding_calls.append(request)
        await self._wait_for_gate()
        if self.error is not None:
            raise self.error
        if self.embedding_response is not None:
            return self.embedding_response
        texts = request.texts
        return make_embeddings_response(
            [[float(i), 1.0] for i in range(len(texts))],
            total_tokens=self.tokens_per_text * len(texts),
        )


@pytest.fixture
def sample_documents():
    return [
        "Deep learning is a subset of machine learning that uses neural networks.",
        "The weather is sunny and warm today.",
        "Natural language processing enables computers to understand human language.",
        "I enjoy playing chess on weekends.",
        "Transformers are a type of neural network architecture.",
    ]


@pytest.fixture
def sample_query():
    return "What is deep learning and neural networks?"


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def rate_limiter(clock):
    return RateLimiter(
        embedding_limit=1000,
        rerank_limit=1000,
        window_length=60.0,
        clock=clock,
        sleep=clock.sleep,
    )


@pytest.fixture
def bridge():
    task_bridge = TaskBridge(max_workers=2)
    yield task_bridge
    task_bridge._executor.shutdown(wait=False)


@pytest.fixture
def fake_transport():
    return FakeTransport()


@pytest.fixture
def test_settings():
    return Settings(api_key="test-key", stream_buffer_size=4, blocking_workers=2)


@pytest.fixture
def gateway(test_settings, fake_transport, rate_limiter, bridge):
    return Gateway(
        config=test_settings,
        transport=fake_transport,
        rate_limiter=rate_limiter,
        bridge=bridge,
    )
