"""
Gateway: composition root of the client.

Owns one RateLimiter, one TaskBridge and one transport per instance, and
exposes the public operations: single, batch and streaming embedding,
streaming rerank and most-similar lookup.
"""

import asyncio
from typing import Any, Dict, List, Optional, Sequence

from voyage_gateway.config import Settings, settings, get_logger
from voyage_gateway.engine.channel import Channel, ReceiverStream
from voyage_gateway.engine.rate_limiter import RateLimiter, ResourcePool
from voyage_gateway.engine.streaming import RankedItem, StreamingReranker
from voyage_gateway.engine.task_bridge import PendingCall, TaskBridge
from voyage_gateway.errors import MalformedResponse, MissingApiKey
from voyage_gateway.schemas.embeddings import (
    EmbeddingModel,
    EmbeddingsRequest,
    EmbeddingsResponse,
    InputType,
)
from voyage_gateway.schemas.rerank import RerankModel, RerankRequest, RerankRequestBuilder, RerankResponse
from voyage_gateway.transport import VoyageTransport
from voyage_gateway.utils import estimate_embedding_tokens

logger = get_logger(__name__)

Vector = List[float]


class Gateway:
    """Rate-limited, task-bridged access to the Voyage AI embedding and rerank endpoints."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        config: Optional[Settings] = None,
        transport=None,
        rate_limiter: Optional[RateLimiter] = None,
        bridge: Optional[TaskBridge] = None,
    ):
        """
        Args:
            api_key: Voyage AI API key (defaults to the configured key)
            config: Settings to use (defaults to the global settings)
            transport: Object providing send_embedding_request/send_rerank_request;
                       a VoyageTransport is built when omitted
            rate_limiter: Shared RateLimiter (one is built from config when omitted)
            bridge: TaskBridge running the background calls

        Raises:
            MissingApiKey: If no transport is given and no API key is configured.
        """
        self.config = config or settings

        if transport is None:
            api_key = api_key or self.config.api_key
            if not api_key:
                raise MissingApiKey()
            transport = VoyageTransport.from_settings(self.config.model_copy(update={"api_key": api_key}))

        self.transport = transport
        self.rate_limiter = rate_limiter or RateLimiter.from_settings(self.config)
        self.bridge = bridge or TaskBridge(max_workers=self.config.blocking_workers)
        self.embedding_model = EmbeddingModel(self.config.embedding_model)
        self.reranker = StreamingReranker(
            transport=self.transport,
            rate_limiter=self.rate_limiter,
            bridge=self.bridge,
            model=RerankModel(self.config.rerank_model),
            buffer_size=self.config.stream_buffer_size,
            stream_errors=self.config.stream_errors,
            reserve_estimates=self.config.reserve_estimates,
        )

        logger.debug(
            "gateway_created",
            embedding_model=self.embedding_model.value,
            rerank_model=self.reranker.model.value,
            reserve_estimates=self.config.reserve_estimates,
        )

    async def __aenter__(self) -> "Gateway":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Wait for in-flight calls to finish, then release the transport and thread pool."""
        await self.bridge.aclose()
        if hasattr(self.transport, "aclose"):
            await self.transport.aclose()

    # Embeddings

    async def perform_embedding(self, request: EmbeddingsRequest) -> EmbeddingsResponse:
        """
        Rate-limited embeddings call; records the reported usage once it completes.

        Raises:
            MalformedResponse: If the vectors do not line up one-to-one with the
                               inputs. Usage is recorded first.
        """
        estimate = estimate_embedding_tokens(request.texts)
        logger.debug("embedding_tokens_estimated", estimate=estimate, inputs=len(request.texts))

        reservation = await self.rate_limiter.acquire(
            ResourcePool.EMBEDDING, estimate, reserve=self.config.reserve_estimates
        )
        try:
            response = await self.transport.send_embedding_request(request)
        except Exception:
            if reservation is not None:
                await self.rate_limiter.release(reservation)
            raise

        await self.rate_limiter.update(ResourcePool.EMBEDDING, response.usage.total_tokens, reservation)

        try:
            response.check_indices(len(request.texts))
        except MalformedResponse:
            logger.warning(
                "embedding_indices_mismatch",
                inputs=len(request.texts),
                indices=[item.index for item in response.data],
            )
            raise
        return response

    def _request(self, texts, input_type: Optional[InputType] = None) -> EmbeddingsRequest:
        return EmbeddingsRequest(input=texts, model=self.embedding_model, input_type=input_type)

    def create_embedding(self, request: EmbeddingsRequest) -> PendingCall[EmbeddingsResponse]:
        """Run a prepared embeddings request and hand back the full response."""

        async def work() -> EmbeddingsResponse:
            return await self.perform_embedding(request)

        return self.bridge.spawn(work, operation="create_embedding")

    def embed(self, text: str, input_type: Optional[InputType] = None) -> PendingCall[Vector]:
        """Embedding vector of a single text."""
        request = self._request(text, input_type)

        async def work() -> Vector:
            response = await self.perform_embedding(request)
            return response.data[0].embedding

        return self.bridge.spawn(work, operation="embed")

    def embed_batch(self, texts: Sequence[str]) -> PendingCall[List[Vector]]:
        """Embedding vectors of many texts in one call, in input order."""
        texts = list(texts)

        async def work() -> List[Vector]:
            if not texts:
                return []
            response = await self.perform_embedding(self._request(texts))
            return response.vectors

        return self.bridge.spawn(work, operation="embed_batch")

    def embed_stream(self, texts: Sequence[str]) -> ReceiverStream[Vector]:
        """Embedding vectors of many texts, one call, delivered one at a time."""
        texts = list(texts)
        channel: Channel[Vector] = Channel(self.config.stream_buffer_size)

        async def produce() -> int:
            return await self._produce_embeddings(texts, channel)

        self.bridge.spawn(produce, operation="embed_stream", on_abort=channel.abort)
        return ReceiverStream(channel)

    async def _produce_embeddings(self, texts: List[str], channel: Channel[Vector]) -> int:
        delivered = 0
        if not texts:
            await channel.finish()
            return delivered

        try:
            response = await self.perform_embedding(self._request(texts))
        except Exception as e:
            logger.error("embed_stream_failed", error_type=type(e).__name__, error=str(e))
            await channel.finish(e if self.config.stream_errors == "raise" else None)
            return delivered

        for vector in response.vectors:
            if not await channel.send(vector):
                logger.debug("embed_stream_abandoned", delivered=delivered)
                break
            delivered += 1
        await channel.finish()
        return delivered

    # Reranking

    def rerank_stream(self, query: str, documents: Sequence[str]) -> ReceiverStream[RankedItem]:
        """Documents ranked by similarity to `query`, most similar first."""
        return self.reranker.stream(query, documents)

    def most_similar(self, query: str, documents: Sequence[str]) -> PendingCall[RankedItem]:
        """The single document most similar to `query`."""
        return self.reranker.top1(query, documents)

    def rerank_request(self) -> RerankRequestBuilder:
        """Builder for rerank requests with more options."""
        return RerankRequestBuilder().model(self.reranker.model)

    def rerank(self, request: RerankRequest) -> PendingCall[RerankResponse]:
        return self.reranker.rerank(request)

    def stats(self) -> Dict[str, Any]:
        return {
            "rate_limits": self.rate_limiter.snapshot(),
            **self.bridge.get_stats(),
        }


# Singleton instance
_gateway_instance: Optional[Gateway] = None
_gateway_lock = asyncio.Lock()


async def get_gateway() -> Gateway:
    """Get or create the process-wide gateway built from the global settings."""
    global _gateway_instance

    if _gateway_instance is None:
        async with _gateway_lock:
            if _gateway_instance is None:
                _gateway_instance = Gateway()
    return _gateway_instance


async def reset_gateway() -> None:
    """Close and forget the process-wide gateway."""
    global _gateway_instance

    if _gateway_instance is not None:
        async with _gateway_lock:
            if _gateway_instance is not None:
                await _gateway_instance.aclose()
                _gateway_instance = None
