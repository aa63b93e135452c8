"""
Streaming reranker.

Runs one rerank call in the background and re-expands the service's ranked
index/score list into (rank, similarity, original document) items, delivered
over a bounded channel at the consumer's pace.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence

from voyage_gateway.config import get_logger
from voyage_gateway.engine.channel import Channel, ReceiverStream
from voyage_gateway.engine.rate_limiter import RateLimiter, ResourcePool
from voyage_gateway.engine.task_bridge import PendingCall, TaskBridge
from voyage_gateway.errors import MalformedResponse, NoMatchingDocuments
from voyage_gateway.schemas.rerank import RerankModel, RerankRequest, RerankResponse
from voyage_gateway.utils import estimate_rerank_tokens

logger = get_logger(__name__)


@dataclass(frozen=True)
class RankedItem:
    """A document with its position in the ranking (0 = most similar) and score."""
    rank: int
    similarity: float
    document: str


def ranked_items(response: RerankResponse, documents: Sequence[str]) -> List[RankedItem]:
    """
    Map the service ranking back onto the caller's documents.

    Items keep the order the service returned; rank is the position in that
    order. Each `document` is taken from `documents` by the returned index.

    Raises:
        MalformedResponse: If the service returned an index outside `documents`.
    """
    items = []
    for rank, result in enumerate(response.data):
        if result.index >= len(documents):
            raise MalformedResponse(
                f"rerank result index {result.index} out of range for {len(documents)} documents"
            )
        items.append(
            RankedItem(
                rank=rank,
                similarity=result.relevance_score,
                document=documents[result.index],
            )
        )
    return items


class StreamingReranker:
    """Rerank pipeline behind `stream`, `top1` and `rerank`."""

    def __init__(
        self,
        transport,
        rate_limiter: RateLimiter,
        bridge: TaskBridge,
        model: RerankModel = RerankModel.RERANK_2,
        buffer_size: int = 16,
        stream_errors: str = "raise",
        reserve_estimates: bool = False,
    ):
        self.transport = transport
        self.rate_limiter = rate_limiter
        self.bridge = bridge
        self.model = RerankModel(model)
        self.buffer_size = buffer_size
        self.stream_errors = stream_errors
        self.reserve_estimates = reserve_estimates

    def create_request(self, query: str, documents: Sequence[str], top_k: Optional[int] = None) -> RerankRequest:
        return RerankRequest.create(query, list(documents), self.model, top_k)

    async def perform_rerank(self, request: RerankRequest) -> RerankResponse:
        """Rate-limited rerank call; records the reported usage once it completes."""
        estimate = estimate_rerank_tokens(request.query, request.documents)
        logger.debug("rerank_tokens_estimated", estimate=estimate, documents=len(request.documents))

        reservation = await self.rate_limiter.acquire(
            ResourcePool.RERANK, estimate, reserve=self.reserve_estimates
        )
        try:
            response = await self.transport.send_rerank_request(request)
        except Exception:
            if reservation is not None:
                await self.rate_limiter.release(reservation)
            raise

        if not response.data:
            logger.warning("rerank_response_empty")
        await self.rate_limiter.update(ResourcePool.RERANK, response.usage.total_tokens, reservation)
        return response

    def stream(self, query: str, documents: Sequence[str]) -> ReceiverStream[RankedItem]:
        """
        Rank `documents` against `query` as a stream of RankedItem.

        Raises:
            RequestValidationError: Immediately, for an empty query or document list.
        """
        documents = list(documents)
        request = self.create_request(query, documents)
        channel: Channel[RankedItem] = Channel(self.buffer_size)

        async def produce() -> int:
            return await self._produce(request, documents, channel)

        self.bridge.spawn(produce, operation="rerank_stream", on_abort=channel.abort)
        return ReceiverStream(channel)

    async def _produce(self, request: RerankRequest, documents: List[str], channel: Channel[RankedItem]) -> int:
        delivered = 0
        try:
            response = await self.perform_rerank(request)
            items = ranked_items(response, documents)
        except Exception as e:
            logger.error("rerank_stream_failed", error_type=type(e).__name__, error=str(e))
            await channel.finish(e if self.stream_errors == "raise" else None)
            return delivered

        for item in items:
            if not await channel.send(item):
                logger.debug("rerank_stream_abandoned", delivered=delivered, total=len(items))
                break
            delivered += 1
        await channel.finish()
        return delivered

    def top1(self, query: str, documents: Sequence[str]) -> PendingCall[RankedItem]:
        """
        The single most similar document.

        The handle fails with NoMatchingDocuments when the ranking is empty;
        transport errors propagate unchanged.
        """
        documents = list(documents)
        request = self.create_request(query, documents)

        async def work() -> RankedItem:
            response = await self.perform_rerank(request)
            if not response.data:
                raise NoMatchingDocuments()
            return ranked_items(response, documents)[0]

        return self.bridge.spawn(work, operation="most_similar")

    def rerank(self, request: RerankRequest) -> PendingCall[RerankResponse]:
        """Run a prepared request and hand back the full response."""

        async def work() -> RerankResponse:
            return await self.perform_rerank(request)

        return self.bridge.spawn(work, operation="rerank")
