"""
Concurrency and flow-control layer between request construction and transport:
rate limiting, background task bridging and streaming reranking.
"""

from voyage_gateway.engine.channel import Channel, ReceiverStream
from voyage_gateway.engine.rate_limiter import RateLimiter, Reservation, ResourcePool, TokenWindow
from voyage_gateway.engine.streaming import RankedItem, StreamingReranker, ranked_items
from voyage_gateway.engine.task_bridge import CallStatus, PendingCall, TaskBridge

__all__ = [
    "Channel",
    "ReceiverStream",
    "RateLimiter",
    "Reservation",
    "ResourcePool",
    "TokenWindow",
    "RankedItem",
    "StreamingReranker",
    "ranked_items",
    "CallStatus",
    "PendingCall",
    "TaskBridge",
]
