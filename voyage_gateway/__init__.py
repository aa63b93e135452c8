# Voyage Gateway - rate-limited async client core for the Voyage AI API
"""
Rate-limited, streaming access to the Voyage AI embedding and rerank endpoints.
"""

__version__ = "0.1.0"

from voyage_gateway.errors import (
    ApiError,
    ConnectionFailed,
    Forbidden,
    MalformedResponse,
    MissingApiKey,
    NoMatchingDocuments,
    RequestValidationError,
    TaskCancelled,
    TransportError,
    Unauthorized,
    VoyageError,
)
from voyage_gateway.engine import PendingCall, RankedItem, RateLimiter, ReceiverStream, ResourcePool
from voyage_gateway.gateway import Gateway, get_gateway, reset_gateway
from voyage_gateway.utils import cosine_similarity

__all__ = [
    "__version__",
    "Gateway",
    "get_gateway",
    "reset_gateway",
    "PendingCall",
    "RankedItem",
    "RateLimiter",
    "ReceiverStream",
    "ResourcePool",
    "cosine_similarity",
    "ApiError",
    "ConnectionFailed",
    "Forbidden",
    "MalformedResponse",
    "MissingApiKey",
    "NoMatchingDocuments",
    "RequestValidationError",
    "TaskCancelled",
    "TransportError",
    "Unauthorized",
    "VoyageError",
]
