"""
Wire schemas for the Voyage AI embeddings and rerank endpoints.
"""

from voyage_gateway.schemas.embeddings import (
    EmbeddingData,
    EmbeddingModel,
    EmbeddingsRequest,
    EmbeddingsResponse,
    EncodingFormat,
    InputType,
    Usage,
)
from voyage_gateway.schemas.rerank import (
    RerankModel,
    RerankRequest,
    RerankRequestBuilder,
    RerankResponse,
    RerankResult,
)

__all__ = [
    "EmbeddingData",
    "EmbeddingModel",
    "EmbeddingsRequest",
    "EmbeddingsResponse",
    "EncodingFormat",
    "InputType",
    "Usage",
    "RerankModel",
    "RerankRequest",
    "RerankRequestBuilder",
    "RerankResponse",
    "RerankResult",
]
