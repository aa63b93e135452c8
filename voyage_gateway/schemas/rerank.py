"""
Request/Response schemas for the Voyage rerank endpoint.
"""

from enum import Enum
from typing import Iterable, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from voyage_gateway.errors import RequestValidationError
from voyage_gateway.schemas.embeddings import Usage


class RerankModel(str, Enum):
    """Supported rerank models."""
    RERANK_2 = "rerank-2"
    RERANK_2_LITE = "rerank-2-lite"


class RerankRequest(BaseModel):
    """Rerank request body. Build through `RerankRequest.create` to get validation."""
    query: str = Field(..., description="The search query")
    documents: List[str] = Field(..., description="Documents to rerank")
    model: RerankModel = Field(default=RerankModel.RERANK_2, description="Rerank model")
    top_k: Optional[int] = Field(default=None, description="Number of top results to return")

    model_config = ConfigDict(use_enum_values=True)

    @classmethod
    def create(
        cls,
        query: str,
        documents: List[str],
        model: RerankModel = RerankModel.RERANK_2,
        top_k: Optional[int] = None,
    ) -> "RerankRequest":
        """
        Validate inputs and build a request.

        Raises:
            RequestValidationError: If the query or the document list is empty,
                or top_k is not a positive integer.
        """
        if not query or not query.strip():
            raise RequestValidationError("Query must not be empty")
        if not documents:
            raise RequestValidationError("Documents must not be empty")
        if top_k is not None and top_k < 1:
            raise RequestValidationError("top_k must be at least 1")
        return cls(query=query, documents=list(documents), model=model, top_k=top_k)

    def to_payload(self) -> dict:
        return self.model_dump(exclude_none=True)


class RerankResult(BaseModel):
    """One ranked entry: the position of a document in the request and its score."""
    index: int = Field(..., ge=0, description="Index of the document in the request")
    relevance_score: float = Field(..., description="Relevance score")
    document: Optional[str] = Field(default=None, description="Document text, when returned")


class RerankResponse(BaseModel):
    """Rerank response body. Results arrive most relevant first."""
    object: str = ""
    data: List[RerankResult]
    model: str = ""
    usage: Usage


class RerankRequestBuilder:
    """Fluent builder for rerank requests with additional options."""

    def __init__(self):
        self._query: Optional[str] = None
        self._documents: List[str] = []
        self._model = RerankModel.RERANK_2
        self._top_k: Optional[int] = None

    def query(self, query: str) -> "RerankRequestBuilder":
        self._query = query
        return self

    def add_document(self, document: str) -> "RerankRequestBuilder":
        self._documents.append(document)
        return self

    def add_documents(self, documents: Iterable[str]) -> "RerankRequestBuilder":
        self._documents.extend(documents)
        return self

    def model(self, model: RerankModel) -> "RerankRequestBuilder":
        self._model = RerankModel(model)
        return self

    def top_k(self, top_k: int) -> "RerankRequestBuilder":
        self._top_k = top_k
        return self

    def build(self) -> RerankRequest:
        if self._query is None:
            raise RequestValidationError("Query is required")
        return RerankRequest.create(self._query, self._documents, self._model, self._top_k)
