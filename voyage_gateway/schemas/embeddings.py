"""
Request/Response schemas for the Voyage embeddings endpoint.
"""

from enum import Enum
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from voyage_gateway.errors import MalformedResponse


class EmbeddingModel(str, Enum):
    """Supported embedding models."""
    VOYAGE_3_LARGE = "voyage-3-large"
    VOYAGE_CODE_3 = "voyage-code-3"

    @property
    def max_context_length(self) -> int:
        return 32000

    @property
    def max_tokens_per_request(self) -> int:
        return 320_000

    @property
    def embedding_dimension(self) -> int:
        if self is EmbeddingModel.VOYAGE_3_LARGE:
            return 2048
        return 1024


class InputType(str, Enum):
    """Hint telling the service how the input will be used."""
    QUERY = "query"
    DOCUMENT = "document"
    CODE = "code"


class EncodingFormat(str, Enum):
    FLOAT = "float"
    BASE64 = "base64"


class EmbeddingsRequest(BaseModel):
    """Embeddings request body. `input` is a single text or a list of texts."""
    input: Union[str, List[str]] = Field(..., description="Text or texts to embed")
    model: EmbeddingModel = Field(default=EmbeddingModel.VOYAGE_3_LARGE, description="Embedding model")
    input_type: Optional[InputType] = Field(default=None, description="Input type hint")
    truncation: Optional[bool] = Field(default=None, description="Truncate inputs over the context length")
    encoding_format: Optional[EncodingFormat] = Field(default=None, description="Vector encoding")

    model_config = ConfigDict(use_enum_values=True)

    @property
    def texts(self) -> List[str]:
        """The input as a list regardless of which form was used."""
        if isinstance(self.input, str):
            return [self.input]
        return list(self.input)

    def to_payload(self) -> dict:
        return self.model_dump(exclude_none=True)


class EmbeddingData(BaseModel):
    """One embedding vector and its position in the input."""
    object: str = "embedding"
    embedding: List[float]
    index: int


class Usage(BaseModel):
    """Token usage reported by the service."""
    total_tokens: int = Field(..., ge=0)


class EmbeddingsResponse(BaseModel):
    """Embeddings response body."""
    object: str = ""
    data: List[EmbeddingData]
    model: str = ""
    usage: Usage

    @property
    def vectors(self) -> List[List[float]]:
        return [item.embedding for item in self.data]

    def check_indices(self, count: int) -> None:
        """
        Verify the response holds exactly one vector per input, in input order.

        Raises:
            MalformedResponse: If an index is missing, repeated or out of range.
        """
        indices = [item.index for item in self.data]
        if indices != list(range(count)):
            raise MalformedResponse(
                f"expected one embedding per input (indices 0..{count - 1}), got indices {indices}"
            )
