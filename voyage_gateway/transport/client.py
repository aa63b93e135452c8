"""
HTTP transport for the Voyage AI embeddings and rerank endpoints.
"""

import asyncio
from typing import Awaitable, Callable, Dict, Iterable, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from voyage_gateway.config import get_logger
from voyage_gateway.errors import (
    ApiError,
    ConnectionFailed,
    Forbidden,
    MalformedResponse,
    TransportError,
    Unauthorized,
)
from voyage_gateway.schemas.embeddings import EmbeddingData, EmbeddingsRequest, EmbeddingsResponse
from voyage_gateway.schemas.rerank import RerankRequest, RerankResponse
from voyage_gateway.utils import zero_vector

logger = get_logger(__name__)

DEFAULT_API_BASE = "https://api.voyageai.com/v1"

ResponseT = TypeVar("ResponseT", bound=BaseModel)


class VoyageTransport:
    """
    HTTP client for the Voyage AI API.

    Maps HTTP outcomes onto the gateway error taxonomy: 401 -> Unauthorized,
    403 -> Forbidden, other non-200 -> ApiError, unparseable 200 ->
    MalformedResponse, no response -> ConnectionFailed.
    """

    def __init__(
        self,
        api_key: str,
        api_base: str = DEFAULT_API_BASE,
        timeout: float = 60.0,
        http_client: Optional[httpx.AsyncClient] = None,
        trust_env: bool = True,
        num_retries: int = 0,
        retry_delay: float = 1.0,
        retry_on_status_codes: Iterable[int] = (429, 500, 502, 503, 504),
    ):
        """
        Initialize the transport.

        Args:
            api_key: Voyage AI API key
            api_base: Base URL of the API
            timeout: Request timeout in seconds
            http_client: Optional shared HTTP client (not closed by this transport)
            trust_env: Honour proxy environment variables
            num_retries: Retries for retryable errors (429/5xx, connection failures)
            retry_delay: Delay between retries in seconds
            retry_on_status_codes: HTTP status codes considered retryable
        """
        self.api_key = api_key
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout
        self.num_retries = num_retries
        self.retry_delay = retry_delay
        self.retry_on_status_codes = frozenset(retry_on_status_codes)

        self._owns_client = http_client is None
        self._http_client = http_client or httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=True,
            trust_env=trust_env,
        )

    @classmethod
    def from_settings(cls, config, http_client: Optional[httpx.AsyncClient] = None) -> "VoyageTransport":
        return cls(
            api_key=config.api_key,
            api_base=config.api_base,
            timeout=config.timeout,
            http_client=http_client,
            trust_env=config.trust_env,
            num_retries=config.num_retries,
            retry_delay=config.retry_delay,
            retry_on_status_codes=config.retry_on_status_codes,
        )

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http_client.aclose()

    def _get_headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }

    async def send_embedding_request(self, request: EmbeddingsRequest) -> EmbeddingsResponse:
        """
        POST an embeddings request.

        Vectors are returned ordered by their input index. An empty `data`
        list is normalized to a single zero vector.
        """
        response = await self._with_retries(
            lambda: self._post("embeddings", request.to_payload(), EmbeddingsResponse)
        )

        if not response.data:
            logger.warning("embedding_response_empty")
            response.data = [EmbeddingData(embedding=zero_vector(), index=0)]
        else:
            response.data.sort(key=lambda item: item.index)

        return response

    async def send_rerank_request(self, request: RerankRequest) -> RerankResponse:
        """POST a rerank request. Results keep the order the service returned."""
        return await self._with_retries(
            lambda: self._post("rerank", request.to_payload(), RerankResponse)
        )

    async def _with_retries(self, send: Callable[[], Awaitable[ResponseT]]) -> ResponseT:
        attempt = 0
        while True:
            try:
                return await send()
            except TransportError as e:
                if attempt >= self.num_retries or not e.is_retryable:
                    raise
                attempt += 1
                logger.warning(
                    "request_retry",
                    attempt=attempt,
                    max_attempts=self.num_retries + 1,
                    error=str(e),
                )
                await asyncio.sleep(self.retry_delay)

    async def _post(self, path: str, payload: dict, response_model: Type[ResponseT]) -> ResponseT:
        url = f"{self.api_base}/{path}"
        logger.debug("sending_request", url=url)

        try:
            response = await self._http_client.post(url, json=payload, headers=self._get_headers())
        except httpx.HTTPError as e:
            logger.warning("request_failed", url=url, error=str(e))
            raise ConnectionFailed(str(e) or type(e).__name__) from e

        status = response.status_code
        text = response.text

        if status == 200:
            try:
                parsed = response_model.model_validate_json(text)
            except ValidationError as e:
                logger.warning("response_parse_failed", url=url, error=str(e))
                raise MalformedResponse(str(e)) from e
            logger.debug("request_succeeded", url=url, total_tokens=parsed.usage.total_tokens)
            return parsed

        if status == 401:
            logger.warning("request_unauthorized", url=url)
            raise Unauthorized()
        if status == 403:
            logger.warning("request_forbidden", url=url, body=text)
            raise Forbidden(text)

        logger.warning("request_api_error", url=url, status=status, body=text)
        raise ApiError(status, text, retry_on=self.retry_on_status_codes)
