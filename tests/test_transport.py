"""HTTP transport against a mocked Voyage AI API."""

import json

import httpx
import pytest

from voyage_gateway.config import Settings
from voyage_gateway.errors import (
    ApiError,
    ConnectionFailed,
    Forbidden,
    MalformedResponse,
    Unauthorized,
)
from voyage_gateway.schemas import EmbeddingsRequest, RerankRequest
from voyage_gateway.transport import DEFAULT_API_BASE, VoyageTransport

RERANK_BODY = {
    "object": "list",
    "data": [
        {"index": 1, "relevance_score": 0.8},
        {"index": 0, "relevance_score": 0.3},
    ],
    "model": "rerank-2",
    "usage": {"total_tokens": 12},
}


def make_transport(handler, **kwargs) -> VoyageTransport:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return VoyageTransport(api_key="secret", http_client=client, **kwargs)


def rerank_request() -> RerankRequest:
    return RerankRequest.create("query", ["first", "second"])


@pytest.mark.asyncio
async def test_rerank_request_shape_and_response():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=RERANK_BODY)

    transport = make_transport(handler)
    response = await transport.send_rerank_request(rerank_request())

    request = seen[0]
    assert request.method == "POST"
    assert str(request.url) == f"{DEFAULT_API_BASE}/rerank"
    assert request.headers["Authorization"] == "Bearer secret"
    assert json.loads(request.content) == {
        "query": "query",
        "documents": ["first", "second"],
        "model": "rerank-2",
    }
    assert [result.index for result in response.data] == [1, 0]
    assert response.usage.total_tokens == 12


@pytest.mark.asyncio
async def test_embeddings_sorted_by_index():
    body = {
        "object": "list",
        "data": [
            {"object": "embedding", "embedding": [0.2], "index": 1},
            {"object": "embedding", "embedding": [0.1], "index": 0},
        ],
        "model": "voyage-3-large",
        "usage": {"total_tokens": 4},
    }

    def handler(request):
        assert request.url.path.endswith("/embeddings")
        assert json.loads(request.content)["input"] == ["a", "b"]
        return httpx.Response(200, json=body)

    transport = make_transport(handler)
    response = await transport.send_embedding_request(EmbeddingsRequest(input=["a", "b"]))

    assert response.vectors == [[0.1], [0.2]]


@pytest.mark.asyncio
async def test_empty_embedding_data_becomes_zero_vector():
    body = {"object": "list", "data": [], "model": "voyage-3-large", "usage": {"total_tokens": 0}}
    transport = make_transport(lambda request: httpx.Response(200, json=body))

    response = await transport.send_embedding_request(EmbeddingsRequest(input="a"))

    assert response.vectors == [[0.0]]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "status,body,error_type",
    [
        (401, "bad key", Unauthorized),
        (403, "no access", Forbidden),
        (400, "bad request", ApiError),
        (500, "internal", ApiError),
    ],
)
async def test_status_codes_map_to_errors(status, body, error_type):
    transport = make_transport(lambda request: httpx.Response(status, text=body))

    with pytest.raises(error_type):
        await transport.send_rerank_request(rerank_request())


@pytest.mark.asyncio
async def test_api_error_carries_status_and_body():
    transport = make_transport(lambda request: httpx.Response(422, text="unprocessable"))

    with pytest.raises(ApiError) as exc_info:
        await transport.send_rerank_request(rerank_request())

    assert exc_info.value.status_code == 422
    assert exc_info.value.body == "unprocessable"
    assert not exc_info.value.is_retryable


@pytest.mark.asyncio
async def test_forbidden_carries_detail():
    transport = make_transport(lambda request: httpx.Response(403, text="plan limit"))

    with pytest.raises(Forbidden) as exc_info:
        await transport.send_rerank_request(rerank_request())

    assert exc_info.value.detail == "plan limit"


@pytest.mark.asyncio
async def test_unparseable_success_is_malformed():
    transport = make_transport(lambda request: httpx.Response(200, json={"unexpected": True}))

    with pytest.raises(MalformedResponse):
        await transport.send_rerank_request(rerank_request())


@pytest.mark.asyncio
async def test_connection_error_is_connection_failed():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    transport = make_transport(handler)

    with pytest.raises(ConnectionFailed, match="connection refused"):
        await transport.send_rerank_request(rerank_request())


@pytest.mark.asyncio
async def test_retries_retryable_status_then_succeeds():
    calls = []

    def handler(request):
        calls.append(request)
        if len(calls) == 1:
            return httpx.Response(503, text="busy")
        return httpx.Response(200, json=RERANK_BODY)

    transport = make_transport(handler, num_retries=2, retry_delay=0.0)
    response = await transport.send_rerank_request(rerank_request())

    assert len(calls) == 2
    assert response.usage.total_tokens == 12


@pytest.mark.asyncio
async def test_gives_up_after_configured_retries():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(429, text="slow down")

    transport = make_transport(handler, num_retries=2, retry_delay=0.0)

    with pytest.raises(ApiError):
        await transport.send_rerank_request(rerank_request())
    assert len(calls) == 3


@pytest.mark.asyncio
async def test_non_retryable_errors_are_not_retried():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(401, text="bad key")

    transport = make_transport(handler, num_retries=3, retry_delay=0.0)

    with pytest.raises(Unauthorized):
        await transport.send_rerank_request(rerank_request())
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_shared_client_is_not_closed():
    client = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(200)))
    transport = VoyageTransport(api_key="secret", http_client=client)

    async with transport:
        pass

    assert not client.is_closed
    await client.aclose()


@pytest.mark.asyncio
async def test_from_settings():
    transport = VoyageTransport.from_settings(
        Settings(api_key="from-settings", api_base="https://example.test/v1/", timeout=5.0)
    )
    try:
        assert transport.api_key == "from-settings"
        assert transport.api_base == "https://example.test/v1"
        assert transport.timeout == 5.0
    finally:
        await transport.aclose()
