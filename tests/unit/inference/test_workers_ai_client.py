"""Unit tests for WorkersAIClient using httpx.MockTransport."""

import json
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from threat_inference.inference.exceptions import (
    InferenceAuthError,
    InferenceConnectionError,
    InferenceGenerationError,
    InferenceModelNotAvailableError,
    InferenceRateLimitError,
    InferenceTimeoutError,
)
from threat_inference.inference.workers_ai_client import WorkersAIClient

MODEL = "@cf/qwen/qwen3-30b-a3b-fp8"
PAYLOAD = {"messages": [{"role": "user", "content": "hi"}], "max_tokens": 16}


def make_client(handler, **kwargs) -> WorkersAIClient:
    return WorkersAIClient(
        account_id="acct-123",
        api_token="secret-token",
        base_url="https://api.cloudflare.test/client/v4",
        timeout=5,
        max_retries=kwargs.pop("max_retries", 2),
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


def envelope(result, success=True, errors=None):
    return {"success": success, "result": result, "errors": errors or [], "messages": []}


@pytest.fixture(autouse=True)
def no_backoff():
    """Skip real sleeps between retries."""
    with patch("threat_inference.inference.workers_ai_client.asyncio.sleep", new=AsyncMock()) as sleep:
        yield sleep


class TestRun:

    @pytest.mark.asyncio
    async def test_posts_to_run_endpoint_and_unwraps_envelope(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["auth"] = request.headers.get("Authorization")
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=envelope({"response": "ok", "usage": {"prompt_tokens": 3}}))

        async with make_client(handler) as client:
            reply = await client.run(MODEL, PAYLOAD)

        assert reply == {"response": "ok", "usage": {"prompt_tokens": 3}}
        assert seen["url"] == f"https://api.cloudflare.test/client/v4/accounts/acct-123/ai/run/{MODEL}"
        assert seen["auth"] == "Bearer secret-token"
        assert seen["body"] == PAYLOAD

    @pytest.mark.asyncio
    async def test_gateway_routing_and_cache_headers(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["headers"] = request.headers
            return httpx.Response(200, json={"response": "cached"})

        client = make_client(handler)
        options = {"gateway": {"id": "threat-gw", "skipCache": True, "cacheTtl": 3600}}
        reply = await client.run(MODEL, PAYLOAD, options)
        await client.close()

        assert reply == {"response": "cached"}
        assert seen["url"] == f"https://gateway.ai.cloudflare.com/v1/acct-123/threat-gw/workers-ai/{MODEL}"
        assert seen["headers"]["cf-aig-skip-cache"] == "true"
        assert seen["headers"]["cf-aig-cache-ttl"] == "3600"

    @pytest.mark.asyncio
    async def test_default_gateway_from_constructor(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            return httpx.Response(200, json=envelope({"response": "x"}))

        client = make_client(handler, gateway_id="gw-default")
        await client.run(MODEL, PAYLOAD)
        await client.close()
        assert "/gw-default/workers-ai/" in seen["url"]

    @pytest.mark.asyncio
    async def test_unsuccessful_envelope(self):
        def handler(request):
            return httpx.Response(200, json=envelope(None, success=False, errors=[{"code": 5006}]))

        client = make_client(handler)
        with pytest.raises(InferenceGenerationError) as exc_info:
            await client.run(MODEL, PAYLOAD)
        assert exc_info.value.details["errors"] == [{"code": 5006}]


class TestErrorMapping:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status_code,exc_type", [
        (401, InferenceAuthError),
        (403, InferenceAuthError),
        (404, InferenceModelNotAvailableError),
        (429, InferenceRateLimitError),
        (400, InferenceGenerationError),
    ])
    async def test_client_errors_not_retried(self, status_code, exc_type):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(status_code, json={"errors": [{"message": "nope"}]})

        client = make_client(handler, max_retries=3)
        with pytest.raises(exc_type):
            await client.run(MODEL, PAYLOAD)
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_server_error_retried_then_raised(self, no_backoff):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(503, text="unavailable")

        client = make_client(handler, max_retries=3)
        with pytest.raises(InferenceGenerationError):
            await client.run(MODEL, PAYLOAD)
        assert len(calls) == 3
        assert no_backoff.await_count == 2

    @pytest.mark.asyncio
    async def test_server_error_then_success(self):
        responses = iter([
            httpx.Response(502, text="bad gateway"),
            httpx.Response(200, json=envelope({"response": "ok"})),
        ])

        client = make_client(lambda request: next(responses))
        assert await client.run(MODEL, PAYLOAD) == {"response": "ok"}

    @pytest.mark.asyncio
    async def test_timeout_mapped(self):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        client = make_client(handler)
        with pytest.raises(InferenceTimeoutError):
            await client.run(MODEL, PAYLOAD)

    @pytest.mark.asyncio
    async def test_network_error_mapped(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        client = make_client(handler)
        with pytest.raises(InferenceConnectionError) as exc_info:
            await client.run(MODEL, PAYLOAD)
        assert not isinstance(exc_info.value, InferenceTimeoutError)
        assert exc_info.value.details["error_type"] == "ConnectError"

    @pytest.mark.asyncio
    async def test_non_json_body(self):
        client = make_client(lambda request: httpx.Response(200, text="<html>oops</html>"))
        with pytest.raises(InferenceGenerationError):
            await client.run(MODEL, PAYLOAD)


class TestHealthCheck:

    @pytest.mark.asyncio
    async def test_token_verified(self):
        def handler(request):
            assert request.url.path.endswith("/user/tokens/verify")
            return httpx.Response(200, json={"success": True, "result": {"status": "active"}})

        assert await make_client(handler).health_check() is True

    @pytest.mark.asyncio
    async def test_rejected_token(self):
        client = make_client(lambda request: httpx.Response(401, json={"success": False}))
        assert await client.health_check() is False

    @pytest.mark.asyncio
    async def test_unreachable(self):
        def handler(request):
            raise httpx.ConnectError("dns", request=request)

        assert await make_client(handler).health_check() is False
