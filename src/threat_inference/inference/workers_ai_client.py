"""
Workers AI client implementation.

Talks to the Cloudflare Workers AI REST API using httpx AsyncClient:
- Direct:  POST {base_url}/accounts/{account_id}/ai/run/{model}
- Gateway: POST https://gateway.ai.cloudflare.com/v1/{account_id}/{gateway_id}/workers-ai/{model}

Features:
- Connection pooling via persistent AsyncClient
- Retry with exponential backoff on network errors and 5xx
- Envelope unwrapping ({"success", "result", "errors"}) into the bare reply
- Latency and token metrics per model
"""

import asyncio
import time
from typing import Any, Optional
import httpx
import structlog

from threat_inference.inference.base_client import BaseInferenceClient
from threat_inference.inference.exceptions import (
    InferenceAuthError,
    InferenceConnectionError,
    InferenceGenerationError,
    InferenceModelNotAvailableError,
    InferenceRateLimitError,
    InferenceTimeoutError,
)
from threat_inference.monitoring.metrics import inference_latency_seconds


logger = structlog.get_logger(__name__)

GATEWAY_BASE_URL = "https://gateway.ai.cloudflare.com/v1"


class WorkersAIClient(BaseInferenceClient):
    """
    Workers AI client using httpx for async HTTP communication.

    Options accepted by run():
    - gateway: {"id": str, "skipCache": bool, "cacheTtl": int} routes the call
      through AI Gateway (caching, analytics)
    - timeout: per-call timeout override in seconds
    """

    def __init__(
        self,
        account_id: str,
        api_token: Optional[str],
        base_url: str = "https://api.cloudflare.com/client/v4",
        timeout: int = 60,
        max_retries: int = 2,
        gateway_id: Optional[str] = None,
        connection_limits: Optional[httpx.Limits] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        **kwargs
    ):
        """
        Initialize Workers AI client.

        Args:
            account_id: Cloudflare account id
            api_token: API token with Workers AI read/edit permission
            base_url: Cloudflare API base URL
            timeout: Request timeout in seconds
            max_retries: Attempts for network errors and 5xx
            gateway_id: Default AI Gateway id (None = call the API directly)
            connection_limits: httpx connection pool limits (default: 10 max connections)
            transport: Custom httpx transport (tests use httpx.MockTransport)
            **kwargs: Additional config
        """
        super().__init__(base_url, timeout, max_retries, **kwargs)
        self.account_id = account_id
        self.gateway_id = gateway_id
        self._api_token = api_token
        self._transport = transport

        if connection_limits is None:
            connection_limits = httpx.Limits(
                max_keepalive_connections=5,
                max_connections=10,
                keepalive_expiry=30.0
            )
        self._connection_limits = connection_limits
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the async HTTP client."""
        if self._client is None or self._client.is_closed:
            headers = {}
            if self._api_token:
                headers["Authorization"] = f"Bearer {self._api_token}"
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                limits=self._connection_limits,
                headers=headers,
                transport=self._transport,
            )
            logger.debug("Created new httpx AsyncClient")
        return self._client

    def _build_url(self, model_id: str, gateway_id: Optional[str]) -> str:
        if gateway_id:
            return f"{GATEWAY_BASE_URL}/{self.account_id}/{gateway_id}/workers-ai/{model_id}"
        return f"{self.base_url}/accounts/{self.account_id}/ai/run/{model_id}"

    @staticmethod
    def _gateway_headers(gateway: dict[str, Any]) -> dict[str, str]:
        headers = {}
        if gateway.get("skipCache"):
            headers["cf-aig-skip-cache"] = "true"
        if gateway.get("cacheTtl") is not None:
            headers["cf-aig-cache-ttl"] = str(gateway["cacheTtl"])
        return headers

    @staticmethod
    def _unwrap_envelope(body: Any, model_id: str) -> Any:
        """
        Extract "result" from the REST envelope.

        {"success": true, "result": {...}, "errors": [], "messages": []}
        """
        if isinstance(body, dict) and "success" in body:
            if not body.get("success"):
                raise InferenceGenerationError(
                    "Workers AI reported failure",
                    details={"model": model_id, "errors": body.get("errors", [])},
                )
            return body.get("result")
        return body

    async def run(
        self,
        model_id: str,
        payload: dict[str, Any],
        options: Optional[dict[str, Any]] = None,
    ) -> Any:
        """
        Run a model on Workers AI.

        POST .../ai/run/@cf/meta/llama-3.3-70b-instruct-fp8-fast
        {
            "messages": [{"role": "system", "content": "..."}, {"role": "user", "content": "..."}],
            "temperature": 0.1,
            "max_tokens": 1024
        }

        Response:
        {
            "success": true,
            "result": {"response": "...", "usage": {"prompt_tokens": 812, "completion_tokens": 240}},
            "errors": [],
            "messages": []
        }
        """
        options = options or {}
        gateway = options.get("gateway") or ({"id": self.gateway_id} if self.gateway_id else {})
        url = self._build_url(model_id, gateway.get("id"))
        headers = self._gateway_headers(gateway) if gateway.get("id") else {}
        timeout = options.get("timeout", self.timeout)

        start_time = time.perf_counter()
        last_error: Optional[Exception] = None

        for attempt in range(1, self.max_retries + 1):
            try:
                client = await self._get_client()
                response = await client.post(url, json=payload, headers=headers, timeout=timeout)
                response.raise_for_status()

                try:
                    body = response.json()
                except ValueError as e:
                    raise InferenceGenerationError(
                        "Invalid JSON body from Workers AI",
                        details={"model": model_id, "parse_error": str(e)},
                    ) from e

                reply = self._unwrap_envelope(body, model_id)
                latency = time.perf_counter() - start_time
                inference_latency_seconds.labels(model=model_id, success="true").observe(latency)

                logger.info(
                    "Workers AI call succeeded",
                    model=model_id,
                    latency_ms=int(latency * 1000),
                    attempt=attempt,
                    via_gateway=bool(gateway.get("id")),
                )
                return reply

            except httpx.TimeoutException as e:
                logger.warning(
                    "Workers AI request timeout",
                    model=model_id,
                    attempt=attempt,
                    max_retries=self.max_retries,
                    timeout=timeout,
                    error=str(e),
                )
                last_error = InferenceTimeoutError(
                    f"Request timeout after {timeout}s",
                    details={"model": model_id, "attempt": attempt, "timeout": timeout},
                )

            except httpx.HTTPStatusError as e:
                status_code = e.response.status_code
                error_text = e.response.text[:500]
                logger.error(
                    "Workers AI HTTP error",
                    model=model_id,
                    status_code=status_code,
                    error_text=error_text,
                    attempt=attempt,
                )

                if status_code in (401, 403):
                    last_error = InferenceAuthError(
                        f"Workers AI rejected credentials: {status_code}",
                        details={"model": model_id, "status": status_code},
                    )
                elif status_code == 404:
                    last_error = InferenceModelNotAvailableError(
                        f"Model not found: {model_id}",
                        details={"model": model_id, "status": status_code},
                    )
                elif status_code == 429:
                    last_error = InferenceRateLimitError(
                        "Workers AI rate limit or daily allocation exceeded",
                        details={"model": model_id, "status": status_code},
                    )
                elif status_code >= 500:
                    last_error = InferenceGenerationError(
                        f"Workers AI server error: {status_code}",
                        details={"model": model_id, "status": status_code, "error": error_text},
                    )
                else:
                    last_error = InferenceGenerationError(
                        f"Workers AI client error: {status_code}",
                        details={"model": model_id, "status": status_code, "error": error_text},
                    )

                # Only server errors are worth another attempt
                if status_code < 500:
                    break

            except httpx.TransportError as e:
                logger.warning(
                    "Workers AI network error",
                    model=model_id,
                    attempt=attempt,
                    max_retries=self.max_retries,
                    error=str(e),
                )
                last_error = InferenceConnectionError(
                    f"Network error: {e}",
                    details={"model": model_id, "attempt": attempt, "error_type": type(e).__name__},
                )

            if attempt < self.max_retries:
                backoff = 2 ** attempt
                logger.info("Retrying Workers AI call", model=model_id, backoff_seconds=backoff)
                await asyncio.sleep(backoff)

        inference_latency_seconds.labels(model=model_id, success="false").observe(
            time.perf_counter() - start_time
        )
        if last_error is None:
            last_error = InferenceGenerationError(
                "Workers AI call failed after all retries", details={"model": model_id}
            )
        raise last_error

    async def health_check(self) -> bool:
        """
        Check the API token via GET /user/tokens/verify.

        Returns True if the token is active, False otherwise.
        """
        try:
            client = await self._get_client()
            response = await client.get(f"{self.base_url}/user/tokens/verify", timeout=5.0)
            response.raise_for_status()
            return bool(response.json().get("success"))
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Workers AI health check failed", error=str(e))
            return False

    async def close(self):
        """Close the HTTP client connection."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            logger.debug("Closed Workers AI client connection")

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
