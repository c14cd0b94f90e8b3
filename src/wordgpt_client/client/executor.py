"""API request executor — builds, dispatches and checks provider HTTP calls."""

import httpx

from wordgpt_client.client.errors import InvalidResponseShapeError, ProviderHttpError
from wordgpt_client.client.ratelimit import RateLimiter
from wordgpt_client.credentials.adapter import CredentialStore
from wordgpt_client.logging.structured import RequestTimer, get_logger
from wordgpt_client.providers import registry
from wordgpt_client.providers.base import MODELS

logger = get_logger("executor")


class ApiRequestExecutor:
    """Sends requests to provider endpoints and records their usage."""

    def __init__(
        self,
        credentials: CredentialStore,
        limiter: RateLimiter,
        timeout: float = 60.0,
        connect_timeout: float = 10.0,
    ):
        self._credentials = credentials
        self._limiter = limiter
        self._timeout = timeout
        self._connect_timeout = connect_timeout
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout, connect=self._connect_timeout)
            )
        return self._client

    def _build_headers(self, provider: str) -> dict:
        descriptor = registry.describe(provider)
        headers = {"Content-Type": "application/json"}
        headers.update(descriptor.auth_headers(self._credentials.api_key(provider)))
        return headers

    def _build_url(self, provider: str, endpoint: str) -> str:
        return f"{self._credentials.base_url(provider).rstrip('/')}{endpoint}"

    async def _send(self, method: str, provider: str, endpoint: str, body: dict | None = None) -> httpx.Response:
        url = self._build_url(provider, endpoint)
        headers = self._build_headers(provider)

        client = await self._get_client()
        try:
            if method == "GET":
                return await client.get(url, headers=headers)
            return await client.post(url, json=body, headers=headers)
        except httpx.ConnectError:
            raise ProviderHttpError(502, provider, endpoint, "Cannot reach provider")
        except httpx.TimeoutException:
            raise ProviderHttpError(504, provider, endpoint, "Provider timed out")
        except httpx.HTTPError as e:
            raise ProviderHttpError(502, provider, endpoint, f"Transport error: {e}")

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        """Pull ``error.message`` out of an error body, tolerating any shape."""
        try:
            data = response.json()
        except ValueError:
            return "Unknown error"

        error = data.get("error") if isinstance(data, dict) else None
        if isinstance(error, dict) and isinstance(error.get("message"), str):
            return error["message"]
        if isinstance(error, str) and error:
            return error
        return "Unknown error"

    @staticmethod
    def _json_body(response: httpx.Response, provider: str, endpoint: str):
        try:
            return response.json()
        except ValueError:
            logger.warning(
                "Provider returned a non-JSON success body",
                extra={"audit_data": {
                    "provider": provider,
                    "endpoint": endpoint,
                    "status": response.status_code,
                }},
            )
            raise InvalidResponseShapeError("JSON body") from None

    async def execute(self, provider: str, endpoint: str, params: dict, estimated_tokens: int = 0) -> dict:
        """POST params to the provider and return the JSON body unchanged."""
        with RequestTimer() as timer:
            response = await self._send("POST", provider, endpoint, params)

        if not _is_success(response.status_code):
            message = self._error_message(response)
            logger.warning(
                "API request failed",
                extra={"audit_data": {
                    "provider": provider,
                    "endpoint": endpoint,
                    "status": response.status_code,
                    "latency_ms": timer.elapsed_ms,
                }},
            )
            raise ProviderHttpError(response.status_code, provider, endpoint, message)

        data = self._json_body(response, provider, endpoint)

        self._limiter.record_usage(provider, estimated_tokens)
        actual_tokens = _total_tokens(data)
        if actual_tokens is not None and estimated_tokens > 0:
            self._limiter.correct_last_usage(provider, actual_tokens)

        logger.info(
            "API request succeeded",
            extra={"audit_data": {
                "provider": provider,
                "endpoint": endpoint,
                "status": response.status_code,
                "latency_ms": timer.elapsed_ms,
                "estimated_tokens": estimated_tokens,
                "tokens_used": actual_tokens,
            }},
        )
        return data

    async def list_models(self, provider: str) -> list:
        """GET the provider's model listing."""
        endpoint = registry.describe(provider).endpoint_for(MODELS)
        response = await self._send("GET", provider, endpoint)

        if not _is_success(response.status_code):
            raise ProviderHttpError(
                response.status_code, provider, endpoint, self._error_message(response)
            )

        data = self._json_body(response, provider, endpoint)
        if isinstance(data, dict) and "data" in data:
            return data["data"]
        return data

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None


def _total_tokens(data) -> int | None:
    if not isinstance(data, dict):
        return None
    usage = data.get("usage")
    if not isinstance(usage, dict):
        return None
    total = usage.get("total_tokens")
    return total if isinstance(total, int) and total > 0 else None


def _is_success(status_code: int) -> bool:
    return 200 <= status_code < 300
