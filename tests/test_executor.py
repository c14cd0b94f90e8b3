"""Tests for wordgpt_client/client/executor.py — provider HTTP dispatch."""

from unittest.mock import AsyncMock

import httpx
import pytest

from tests.conftest import CHAT_BODY, make_response
from wordgpt_client.client.errors import (
    ApiClientError,
    InvalidResponseShapeError,
    ProviderHttpError,
    UnsupportedOperationError,
)
from wordgpt_client.client.executor import ApiRequestExecutor


@pytest.fixture
def mock_client():
    client = AsyncMock()
    client.is_closed = False
    return client


@pytest.fixture
def executor(credentials, limiter, mock_client):
    e = ApiRequestExecutor(credentials, limiter)
    e._client = mock_client
    return e


class TestExecute:

    async def test_success_returns_body_verbatim(self, executor, mock_client):
        mock_client.post.return_value = make_response(200, CHAT_BODY)

        result = await executor.execute("openai", "/chat/completions", {"model": "gpt-3.5-turbo"}, 100)

        assert result == CHAT_BODY
        call = mock_client.post.call_args
        assert call.args[0] == "https://api.openai.com/v1/chat/completions"
        assert call.kwargs["json"] == {"model": "gpt-3.5-turbo"}
        assert call.kwargs["headers"]["Authorization"] == "Bearer sk-test"
        assert call.kwargs["headers"]["Content-Type"] == "application/json"

    async def test_records_usage_corrected_by_actual_tokens(self, executor, mock_client, limiter):
        mock_client.post.return_value = make_response(200, CHAT_BODY)  # total_tokens=15

        await executor.execute("openai", "/chat/completions", {}, 100)

        status = limiter.snapshot("openai")
        assert status.requests == 1
        assert status.tokens == 15

    async def test_keeps_estimate_without_usage(self, executor, mock_client, limiter):
        mock_client.post.return_value = make_response(200, {"choices": []})

        await executor.execute("openai", "/chat/completions", {}, 100)

        assert limiter.snapshot("openai").tokens == 100

    async def test_azure_uses_api_key_header_and_custom_endpoint(self, executor, mock_client, credentials):
        credentials.config.keys["azure"] = "az-key"
        credentials.config.custom_endpoints["azure"] = "https://res.openai.azure.com/openai/deployments/dep/"
        mock_client.post.return_value = make_response(200, CHAT_BODY)

        await executor.execute("azure", "/chat/completions", {}, 10)

        call = mock_client.post.call_args
        assert call.args[0] == "https://res.openai.azure.com/openai/deployments/dep/chat/completions"
        assert call.kwargs["headers"]["api-key"] == "az-key"
        assert "Authorization" not in call.kwargs["headers"]

    async def test_local_sends_no_credentials(self, executor, mock_client):
        mock_client.post.return_value = make_response(200, CHAT_BODY)

        await executor.execute("local", "/v1/chat/completions", {}, 10)

        call = mock_client.post.call_args
        assert call.args[0] == "http://localhost:8080/v1/chat/completions"
        assert call.kwargs["headers"] == {"Content-Type": "application/json"}


class TestExecuteErrors:

    async def test_error_body_message(self, executor, mock_client, limiter):
        mock_client.post.return_value = make_response(
            400, {"error": {"message": "Invalid model", "type": "invalid_request_error"}}
        )

        with pytest.raises(ProviderHttpError) as exc_info:
            await executor.execute("openai", "/chat/completions", {}, 10)

        err = exc_info.value
        assert err.status == 400
        assert err.provider == "openai"
        assert err.endpoint == "/chat/completions"
        assert err.message == "Invalid model"
        assert limiter.snapshot("openai").requests == 0

    async def test_non_json_error_body(self, executor, mock_client):
        mock_client.post.return_value = make_response(502, invalid_json=True)

        with pytest.raises(ProviderHttpError) as exc_info:
            await executor.execute("openai", "/chat/completions", {}, 10)
        assert exc_info.value.status == 502
        assert exc_info.value.message == "Unknown error"

    async def test_non_json_success_body(self, executor, mock_client, limiter):
        mock_client.post.return_value = make_response(200, invalid_json=True)

        with pytest.raises(InvalidResponseShapeError) as exc_info:
            await executor.execute("openai", "/chat/completions", {}, 10)
        assert isinstance(exc_info.value, ApiClientError)
        assert exc_info.value.expected == "JSON body"
        assert limiter.snapshot("openai").requests == 0

    async def test_unexpected_error_shape(self, executor, mock_client):
        mock_client.post.return_value = make_response(429, ["rate", "limited"])

        with pytest.raises(ProviderHttpError) as exc_info:
            await executor.execute("openai", "/chat/completions", {}, 10)
        assert exc_info.value.message == "Unknown error"

    async def test_string_error(self, executor, mock_client):
        mock_client.post.return_value = make_response(500, {"error": "overloaded"})

        with pytest.raises(ProviderHttpError) as exc_info:
            await executor.execute("openai", "/chat/completions", {}, 10)
        assert exc_info.value.message == "overloaded"

    async def test_connect_error_raises_502(self, executor, mock_client):
        mock_client.post.side_effect = httpx.ConnectError("Connection refused")

        with pytest.raises(ProviderHttpError) as exc_info:
            await executor.execute("openai", "/chat/completions", {}, 10)
        assert exc_info.value.status == 502

    async def test_timeout_raises_504(self, executor, mock_client):
        mock_client.post.side_effect = httpx.ReadTimeout("Timed out")

        with pytest.raises(ProviderHttpError) as exc_info:
            await executor.execute("openai", "/chat/completions", {}, 10)
        assert exc_info.value.status == 504


class TestListModels:

    async def test_returns_data(self, executor, mock_client):
        mock_client.get.return_value = make_response(200, {"data": [{"id": "gpt-4o"}]})

        assert await executor.list_models("openai") == [{"id": "gpt-4o"}]
        call = mock_client.get.call_args
        assert call.args[0] == "https://api.openai.com/v1/models"
        assert call.kwargs["headers"]["Authorization"] == "Bearer sk-test"

    async def test_returns_root_array(self, executor, mock_client):
        mock_client.get.return_value = make_response(200, [{"id": "local-model"}])
        assert await executor.list_models("local") == [{"id": "local-model"}]

    async def test_error(self, executor, mock_client):
        mock_client.get.return_value = make_response(401, {"error": {"message": "bad key"}})

        with pytest.raises(ProviderHttpError) as exc_info:
            await executor.list_models("openai")
        assert exc_info.value.status == 401

    async def test_non_json_body(self, executor, mock_client):
        mock_client.get.return_value = make_response(200, invalid_json=True)

        with pytest.raises(InvalidResponseShapeError):
            await executor.list_models("openai")

    async def test_unsupported(self, executor):
        with pytest.raises(UnsupportedOperationError):
            await executor.list_models("azure")


class TestClose:

    async def test_close(self, executor, mock_client):
        await executor.close()
        mock_client.aclose.assert_called_once()
        assert executor._client is None

    async def test_close_when_no_client(self, credentials, limiter):
        await ApiRequestExecutor(credentials, limiter).close()
