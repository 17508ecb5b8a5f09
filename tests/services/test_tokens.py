"""Tests for the VK ID code-for-token exchange.

Covers the request VK ID expects (JSON body with device_id and the client
secret) and the failure taxonomy: network, protocol and provider errors.
"""

import json
from unittest.mock import AsyncMock

import httpx
import pytest

from vkid_sso.models.errors import (
    NetworkError,
    PreconditionError,
    ProtocolError,
    ProviderError,
)
from vkid_sso.services.tokens import TokenExchangeClient

EXCHANGE_ARGS = {
    "code": "auth-code-123",
    "code_verifier": "dBjftJeZ4CVP-mB92K27uhbUJU1p1r_wW1gFWFOEjXk",
    "device_id": "device-456",
    "client_id": "51234567",
    "client_secret": "app-secret",
    "redirect_uri": "https://forum.example.com/auth/vkid/callback",
}


class TestTokenExchange:
    """Test successful authorization code exchange."""

    def setup_method(self):
        # Arrange
        self.client = TokenExchangeClient("https://id.vk.ru/oauth2/auth")
        self.client._http_client = AsyncMock()

    async def test_successful_exchange_sends_all_parameters(self, make_response):
        # Arrange
        self.client._http_client.post.return_value = make_response(
            200,
            {
                "access_token": "vk-access-token",
                "refresh_token": "vk-refresh-token",
                "id_token": "vk-id-token",
                "token_type": "Bearer",
                "expires_in": 3600,
                "user_id": 123,
                "state": "state-abc",
                "scope": "email phone",
            },
        )

        # Act
        token_response = await self.client.exchange_code_for_token(**EXCHANGE_ARGS)

        # Assert
        assert token_response.access_token == "vk-access-token"
        assert token_response.refresh_token == "vk-refresh-token"
        assert token_response.expires_in == 3600

        self.client._http_client.post.assert_awaited_once()
        call_args = self.client._http_client.post.call_args

        assert call_args[0][0] == "https://id.vk.ru/oauth2/auth"
        assert call_args[1]["json"] == {
            "grant_type": "authorization_code",
            "code": "auth-code-123",
            "code_verifier": "dBjftJeZ4CVP-mB92K27uhbUJU1p1r_wW1gFWFOEjXk",
            "device_id": "device-456",
            "client_id": "51234567",
            "client_secret": "app-secret",
            "redirect_uri": "https://forum.example.com/auth/vkid/callback",
        }

    async def test_unknown_fields_are_ignored(self, make_response):
        # Arrange
        self.client._http_client.post.return_value = make_response(
            200, {"access_token": "vk-access-token", "unexpected": {"nested": 1}}
        )

        # Act
        token_response = await self.client.exchange_code_for_token(**EXCHANGE_ARGS)

        # Assert
        assert token_response.access_token == "vk-access-token"

    async def test_token_not_in_repr(self, make_response):
        # Arrange
        self.client._http_client.post.return_value = make_response(
            200, {"access_token": "vk-access-token"}
        )

        # Act
        token_response = await self.client.exchange_code_for_token(**EXCHANGE_ARGS)

        # Assert
        assert "vk-access-token" not in repr(token_response)


class TestTokenExchangePreconditions:
    def setup_method(self):
        self.client = TokenExchangeClient("https://id.vk.ru/oauth2/auth")
        self.client._http_client = AsyncMock()

    async def test_missing_device_id_fails_before_network(self):
        # Arrange
        args = {**EXCHANGE_ARGS, "device_id": ""}

        # Act & Assert
        with pytest.raises(PreconditionError, match="device_id"):
            await self.client.exchange_code_for_token(**args)

        self.client._http_client.post.assert_not_awaited()

    @pytest.mark.parametrize(
        "field", ["code", "code_verifier", "client_id", "client_secret", "redirect_uri"]
    )
    async def test_missing_argument_fails_before_network(self, field):
        # Arrange
        args = {**EXCHANGE_ARGS, field: None}

        # Act & Assert
        with pytest.raises(PreconditionError, match=field):
            await self.client.exchange_code_for_token(**args)

        self.client._http_client.post.assert_not_awaited()


class TestTokenExchangeErrors:
    """Test error handling in token exchange."""

    def setup_method(self):
        # Arrange
        self.client = TokenExchangeClient("https://id.vk.ru/oauth2/auth")
        self.client._http_client = AsyncMock()

    async def test_transport_failure_raises_network_error(self):
        # Arrange
        self.client._http_client.post.side_effect = httpx.ConnectError(
            "Name or service not known"
        )

        # Act & Assert
        with pytest.raises(NetworkError, match="Name or service not known"):
            await self.client.exchange_code_for_token(**EXCHANGE_ARGS)

    async def test_timeout_raises_network_error(self):
        # Arrange
        self.client._http_client.post.side_effect = httpx.ReadTimeout("timed out")

        # Act & Assert
        with pytest.raises(NetworkError):
            await self.client.exchange_code_for_token(**EXCHANGE_ARGS)

    async def test_non_json_body_raises_protocol_error(self, make_response):
        # Arrange
        self.client._http_client.post.return_value = make_response(
            502, json_error=json.JSONDecodeError("Expecting value", "<html>", 0)
        )

        # Act & Assert
        with pytest.raises(ProtocolError, match="not JSON"):
            await self.client.exchange_code_for_token(**EXCHANGE_ARGS)

    async def test_json_array_body_raises_protocol_error(self, make_response):
        # Arrange
        self.client._http_client.post.return_value = make_response(200, ["token"])

        # Act & Assert
        with pytest.raises(ProtocolError, match="JSON object"):
            await self.client.exchange_code_for_token(**EXCHANGE_ARGS)

    async def test_provider_error_carries_code_and_description(self, make_response):
        # Arrange
        self.client._http_client.post.return_value = make_response(
            400,
            {
                "error": "invalid_grant",
                "error_description": "Code verifier is invalid",
            },
        )

        # Act
        with pytest.raises(ProviderError) as exc_info:
            await self.client.exchange_code_for_token(**EXCHANGE_ARGS)

        # Assert
        assert exc_info.value.error == "invalid_grant"
        assert exc_info.value.error_description == "Code verifier is invalid"
        assert "Code verifier is invalid" in str(exc_info.value)

    async def test_provider_error_with_success_status(self, make_response):
        # Arrange - VK ID may report errors with HTTP 200
        self.client._http_client.post.return_value = make_response(
            200, {"error": "invalid_request"}
        )

        # Act & Assert
        with pytest.raises(ProviderError) as exc_info:
            await self.client.exchange_code_for_token(**EXCHANGE_ARGS)

        assert exc_info.value.error == "invalid_request"
        assert exc_info.value.error_description is None

    async def test_missing_access_token_raises_protocol_error(self, make_response):
        # Arrange
        self.client._http_client.post.return_value = make_response(
            200, {"token_type": "Bearer", "expires_in": 3600}
        )

        # Act & Assert
        with pytest.raises(ProtocolError, match="access_token"):
            await self.client.exchange_code_for_token(**EXCHANGE_ARGS)

    async def test_error_status_without_error_field(self, make_response):
        # Arrange
        self.client._http_client.post.return_value = make_response(500, {})

        # Act & Assert
        with pytest.raises(ProtocolError, match="HTTP 500"):
            await self.client.exchange_code_for_token(**EXCHANGE_ARGS)

    async def test_failures_are_not_retried(self):
        # Arrange
        self.client._http_client.post.side_effect = httpx.ConnectError("refused")

        # Act
        with pytest.raises(NetworkError):
            await self.client.exchange_code_for_token(**EXCHANGE_ARGS)

        # Assert
        assert self.client._http_client.post.await_count == 1


class TestClientLifecycle:
    async def test_close_closes_http_client(self):
        # Arrange
        client = TokenExchangeClient("https://id.vk.ru/oauth2/auth", timeout=5.0)
        client._http_client = AsyncMock()

        # Act
        await client.close()

        # Assert
        client._http_client.aclose.assert_awaited_once()

    def test_timeout_is_bounded(self):
        client = TokenExchangeClient("https://id.vk.ru/oauth2/auth", timeout=5.0)

        assert client._http_client.timeout.read == 5.0
