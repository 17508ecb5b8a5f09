"""VK ID authorization code exchange service.

Exchanges the authorization code from the callback for an access token,
proving possession of the PKCE code verifier (RFC 7636).
"""

from __future__ import annotations

import logging

import httpx
from pydantic import ValidationError

from vkid_sso.models.errors import (
    NetworkError,
    PreconditionError,
    ProtocolError,
)
from vkid_sso.models.tokens import TokenRequest, TokenResponse
from vkid_sso.primitives.http import raise_for_provider_error, read_json_object

logger = logging.getLogger(__name__)


class TokenExchangeClient:
    """Performs the code-for-token exchange against the VK ID token endpoint.

    VK ID takes a JSON request body and, unlike RFC 6749, requires the
    ``device_id`` it sent with the callback. Failures are never retried
    here; retry policy belongs to the caller.
    """

    def __init__(self, token_endpoint: str, timeout: float = 10.0):
        """Initialize token exchange client.

        Args:
            token_endpoint: VK ID token endpoint URL
            timeout: HTTP request timeout in seconds
        """
        self.token_endpoint = token_endpoint
        self.timeout = timeout
        self._http_client = httpx.AsyncClient(timeout=httpx.Timeout(timeout))

    async def exchange_code_for_token(
        self,
        code: str,
        code_verifier: str,
        device_id: str,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
    ) -> TokenResponse:
        """Exchange an authorization code for an access token.

        Args:
            code: Authorization code from the callback
            code_verifier: PKCE verifier stored when the flow started
            device_id: Device id from the callback, mandatory for VK ID
            client_id: VK ID application id
            client_secret: VK ID application secret
            redirect_uri: Must byte-match the authorization request

        Returns:
            TokenResponse with the access token

        Raises:
            PreconditionError: If any argument is empty (no request is sent)
            NetworkError: On connection, TLS or timeout failure
            ProtocolError: If the response is not JSON or lacks access_token
            ProviderError: If VK ID reports an error
        """
        if not device_id:
            raise PreconditionError("device_id is required by VK ID")
        for name, value in (
            ("code", code),
            ("code_verifier", code_verifier),
            ("client_id", client_id),
            ("client_secret", client_secret),
            ("redirect_uri", redirect_uri),
        ):
            if not value:
                raise PreconditionError(f"{name} is required for token exchange")

        token_request = TokenRequest(
            token_endpoint=self.token_endpoint,
            code=code,
            code_verifier=code_verifier,
            device_id=device_id,
            client_id=client_id,
            client_secret=client_secret,
            redirect_uri=redirect_uri,
        )

        logger.debug(
            f"Exchanging authorization code at {token_request.token_endpoint} "
            f"for client {client_id}"
        )

        try:
            response = await self._http_client.post(
                token_request.token_endpoint,
                json=token_request.to_json_body(),
                headers={"Accept": "application/json"},
            )
        except httpx.HTTPError as e:
            raise NetworkError(f"Token exchange request failed: {e}") from e

        return self._parse_token_response(response)

    def _parse_token_response(self, response: httpx.Response) -> TokenResponse:
        """Parse token endpoint response into TokenResponse.

        Raises:
            ProtocolError: If the body is malformed or lacks access_token
            ProviderError: If the body carries an error
        """
        response_data = read_json_object(response, "token")

        raise_for_provider_error(response_data)

        if not response_data.get("access_token"):
            if response.status_code >= 400:
                raise ProtocolError(
                    f"Token exchange failed with HTTP {response.status_code}"
                )
            raise ProtocolError("No access_token in VK ID token response")

        try:
            token_response = TokenResponse(**response_data)
        except ValidationError as e:
            raise ProtocolError(f"Invalid token response format: {e}") from e

        logger.info("Token exchange successful")
        return token_response

    async def close(self) -> None:
        """Close the HTTP client and clean up resources."""
        await self._http_client.aclose()
