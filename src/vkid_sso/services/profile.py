"""VK ID user info service.

Fetches the authenticated user's profile with the access token from the
code exchange.
"""

from __future__ import annotations

import logging

import httpx
from pydantic import ValidationError

from vkid_sso.models.errors import NetworkError, PreconditionError, ProtocolError
from vkid_sso.models.profile import RawProfile
from vkid_sso.primitives.http import raise_for_provider_error, read_json_object

logger = logging.getLogger(__name__)


class ProfileFetchClient:
    """Retrieves the user profile from the VK ID user info endpoint.

    The endpoint is client-scoped: besides the access token it requires the
    application's client id. Requests are form-encoded.
    """

    def __init__(self, user_info_endpoint: str, timeout: float = 10.0):
        """Initialize profile client.

        Args:
            user_info_endpoint: VK ID user info endpoint URL
            timeout: HTTP request timeout in seconds
        """
        self.user_info_endpoint = user_info_endpoint
        self.timeout = timeout
        self._http_client = httpx.AsyncClient(timeout=httpx.Timeout(timeout))

    async def get_profile(self, access_token: str, client_id: str) -> RawProfile:
        """Fetch the profile of the user the access token was issued to.

        Args:
            access_token: Access token from the code exchange
            client_id: VK ID application id

        Returns:
            RawProfile with a non-empty ``user.user_id``

        Raises:
            PreconditionError: If an argument is empty (no request is sent)
            NetworkError: On connection, TLS or timeout failure
            ProtocolError: If the response is malformed or lacks user_id
            ProviderError: If VK ID reports an error
        """
        if not access_token or not client_id:
            raise PreconditionError("access_token and client_id are required")

        logger.debug(f"Fetching VK ID profile from {self.user_info_endpoint}")

        try:
            response = await self._http_client.post(
                self.user_info_endpoint,
                data={"access_token": access_token, "client_id": client_id},
                headers={
                    "Content-Type": "application/x-www-form-urlencoded",
                    "Accept": "application/json",
                },
            )
        except httpx.HTTPError as e:
            raise NetworkError(f"Profile request failed: {e}") from e

        response_data = read_json_object(response, "user info")

        raise_for_provider_error(response_data)

        user = response_data.get("user")
        if not isinstance(user, dict) or not user.get("user_id"):
            raise ProtocolError("No user_id in VK ID profile response")

        try:
            profile = RawProfile(**response_data)
        except ValidationError as e:
            raise ProtocolError(f"Invalid profile response format: {e}") from e

        logger.debug(f"Fetched VK ID profile for user {profile.user.user_id}")
        return profile

    async def close(self) -> None:
        """Close the HTTP client and clean up resources."""
        await self._http_client.aclose()
