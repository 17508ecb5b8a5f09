"""Authorization request construction for VK ID sign-in."""

from __future__ import annotations

import logging

from vkid_sso.models.config import VKIDConfig
from vkid_sso.models.errors import PreconditionError
from vkid_sso.models.flow import AuthorizationRequest

logger = logging.getLogger(__name__)


class AuthorizationRequestBuilder:
    """Builds the VK ID authorization redirect URL.

    The endpoint and requested scope come from the configuration; response
    type and challenge method are fixed to ``code`` and ``S256``.
    """

    def __init__(self, config: VKIDConfig):
        self._config = config

    def build_authorization_url(
        self,
        client_id: str,
        redirect_uri: str,
        state: str,
        code_challenge: str,
    ) -> str:
        """Build the URL the user agent is redirected to.

        Args:
            client_id: VK ID application id
            redirect_uri: Callback URL, must match the token request exactly
            state: CSRF state stored in the session
            code_challenge: S256 PKCE challenge

        Returns:
            Complete authorization URL

        Raises:
            PreconditionError: If any argument is empty or not a string
        """
        for name, value in (
            ("client_id", client_id),
            ("redirect_uri", redirect_uri),
            ("state", state),
            ("code_challenge", code_challenge),
        ):
            if not isinstance(value, str) or not value:
                raise PreconditionError(f"{name} must be a non-empty string")

        auth_request = AuthorizationRequest(
            authorization_endpoint=self._config.authorization_endpoint,
            client_id=client_id,
            redirect_uri=redirect_uri,
            scope=self._config.scope,
            state=state,
            code_challenge=code_challenge,
        )

        logger.debug(f"Built authorization URL for client {client_id}")

        return auth_request.build_authorization_url()
