"""VK ID sign-in orchestration.

Coordinates initiation (PKCE + state + redirect) and callback handling
(validate, exchange, fetch profile, link, establish session) for one
HTTP request at a time.
"""

from __future__ import annotations

import logging
from collections.abc import MutableMapping
from typing import Any

from vkid_sso.models.accounts import LocalAccount, SessionEstablisher
from vkid_sso.models.config import VKIDConfig
from vkid_sso.models.errors import (
    CallbackError,
    ConfigurationError,
    CSRFMismatch,
    LoginFailed,
    MissingCode,
    MissingDeviceId,
    MissingVerifier,
    ProfileFetchFailed,
    ProviderDenied,
    SessionEstablishmentFailed,
    TokenExchangeFailed,
)
from vkid_sso.models.flow import (
    SESSION_RETURN_TO_KEY,
    SESSION_STATE_KEY,
    SESSION_VERIFIER_KEY,
    CallbackOutcome,
    CallbackParams,
    CallbackState,
)
from vkid_sso.models.profile import RawProfile
from vkid_sso.models.tokens import TokenResponse
from vkid_sso.primitives.pkce import PKCEManager
from vkid_sso.services.flow import AuthorizationRequestBuilder
from vkid_sso.services.linker import IdentityLinker
from vkid_sso.services.normalizer import normalize_profile
from vkid_sso.services.profile import ProfileFetchClient
from vkid_sso.services.security import generate_state, validate_state
from vkid_sso.services.tokens import TokenExchangeClient

logger = logging.getLogger(__name__)

Session = MutableMapping[str, Any]


class CallbackOrchestrator:
    """Runs the VK ID authorization code flow for the host application.

    The callback is a sequence of dependent steps. Each step either returns
    its result or raises a CallbackError, which ends the sequence; the
    error is turned into a FAILED outcome at this boundary and never
    propagates to the caller.

    The orchestrator holds no per-request state and may be shared by
    concurrent requests.
    """

    def __init__(
        self,
        config: VKIDConfig,
        *,
        token_client: TokenExchangeClient,
        profile_client: ProfileFetchClient,
        linker: IdentityLinker,
        establish_session: SessionEstablisher,
        pkce_manager: PKCEManager | None = None,
        request_builder: AuthorizationRequestBuilder | None = None,
    ):
        self._config = config
        self._token_client = token_client
        self._profile_client = profile_client
        self._linker = linker
        self._establish_session = establish_session
        self._pkce_manager = pkce_manager or PKCEManager()
        self._request_builder = request_builder or AuthorizationRequestBuilder(config)

    # ================================
    # Initiation
    # ================================

    def start(self, session: Session, return_to: str | None = None) -> str:
        """Begin an authorization attempt.

        Generates PKCE parameters and state, stores them in the session and
        returns the URL to redirect the user agent to.

        Args:
            session: Host session for the requesting user agent
            return_to: Local path to land on after sign-in

        Returns:
            VK ID authorization URL

        Raises:
            ConfigurationError: If client id or secret is not configured
        """
        if not self._config.is_configured:
            raise ConfigurationError(
                "VK ID not configured. Please set SSO_VK_CLIENT_ID and "
                "SSO_VK_CLIENT_SECRET"
            )

        pkce_params = self._pkce_manager.generate_parameters()
        state = generate_state()

        authorization_url = self._request_builder.build_authorization_url(
            client_id=self._config.client_id,
            redirect_uri=self._config.redirect_uri,
            state=state,
            code_challenge=pkce_params.code_challenge,
        )

        session[SESSION_VERIFIER_KEY] = pkce_params.code_verifier
        session[SESSION_STATE_KEY] = state
        if return_to and return_to.startswith("/") and not return_to.startswith("//"):
            session[SESSION_RETURN_TO_KEY] = return_to

        logger.info(f"Starting VK ID authorization for client {self._config.client_id}")
        return authorization_url

    # ================================
    # Callback
    # ================================

    async def handle_callback(
        self, params: CallbackParams, session: Session
    ) -> CallbackOutcome:
        """Handle the redirect back from VK ID.

        The pending state and verifier are removed from the session before
        any check runs, so they are consumed exactly once whatever the
        outcome.

        Args:
            params: Callback query parameters
            session: Host session for the requesting user agent

        Returns:
            CallbackOutcome, SESSION_ESTABLISHED with a redirect URL or
            FAILED with the error
        """
        stored_state = session.pop(SESSION_STATE_KEY, None)
        code_verifier = session.pop(SESSION_VERIFIER_KEY, None)

        reached = CallbackState.START
        try:
            code_verifier = self._validate_callback(params, stored_state, code_verifier)
            reached = CallbackState.STATE_VALIDATED

            token = await self._exchange_code(params, code_verifier)
            reached = CallbackState.CODE_EXCHANGED

            profile = await self._fetch_profile(token)
            reached = CallbackState.PROFILE_FETCHED

            account = await self._link_account(profile)
            reached = CallbackState.LINKED

            await self._start_session(session, account)
            reached = CallbackState.SESSION_ESTABLISHED

        except CallbackError as e:
            self._log_failure(e, reached)
            return CallbackOutcome(state=CallbackState.FAILED, reached=reached, error=e)

        redirect_url = session.pop(SESSION_RETURN_TO_KEY, None) or f"{self._config.relative_path}/"

        logger.info(f"VK ID sign-in complete for uid {account.uid}")
        return CallbackOutcome(
            state=CallbackState.SESSION_ESTABLISHED,
            reached=reached,
            redirect_url=redirect_url,
            account=account,
        )

    def _validate_callback(
        self,
        params: CallbackParams,
        stored_state: str | None,
        code_verifier: str | None,
    ) -> str:
        """Run the callback guards in order; return the code verifier."""
        if params.is_error():
            raise ProviderDenied(params.error, params.error_description)

        if not params.code:
            raise MissingCode()

        if not params.device_id:
            raise MissingDeviceId()

        if not validate_state(params.state, stored_state):
            raise CSRFMismatch(
                "State parameter mismatch - possible CSRF attack "
                f"(received {'a' if params.state else 'no'} state, "
                f"{'a' if stored_state else 'no'} state pending in session)"
            )

        if not code_verifier:
            raise MissingVerifier()

        return code_verifier

    async def _exchange_code(
        self, params: CallbackParams, code_verifier: str
    ) -> TokenResponse:
        try:
            return await self._token_client.exchange_code_for_token(
                code=params.code,
                code_verifier=code_verifier,
                device_id=params.device_id,
                client_id=self._config.client_id,
                client_secret=self._config.client_secret,
                redirect_uri=self._config.redirect_uri,
            )
        except Exception as e:
            raise TokenExchangeFailed(f"Token exchange failed: {e}") from e

    async def _fetch_profile(self, token: TokenResponse) -> RawProfile:
        try:
            return await self._profile_client.get_profile(
                token.access_token, self._config.client_id
            )
        except Exception as e:
            raise ProfileFetchFailed(f"Profile fetch failed: {e}") from e

    async def _link_account(self, profile: RawProfile) -> LocalAccount:
        try:
            identity = normalize_profile(profile)
            return await self._linker.login(
                identity.id,
                identity.display_name,
                identity.email,
                identity.avatar_url,
            )
        except Exception as e:
            raise LoginFailed(f"Login failed: {e}", cause=e) from e

    async def _start_session(self, session: Session, account: LocalAccount) -> None:
        try:
            await self._establish_session(session, account)
        except Exception as e:
            raise SessionEstablishmentFailed(
                f"Could not establish session for uid {account.uid}: {e}"
            ) from e

    def _log_failure(self, error: CallbackError, reached: CallbackState) -> None:
        if isinstance(error, (TokenExchangeFailed, ProfileFetchFailed)):
            logger.error(f"VK ID callback failed after {reached.value}: {error}")
        elif isinstance(error, LoginFailed) and not (
            error.registration_disabled or error.merge_rejected
        ):
            logger.error(f"VK ID callback failed after {reached.value}: {error}")
        else:
            logger.warning(f"VK ID callback rejected after {reached.value}: {error}")
