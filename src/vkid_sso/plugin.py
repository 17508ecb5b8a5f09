"""VK ID sign-in plugin for a host web application.

Holds the current configuration and the components built from it, and
exposes the operations the host wires into its routes and pages.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, MutableMapping
from typing import Any

from vkid_sso.models.accounts import (
    AccountStore,
    Association,
    LocalAccount,
    LoginStrategy,
    SessionEstablisher,
)
from vkid_sso.models.config import AUTH_PATH, CALLBACK_PATH, DEAUTH_PATH, VKIDConfig
from vkid_sso.models.flow import CallbackOutcome, CallbackParams
from vkid_sso.orchestrator import CallbackOrchestrator
from vkid_sso.services.linker import IdentityLinker
from vkid_sso.services.profile import ProfileFetchClient
from vkid_sso.services.tokens import TokenExchangeClient

logger = logging.getLogger(__name__)

NAME = "VK"
ICON = "icon-vk"
STRATEGY_NAME = "vkid"
SESSION_UID_KEY = "uid"


async def store_uid_in_session(
    session: MutableMapping[str, Any], account: LocalAccount
) -> None:
    """Default session establisher: remember the uid in the session."""
    session[SESSION_UID_KEY] = account.uid


class VKIDPlugin:
    """Composition root for VK ID sign-in.

    Components are rebuilt from a new configuration value on ``reload``;
    nothing reads settings from global state.
    """

    def __init__(
        self,
        config: VKIDConfig,
        store: AccountStore,
        *,
        establish_session: SessionEstablisher | None = None,
    ):
        self._store = store
        self._establish_session = establish_session or store_uid_in_session
        self._build(config)

    def _build(self, config: VKIDConfig) -> None:
        self.config = config
        self.token_client = TokenExchangeClient(config.token_endpoint, config.timeout)
        self.profile_client = ProfileFetchClient(config.user_info_endpoint, config.timeout)
        self.linker = IdentityLinker(self._store, config)
        self.orchestrator = CallbackOrchestrator(
            config,
            token_client=self.token_client,
            profile_client=self.profile_client,
            linker=self.linker,
            establish_session=self._establish_session,
        )

    async def reload(self, settings: Mapping[str, str]) -> VKIDConfig:
        """Apply persisted admin settings and rebuild the components.

        Args:
            settings: Settings mapping (``id``, ``secret``, ``autoconfirm``,
                ``disableRegistration``)

        Returns:
            The new configuration
        """
        old_token_client, old_profile_client = self.token_client, self.profile_client
        self._build(self.config.merge_settings(settings))
        await old_token_client.close()
        await old_profile_client.close()

        logger.info(
            f"VK ID settings reloaded (configured={self.config.is_configured}, "
            f"auto_confirm={self.config.auto_confirm}, "
            f"disable_registration={self.config.disable_registration})"
        )
        return self.config

    # ================================
    # Sign-in
    # ================================

    def start(self, session: MutableMapping[str, Any], return_to: str | None = None) -> str:
        """Begin sign-in; see CallbackOrchestrator.start."""
        return self.orchestrator.start(session, return_to)

    async def callback(
        self, query: Mapping[str, Any], session: MutableMapping[str, Any]
    ) -> CallbackOutcome:
        """Handle the VK ID redirect; see CallbackOrchestrator.handle_callback."""
        return await self.orchestrator.handle_callback(
            CallbackParams.from_query(query), session
        )

    async def deauth(self, uid: int) -> str:
        """Unlink VK ID from an account and return the page to redirect to."""
        await self.linker.unlink(uid)
        return f"{self.config.relative_path}/me/edit"

    # ================================
    # Host integration
    # ================================

    def get_strategy(self) -> LoginStrategy | None:
        """Login button descriptor, or None while credentials are missing."""
        if not self.config.is_configured:
            return None

        return LoginStrategy(
            name=STRATEGY_NAME,
            url=AUTH_PATH,
            callback_url=CALLBACK_PATH,
            icon=ICON,
        )

    async def get_association(self, uid: int) -> Association:
        """Describe whether the account is linked, with the matching action URL."""
        if await self.linker.is_linked(uid):
            return Association(
                associated=True,
                name=NAME,
                icon=ICON,
                deauth_url=f"{self.config.base_url}{DEAUTH_PATH}",
            )

        return Association(
            associated=False,
            name=NAME,
            icon=ICON,
            url=f"{self.config.base_url}{AUTH_PATH}",
        )

    async def aclose(self) -> None:
        """Close the HTTP clients."""
        await self.token_client.close()
        await self.profile_client.close()
