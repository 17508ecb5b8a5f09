"""Tests for the VK ID plugin composition root."""

from unittest.mock import AsyncMock

import pytest

from vkid_sso.models.accounts import Association, LoginStrategy
from vkid_sso.models.errors import AccountStoreError
from vkid_sso.models.flow import SESSION_STATE_KEY, SESSION_VERIFIER_KEY
from vkid_sso.plugin import VKIDPlugin


@pytest.fixture
async def plugin(config, store):
    plugin = VKIDPlugin(config, store)
    yield plugin
    await plugin.aclose()


class TestHostIntegration:
    async def test_strategy_advertised_when_configured(self, plugin):
        # Act
        strategy = plugin.get_strategy()

        # Assert
        assert strategy == LoginStrategy(
            name="vkid",
            url="/auth/vkid",
            callback_url="/auth/vkid/callback",
            icon="icon-vk",
        )
        assert strategy.scope == "emails"

    async def test_no_strategy_without_credentials(self, config, store):
        # Arrange
        plugin = VKIDPlugin(config.model_copy(update={"client_id": None}), store)

        # Act & Assert
        assert plugin.get_strategy() is None
        await plugin.aclose()

    async def test_association_for_linked_account(self, plugin):
        # Arrange
        account = await plugin.linker.login("123", "Ivan", "ivan@example.com")

        # Act
        association = await plugin.get_association(account.uid)

        # Assert
        assert association == Association(
            associated=True,
            name="VK",
            icon="icon-vk",
            deauth_url="https://forum.example.com/deauth/vkid",
        )

    async def test_association_for_unlinked_account(self, plugin, store):
        # Arrange
        uid = await store.create_account("ivan", "ivan@example.com")

        # Act
        association = await plugin.get_association(uid)

        # Assert
        assert not association.associated
        assert association.url == "https://forum.example.com/auth/vkid"
        assert association.deauth_url is None


class TestDeauth:
    async def test_deauth_unlinks_and_returns_edit_page(self, plugin, store):
        # Arrange
        account = await plugin.linker.login("123", "Ivan", "ivan@example.com")

        # Act
        redirect_url = await plugin.deauth(account.uid)

        # Assert
        assert redirect_url == "/me/edit"
        assert await store.get_linked_uid("123") is None

    async def test_deauth_store_failure_propagates(self, plugin, store):
        # Arrange
        account = await plugin.linker.login("123", "Ivan", "ivan@example.com")
        store.delete_link = AsyncMock(side_effect=ConnectionError("db down"))

        # Act & Assert
        with pytest.raises(AccountStoreError):
            await plugin.deauth(account.uid)


class TestSignIn:
    async def test_callback_parses_query_and_signs_in(
        self, config, store, token_client, profile_client
    ):
        # Arrange
        plugin = VKIDPlugin(config, store)
        await plugin.aclose()
        plugin.orchestrator._token_client = token_client
        plugin.orchestrator._profile_client = profile_client
        session = {}
        plugin.start(session)

        # Act
        outcome = await plugin.callback(
            {
                "code": "auth-code-123",
                "state": session[SESSION_STATE_KEY],
                "device_id": "device-456",
            },
            session,
        )

        # Assert
        assert outcome.is_success()
        assert session["uid"] == outcome.account.uid
        assert SESSION_VERIFIER_KEY not in session

    async def test_custom_session_establisher_is_used(
        self, config, store, token_client, profile_client
    ):
        # Arrange
        establish = AsyncMock()
        plugin = VKIDPlugin(config, store, establish_session=establish)
        await plugin.aclose()
        plugin.orchestrator._token_client = token_client
        plugin.orchestrator._profile_client = profile_client
        session = {}
        plugin.start(session)

        # Act
        outcome = await plugin.callback(
            {"code": "c", "state": session[SESSION_STATE_KEY], "device_id": "d"},
            session,
        )

        # Assert
        establish.assert_awaited_once_with(session, outcome.account)
        assert "uid" not in session


class TestReload:
    async def test_reload_rebuilds_components_from_settings(self, plugin):
        # Arrange
        old_token_client = plugin.token_client
        old_token_client._http_client = AsyncMock()

        # Act
        config = await plugin.reload(
            {"id": "99999", "secret": "new-secret", "disableRegistration": "on"}
        )

        # Assert
        assert config.client_id == "99999"
        assert plugin.config is config
        assert plugin.linker._config.disable_registration is True
        assert plugin.orchestrator._config is config
        assert plugin.token_client is not old_token_client
        old_token_client._http_client.aclose.assert_awaited_once()

    async def test_reload_keeps_env_credentials_when_settings_empty(self, plugin):
        # Act
        config = await plugin.reload({})

        # Assert
        assert config.client_id == "51234567"
        assert config.client_secret == "app-secret"
