from unittest.mock import AsyncMock, MagicMock

import pytest

from vkid_sso.models.config import VKIDConfig
from vkid_sso.models.profile import RawProfile
from vkid_sso.models.tokens import TokenResponse
from vkid_sso.services.store import InMemoryAccountStore


def _make_response(status_code: int = 200, json_data=None, json_error=None):
    response = MagicMock()
    response.status_code = status_code
    if json_error is not None:
        response.json.side_effect = json_error
    else:
        response.json.return_value = json_data
    return response


@pytest.fixture
def make_response():
    """Factory for mock httpx responses."""
    return _make_response


@pytest.fixture
def config() -> VKIDConfig:
    return VKIDConfig(
        client_id="51234567",
        client_secret="app-secret",
        base_url="https://forum.example.com",
    )


@pytest.fixture
def store() -> InMemoryAccountStore:
    return InMemoryAccountStore()


@pytest.fixture
def token_client():
    client = AsyncMock()
    client.exchange_code_for_token.return_value = TokenResponse(
        access_token="vk-access-token", expires_in=3600, user_id=123
    )
    return client


@pytest.fixture
def profile_client():
    client = AsyncMock()
    client.get_profile.return_value = RawProfile(
        user={
            "user_id": "123",
            "first_name": "Ivan",
            "last_name": "Petrov",
            "email": "ivan@example.com",
            "avatar": "https://cdn.vk.example/ivan.jpg",
        }
    )
    return client
