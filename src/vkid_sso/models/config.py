"""Configuration for the VK ID sign-in flow.

The configuration is an immutable value passed into the components that
need it. Updating settings produces a new value via ``merge_settings``.
"""

from __future__ import annotations

import os
from collections.abc import Mapping

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator

CALLBACK_PATH = "/auth/vkid/callback"
AUTH_PATH = "/auth/vkid"
DEAUTH_PATH = "/deauth/vkid"


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in ("1", "true", "on", "yes")


class VKIDConfig(BaseModel):
    """VK ID client credentials, policy flags and endpoints."""

    model_config = ConfigDict(frozen=True)

    client_id: str | None = None
    client_secret: str | None = None
    auto_confirm: bool = False
    disable_registration: bool = False
    # Refuse to merge into an existing account whose email is unconfirmed
    merge_requires_verified_email: bool = False

    base_url: str = "http://localhost:4567"
    relative_path: str = ""

    timeout: float = Field(default=10.0, gt=0)
    authorization_endpoint: str = "https://id.vk.ru/authorize"
    token_endpoint: str = "https://id.vk.ru/oauth2/auth"
    user_info_endpoint: str = "https://id.vk.ru/oauth2/user_info"
    scope: str = "email phone"

    @field_validator("base_url", "relative_path")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @property
    def is_configured(self) -> bool:
        """Check if both client id and client secret are set."""
        return bool(self.client_id and self.client_secret)

    @property
    def redirect_uri(self) -> str:
        """Redirect URI sent with both the authorization and token requests."""
        return f"{self.base_url}{CALLBACK_PATH}"

    @classmethod
    def from_env(cls, dotenv: bool = True) -> VKIDConfig:
        """Build configuration from ``SSO_VK_*`` environment variables.

        Args:
            dotenv: Load a ``.env`` file into the environment first

        Returns:
            VKIDConfig with values from the environment, defaults elsewhere
        """
        if dotenv:
            load_dotenv()

        values: dict[str, object] = {
            "client_id": os.getenv("SSO_VK_CLIENT_ID") or None,
            "client_secret": os.getenv("SSO_VK_CLIENT_SECRET") or None,
            "auto_confirm": _env_flag("SSO_VK_AUTO_CONFIRM"),
            "disable_registration": _env_flag("SSO_VK_DISABLE_REGISTRATION"),
        }
        if os.getenv("SSO_VK_BASE_URL"):
            values["base_url"] = os.environ["SSO_VK_BASE_URL"]
        if os.getenv("SSO_VK_RELATIVE_PATH"):
            values["relative_path"] = os.environ["SSO_VK_RELATIVE_PATH"]

        return cls(**values)

    def merge_settings(self, settings: Mapping[str, str]) -> VKIDConfig:
        """Return a copy updated from persisted admin settings.

        Settings use the admin form's field names: ``id`` and ``secret``
        replace the credentials only when non-empty, ``autoconfirm`` and
        ``disableRegistration`` are checkboxes that are on iff ``"on"``.

        Args:
            settings: Persisted settings mapping

        Returns:
            New VKIDConfig; this instance is left unchanged
        """
        update: dict[str, object] = {
            "auto_confirm": settings.get("autoconfirm") == "on",
            "disable_registration": settings.get("disableRegistration") == "on",
        }
        if settings.get("id"):
            update["client_id"] = settings["id"]
        if settings.get("secret"):
            update["client_secret"] = settings["secret"]

        return self.model_copy(update=update)
