"""Authorization flow models for VK ID sign-in.

Contains models for the authorization request, the inbound callback and
the outcome of callback handling.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any
from urllib.parse import urlencode

from vkid_sso.models.accounts import LocalAccount
from vkid_sso.models.errors import CallbackError

# Session keys written by the initiation step and consumed by the callback
SESSION_VERIFIER_KEY = "vkid_code_verifier"
SESSION_STATE_KEY = "vkid_state"
SESSION_RETURN_TO_KEY = "returnTo"


@dataclass(frozen=True)
class AuthorizationRequest:
    """Authorization request parameters for the VK ID redirect."""

    authorization_endpoint: str
    client_id: str
    redirect_uri: str
    scope: str
    state: str
    code_challenge: str
    code_challenge_method: str = "S256"

    def build_authorization_url(self) -> str:
        """Build the complete authorization URL."""
        params = {
            "response_type": "code",
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "scope": self.scope,
            "state": self.state,
            "code_challenge": self.code_challenge,
            "code_challenge_method": self.code_challenge_method,
        }

        return f"{self.authorization_endpoint}?{urlencode(params)}"


@dataclass(frozen=True)
class CallbackParams:
    """Query parameters VK ID sends to the callback URL."""

    code: str | None = None
    state: str | None = None
    device_id: str | None = None
    error: str | None = None
    error_description: str | None = None

    @classmethod
    def from_query(cls, query: Mapping[str, Any]) -> CallbackParams:
        """Build from a query mapping, treating empty values as absent."""

        def get(key: str) -> str | None:
            value = query.get(key)
            return str(value) if value else None

        return cls(
            code=get("code"),
            state=get("state"),
            device_id=get("device_id"),
            error=get("error"),
            error_description=get("error_description"),
        )

    def is_error(self) -> bool:
        return self.error is not None


class CallbackState(str, Enum):
    """States of the callback state machine."""

    START = "start"
    STATE_VALIDATED = "state_validated"
    CODE_EXCHANGED = "code_exchanged"
    PROFILE_FETCHED = "profile_fetched"
    LINKED = "linked"
    SESSION_ESTABLISHED = "session_established"
    FAILED = "failed"


@dataclass(frozen=True)
class CallbackOutcome:
    """Terminal result of handling one callback request.

    ``reached`` is the last state passed before the terminal state, which
    tells where a failed callback stopped.
    """

    state: CallbackState
    reached: CallbackState
    redirect_url: str | None = None
    account: LocalAccount | None = None
    error: CallbackError | None = None

    def is_success(self) -> bool:
        return self.state is CallbackState.SESSION_ESTABLISHED

    @property
    def status_code(self) -> int:
        if self.error is not None:
            return self.error.status_code
        return 302
