"""Token exchange models for VK ID.

Contains the token request sent to the VK ID token endpoint and the
response it returns.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from pydantic import BaseModel, ConfigDict


@dataclass(frozen=True)
class TokenRequest:
    """VK ID authorization code exchange parameters.

    Immutable request parameters for exchanging an authorization code for an
    access token. VK ID requires ``device_id`` from the callback and the
    exact ``redirect_uri`` used in the authorization request.
    """

    token_endpoint: str
    code: str = field(repr=False)
    code_verifier: str = field(repr=False)  # RFC 7636 PKCE
    device_id: str
    client_id: str
    client_secret: str = field(repr=False)
    redirect_uri: str

    grant_type: str = "authorization_code"

    def to_json_body(self) -> dict[str, str]:
        """Convert to the JSON request body VK ID expects."""
        return {
            "grant_type": self.grant_type,
            "code": self.code,
            "code_verifier": self.code_verifier,
            "device_id": self.device_id,
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "redirect_uri": self.redirect_uri,
        }


class TokenResponse(BaseModel):
    """Successful VK ID token response.

    Only ``access_token`` is used; the remaining metadata is kept for
    callers but never refreshed or revoked here.
    """

    model_config = ConfigDict(extra="ignore")

    access_token: str
    token_type: str = "Bearer"
    expires_in: int | None = None
    refresh_token: str | None = None
    id_token: str | None = None
    user_id: int | str | None = None
    scope: str | None = None
    state: str | None = None

    def __repr__(self) -> str:
        return f"TokenResponse(token_type={self.token_type!r}, expires_in={self.expires_in!r})"
