"""Security-related models for the VK ID authorization flow.

Contains the PKCE parameters generated for each authorization attempt.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

# RFC 7636 Section 4.1 unreserved characters
VERIFIER_PATTERN = re.compile(r"[A-Za-z0-9._~-]{43,128}")


@dataclass(frozen=True)
class PKCEParameters:
    """PKCE (Proof Key for Code Exchange) parameters (RFC 7636).

    Generated once per authorization attempt. The verifier stays in the
    server-side session until the token exchange; only the challenge is
    sent with the authorization request.
    """

    code_verifier: str = field(repr=False)
    code_challenge: str = field()
    code_challenge_method: str = field(default="S256")

    def __post_init__(self) -> None:
        """Validate PKCE parameters meet RFC 7636 requirements."""
        if not VERIFIER_PATTERN.fullmatch(self.code_verifier):
            raise ValueError(
                "code_verifier must be 43-128 characters of [A-Za-z0-9._~-]"
            )
        if not (43 <= len(self.code_challenge) <= 128):
            raise ValueError("code_challenge must be 43-128 characters")
        if self.code_challenge_method != "S256":
            raise ValueError("Only S256 code challenge method is supported")
