"""Security utilities for the VK ID authorization flow.

Provides cryptographically secure state generation and validation for
CSRF protection of the callback.
"""

from __future__ import annotations

import secrets

STATE_BYTES = 32


def generate_state() -> str:
    """Generate cryptographically secure state parameter.

    The state parameter provides CSRF protection by ensuring the callback
    matches the authorization request started from the same session.

    Returns:
        Random hex string (64 characters, 256 bits)
    """
    return secrets.token_hex(STATE_BYTES)


def validate_state(received: str | None, stored: str | None) -> bool:
    """Check that the callback state matches the state stored in the session.

    Args:
        received: State parameter from the callback URL
        stored: State parameter saved when the flow started

    Returns:
        True iff both are non-empty strings and equal
    """
    if not received or not stored:
        return False
    if not isinstance(received, str) or not isinstance(stored, str):
        return False
    return secrets.compare_digest(received.encode("utf-8"), stored.encode("utf-8"))
