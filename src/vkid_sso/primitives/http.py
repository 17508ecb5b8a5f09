"""Shared response handling for the VK ID HTTP clients."""

from __future__ import annotations

from typing import Any

import httpx

from vkid_sso.models.errors import ProtocolError, ProviderError


def read_json_object(response: httpx.Response, what: str) -> dict[str, Any]:
    """Decode a VK ID response body that must be a JSON object.

    Args:
        response: HTTP response from a VK ID endpoint
        what: Name of the endpoint, used in error messages

    Returns:
        Decoded JSON object

    Raises:
        ProtocolError: If the body is not a JSON object
    """
    try:
        data = response.json()
    except ValueError as e:
        raise ProtocolError(
            f"Invalid {what} response (HTTP {response.status_code}): not JSON"
        ) from e

    if not isinstance(data, dict):
        raise ProtocolError(
            f"Invalid {what} response (HTTP {response.status_code}): "
            f"expected a JSON object, got {type(data).__name__}"
        )

    return data


def raise_for_provider_error(data: dict[str, Any]) -> None:
    """Raise ProviderError if the body carries a VK ID ``error`` field.

    The token endpoint reports ``error``/``error_description`` strings. The
    user info endpoint may instead send an ``error`` object with
    ``error_code`` and ``error_msg``.

    Raises:
        ProviderError: If ``error`` is present
    """
    error = data.get("error")
    if not error:
        return

    if isinstance(error, dict):
        code = error.get("error_code", "unknown_error")
        description = error.get("error_msg") or data.get("error_description")
        raise ProviderError(str(code), description)

    raise ProviderError(str(error), data.get("error_description"))
