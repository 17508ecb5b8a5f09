"""Maps VK ID profiles onto canonical identities."""

from __future__ import annotations

from vkid_sso.models.profile import CanonicalIdentity, RawProfile

DEFAULT_DISPLAY_NAME = "vkuser"


def placeholder_email(external_id: str) -> str:
    """Deterministic non-deliverable address for users without an email.

    Account creation downstream must tolerate this address.
    """
    return f"vk-{external_id}@vk.local"


def normalize_profile(raw: RawProfile) -> CanonicalIdentity:
    """Normalize a successful user info response.

    Args:
        raw: Profile returned by ProfileFetchClient

    Returns:
        CanonicalIdentity with display name and email fallbacks applied
    """
    user = raw.user
    external_id = str(user.user_id)

    return CanonicalIdentity(
        id=external_id,
        display_name=user.first_name or DEFAULT_DISPLAY_NAME,
        email=user.email or placeholder_email(external_id),
        avatar_url=user.avatar or None,
        first_name=user.first_name,
        last_name=user.last_name,
        raw=user.model_dump(),
    )
