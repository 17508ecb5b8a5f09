"""Local account models and the host account store interface."""

from __future__ import annotations

from collections.abc import MutableMapping
from dataclasses import dataclass
from typing import Any, Protocol

# Account field holding the VK user id, and the link table name
EXTERNAL_ID_FIELD = "vkid"
LINK_TABLE = "vkid:uid"
AVATAR_FIELDS = ("uploadedpicture", "picture")


@dataclass(frozen=True)
class LocalAccount:
    """A host application account, identified by its uid."""

    uid: int


class AccountStore(Protocol):
    """Protocol for the host application's account storage.

    All methods may raise any exception on storage failure; the identity
    linker wraps them in AccountStoreError.
    """

    async def get_linked_uid(self, external_id: str) -> int | None:
        """Look up the uid linked to a VK user id."""
        ...

    async def set_link(self, external_id: str, uid: int) -> None:
        """Write the VK user id -> uid link."""
        ...

    async def delete_link(self, external_id: str) -> None:
        """Delete the link keyed by VK user id."""
        ...

    async def get_uid_by_email(self, email: str) -> int | None:
        """Look up an account by email address."""
        ...

    async def create_account(self, username: str, email: str | None) -> int:
        """Create an account and return its uid."""
        ...

    async def get_field(self, uid: int, field: str) -> Any:
        """Read one account field, None if unset."""
        ...

    async def set_field(self, uid: int, field: str, value: Any) -> None:
        """Write one account field."""
        ...

    async def delete_field(self, uid: int, field: str) -> None:
        """Remove one account field."""
        ...

    async def is_email_confirmed(self, uid: int) -> bool:
        """Check if the account's email address is confirmed."""
        ...

    async def confirm_email(self, uid: int) -> None:
        """Mark the account's email address as confirmed."""
        ...


class SessionEstablisher(Protocol):
    """Protocol for logging a linked account into the host session."""

    async def __call__(
        self, session: MutableMapping[str, Any], account: LocalAccount
    ) -> None: ...


@dataclass(frozen=True)
class LoginStrategy:
    """Login button descriptor advertised to the host's login page."""

    name: str
    url: str
    callback_url: str
    icon: str
    scope: str = "emails"
    skip_csrf_check: bool = True
    login_label: str = "[[vksso:sign-in]]"
    register_label: str = "[[vksso:sign-up]]"


@dataclass(frozen=True)
class Association:
    """Whether an account is linked to VK ID, for the account settings page."""

    associated: bool
    name: str
    icon: str
    url: str | None = None
    deauth_url: str | None = None
