"""In-memory account store for development and tests."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any

logger = logging.getLogger(__name__)


class InMemoryAccountStore:
    """Implements the AccountStore protocol with plain dictionaries.

    Email addresses are unique, mirroring the uniqueness guarantee a real
    store is expected to provide.
    """

    def __init__(self) -> None:
        self._links: dict[str, int] = {}  # VK user id -> uid
        self._accounts: dict[int, dict[str, Any]] = defaultdict(dict)
        self._emails: dict[str, int] = {}  # lowercased email -> uid
        self._confirmed: set[int] = set()
        self._next_uid = 1

    # ================================
    # Links
    # ================================

    async def get_linked_uid(self, external_id: str) -> int | None:
        return self._links.get(external_id)

    async def set_link(self, external_id: str, uid: int) -> None:
        self._links[external_id] = uid

    async def delete_link(self, external_id: str) -> None:
        self._links.pop(external_id, None)

    # ================================
    # Accounts
    # ================================

    async def get_uid_by_email(self, email: str) -> int | None:
        return self._emails.get(email.lower())

    async def create_account(self, username: str, email: str | None) -> int:
        if email and email.lower() in self._emails:
            raise ValueError(f"Email {email} is already registered")

        uid = self._next_uid
        self._next_uid += 1

        self._accounts[uid]["username"] = username
        if email:
            await self.set_field(uid, "email", email)

        logger.debug(f"Created account {uid} ({username})")
        return uid

    async def get_field(self, uid: int, field: str) -> Any:
        return self._accounts.get(uid, {}).get(field)

    async def set_field(self, uid: int, field: str, value: Any) -> None:
        if field == "email":
            existing = self._emails.get(str(value).lower())
            if existing is not None and existing != uid:
                raise ValueError(f"Email {value} is already registered")
            old = self._accounts[uid].get("email")
            if old:
                self._emails.pop(old.lower(), None)
                self._confirmed.discard(uid)
            self._emails[str(value).lower()] = uid
        self._accounts[uid][field] = value

    async def delete_field(self, uid: int, field: str) -> None:
        value = self._accounts.get(uid, {}).pop(field, None)
        if field == "email" and value:
            self._emails.pop(value.lower(), None)
            self._confirmed.discard(uid)

    async def is_email_confirmed(self, uid: int) -> bool:
        return uid in self._confirmed

    async def confirm_email(self, uid: int) -> None:
        self._confirmed.add(uid)

    # ================================
    # Inspection
    # ================================

    def account_count(self) -> int:
        """Number of accounts created so far."""
        return len(self._accounts)

    def get_account(self, uid: int) -> dict[str, Any] | None:
        """Copy of an account's fields, None if it doesn't exist."""
        account = self._accounts.get(uid)
        return dict(account) if account is not None else None
