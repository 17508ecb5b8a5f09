"""Links VK ID identities to local accounts.

Decides, for an authenticated VK user, whether to reuse an already linked
account, merge into an existing account with the same email, or create a
new account.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from functools import partial
from typing import Any

from vkid_sso.models.accounts import (
    AVATAR_FIELDS,
    EXTERNAL_ID_FIELD,
    AccountStore,
    LocalAccount,
)
from vkid_sso.models.config import VKIDConfig
from vkid_sso.models.errors import (
    AccountStoreError,
    MergeRejected,
    RegistrationDisabled,
)

logger = logging.getLogger(__name__)

Undo = tuple[str, Callable[[], Awaitable[None]]]


class IdentityLinker:
    """Maps VK user ids to local accounts through the host account store.

    Lookup order for an unlinked VK user is link table, then email. A match
    by email is merged without further confirmation from the user; set
    ``merge_requires_verified_email`` to only merge into accounts whose
    email is already confirmed.

    There is no cross-request locking. Two simultaneous first logins with
    the same new email can both miss the email lookup and both try to
    create an account; the account store's own uniqueness guarantees decide
    which one wins, and the loser fails with AccountStoreError.
    """

    def __init__(self, store: AccountStore, config: VKIDConfig):
        self._store = store
        self._config = config

    async def login(
        self,
        external_id: str,
        display_name: str,
        email: str,
        avatar_url: str | None = None,
    ) -> LocalAccount:
        """Resolve the local account for a VK user, creating one if allowed.

        Args:
            external_id: VK user id
            display_name: Username for a newly created account
            email: Email address, possibly a placeholder
            avatar_url: Avatar to store on the account, if any

        Returns:
            The linked, merged or newly created account

        Raises:
            RegistrationDisabled: If a new account is needed but disabled
            MergeRejected: If the email match may not be merged
            AccountStoreError: If the account store fails
        """
        uid = await self.get_uid(external_id)
        if uid is not None:
            logger.debug(f"VK user {external_id} already linked to uid {uid}")
            return LocalAccount(uid=uid)

        uid = await self._call("look up account by email", self._store.get_uid_by_email, email)

        if uid is not None:
            if self._config.merge_requires_verified_email:
                confirmed = await self._call(
                    "read email confirmation", self._store.is_email_confirmed, uid
                )
                if not confirmed:
                    raise MergeRejected(
                        f"Refusing to merge VK user {external_id} into uid {uid}: "
                        "email not confirmed"
                    )

            await self._attach(uid, external_id, avatar_url)
            logger.info(f"Merged VK user {external_id} into existing uid {uid}")
            return LocalAccount(uid=uid)

        if self._config.disable_registration:
            raise RegistrationDisabled(
                f"Registration via VK ID is disabled, not creating an account "
                f"for VK user {external_id}"
            )

        auto_confirm = self._config.auto_confirm
        uid = await self._call(
            "create account",
            self._store.create_account,
            display_name,
            None if auto_confirm else email,
        )

        if auto_confirm:
            await self._call("set email", self._store.set_field, uid, "email", email)
            await self._call("confirm email", self._store.confirm_email, uid)

        await self._attach(uid, external_id, avatar_url)
        logger.info(f"Created uid {uid} for VK user {external_id}")
        return LocalAccount(uid=uid)

    async def get_uid(self, external_id: str) -> int | None:
        """Look up the uid linked to a VK user id, without side effects."""
        return await self._call("look up link", self._store.get_linked_uid, external_id)

    async def is_linked(self, uid: int) -> bool:
        """Check if an account carries a VK user id."""
        external_id = await self._call(
            "read account field", self._store.get_field, uid, EXTERNAL_ID_FIELD
        )
        return bool(external_id)

    async def unlink(self, uid: int) -> None:
        """Remove the VK link from an account.

        A no-op when the account is not linked.

        Raises:
            AccountStoreError: If the account store fails
        """
        external_id = await self._call(
            "read account field", self._store.get_field, uid, EXTERNAL_ID_FIELD
        )
        if not external_id:
            logger.debug(f"uid {uid} has no VK link, nothing to remove")
            return

        await self._call("delete link", self._store.delete_link, str(external_id))
        await self._call(
            "clear account field", self._store.delete_field, uid, EXTERNAL_ID_FIELD
        )
        logger.info(f"Removed VK link {external_id} from uid {uid}")

    async def _attach(self, uid: int, external_id: str, avatar_url: str | None) -> None:
        """Write the account field, link entry and avatar fields as one unit.

        An account carries at most one VK link: a link to a different VK
        user is replaced. Writes already applied are undone if a later one
        fails.
        """
        undo: list[Undo] = []

        try:
            previous_id = await self._store.get_field(uid, EXTERNAL_ID_FIELD)
            await self._store.set_field(uid, EXTERNAL_ID_FIELD, external_id)
            undo.append(
                (
                    "restore account field",
                    partial(self._restore_field, uid, EXTERNAL_ID_FIELD, previous_id),
                )
            )

            if previous_id and str(previous_id) != external_id:
                stale_id = str(previous_id)
                if await self._store.get_linked_uid(stale_id) == uid:
                    await self._store.delete_link(stale_id)
                    undo.append(
                        ("restore replaced link", partial(self._store.set_link, stale_id, uid))
                    )
                logger.info(f"Replacing VK link {stale_id} on uid {uid} with {external_id}")

            await self._store.set_link(external_id, uid)
            undo.append(("delete link", partial(self._store.delete_link, external_id)))

            if avatar_url:
                for field in AVATAR_FIELDS:
                    previous = await self._store.get_field(uid, field)
                    await self._store.set_field(uid, field, avatar_url)
                    undo.append((f"restore {field}", partial(self._restore_field, uid, field, previous)))

        except Exception as e:
            await self._rollback(uid, undo)
            raise AccountStoreError(
                f"Failed to link VK user {external_id} to uid {uid}: {e}"
            ) from e

    async def _restore_field(self, uid: int, field: str, previous: Any) -> None:
        if previous is None:
            await self._store.delete_field(uid, field)
        else:
            await self._store.set_field(uid, field, previous)

    async def _rollback(self, uid: int, undo: list[Undo]) -> None:
        for action, operation in reversed(undo):
            try:
                await operation()
            except Exception as e:
                logger.error(f"Rollback step '{action}' failed for uid {uid}: {e}")

    async def _call(self, action: str, func: Callable[..., Awaitable[Any]], *args: Any) -> Any:
        try:
            return await func(*args)
        except Exception as e:
            raise AccountStoreError(f"Account store failed to {action}: {e}") from e
