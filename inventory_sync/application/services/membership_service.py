"""Group creation and membership changes.

Membership is canonical in ``groups/{groupId}/members/{uid}``; every change
is mirrored into the member's fan-out index record. Role changes and
removals write both records in one atomic batch. Creation and additions
write the canonical record first and then upsert the index best-effort.

Members are added by user id. Resolving an email to a user id belongs to a
server-side lookup, not to a client-readable index.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from inventory_sync.application.services.fanout_index import FanoutIndexMaintainer
from inventory_sync.domain.collections import (
    FIELD_CREATED_AT,
    FIELD_DESCRIPTION,
    FIELD_EMAIL,
    FIELD_NAME,
    FIELD_OWNER_UID,
    FIELD_ROLE,
    FIELD_UPDATED_AT,
    group_member_path,
    group_path,
    member_group_index_path,
)
from inventory_sync.domain.entities.document import SERVER_TIMESTAMP, Document
from inventory_sync.domain.enums import GroupRole
from inventory_sync.domain.exceptions import (
    GroupAlreadyExistsException,
    ResourceNotFoundException,
    ValidationException,
)

if TYPE_CHECKING:
    from inventory_sync.application.interfaces.store import IDocumentStore

logger = logging.getLogger(__name__)


def default_group_name(display_name: str | None, email: str | None) -> str:
    """Default name for a user's group: "<display name>'s Group", else the email prefix."""
    name = (display_name or "").strip()
    if name:
        return f"{name}'s Group"
    prefix = (email or "").split("@", 1)[0].strip()
    if prefix:
        return f"{prefix}'s Group"
    return "My Group"


def normalize_email(email: str) -> str:
    normalized = email.strip().lower()
    local, sep, domain = normalized.partition("@")
    if not (local and sep and domain):
        raise ValidationException(f"Invalid email: {email!r}", field="email")
    return normalized


class MembershipService:
    """Creates groups and manages their members."""

    def __init__(
        self,
        store: IDocumentStore,
        fanout_index: FanoutIndexMaintainer | None = None,
    ) -> None:
        self._store = store
        self._fanout = fanout_index or FanoutIndexMaintainer(store)

    async def create_group(
        self, owner_id: str, name: str, description: str | None = None
    ) -> str:
        """Create the owner's group (group id == owner id) and index it for the owner.

        Raises:
            ValidationException: empty name.
            GroupAlreadyExistsException: the owner already has a group.

        Returns:
            The new group id.
        """
        name = name.strip()
        if not name:
            raise ValidationException("Group name must not be empty", field="name")
        group_id = owner_id
        if await self._store.get(group_path(group_id)) is not None:
            raise GroupAlreadyExistsException(group_id)
        await self._store.set(
            group_path(group_id),
            {
                FIELD_OWNER_UID: owner_id,
                FIELD_NAME: name,
                FIELD_DESCRIPTION: description,
                FIELD_CREATED_AT: SERVER_TIMESTAMP,
                FIELD_UPDATED_AT: SERVER_TIMESTAMP,
            },
        )
        await self._fanout.upsert(owner_id, group_id, GroupRole.OWNER)
        logger.info("Created group %s", group_id)
        return group_id

    async def add_member(self, group_id: str, member_id: str, email: str) -> None:
        """Add member_id to the group with the member role.

        Raises:
            ValidationException: invalid email, or member_id is the owner.
            ResourceNotFoundException: the group does not exist.
        """
        normalized = normalize_email(email)
        group = await self._get_group(group_id)
        if group.get(FIELD_OWNER_UID) == member_id:
            raise ValidationException("The owner is already part of the group", field="member_id")
        await self._store.set(
            group_member_path(group_id, member_id),
            {FIELD_ROLE: GroupRole.MEMBER.value, FIELD_EMAIL: normalized},
        )
        await self._fanout.upsert(member_id, group_id, GroupRole.MEMBER)

    async def change_role(self, group_id: str, member_id: str, role: GroupRole) -> None:
        """Set a member's role in the membership record and the fan-out index atomically.

        Raises:
            ValidationException: role is OWNER, or member_id is the owner.
            ResourceNotFoundException: the group does not exist.
        """
        if role is GroupRole.OWNER:
            raise ValidationException("Ownership cannot be assigned", field="role")
        group = await self._get_group(group_id)
        if group.get(FIELD_OWNER_UID) == member_id:
            raise ValidationException("The owner's role cannot change", field="member_id")
        batch = self._store.batch()
        batch.set(group_member_path(group_id, member_id), {FIELD_ROLE: role.value}, merge=True)
        batch.set(
            member_group_index_path(member_id, group_id),
            {FIELD_ROLE: role.value, FIELD_UPDATED_AT: SERVER_TIMESTAMP},
            merge=True,
        )
        await batch.commit()

    async def remove_member(self, group_id: str, member_id: str) -> None:
        """Delete the membership record and the member's index record atomically.

        Raises:
            ValidationException: member_id is the owner.
            ResourceNotFoundException: the group does not exist.
        """
        group = await self._get_group(group_id)
        if group.get(FIELD_OWNER_UID) == member_id:
            raise ValidationException("The owner cannot be removed", field="member_id")
        batch = self._store.batch()
        batch.delete(group_member_path(group_id, member_id))
        batch.delete(member_group_index_path(member_id, group_id))
        await batch.commit()

    async def _get_group(self, group_id: str) -> Document:
        group = await self._store.get(group_path(group_id))
        if group is None:
            raise ResourceNotFoundException("group", group_id)
        return group
