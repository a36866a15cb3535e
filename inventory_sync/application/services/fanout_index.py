"""Best-effort maintenance of the per-member fan-out index of groups.

``users/{uid}/groups/{groupId}`` duplicates the member's role from
``groups/{groupId}/members/{uid}`` so a user's group list is one query. The
index is a read optimization, not a source of truth: write failures are
logged and reported as False, never raised. Index records are deleted only
by the group deletion plan.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from inventory_sync.domain.collections import (
    FIELD_CREATED_AT,
    FIELD_OWNER_UID,
    FIELD_ROLE,
    FIELD_UPDATED_AT,
    group_path,
    member_group_index_path,
)
from inventory_sync.domain.entities.document import SERVER_TIMESTAMP
from inventory_sync.domain.enums import GroupRole
from inventory_sync.domain.exceptions import RemoteStoreException

if TYPE_CHECKING:
    from inventory_sync.application.interfaces.store import IDocumentStore

logger = logging.getLogger(__name__)


class FanoutIndexMaintainer:
    """Keeps fan-out index records in step with canonical membership."""

    def __init__(self, store: IDocumentStore) -> None:
        self._store = store

    async def upsert(self, member_id: str, root_id: str, role: GroupRole) -> bool:
        """Merge-write the member's index record for the group.

        Returns:
            True if the write succeeded, False if it failed (logged).
        """
        path = member_group_index_path(member_id, root_id)
        try:
            await self._store.set(
                path,
                {FIELD_ROLE: role.value, FIELD_UPDATED_AT: SERVER_TIMESTAMP},
                merge=True,
            )
        except RemoteStoreException as e:
            logger.warning("Fan-out index upsert failed for %s: %s", path, e)
            return False
        return True

    async def ensure_owner_indexed(self, owner_id: str, root_id: str) -> bool:
        """Create the owner's index record if the group exists but the record does not.

        Heals groups whose index write at creation time was lost. Run once
        per session start.

        Returns:
            True if the index record was written, False if nothing was needed
            or the reconciliation failed (logged).
        """
        path = member_group_index_path(owner_id, root_id)
        try:
            if await self._store.get(path) is not None:
                return False
            root = await self._store.get(group_path(root_id))
            if root is None or root.get(FIELD_OWNER_UID, owner_id) != owner_id:
                return False
            await self._store.set(
                path,
                {FIELD_ROLE: GroupRole.OWNER.value, FIELD_CREATED_AT: SERVER_TIMESTAMP},
                merge=True,
            )
        except RemoteStoreException as e:
            logger.warning("Owner index reconciliation failed for %s: %s", path, e)
            return False
        logger.info("Restored missing owner index record %s", path)
        return True
