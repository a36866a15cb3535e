"""Deletion plans for the records this client owns."""

from __future__ import annotations

from collections.abc import Sequence

from inventory_sync.domain.collections import (
    FIELD_OWNER_UID,
    group_items_path,
    group_members_path,
    group_path,
    member_group_index_path,
)
from inventory_sync.domain.entities.deletion_plan import DeletionPlan, DependentCollection
from inventory_sync.domain.entities.document import Document
from inventory_sync.domain.exceptions import InvalidDeletionRootException


def group_deletion_plan(group_id: str) -> DeletionPlan:
    """Plan for deleting a group.

    Order: group items, then members together with each member's fan-out
    index record, then the owner's index record and the group itself.
    """

    def member_index(member: Document) -> Sequence[str]:
        # Membership documents are keyed by the member's user id.
        return (member_group_index_path(member.id, group_id),)

    def owner_index(root: Document) -> Sequence[str]:
        owner_uid = root.get(FIELD_OWNER_UID)
        if not isinstance(owner_uid, str) or not owner_uid:
            raise InvalidDeletionRootException(root.path, FIELD_OWNER_UID)
        return (member_group_index_path(owner_uid, group_id),)

    return DeletionPlan(
        root_path=group_path(group_id),
        dependents=(
            DependentCollection(group_items_path(group_id)),
            DependentCollection(group_members_path(group_id), linked=member_index),
        ),
        auxiliary=owner_index,
    )
