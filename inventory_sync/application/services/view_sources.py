"""View sources: which collection a view reads, how it is ordered, how rows decode."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Generic, TypeVar

from inventory_sync.application.dtos.view import (
    DEFAULT_GROUP_NAME,
    GroupSummary,
    ItemRow,
    MemberRow,
)
from inventory_sync.core.constants import DOCUMENT_ID_FIELD
from inventory_sync.domain.collections import (
    FIELD_DESCRIPTION,
    FIELD_EMAIL,
    FIELD_NAME,
    FIELD_QUANTITY,
    FIELD_ROLE,
    FIELD_UPDATED_AT,
    group_items_path,
    group_members_path,
    group_path,
    member_groups_path,
    user_items_path,
)
from inventory_sync.domain.entities.view import ViewEntry
from inventory_sync.domain.enums import GroupRole, SortDirection

T = TypeVar("T")

MISSING_EMAIL = "[email missing]"


@dataclass(frozen=True)
class ViewSource(Generic[T]):
    """Call site of a materialized view.

    With ``related_path`` set, each row is joined with the document at
    ``related_path(row_id)`` and ``project`` is called as
    ``project(entry, related_fields)``. Rows whose related document does not
    exist are left out.
    """

    name: str
    collection_path: str
    order_field: str
    project: Callable[..., T]
    direction: SortDirection = SortDirection.ASCENDING
    related_path: Callable[[str], str] | None = None


def _as_int(value: Any) -> int:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    return 0


def project_item(entry: ViewEntry) -> ItemRow:
    name = entry.get(FIELD_NAME)
    updated_at = entry.get(FIELD_UPDATED_AT)
    description = entry.get(FIELD_DESCRIPTION)
    return ItemRow(
        id=entry.id,
        name=name if isinstance(name, str) else "",
        quantity=_as_int(entry.get(FIELD_QUANTITY)),
        description=description if isinstance(description, str) else None,
        updated_at=updated_at if isinstance(updated_at, datetime) else None,
    )


def project_member(entry: ViewEntry) -> MemberRow:
    return MemberRow(
        user_id=entry.id,
        email=entry.get(FIELD_EMAIL) or MISSING_EMAIL,
        role=GroupRole.parse(entry.get(FIELD_ROLE)),
    )


def project_group_summary(
    entry: ViewEntry, group: Mapping[str, Any] | None = None
) -> GroupSummary:
    group = group or {}
    name = group.get(FIELD_NAME)
    description = group.get(FIELD_DESCRIPTION)
    return GroupSummary(
        group_id=entry.id,
        role=GroupRole.parse(entry.get(FIELD_ROLE)),
        name=name if isinstance(name, str) and name else DEFAULT_GROUP_NAME,
        description=description if isinstance(description, str) else None,
    )


def user_items_source(user_id: str) -> ViewSource[ItemRow]:
    """A user's private items, most recently updated first."""
    return ViewSource(
        name="user_items",
        collection_path=user_items_path(user_id),
        order_field=FIELD_UPDATED_AT,
        project=project_item,
        direction=SortDirection.DESCENDING,
    )


def group_items_source(group_id: str) -> ViewSource[ItemRow]:
    return ViewSource(
        name="group_items",
        collection_path=group_items_path(group_id),
        order_field=FIELD_NAME,
        project=project_item,
    )


def group_members_source(group_id: str) -> ViewSource[MemberRow]:
    return ViewSource(
        name="group_members",
        collection_path=group_members_path(group_id),
        order_field=DOCUMENT_ID_FIELD,
        project=project_member,
    )


def member_groups_source(user_id: str) -> ViewSource[GroupSummary]:
    """Fan-out index of the groups a user belongs to, joined with each group document."""
    return ViewSource(
        name="member_groups",
        collection_path=member_groups_path(user_id),
        order_field=DOCUMENT_ID_FIELD,
        project=project_group_summary,
        related_path=group_path,
    )


SOURCES: dict[str, Callable[[str], ViewSource[Any]]] = {
    "user_items": user_items_source,
    "group_items": group_items_source,
    "group_members": group_members_source,
    "member_groups": member_groups_source,
}
