"""Read-models projected from view entries for each call site."""

from dataclasses import dataclass
from datetime import datetime

from inventory_sync.domain.enums import GroupRole


@dataclass(frozen=True)
class ItemRow:
    """Inventory item (user-private or group item list)."""

    id: str
    name: str
    quantity: int
    description: str | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class MemberRow:
    """Group membership row."""

    user_id: str
    email: str
    role: GroupRole


DEFAULT_GROUP_NAME = "Group"


@dataclass(frozen=True)
class GroupSummary:
    """A group the user belongs to: index role joined with the group document."""

    group_id: str
    role: GroupRole
    name: str = DEFAULT_GROUP_NAME
    description: str | None = None
