"""Domain enumerations for inventory-sync.

Enums represent fixed sets of domain values (member roles, sort direction,
where a view entry's data came from).
"""

import logging
from enum import Enum

logger = logging.getLogger(__name__)


class GroupRole(str, Enum):
    """Role of a user within a group.

    Stored lowercase in membership and fan-out index records.
    """

    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"

    @classmethod
    def values(cls) -> list[str]:
        """Return all valid role values as strings."""
        return [role.value for role in cls]

    @classmethod
    def parse(cls, raw: object) -> "GroupRole":
        """Decode a stored role value, falling back to MEMBER for unknown values.

        Missing or unrecognized values are not errors: records written by
        older clients may carry no role or a differently cased one.

        Args:
            raw: Value read from a document (usually str or None).

        Returns:
            The matching GroupRole, or GroupRole.MEMBER.
        """
        if isinstance(raw, str):
            normalized = raw.strip().lower()
            if normalized in cls.values():
                return cls(normalized)
        if raw is not None:
            logger.debug("Unrecognized group role %r; using member", raw)
        return cls.MEMBER

    @property
    def is_privileged(self) -> bool:
        """True for roles that may edit group inventory (owner, admin)."""
        return self in (GroupRole.OWNER, GroupRole.ADMIN)


class SortDirection(str, Enum):
    """Query sort direction (values match the Firestore REST API)."""

    ASCENDING = "ASCENDING"
    DESCENDING = "DESCENDING"


class EntrySource(str, Enum):
    """Where a view entry's fields were last taken from."""

    PAGE = "page"
    SUBSCRIPTION = "subscription"
