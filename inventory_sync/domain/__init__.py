"""Domain layer: entities, enums, and exceptions.

No dependencies on infrastructure. Used by application and
infrastructure layers.
"""

from inventory_sync.domain.enums import EntrySource, GroupRole, SortDirection
from inventory_sync.domain.exceptions import (
    InventorySyncException,
    RemotePermissionException,
    RemoteStoreException,
    ResourceNotFoundException,
    ValidationException,
)

__all__ = [
    # Enums
    "EntrySource",
    "GroupRole",
    "SortDirection",
    # Exceptions
    "InventorySyncException",
    "RemotePermissionException",
    "RemoteStoreException",
    "ResourceNotFoundException",
    "ValidationException",
]
