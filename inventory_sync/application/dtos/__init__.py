"""DTOs returned by application services and use cases."""

from inventory_sync.application.dtos.deletion import DeletionResult
from inventory_sync.application.dtos.view import GroupSummary, ItemRow, MemberRow

__all__ = ["DeletionResult", "GroupSummary", "ItemRow", "MemberRow"]
