"""Use cases exposed to the session/screen layer."""

from inventory_sync.application.use_cases.group_deletion import (
    DeleteGroupCascadeUseCase,
    delete_group_cascade,
)
from inventory_sync.application.use_cases.view_session import (
    ViewSession,
    member_groups_session,
)

__all__ = [
    "DeleteGroupCascadeUseCase",
    "ViewSession",
    "delete_group_cascade",
    "member_groups_session",
]
