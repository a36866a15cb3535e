"""Delete a group with its items, members and fan-out index records."""

from __future__ import annotations

from typing import TYPE_CHECKING

from inventory_sync.application.dtos.deletion import DeletionResult
from inventory_sync.application.services.cascading_deleter import CascadingDeleter
from inventory_sync.application.services.deletion_plans import group_deletion_plan
from inventory_sync.core.config import Settings, get_settings

if TYPE_CHECKING:
    from inventory_sync.application.interfaces.store import IDocumentStore


class DeleteGroupCascadeUseCase:
    """Deletes groups through one CascadingDeleter.

    A failed run may be retried as is; it resumes from whatever is left.
    Starting a second deletion of the same group through the same use case
    while one is running raises DeletionInProgressException.
    """

    def __init__(
        self,
        store: IDocumentStore,
        settings: Settings | None = None,
        deleter: CascadingDeleter | None = None,
    ) -> None:
        settings = settings or get_settings()
        self._deleter = deleter or CascadingDeleter(
            store,
            batch_cap=settings.delete_batch_cap,
            page_size=settings.delete_page_size,
        )

    async def delete_cascade(self, group_id: str) -> DeletionResult:
        return await self._deleter.delete_cascade(group_deletion_plan(group_id))


async def delete_group_cascade(
    store: IDocumentStore,
    group_id: str,
    settings: Settings | None = None,
) -> DeletionResult:
    """One-shot group deletion with settings-derived batch cap and page size."""
    return await DeleteGroupCascadeUseCase(store, settings).delete_cascade(group_id)
