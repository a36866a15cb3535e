"""Live join of view rows against one related document per row.

A user's group list reads its rows from the fan-out index
(``users/{uid}/groups/{gid}``) and the display fields from the group
document itself (``groups/{gid}``). DocumentJoin keeps one subscription per
related document, keyed by the row id, and caches the latest fields. A row
is only joinable while its related document exists.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from typing import TYPE_CHECKING, Any

from inventory_sync.application.services.subscription_registry import (
    DEFAULT_RESUBSCRIBE_DELAY_SECONDS,
    SubscriptionRegistry,
)
from inventory_sync.domain.entities.document import DocumentEvent

if TYPE_CHECKING:
    from inventory_sync.application.interfaces.store import IDocumentStore

logger = logging.getLogger(__name__)


class DocumentJoin:
    """Subscribes to ``related_path(row_id)`` for every row id passed to sync().

    ``related_path`` must return a document whose id is the row id.
    ``on_change`` runs after every change to the joined fields.
    """

    def __init__(
        self,
        store: IDocumentStore,
        related_path: Callable[[str], str],
        *,
        on_change: Callable[[], None] | None = None,
        resubscribe_delay: float = DEFAULT_RESUBSCRIBE_DELAY_SECONDS,
    ) -> None:
        self._related_path = related_path
        self._on_change = on_change
        self._fields: dict[str, Mapping[str, Any]] = {}
        self._closed = False
        self._registry = SubscriptionRegistry(
            store, self._on_event, resubscribe_delay=resubscribe_delay
        )

    @property
    def registry(self) -> SubscriptionRegistry:
        return self._registry

    def get(self, row_id: str) -> Mapping[str, Any] | None:
        """Latest fields of the related document, or None while unknown or missing."""
        return self._fields.get(row_id)

    def sync(self, row_ids: Iterable[str]) -> None:
        """Subscribe to the related documents of row_ids and drop all others.

        Must be called from a running event loop.
        """
        if self._closed:
            return
        wanted = list(row_ids)
        keep = set(wanted)
        for row_id in self._registry:
            if row_id not in keep:
                self._registry.close(row_id)
                self._fields.pop(row_id, None)
        for row_id in wanted:
            if not self._registry.is_open(row_id):
                self._registry.open(self._related_path(row_id))

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._registry.close_all()
        self._fields.clear()

    async def wait_closed(self) -> None:
        await self._registry.wait_closed()

    def _on_event(self, row_id: str, event: DocumentEvent) -> None:
        if self._closed:
            return
        if event.is_error:
            logger.debug("Ignoring stream error for related document %s: %s", row_id, event.error)
            return
        if event.exists:
            self._fields[row_id] = event.fields
        elif self._fields.pop(row_id, None) is None:
            return
        if self._on_change is not None:
            self._on_change()
