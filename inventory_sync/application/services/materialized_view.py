"""Materialized view: ordered, deduplicated projection of a remote collection.

Two sources write into the view:

- page fetches (RemotePageFetcher), which append new documents at the tail
  in fetch order and open a subscription for each of them;
- per-document subscriptions (SubscriptionRegistry), which update entries
  in place or remove them.

Once a document's subscription is open it is the authoritative source for
that id; page data for it is ignored because it may be older. The view keeps
insertion order and never re-sorts on live updates.

All transitions are synchronous methods run on the event loop, so two merges
for the same view never interleave. After each transition the current
ordered snapshot is published as an immutable tuple.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from typing import TYPE_CHECKING, Any

from inventory_sync.application.services.page_fetcher import RemotePageFetcher
from inventory_sync.application.services.subscription_registry import (
    DEFAULT_RESUBSCRIBE_DELAY_SECONDS,
    SubscriptionRegistry,
)
from inventory_sync.core.constants import DEFAULT_VIEW_PAGE_SIZE
from inventory_sync.domain.entities.document import Document, DocumentEvent, document_path
from inventory_sync.domain.entities.view import ViewEntry
from inventory_sync.domain.enums import EntrySource, SortDirection
from inventory_sync.domain.exceptions import RemoteStoreException
from inventory_sync.shared.telemetry.tracing import traced

if TYPE_CHECKING:
    from inventory_sync.application.interfaces.store import IDocumentStore

logger = logging.getLogger(__name__)

Snapshot = tuple[ViewEntry, ...]
SnapshotListener = Callable[[Snapshot], None]


class MaterializedView:
    """Locally materialized, ordered view of one remote collection."""

    def __init__(
        self,
        store: IDocumentStore,
        collection_path: str,
        order_field: str,
        *,
        page_size: int = DEFAULT_VIEW_PAGE_SIZE,
        direction: SortDirection = SortDirection.ASCENDING,
        on_snapshot: SnapshotListener | None = None,
        resubscribe_delay: float = DEFAULT_RESUBSCRIBE_DELAY_SECONDS,
    ) -> None:
        self._store = store
        self.collection_path = collection_path
        self.order_field = order_field
        self.page_size = page_size
        self.direction = direction
        self._on_snapshot = on_snapshot
        self._fetcher = self._new_fetcher()
        self._registry = SubscriptionRegistry(
            store, self._on_subscription_event, resubscribe_delay=resubscribe_delay
        )
        self._entries: dict[str, ViewEntry] = {}
        self._snapshot: Snapshot = ()
        self._loading = False
        self._closed = False
        # Bumped by reset() and close(); fetches started under an older
        # generation are discarded when they complete.
        self._generation = 0

    def _new_fetcher(self) -> RemotePageFetcher:
        return RemotePageFetcher(
            self._store,
            self.collection_path,
            self.order_field,
            page_size=self.page_size,
            direction=self.direction,
        )

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, document_id: object) -> bool:
        return document_id in self._entries

    @property
    def registry(self) -> SubscriptionRegistry:
        return self._registry

    @property
    def is_loading(self) -> bool:
        return self._loading

    @property
    def reached_end(self) -> bool:
        return self._fetcher.reached_end

    @property
    def closed(self) -> bool:
        return self._closed

    def snapshot(self) -> Snapshot:
        """Current ordered entries (immutable, fully materialized)."""
        return self._snapshot

    def get(self, document_id: str) -> ViewEntry | None:
        return self._entries.get(document_id)

    @traced("materialized_view.load_next_page")
    async def load_next_page(self) -> int:
        """Fetch the next page and ingest it.

        No-op (returns 0) while another load is in flight, after the end was
        reached, or once the view is closed. Fetch failures propagate and
        leave the view unchanged; a failure that completes after reset() or
        close() is discarded.

        Returns:
            Number of entries appended to the view.
        """
        if self._closed or self._loading or self._fetcher.reached_end:
            return 0
        self._loading = True
        generation = self._generation
        fetcher = self._fetcher
        try:
            documents = await fetcher.fetch_next()
        except RemoteStoreException:
            if generation != self._generation:
                logger.debug(
                    "Discarding fetch failure for %s after reset or close",
                    self.collection_path,
                )
                return 0
            raise
        finally:
            if generation == self._generation:
                self._loading = False
        if generation != self._generation:
            logger.debug(
                "Discarding page for %s fetched before reset or close",
                self.collection_path,
            )
            return 0
        if not documents:
            return 0
        return self.ingest_page(documents)

    def ingest_page(self, documents: Iterable[Document]) -> int:
        """Merge a fetched page; returns the number of entries appended."""
        if self._closed:
            return 0
        appended = 0
        changed = False
        for document in documents:
            if document.id not in self._entries:
                self._entries[document.id] = ViewEntry(
                    document.id, document.fields, EntrySource.PAGE
                )
                self._registry.open(document.path)
                appended += 1
                changed = True
            elif not self._registry.is_open(document.id):
                # Assigning an existing key keeps its position.
                self._entries[document.id] = ViewEntry(
                    document.id, document.fields, EntrySource.PAGE
                )
                changed = True
        if changed:
            self._publish()
        return appended

    def apply_update(self, document_id: str, fields: Mapping[str, Any]) -> None:
        """Replace an entry's fields in place; unknown ids are appended at the tail."""
        if self._closed:
            return
        is_new = document_id not in self._entries
        self._entries[document_id] = ViewEntry(
            document_id, fields, EntrySource.SUBSCRIPTION
        )
        if is_new:
            self._registry.open(document_path(self.collection_path, document_id))
        self._publish()

    def apply_delete(self, document_id: str) -> None:
        """Remove an entry (any position) and close its subscription."""
        if self._closed:
            return
        removed = self._entries.pop(document_id, None)
        closed = self._registry.close(document_id)
        if removed is not None or closed:
            self._publish()

    def reset(self) -> None:
        """Drop every entry and subscription and start over from the first page."""
        if self._closed:
            return
        self._generation += 1
        self._entries.clear()
        self._registry.close_all()
        self._fetcher = self._new_fetcher()
        self._loading = False
        self._publish()

    def close(self) -> None:
        """Terminal: close all subscriptions and discard anything arriving later."""
        if self._closed:
            return
        self._closed = True
        self._generation += 1
        self._loading = False
        self._registry.close_all()
        self._entries.clear()
        self._snapshot = ()

    async def wait_closed(self) -> None:
        await self._registry.wait_closed()

    def _on_subscription_event(self, document_id: str, event: DocumentEvent) -> None:
        if self._closed:
            return
        if event.is_error:
            # Transient: the subscription stays open and the backend re-delivers.
            logger.debug(
                "Ignoring stream error for %s/%s: %s",
                self.collection_path,
                document_id,
                event.error,
            )
            return
        if event.exists:
            self.apply_update(document_id, event.fields)
        else:
            self.apply_delete(document_id)

    def _publish(self) -> None:
        self._snapshot = tuple(self._entries.values())
        if self._on_snapshot is not None:
            self._on_snapshot(self._snapshot)
