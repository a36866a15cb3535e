"""Remote document store interfaces (ports) for the application layer.

Protocols define the contract the Firestore adapter (and test fakes) must
fulfill (DIP). Paths are slash-separated collection/document paths.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Mapping
from typing import TYPE_CHECKING, Any, Protocol

from inventory_sync.domain.enums import SortDirection

if TYPE_CHECKING:
    from inventory_sync.domain.entities.document import Cursor, Document, DocumentEvent


class IWriteBatch(Protocol):
    """Atomic group of writes. Nothing is applied until commit() succeeds."""

    def delete(self, path: str) -> None:
        """Queue deletion of the document at path (no error if missing)."""

    def set(self, path: str, data: Mapping[str, Any], merge: bool = False) -> None:
        """Queue a full overwrite, or with merge=True a field-level merge."""

    def __len__(self) -> int:
        """Number of queued writes."""

    async def commit(self) -> None:
        """Apply all queued writes atomically. Raises RemoteStoreException on failure."""


class IDocumentStore(Protocol):
    """Protocol for the remote document store (DIP)."""

    async def fetch_page(
        self,
        collection_path: str,
        order_field: str,
        *,
        after: Cursor | None = None,
        limit: int,
        direction: SortDirection = SortDirection.ASCENDING,
    ) -> list[Document]:
        """Return up to limit documents ordered by order_field then id, strictly after the cursor."""

    async def get(self, path: str) -> Document | None:
        """Return the document at path, or None if it does not exist."""

    async def set(self, path: str, data: Mapping[str, Any], merge: bool = False) -> None:
        """Write one document (overwrite, or merge fields when merge=True)."""

    def subscribe(self, path: str) -> AsyncIterator[DocumentEvent]:
        """Stream events for one document until the iterator is closed.

        The first event reflects the current state. Transient failures are
        delivered as error events; the stream keeps running.
        """

    def batch(self) -> IWriteBatch:
        """Return a new, empty write batch."""
