"""In-memory IDocumentStore for unit and integration tests.

Models the parts of Firestore the engines rely on: ordered start-after
pagination, atomic batches capped at 500 writes, merge writes with server
timestamps, and per-document subscriptions whose first event is the
document's current state.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Mapping
from typing import Any

from inventory_sync.core.constants import BACKEND_MAX_BATCH_WRITES
from inventory_sync.domain.entities.document import (
    Cursor,
    Document,
    DocumentEvent,
    ServerTimestamp,
    document_id_of,
    parent_collection_of,
)
from inventory_sync.domain.enums import SortDirection
from inventory_sync.domain.exceptions import RemoteStoreException
from inventory_sync.shared.utils.datetime import utc_now


def _sort_key(value: Any, document_id: str) -> tuple:
    # Nulls sort first, like Firestore.
    return (value is not None, value, document_id)


class _StreamCrash:
    def __init__(self, error: Exception) -> None:
        self.error = error


class FakeWriteBatch:
    def __init__(self, store: InMemoryDocumentStore) -> None:
        self._store = store
        self.ops: list[tuple[str, str, dict | None, bool]] = []

    def __len__(self) -> int:
        return len(self.ops)

    def delete(self, path: str) -> None:
        self.ops.append(("delete", path, None, False))

    def set(self, path: str, data: Mapping[str, Any], merge: bool = False) -> None:
        self.ops.append(("set", path, dict(data), merge))

    async def commit(self) -> None:
        await self._store._commit(self.ops)
        self.ops = []


class InMemoryDocumentStore:
    """Dict-backed document store with failure injection."""

    def __init__(self, *, emit_initial: bool = True) -> None:
        self.docs: dict[str, dict[str, Any]] = {}
        self.emit_initial = emit_initial
        self.fetch_calls: list[dict[str, Any]] = []
        self.get_calls: list[str] = []
        self.subscribe_calls: list[str] = []
        self.commits: list[list[tuple[str, str]]] = []
        self.commit_attempts = 0
        # Failure injection
        self.fetch_error: Exception | None = None
        self.get_error: Exception | None = None
        self.set_error: Exception | None = None
        self.fail_commit_attempt: int | None = None  # 1-based attempt number
        self._queues: dict[str, list[asyncio.Queue]] = {}

    # -- seeding and server-side changes ------------------------------------

    def put(self, path: str, fields: Mapping[str, Any] | None = None) -> None:
        """Seed a document without notifying subscribers."""
        self.docs[path] = dict(fields or {})

    def update(self, path: str, fields: Mapping[str, Any]) -> None:
        """Server-side change: overwrite and notify subscribers."""
        self.docs[path] = dict(fields)
        self.emit(path, DocumentEvent.updated(fields))

    def remove(self, path: str) -> None:
        """Server-side delete: remove and notify subscribers."""
        self.docs.pop(path, None)
        self.emit(path, DocumentEvent.deleted())

    def emit(self, path: str, event: DocumentEvent) -> None:
        for queue in self._queues.get(path, []):
            queue.put_nowait(event)

    def emit_error(self, path: str, error: Exception) -> None:
        self.emit(path, DocumentEvent.failed(error))

    def crash_stream(self, path: str, error: Exception) -> None:
        """Make every open stream for path raise error."""
        for queue in self._queues.get(path, []):
            queue.put_nowait(_StreamCrash(error))

    def listeners(self, path: str) -> int:
        return len(self._queues.get(path, []))

    def collection(self, collection_path: str) -> dict[str, dict[str, Any]]:
        return {
            path: fields
            for path, fields in self.docs.items()
            if parent_collection_of(path) == collection_path
        }

    # -- IDocumentStore ------------------------------------------------------

    async def fetch_page(
        self,
        collection_path: str,
        order_field: str,
        *,
        after: Cursor | None = None,
        limit: int,
        direction: SortDirection = SortDirection.ASCENDING,
    ) -> list[Document]:
        self.fetch_calls.append(
            {"collection_path": collection_path, "after": after, "limit": limit}
        )
        # Suspend like a network call would.
        await asyncio.sleep(0)
        if self.fetch_error is not None:
            raise self.fetch_error
        descending = direction is SortDirection.DESCENDING
        documents = [
            Document(id=document_id_of(path), path=path, fields=fields)
            for path, fields in self.collection(collection_path).items()
        ]
        documents.sort(
            key=lambda d: _sort_key(d.order_value(order_field), d.id), reverse=descending
        )
        if after is not None:
            cursor_key = _sort_key(after.order_value, after.document_id)
            if descending:
                documents = [
                    d for d in documents if _sort_key(d.order_value(order_field), d.id) < cursor_key
                ]
            else:
                documents = [
                    d for d in documents if _sort_key(d.order_value(order_field), d.id) > cursor_key
                ]
        return documents[:limit]

    async def get(self, path: str) -> Document | None:
        self.get_calls.append(path)
        if self.get_error is not None:
            raise self.get_error
        fields = self.docs.get(path)
        if fields is None:
            return None
        return Document(id=document_id_of(path), path=path, fields=fields)

    async def set(self, path: str, data: Mapping[str, Any], merge: bool = False) -> None:
        if self.set_error is not None:
            raise self.set_error
        self._apply_set(path, dict(data), merge)

    def batch(self) -> FakeWriteBatch:
        return FakeWriteBatch(self)

    async def subscribe(self, path: str) -> AsyncIterator[DocumentEvent]:
        self.subscribe_calls.append(path)
        queue: asyncio.Queue = asyncio.Queue()
        self._queues.setdefault(path, []).append(queue)
        try:
            if self.emit_initial:
                fields = self.docs.get(path)
                yield DocumentEvent.updated(fields) if fields is not None else DocumentEvent.deleted()
            while True:
                item = await queue.get()
                if isinstance(item, _StreamCrash):
                    raise item.error
                yield item
        finally:
            self._queues[path].remove(queue)

    # -- internals -----------------------------------------------------------

    def _apply_set(self, path: str, data: dict[str, Any], merge: bool) -> None:
        resolved = {
            k: (utc_now() if isinstance(v, ServerTimestamp) else v) for k, v in data.items()
        }
        if merge and path in self.docs:
            self.docs[path] = {**self.docs[path], **resolved}
        else:
            self.docs[path] = resolved

    async def _commit(self, ops: list[tuple[str, str, dict | None, bool]]) -> None:
        self.commit_attempts += 1
        if self.fail_commit_attempt == self.commit_attempts:
            raise RemoteStoreException("injected commit failure", status_code=503)
        if len(ops) > BACKEND_MAX_BATCH_WRITES:
            raise RemoteStoreException(
                f"maximum {BACKEND_MAX_BATCH_WRITES} writes allowed per request",
                status_code=400,
            )
        for kind, path, data, merge in ops:
            if kind == "delete":
                self.docs.pop(path, None)
            else:
                self._apply_set(path, data or {}, merge)
        self.commits.append([(kind, path) for kind, path, _, _ in ops])


async def settle(rounds: int = 10) -> None:
    """Let subscription tasks drain pending events."""
    for _ in range(rounds):
        await asyncio.sleep(0)


__all__ = ["FakeWriteBatch", "InMemoryDocumentStore", "settle"]
