"""Firestore-backed document store (implements IDocumentStore over REST).

- Paginated queries use runQuery with ``orderBy`` on the sort field plus
  ``__name__`` as tie-breaker, and ``startAt`` with ``before: false`` as the
  start-after cursor.
- Batches and single writes go through documents:commit. Merge writes send an
  ``updateMask`` of the written fields; SERVER_TIMESTAMP values become
  ``REQUEST_TIME`` field transforms.
- REST has no push channel, so per-document subscriptions poll the document
  and emit an event only when its existence or ``updateTime`` changes.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Mapping
from typing import Any

from inventory_sync.core.constants import DOCUMENT_ID_FIELD
from inventory_sync.domain.entities.document import (
    Cursor,
    Document,
    DocumentEvent,
    document_id_of,
    document_path,
    is_document_path,
)
from inventory_sync.domain.enums import SortDirection
from inventory_sync.domain.exceptions import RemoteStoreException, ValidationException
from inventory_sync.infrastructure.firebase._rest_client import FirestoreRESTClient
from inventory_sync.infrastructure.firebase._rest_encoding import (
    _encode_value,
    decode_document,
    encode_document,
    field_path,
    split_server_timestamps,
)
from inventory_sync.shared.telemetry.tracing import traced

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL_SECONDS = 2.0

_NOT_SEEN = object()


class FirestoreWriteBatch:
    """Write batch committed through documents:commit (implements IWriteBatch)."""

    def __init__(self, client: FirestoreRESTClient) -> None:
        self._client = client
        self._writes: list[dict] = []

    def __len__(self) -> int:
        return len(self._writes)

    def delete(self, path: str) -> None:
        self._writes.append({"delete": self._client.document_name(path)})

    def set(self, path: str, data: Mapping[str, Any], merge: bool = False) -> None:
        self._writes.append(_set_write(self._client, path, data, merge))

    @traced("firestore.commit")
    async def commit(self) -> None:
        if not self._writes:
            return
        writes, self._writes = self._writes, []
        await self._client.commit(writes)


def _set_write(
    client: FirestoreRESTClient, path: str, data: Mapping[str, Any], merge: bool
) -> dict:
    plain, timestamps = split_server_timestamps(data)
    write: dict[str, Any] = {
        "update": {"name": client.document_name(path), **encode_document(plain)}
    }
    if merge:
        write["updateMask"] = {"fieldPaths": [field_path(k) for k in plain]}
    if timestamps:
        write["updateTransforms"] = [
            {"fieldPath": field_path(k), "setToServerValue": "REQUEST_TIME"}
            for k in timestamps
        ]
    return write


class FirestoreDocumentStore:
    """IDocumentStore implementation on FirestoreRESTClient."""

    def __init__(
        self,
        client: FirestoreRESTClient,
        *,
        poll_interval: float = DEFAULT_POLL_INTERVAL_SECONDS,
    ) -> None:
        self._client = client
        self._poll_interval = poll_interval

    def _to_document(self, raw: dict) -> Document:
        path = self._client.relative_path(raw.get("name", ""))
        return Document(id=document_id_of(path), path=path, fields=decode_document(raw))

    @traced("firestore.fetch_page")
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
        if is_document_path(collection_path):
            raise ValidationException(
                f"Not a collection path: {collection_path!r}", field="collection_path"
            )
        parent, _, collection_id = collection_path.strip("/").rpartition("/")
        order_by = []
        if order_field != DOCUMENT_ID_FIELD:
            order_by.append(
                {"field": {"fieldPath": field_path(order_field)}, "direction": direction.value}
            )
        order_by.append(
            {"field": {"fieldPath": DOCUMENT_ID_FIELD}, "direction": direction.value}
        )
        query: dict[str, Any] = {
            "from": [{"collectionId": collection_id}],
            "orderBy": order_by,
            "limit": limit,
        }
        if after is not None:
            values = []
            if order_field != DOCUMENT_ID_FIELD:
                values.append(_encode_value(after.order_value))
            values.append(
                {
                    "referenceValue": self._client.document_name(
                        document_path(collection_path, after.document_id)
                    )
                }
            )
            query["startAt"] = {"values": values, "before": False}
        results = await self._client.run_query(parent, query)
        return [self._to_document(item["document"]) for item in results if "document" in item]

    async def get(self, path: str) -> Document | None:
        raw = await self._client.get_document(path)
        if not raw:
            return None
        return self._to_document(raw)

    @traced("firestore.set")
    async def set(self, path: str, data: Mapping[str, Any], merge: bool = False) -> None:
        await self._client.commit([_set_write(self._client, path, data, merge)])

    def batch(self) -> FirestoreWriteBatch:
        return FirestoreWriteBatch(self._client)

    async def subscribe(self, path: str) -> AsyncIterator[DocumentEvent]:
        """Poll the document; yields on first read and on every observed change."""
        last_seen: Any = _NOT_SEEN
        while True:
            try:
                raw = await self._client.get_document(path)
            except RemoteStoreException as e:
                logger.debug("Poll of %s failed: %s", path, e)
                yield DocumentEvent.failed(e)
            else:
                version = raw.get("updateTime") if raw else None
                if version != last_seen:
                    last_seen = version
                    if raw:
                        yield DocumentEvent.updated(decode_document(raw))
                    else:
                        yield DocumentEvent.deleted()
            await asyncio.sleep(self._poll_interval)
