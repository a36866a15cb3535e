"""Remote document entities: Document, Cursor, DocumentEvent.

Paths are slash-separated and alternate collection and document ids,
e.g. ``groups/g1/items/i1``. A collection path has an odd number of
segments, a document path an even number.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from inventory_sync.core.constants import DOCUMENT_ID_FIELD


class ServerTimestamp:
    """Sentinel write value resolved by the store to the server request time."""

    _instance: ServerTimestamp | None = None

    def __new__(cls) -> ServerTimestamp:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"


SERVER_TIMESTAMP = ServerTimestamp()


def _segments(path: str) -> list[str]:
    parts = [p for p in path.strip("/").split("/") if p]
    if not parts:
        raise ValueError("Path must not be empty")
    return parts


def is_document_path(path: str) -> bool:
    """Return True if path addresses a document (even number of segments)."""
    return len(_segments(path)) % 2 == 0


def document_path(collection_path: str, document_id: str) -> str:
    """Join a collection path and a document id."""
    if not document_id or "/" in document_id:
        raise ValueError(f"Invalid document id: {document_id!r}")
    if is_document_path(collection_path):
        raise ValueError(f"Not a collection path: {collection_path!r}")
    return f"{collection_path.strip('/')}/{document_id}"


def document_id_of(path: str) -> str:
    """Return the last segment of a document path."""
    parts = _segments(path)
    if len(parts) % 2:
        raise ValueError(f"Not a document path: {path!r}")
    return parts[-1]


def parent_collection_of(path: str) -> str:
    """Return the collection path containing the document at path."""
    parts = _segments(path)
    if len(parts) % 2:
        raise ValueError(f"Not a document path: {path!r}")
    return "/".join(parts[:-1])


@dataclass(frozen=True)
class Document:
    """A single addressable record read from the remote store."""

    id: str
    path: str
    fields: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "fields", MappingProxyType(dict(self.fields)))

    def get(self, name: str, default: Any = None) -> Any:
        return self.fields.get(name, default)

    def order_value(self, order_field: str) -> Any:
        """Value this document sorts by for order_field (its id for __name__)."""
        if order_field == DOCUMENT_ID_FIELD:
            return self.id
        return self.fields.get(order_field)


@dataclass(frozen=True)
class Cursor:
    """Continuation marker derived from the last document of a page.

    Best-effort only: the next query starts strictly after
    (order_value, document_id), whatever the collection holds by then.
    """

    order_field: str
    order_value: Any
    document_id: str

    @classmethod
    def from_document(cls, document: Document, order_field: str) -> Cursor:
        return cls(
            order_field=order_field,
            order_value=document.order_value(order_field),
            document_id=document.id,
        )


@dataclass(frozen=True)
class DocumentEvent:
    """One delivery from a per-document subscription.

    ``error`` is set for transient stream failures; such events carry no data
    and say nothing about whether the document exists.
    """

    exists: bool
    fields: Mapping[str, Any] = field(default_factory=dict)
    error: Exception | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "fields", MappingProxyType(dict(self.fields)))

    @classmethod
    def updated(cls, fields: Mapping[str, Any]) -> DocumentEvent:
        return cls(exists=True, fields=fields)

    @classmethod
    def deleted(cls) -> DocumentEvent:
        return cls(exists=False)

    @classmethod
    def failed(cls, error: Exception) -> DocumentEvent:
        return cls(exists=False, error=error)

    @property
    def is_error(self) -> bool:
        return self.error is not None
