"""Domain entities: documents, cursors, view entries, deletion plans."""

from inventory_sync.domain.entities.deletion_plan import DeletionPlan, DependentCollection
from inventory_sync.domain.entities.document import (
    SERVER_TIMESTAMP,
    Cursor,
    Document,
    DocumentEvent,
    ServerTimestamp,
    document_id_of,
    document_path,
    is_document_path,
    parent_collection_of,
)
from inventory_sync.domain.entities.view import ViewEntry

__all__ = [
    "SERVER_TIMESTAMP",
    "Cursor",
    "DeletionPlan",
    "DependentCollection",
    "Document",
    "DocumentEvent",
    "ServerTimestamp",
    "ViewEntry",
    "document_id_of",
    "document_path",
    "is_document_path",
    "parent_collection_of",
]
