"""Firestore integration (REST API, google-auth)."""

from inventory_sync.infrastructure.firebase.client import (
    close_firebase,
    get_document_store,
    get_firestore_client,
    init_firebase,
)
from inventory_sync.infrastructure.firebase.document_store import (
    FirestoreDocumentStore,
    FirestoreWriteBatch,
)

__all__ = [
    "FirestoreDocumentStore",
    "FirestoreWriteBatch",
    "close_firebase",
    "get_document_store",
    "get_firestore_client",
    "init_firebase",
]
