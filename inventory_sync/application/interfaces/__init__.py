"""Application interfaces (ports) for infrastructure implementations."""

from inventory_sync.application.interfaces.store import IDocumentStore, IWriteBatch

__all__ = ["IDocumentStore", "IWriteBatch"]
