"""Deletion plan: what to delete, in which order, for one root document."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from inventory_sync.core.constants import DOCUMENT_ID_FIELD
from inventory_sync.domain.entities.document import Document, is_document_path

LinkedDeletes = Callable[[Document], Sequence[str]]


def _no_linked_deletes(document: Document) -> Sequence[str]:
    return ()


@dataclass(frozen=True)
class DependentCollection:
    """A child collection drained before its root.

    Attributes:
        path: Collection path (e.g. groups/g1/members).
        linked: Paths of records deleted alongside each child, e.g. the
            member's fan-out index record. They land in the same commit.
        order_field: Field used to paginate the collection.
    """

    path: str
    linked: LinkedDeletes = _no_linked_deletes
    order_field: str = DOCUMENT_ID_FIELD

    def __post_init__(self) -> None:
        if is_document_path(self.path):
            raise ValueError(f"Not a collection path: {self.path!r}")


@dataclass(frozen=True)
class DeletionPlan:
    """Ordered description of a root document and everything depending on it.

    Dependents are drained in declared order (children before parents).
    ``auxiliary`` resolves root-level records not colocated with the root,
    from the root's own fields; it runs before anything is deleted and may
    raise InvalidDeletionRootException.
    """

    root_path: str
    dependents: tuple[DependentCollection, ...] = ()
    auxiliary: Callable[[Document], Sequence[str]] | None = field(default=None)

    def __post_init__(self) -> None:
        if not is_document_path(self.root_path):
            raise ValueError(f"Not a document path: {self.root_path!r}")

    def auxiliary_paths(self, root: Document) -> list[str]:
        if self.auxiliary is None:
            return []
        return list(self.auxiliary(root))
