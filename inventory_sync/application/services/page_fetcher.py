"""Cursor-paginated fetch of one remote collection."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from inventory_sync.core.constants import DEFAULT_VIEW_PAGE_SIZE, MAX_PAGE_SIZE
from inventory_sync.domain.entities.document import Cursor, Document, is_document_path
from inventory_sync.domain.enums import SortDirection
from inventory_sync.domain.exceptions import ValidationException

if TYPE_CHECKING:
    from inventory_sync.application.interfaces.store import IDocumentStore

logger = logging.getLogger(__name__)


class RemotePageFetcher:
    """Fetches successive pages of a collection ordered by a field, then id.

    The cursor only advances after a successful fetch, so a failed call can be
    retried as many times as needed. An empty page marks the end.
    """

    def __init__(
        self,
        store: IDocumentStore,
        collection_path: str,
        order_field: str,
        *,
        page_size: int = DEFAULT_VIEW_PAGE_SIZE,
        direction: SortDirection = SortDirection.ASCENDING,
    ) -> None:
        if is_document_path(collection_path):
            raise ValidationException(
                f"Not a collection path: {collection_path!r}", field="collection_path"
            )
        if not 1 <= page_size <= MAX_PAGE_SIZE:
            raise ValidationException(
                f"page_size must be between 1 and {MAX_PAGE_SIZE}, got: {page_size}",
                field="page_size",
            )
        self._store = store
        self.collection_path = collection_path
        self.order_field = order_field
        self.page_size = page_size
        self.direction = direction
        self._cursor: Cursor | None = None
        self._reached_end = False

    @property
    def cursor(self) -> Cursor | None:
        return self._cursor

    @property
    def reached_end(self) -> bool:
        return self._reached_end

    async def fetch_next(self) -> list[Document]:
        """Fetch the page after the cursor.

        Returns [] without a request once the end was reached. Raises
        RemoteStoreException (or RemotePermissionException) on failure; the
        pagination state is left unchanged in that case.
        """
        if self._reached_end:
            return []
        documents = await self._store.fetch_page(
            self.collection_path,
            self.order_field,
            after=self._cursor,
            limit=self.page_size,
            direction=self.direction,
        )
        if not documents:
            self._reached_end = True
            logger.debug("Reached end of %s", self.collection_path)
            return []
        self._cursor = Cursor.from_document(documents[-1], self.order_field)
        return documents

    def reset(self) -> None:
        self._cursor = None
        self._reached_end = False
