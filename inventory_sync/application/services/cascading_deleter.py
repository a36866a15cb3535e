"""Cascading deletion of a root document and its dependent object graph.

The backend offers atomic batches of bounded size and no transaction over
unbounded data, so deletion is a sequence of batches:

1. Read the root; a missing root is an already-completed deletion.
2. Drain each dependent collection in plan order, page by page, queueing
   each child together with its linked records (e.g. a member's fan-out
   index record). A child and its linked records never straddle commits.
3. Flush whenever the queued-operation count reaches the cap, which stays
   strictly below the backend's per-commit limit.
4. Queue the root's auxiliary records and the root itself, then flush.

The first failed commit aborts the run. Committed batches stay deleted;
every step tolerates missing documents, so re-running the whole deletion
finishes the job. Children go before parents: a retry re-enumerates a
shrinking collection.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING

from inventory_sync.application.dtos.deletion import DeletionResult
from inventory_sync.application.services.page_fetcher import RemotePageFetcher
from inventory_sync.core.constants import (
    BACKEND_MAX_BATCH_WRITES,
    DEFAULT_DELETE_BATCH_CAP,
    DEFAULT_DELETE_PAGE_SIZE,
    MAX_PAGE_SIZE,
)
from inventory_sync.domain.exceptions import (
    DeletionInProgressException,
    InvalidDeletionRootException,
    RemoteStoreException,
    ValidationException,
)
from inventory_sync.shared.telemetry.tracing import add_span_attributes, set_span_error, traced

if TYPE_CHECKING:
    from inventory_sync.application.interfaces.store import IDocumentStore, IWriteBatch
    from inventory_sync.domain.entities.deletion_plan import (
        DeletionPlan,
        DependentCollection,
    )

logger = logging.getLogger(__name__)


class BatchWriter:
    """Queues deletes into bounded batches, committing when the cap is reached."""

    def __init__(self, store: IDocumentStore, cap: int = DEFAULT_DELETE_BATCH_CAP) -> None:
        if not 1 <= cap < BACKEND_MAX_BATCH_WRITES:
            raise ValidationException(
                f"Batch cap must be between 1 and {BACKEND_MAX_BATCH_WRITES - 1}, got: {cap}",
                field="cap",
            )
        self._store = store
        self.cap = cap
        self._batch: IWriteBatch = store.batch()
        self._queued = 0
        self.commits = 0
        self.committed_operations = 0

    @property
    def queued(self) -> int:
        return self._queued

    async def delete_group(self, paths: Sequence[str]) -> None:
        """Queue deletes that must land in the same commit.

        Flushes first when the group would not fit in the open batch, and
        after queueing when the cap is reached.
        """
        if not paths:
            return
        if len(paths) > self.cap:
            raise ValidationException(
                f"Delete group of {len(paths)} exceeds batch cap {self.cap}",
                field="paths",
            )
        if self._queued + len(paths) > self.cap:
            await self.flush()
        for path in paths:
            self._batch.delete(path)
            self._queued += 1
        if self._queued >= self.cap:
            await self.flush()

    async def flush(self) -> bool:
        """Commit the open batch if it holds anything. Returns True if a commit ran."""
        if self._queued == 0:
            return False
        await self._commit()
        self.commits += 1
        self.committed_operations += self._queued
        self._batch = self._store.batch()
        self._queued = 0
        return True

    @traced("batch_writer.commit")
    async def _commit(self) -> None:
        add_span_attributes(operations=self._queued)
        await self._batch.commit()


class CascadingDeleter:
    """Runs deletion plans. One deletion per root at a time per deleter."""

    def __init__(
        self,
        store: IDocumentStore,
        *,
        batch_cap: int = DEFAULT_DELETE_BATCH_CAP,
        page_size: int = DEFAULT_DELETE_PAGE_SIZE,
    ) -> None:
        if not 1 <= page_size <= MAX_PAGE_SIZE:
            raise ValidationException(
                f"page_size must be between 1 and {MAX_PAGE_SIZE}, got: {page_size}",
                field="page_size",
            )
        if not 2 <= batch_cap < BACKEND_MAX_BATCH_WRITES:
            raise ValidationException(
                f"batch_cap must be between 2 and {BACKEND_MAX_BATCH_WRITES - 1}, "
                f"got: {batch_cap}",
                field="batch_cap",
            )
        self._store = store
        self.batch_cap = batch_cap
        self.page_size = page_size
        self._in_progress: set[str] = set()

    @traced("cascading_deleter.delete_cascade")
    async def delete_cascade(self, plan: DeletionPlan) -> DeletionResult:
        """Delete plan.root_path and everything the plan lists.

        Raises:
            DeletionInProgressException: this deleter is already deleting the root.

        Returns:
            DeletionResult; falsy when a read, root validation or commit failed.
        """
        root_path = plan.root_path
        if root_path in self._in_progress:
            raise DeletionInProgressException(root_path)
        self._in_progress.add(root_path)
        add_span_attributes(root_path=root_path)
        try:
            return await self._run(plan)
        finally:
            self._in_progress.discard(root_path)

    async def _run(self, plan: DeletionPlan) -> DeletionResult:
        root_path = plan.root_path
        try:
            root = await self._store.get(root_path)
        except RemoteStoreException as e:
            logger.warning("Could not read deletion root %s: %s", root_path, e)
            set_span_error(e)
            return DeletionResult(root_path=root_path, succeeded=False, error=e)
        if root is None:
            logger.info("Deletion root %s already gone", root_path)
            return DeletionResult(
                root_path=root_path, succeeded=True, already_deleted=True
            )

        try:
            auxiliary = plan.auxiliary_paths(root)
        except InvalidDeletionRootException as e:
            logger.error("Refusing to delete %s: %s", root_path, e.message)
            set_span_error(e)
            return DeletionResult(root_path=root_path, succeeded=False, error=e)

        writer = BatchWriter(self._store, self.batch_cap)
        try:
            for dependent in plan.dependents:
                drained = await self._drain(writer, dependent)
                logger.debug("Queued %d documents from %s", drained, dependent.path)
            await writer.delete_group([*auxiliary, root_path])
            await writer.flush()
        except RemoteStoreException as e:
            logger.warning(
                "Cascading delete of %s failed after %d commits: %s",
                root_path,
                writer.commits,
                e,
            )
            set_span_error(e)
            return DeletionResult(
                root_path=root_path,
                succeeded=False,
                commits=writer.commits,
                deleted=writer.committed_operations,
                error=e,
            )

        logger.info(
            "Deleted %s (%d documents, %d commits)",
            root_path,
            writer.committed_operations,
            writer.commits,
        )
        return DeletionResult(
            root_path=root_path,
            succeeded=True,
            commits=writer.commits,
            deleted=writer.committed_operations,
        )

    async def _drain(self, writer: BatchWriter, dependent: DependentCollection) -> int:
        fetcher = RemotePageFetcher(
            self._store,
            dependent.path,
            dependent.order_field,
            page_size=self.page_size,
        )
        count = 0
        while not fetcher.reached_end:
            for document in await fetcher.fetch_next():
                await writer.delete_group([document.path, *dependent.linked(document)])
                count += 1
        return count
