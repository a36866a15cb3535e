"""View session: the surface a screen uses to show a live, paginated collection."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from inventory_sync.application.services.document_join import DocumentJoin
from inventory_sync.application.services.fanout_index import FanoutIndexMaintainer
from inventory_sync.application.services.materialized_view import (
    MaterializedView,
    Snapshot,
)
from inventory_sync.application.services.view_sources import (
    ViewSource,
    member_groups_source,
)
from inventory_sync.core.config import Settings, get_settings
from inventory_sync.domain.exceptions import SessionClosedException

if TYPE_CHECKING:
    from inventory_sync.application.dtos.view import GroupSummary
    from inventory_sync.application.interfaces.store import IDocumentStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

StartHook = Callable[[], Awaitable[Any]]


class ViewSession(Generic[T]):
    """One screen's session over a materialized view.

    Owned by exactly one screen and never shared. end_session() is terminal:
    results arriving afterwards are discarded and further calls raise
    SessionClosedException.
    """

    def __init__(
        self,
        store: IDocumentStore,
        source: ViewSource[T],
        *,
        settings: Settings | None = None,
        on_snapshot: Callable[[tuple[T, ...]], None] | None = None,
        on_start: StartHook | None = None,
    ) -> None:
        settings = settings or get_settings()
        self.source = source
        self._prefetch_threshold = settings.view_prefetch_threshold
        self._on_snapshot = on_snapshot
        self._on_start = on_start
        self._started = False
        self._ended = False
        self._view = MaterializedView(
            store,
            source.collection_path,
            source.order_field,
            page_size=settings.view_page_size,
            direction=source.direction,
            on_snapshot=self._publish,
        )
        self._join = (
            DocumentJoin(store, source.related_path, on_change=self._republish)
            if source.related_path is not None
            else None
        )

    async def __aenter__(self) -> ViewSession[T]:
        await self.start_session()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    @property
    def view(self) -> MaterializedView:
        return self._view

    @property
    def join(self) -> DocumentJoin | None:
        return self._join

    @property
    def started(self) -> bool:
        return self._started

    @property
    def ended(self) -> bool:
        return self._ended

    async def start_session(self) -> tuple[T, ...]:
        """Run the start hook (if any) and load the first page.

        Calling it again on a started session returns the current snapshot.
        Fetch failures propagate; calling start_session() again retries.
        """
        self._ensure_active()
        if self._started:
            return self.current_snapshot()
        if self._on_start is not None:
            await self._on_start()
        await self._view.load_next_page()
        self._started = True
        logger.debug("Started %s session on %s", self.source.name, self.source.collection_path)
        return self.current_snapshot()

    async def on_next_page_needed(self) -> bool:
        """Load the next page. Returns True while more pages may exist."""
        self._ensure_active()
        await self._view.load_next_page()
        return not self._view.reached_end

    def should_prefetch(self, last_visible_position: int) -> bool:
        """True when the last visible row is within the prefetch threshold of the tail."""
        if self._ended or self._view.is_loading or self._view.reached_end:
            return False
        return last_visible_position >= len(self._view) - self._prefetch_threshold

    def current_snapshot(self) -> tuple[T, ...]:
        return self._project(self._view.snapshot())

    async def reload(self) -> tuple[T, ...]:
        """Drop everything and load the first page again (e.g. after reconnecting)."""
        self._ensure_active()
        self._view.reset()
        await self._view.load_next_page()
        return self.current_snapshot()

    def end_session(self) -> None:
        """Close all subscriptions; the session cannot be used afterwards."""
        if self._ended:
            return
        self._ended = True
        self._view.close()
        if self._join is not None:
            self._join.close()
        logger.debug("Ended %s session on %s", self.source.name, self.source.collection_path)

    async def aclose(self) -> None:
        """end_session() and wait for subscription tasks to finish."""
        self.end_session()
        await self._view.wait_closed()
        if self._join is not None:
            await self._join.wait_closed()

    def _ensure_active(self) -> None:
        if self._ended:
            raise SessionClosedException(self.source.collection_path)

    def _project(self, entries: Snapshot) -> tuple[T, ...]:
        if self._join is None:
            return tuple(self.source.project(entry) for entry in entries)
        rows = []
        for entry in entries:
            related = self._join.get(entry.id)
            if related is not None:
                rows.append(self.source.project(entry, related))
        return tuple(rows)

    def _republish(self) -> None:
        self._publish(self._view.snapshot())

    def _publish(self, entries: Snapshot) -> None:
        if self._join is not None:
            self._join.sync(entry.id for entry in entries)
        if self._on_snapshot is not None:
            self._on_snapshot(self._project(entries))


def member_groups_session(
    store: IDocumentStore,
    user_id: str,
    *,
    settings: Settings | None = None,
    on_snapshot: Callable[[tuple[GroupSummary, ...]], None] | None = None,
) -> ViewSession[GroupSummary]:
    """Session over a user's groups; heals a missing owner index record on start."""
    fanout = FanoutIndexMaintainer(store)
    return ViewSession(
        store,
        member_groups_source(user_id),
        settings=settings,
        on_snapshot=on_snapshot,
        on_start=lambda: fanout.ensure_owner_indexed(user_id, user_id),
    )
