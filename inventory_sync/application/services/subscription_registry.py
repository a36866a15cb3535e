"""Per-document live subscriptions owned by one materialized view."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from inventory_sync.domain.entities.document import DocumentEvent, document_id_of

if TYPE_CHECKING:
    from inventory_sync.application.interfaces.store import IDocumentStore

logger = logging.getLogger(__name__)

EventHandler = Callable[[str, DocumentEvent], None]

# Delay before re-subscribing after a stream ended with an exception.
DEFAULT_RESUBSCRIBE_DELAY_SECONDS = 1.0


@dataclass(eq=False)
class SubscriptionHandle:
    """Live subscription to one document.

    ``closed`` is set before the consumer task is cancelled; events are only
    delivered while it is False.
    """

    document_id: str
    path: str
    closed: bool = False
    _task: asyncio.Task | None = field(default=None, repr=False)


class SubscriptionRegistry:
    """Owns the id -> handle mapping; at most one subscription per document id.

    All mutation goes through open(), close() and close_all(). Every event is
    forwarded to ``on_event(document_id, event)`` on the event loop.

    A stream that raises is re-subscribed after ``resubscribe_delay``. A
    stream that ends on its own drops its handle, so the id counts as not
    open. Exceptions raised by ``on_event`` are logged and never re-subscribe.
    """

    def __init__(
        self,
        store: IDocumentStore,
        on_event: EventHandler,
        *,
        resubscribe_delay: float = DEFAULT_RESUBSCRIBE_DELAY_SECONDS,
    ) -> None:
        self._store = store
        self._on_event = on_event
        self._resubscribe_delay = resubscribe_delay
        self._handles: dict[str, SubscriptionHandle] = {}
        self._closing: set[asyncio.Task] = set()

    def __len__(self) -> int:
        return len(self._handles)

    def __contains__(self, document_id: object) -> bool:
        return document_id in self._handles

    def __iter__(self) -> Iterator[str]:
        return iter(tuple(self._handles))

    @property
    def ids(self) -> frozenset[str]:
        return frozenset(self._handles)

    def is_open(self, document_id: str) -> bool:
        return document_id in self._handles

    def get(self, document_id: str) -> SubscriptionHandle | None:
        return self._handles.get(document_id)

    def open(self, path: str) -> SubscriptionHandle:
        """Subscribe to the document at path; returns the existing handle if already open.

        Must be called from a running event loop.
        """
        document_id = document_id_of(path)
        existing = self._handles.get(document_id)
        if existing is not None:
            return existing
        handle = SubscriptionHandle(document_id=document_id, path=path)
        handle._task = asyncio.create_task(
            self._consume(handle), name=f"subscription:{path}"
        )
        self._handles[document_id] = handle
        return handle

    def close(self, document_id: str) -> bool:
        """Release the subscription for document_id. Returns False if none was open."""
        handle = self._handles.pop(document_id, None)
        if handle is None:
            return False
        self._release(handle)
        return True

    def close_all(self) -> None:
        """Release every subscription. No event is delivered after this returns."""
        handles = list(self._handles.values())
        self._handles.clear()
        for handle in handles:
            self._release(handle)
        if handles:
            logger.debug("Closed %d subscriptions", len(handles))

    async def wait_closed(self) -> None:
        """Wait until the tasks of released subscriptions have finished."""
        while self._closing:
            pending = list(self._closing)
            await asyncio.gather(*pending, return_exceptions=True)
            self._closing.difference_update(pending)

    def _release(self, handle: SubscriptionHandle) -> None:
        handle.closed = True
        task = handle._task
        if task is None or task.done():
            return
        # A handler closing its own subscription: the loop exits on the closed flag.
        if task is asyncio.current_task():
            return
        task.cancel()
        self._closing.add(task)
        task.add_done_callback(self._closing.discard)

    async def _consume(self, handle: SubscriptionHandle) -> None:
        while not handle.closed:
            stream = self._store.subscribe(handle.path)
            try:
                while not handle.closed:
                    try:
                        event = await anext(stream)
                    except StopAsyncIteration:
                        # Stream finished on its own; nothing more will arrive.
                        self._forget(handle)
                        return
                    if handle.closed:
                        break
                    self._deliver(handle, event)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                if handle.closed:
                    return
                logger.warning(
                    "Subscription stream for %s failed; re-subscribing: %s",
                    handle.path,
                    e,
                )
                self._deliver(handle, DocumentEvent.failed(e))
                await asyncio.sleep(self._resubscribe_delay)
            finally:
                aclose = getattr(stream, "aclose", None)
                if aclose is not None:
                    await aclose()

    def _deliver(self, handle: SubscriptionHandle, event: DocumentEvent) -> None:
        # A failing handler does not end the subscription.
        try:
            self._on_event(handle.document_id, event)
        except Exception:
            logger.exception("Event handler for %s failed", handle.path)

    def _forget(self, handle: SubscriptionHandle) -> None:
        handle.closed = True
        if self._handles.get(handle.document_id) is handle:
            del self._handles[handle.document_id]
            logger.debug("Subscription stream for %s ended", handle.path)
