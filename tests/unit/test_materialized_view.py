"""Tests for MaterializedView merge algorithm, ordering and teardown."""

import asyncio
import random

import pytest

from inventory_sync.application.services.materialized_view import MaterializedView
from inventory_sync.domain.entities.document import Document
from inventory_sync.domain.enums import EntrySource
from inventory_sync.domain.exceptions import RemotePermissionException, RemoteStoreException
from tests.fakes import InMemoryDocumentStore, settle

ITEMS = "groups/g1/items"


def _path(doc_id: str) -> str:
    return f"{ITEMS}/{doc_id}"


def _doc(doc_id: str, **fields) -> Document:
    return Document(id=doc_id, path=_path(doc_id), fields=fields)


def _ids(view: MaterializedView) -> list[str]:
    return [entry.id for entry in view.snapshot()]


@pytest.fixture
def snapshots() -> list:
    return []


@pytest.fixture
async def view(store, snapshots):
    v = MaterializedView(store, ITEMS, "name", page_size=2, on_snapshot=snapshots.append)
    yield v
    v.close()
    await v.wait_closed()


async def test_page_then_live_update_keeps_order(store, view) -> None:
    """Page 1 [A(qty=5), B(qty=2)], then B -> qty=9: order unchanged, B updated."""
    store.put(_path("A"), {"name": "A", "quantity": 5})
    store.put(_path("B"), {"name": "B", "quantity": 2})

    assert await view.load_next_page() == 2
    await settle()
    store.update(_path("B"), {"name": "B", "quantity": 9})
    await settle()

    snapshot = view.snapshot()
    assert [(e.id, e.get("quantity")) for e in snapshot] == [("A", 5), ("B", 9)]
    assert snapshot[1].source is EntrySource.SUBSCRIPTION


async def test_server_delete_removes_entry_and_subscription(store, view) -> None:
    for doc_id in ("A", "B", "C"):
        store.put(_path(doc_id), {"name": doc_id})
    await view.load_next_page()
    await view.load_next_page()
    await settle()
    assert view.registry.is_open("C")

    store.remove(_path("C"))
    await settle()

    assert _ids(view) == ["A", "B"]
    assert not view.registry.is_open("C")
    assert "C" not in view.registry.ids


async def test_each_paginated_id_gets_exactly_one_subscription(store, view) -> None:
    for doc_id in ("A", "B", "C"):
        store.put(_path(doc_id), {"name": doc_id})
    await view.load_next_page()
    await view.load_next_page()
    view.ingest_page([_doc("A", name="A"), _doc("C", name="C")])
    await settle()

    assert view.registry.ids == {"A", "B", "C"}
    assert sorted(store.subscribe_calls) == [_path("A"), _path("B"), _path("C")]


async def test_page_data_does_not_overwrite_subscribed_entry(store) -> None:
    store.put(_path("A"), {"name": "A", "quantity": 7})
    view = MaterializedView(store, ITEMS, "name")
    view.ingest_page([_doc("A", name="A", quantity=1)])
    await settle()
    assert view.get("A").get("quantity") == 7

    view.ingest_page([_doc("A", name="A", quantity=1)])
    assert view.get("A").get("quantity") == 7
    view.close()
    await view.wait_closed()


async def test_page_data_overwrites_when_no_subscription_open(view) -> None:
    view.ingest_page([_doc("A", name="A", quantity=1)])
    view.registry.close("A")
    view.ingest_page([_doc("A", name="A", quantity=3)])

    assert view.get("A").get("quantity") == 3
    assert view.get("A").source is EntrySource.PAGE
    assert _ids(view) == ["A"]


async def test_update_for_unknown_id_appends_at_tail(view) -> None:
    view.ingest_page([_doc("A", name="A"), _doc("B", name="B")])
    view.apply_update("Z", {"name": "Z"})
    view.apply_update("A", {"name": "A2"})

    assert _ids(view) == ["A", "B", "Z"]
    assert view.get("A").get("name") == "A2"
    assert view.registry.is_open("Z")


async def test_stream_error_is_ignored_and_subscription_kept(store, view, snapshots) -> None:
    store.put(_path("A"), {"name": "A"})
    await view.load_next_page()
    await settle()
    published = len(snapshots)

    store.emit_error(_path("A"), RemoteStoreException("stream hiccup"))
    await settle()

    assert _ids(view) == ["A"]
    assert view.registry.is_open("A")
    assert len(snapshots) == published


async def test_fetch_failure_propagates_without_mutation(store, view, snapshots) -> None:
    store.put(_path("A"), {"name": "A"})
    store.fetch_error = RemotePermissionException(status_code=403)

    with pytest.raises(RemotePermissionException):
        await view.load_next_page()
    assert view.snapshot() == ()
    assert snapshots == []
    assert not view.is_loading
    assert not view.reached_end

    store.fetch_error = None
    assert await view.load_next_page() == 1


async def test_snapshots_are_immutable_tuples(view, snapshots) -> None:
    view.ingest_page([_doc("A", name="A")])
    first = snapshots[-1]
    view.apply_update("B", {"name": "B"})

    assert isinstance(first, tuple)
    assert [e.id for e in first] == ["A"]
    assert [e.id for e in snapshots[-1]] == ["A", "B"]
    with pytest.raises(TypeError):
        first[0].fields["name"] = "changed"


async def test_reached_end_stops_loading(store, view) -> None:
    store.put(_path("A"), {"name": "A"})
    assert await view.load_next_page() == 1
    assert await view.load_next_page() == 0
    assert view.reached_end
    calls = len(store.fetch_calls)
    assert await view.load_next_page() == 0
    assert len(store.fetch_calls) == calls


async def test_concurrent_loads_are_serialized(store, view) -> None:
    for doc_id in ("A", "B", "C"):
        store.put(_path(doc_id), {"name": doc_id})

    results = await asyncio.gather(view.load_next_page(), view.load_next_page())

    assert sorted(results) == [0, 2]
    assert len(store.fetch_calls) == 1
    assert _ids(view) == ["A", "B"]


async def test_reset_clears_entries_and_subscriptions(store, view) -> None:
    for doc_id in ("A", "B", "C"):
        store.put(_path(doc_id), {"name": doc_id})
    await view.load_next_page()
    await view.load_next_page()
    await view.load_next_page()
    assert view.reached_end

    view.reset()
    await view.wait_closed()
    assert view.snapshot() == ()
    assert len(view.registry) == 0
    assert not view.reached_end
    assert store.listeners(_path("A")) == 0

    await view.load_next_page()
    assert _ids(view) == ["A", "B"]
    assert store.fetch_calls[-1]["after"] is None


async def test_page_in_flight_during_reset_is_discarded() -> None:
    gate = asyncio.Event()

    class SlowStore(InMemoryDocumentStore):
        async def fetch_page(self, *args, **kwargs):
            await gate.wait()
            return await super().fetch_page(*args, **kwargs)

    store = SlowStore()
    store.put(_path("A"), {"name": "A"})
    view = MaterializedView(store, ITEMS, "name")
    pending = asyncio.create_task(view.load_next_page())
    await settle()
    view.reset()
    gate.set()

    assert await pending == 0
    assert view.snapshot() == ()
    assert len(view.registry) == 0
    assert not view.reached_end
    view.close()
    await view.wait_closed()


async def test_results_after_close_are_discarded() -> None:
    gate = asyncio.Event()

    class SlowStore(InMemoryDocumentStore):
        async def fetch_page(self, *args, **kwargs):
            await gate.wait()
            return await super().fetch_page(*args, **kwargs)

    store = SlowStore()
    store.put(_path("A"), {"name": "A"})
    snapshots: list = []
    view = MaterializedView(store, ITEMS, "name", on_snapshot=snapshots.append)
    pending = asyncio.create_task(view.load_next_page())
    await settle()
    view.close()
    gate.set()

    assert await pending == 0
    assert snapshots == []
    assert store.subscribe_calls == []

    view.apply_update("A", {"name": "A"})
    view.ingest_page([_doc("B", name="B")])
    assert view.snapshot() == ()


@pytest.mark.parametrize("teardown", ["reset", "close"])
async def test_fetch_failure_after_teardown_is_discarded(teardown: str) -> None:
    gate = asyncio.Event()

    class SlowStore(InMemoryDocumentStore):
        async def fetch_page(self, *args, **kwargs):
            await gate.wait()
            return await super().fetch_page(*args, **kwargs)

    store = SlowStore()
    store.fetch_error = RemoteStoreException("offline")
    view = MaterializedView(store, ITEMS, "name")
    pending = asyncio.create_task(view.load_next_page())
    await settle()
    getattr(view, teardown)()
    gate.set()

    assert await pending == 0
    assert view.snapshot() == ()
    view.close()
    await view.wait_closed()


async def test_close_tears_down_every_subscription(store, view) -> None:
    for doc_id in ("A", "B"):
        store.put(_path(doc_id), {"name": doc_id})
    await view.load_next_page()
    await settle()

    view.close()
    store.update(_path("A"), {"name": "A", "quantity": 1})
    await view.wait_closed()

    assert view.closed
    assert len(view.registry) == 0
    assert store.listeners(_path("A")) == 0
    assert store.listeners(_path("B")) == 0


async def test_random_interleavings_keep_page_order_and_unique_ids() -> None:
    """Pages, updates and deletes in any order: each live id once, page order kept."""
    rng = random.Random(1234)
    for _ in range(25):
        store = InMemoryDocumentStore(emit_initial=False)
        view = MaterializedView(store, ITEMS, "name", page_size=3)
        page_ids = [f"d{i:02d}" for i in range(9)]
        for doc_id in page_ids:
            store.put(_path(doc_id), {"name": doc_id})
        deleted: set[str] = set()
        actions = ["page"] * 4 + ["update"] * 6 + ["delete"] * 3
        rng.shuffle(actions)
        for action in actions:
            if action == "page":
                await view.load_next_page()
            elif action == "update" and len(view):
                target = rng.choice(_ids(view))
                store.update(_path(target), {"name": target, "quantity": rng.randint(0, 9)})
            elif action == "delete" and len(view):
                target = rng.choice(_ids(view))
                store.remove(_path(target))
                deleted.add(target)
            await settle(3)
        await settle()

        ids = _ids(view)
        assert len(ids) == len(set(ids))
        assert set(ids).isdisjoint(deleted)
        assert ids == [i for i in page_ids if i in set(ids)]
        assert view.registry.ids == set(ids)
        view.close()
        await view.wait_closed()
