"""Tests for CascadingDeleter and BatchWriter (batch bounds, idempotence, partial failure)."""

import asyncio
import math

import pytest

from inventory_sync.application.services.cascading_deleter import BatchWriter, CascadingDeleter
from inventory_sync.application.services.deletion_plans import group_deletion_plan
from inventory_sync.domain.entities.deletion_plan import DeletionPlan, DependentCollection
from inventory_sync.domain.exceptions import (
    DeletionInProgressException,
    InvalidDeletionRootException,
    RemoteStoreException,
    ValidationException,
)
from tests.fakes import InMemoryDocumentStore, settle


def _seed_group(store, group_id: str, owner: str, items: int, members: list[str]) -> None:
    store.put(f"groups/{group_id}", {"ownerUid": owner, "name": f"{owner}'s Group"})
    store.put(f"users/{owner}/groups/{group_id}", {"role": "owner"})
    for i in range(items):
        store.put(f"groups/{group_id}/items/item{i:04d}", {"name": f"n{i}", "quantity": i})
    for uid in members:
        store.put(f"groups/{group_id}/members/{uid}", {"role": "member", "email": f"{uid}@x.io"})
        store.put(f"users/{uid}/groups/{group_id}", {"role": "member"})


def _plain_plan(root: str = "roots/r1") -> DeletionPlan:
    return DeletionPlan(root_path=root, dependents=(DependentCollection(f"{root}/children"),))


class TestBatchWriter:
    async def test_commits_when_cap_reached(self, store) -> None:
        writer = BatchWriter(store, cap=3)
        for i in range(7):
            await writer.delete_group([f"c/d{i}"])
        assert writer.commits == 2
        assert writer.queued == 1
        assert await writer.flush() is True
        assert [len(c) for c in store.commits] == [3, 3, 1]

    async def test_group_is_never_split_across_commits(self, store) -> None:
        writer = BatchWriter(store, cap=5)
        for i in range(3):
            await writer.delete_group([f"m/u{i}", f"idx/u{i}"])
        await writer.flush()
        assert [len(c) for c in store.commits] == [4, 2]
        assert store.commits[1] == [("delete", "m/u2"), ("delete", "idx/u2")]

    async def test_flush_without_queued_operations_is_noop(self, store) -> None:
        writer = BatchWriter(store)
        assert await writer.flush() is False
        assert store.commit_attempts == 0

    @pytest.mark.parametrize("cap", [0, 500, 1000])
    def test_rejects_cap_outside_backend_limit(self, store, cap: int) -> None:
        with pytest.raises(ValidationException):
            BatchWriter(store, cap=cap)

    async def test_rejects_group_larger_than_cap(self, store) -> None:
        writer = BatchWriter(store, cap=2)
        with pytest.raises(ValidationException):
            await writer.delete_group(["a/1", "a/2", "a/3"])


async def test_commit_count_for_1234_children_is_bounded(store) -> None:
    store.put("roots/r1", {"name": "root"})
    for i in range(1234):
        store.put(f"roots/r1/children/c{i:04d}", {"n": i})
    deleter = CascadingDeleter(store)

    result = await deleter.delete_cascade(_plain_plan())

    assert result.succeeded
    assert result.commits == math.ceil(1234 / deleter.batch_cap)
    assert len(store.commits) == result.commits
    assert all(len(commit) <= deleter.batch_cap for commit in store.commits)
    assert result.deleted == 1235
    assert store.docs == {}


async def test_root_without_dependents_is_one_commit_deleting_only_root(store) -> None:
    store.put("roots/r1", {"name": "root"})

    result = await CascadingDeleter(store).delete_cascade(_plain_plan())

    assert result.succeeded
    assert result.commits == 1
    assert store.commits == [[("delete", "roots/r1")]]


async def test_second_run_after_success_is_successful_noop(store) -> None:
    _seed_group(store, "g1", "owner", items=3, members=["u1"])
    deleter = CascadingDeleter(store)

    first = await deleter.delete_cascade(group_deletion_plan("g1"))
    second = await deleter.delete_cascade(group_deletion_plan("g1"))

    assert first.succeeded and not first.already_deleted
    assert second.succeeded and second.already_deleted
    assert second.commits == 0
    assert bool(second)


async def test_group_plan_removes_whole_graph_and_nothing_else(store) -> None:
    _seed_group(store, "g1", "owner", items=5, members=["u1", "u2"])
    _seed_group(store, "g2", "u1", items=1, members=["u2"])

    result = await CascadingDeleter(store).delete_cascade(group_deletion_plan("g1"))

    assert result.succeeded
    assert result.deleted == 5 + 2 * 2 + 2
    assert not any("g1" in path for path in store.docs)
    assert "groups/g2" in store.docs
    assert "users/u2/groups/g2" in store.docs
    assert "users/u1/groups/g2" in store.docs


async def test_children_are_deleted_before_root(store) -> None:
    _seed_group(store, "g1", "owner", items=2, members=["u1"])
    deleter = CascadingDeleter(store, batch_cap=2)

    await deleter.delete_cascade(group_deletion_plan("g1"))

    order = [path for commit in store.commits for _, path in commit]
    assert order.index("groups/g1/items/item0000") < order.index("groups/g1/members/u1")
    assert order[-1] == "groups/g1"
    assert store.commits[-1] == [
        ("delete", "users/owner/groups/g1"),
        ("delete", "groups/g1"),
    ]


async def test_member_and_index_record_share_a_commit(store) -> None:
    _seed_group(store, "g1", "owner", items=0, members=[f"u{i}" for i in range(7)])

    await CascadingDeleter(store, batch_cap=5, page_size=3).delete_cascade(
        group_deletion_plan("g1")
    )

    for commit in store.commits:
        paths = {path for _, path in commit}
        for path in paths:
            if path.startswith("groups/g1/members/"):
                uid = path.rsplit("/", 1)[1]
                assert f"users/{uid}/groups/g1" in paths
        assert len(commit) <= 5


async def test_commit_failure_reports_and_retry_completes(store) -> None:
    _seed_group(store, "g1", "owner", items=10, members=["u1"])
    deleter = CascadingDeleter(store, batch_cap=4, page_size=4)
    store.fail_commit_attempt = 2

    failed = await deleter.delete_cascade(group_deletion_plan("g1"))

    assert not failed
    assert failed.commits == 1
    assert failed.deleted == 4
    assert isinstance(failed.error, RemoteStoreException)
    assert "groups/g1" in store.docs
    assert len(store.collection("groups/g1/items")) == 6

    retried = await deleter.delete_cascade(group_deletion_plan("g1"))
    assert retried.succeeded
    assert not any("g1" in path for path in store.docs)


async def test_root_read_failure_is_reported_without_writes(store) -> None:
    _seed_group(store, "g1", "owner", items=1, members=[])
    store.get_error = RemoteStoreException("unavailable", status_code=503)

    result = await CascadingDeleter(store).delete_cascade(group_deletion_plan("g1"))

    assert not result.succeeded
    assert result.error is store.get_error
    assert store.commit_attempts == 0


async def test_group_without_owner_is_refused_before_deleting(store) -> None:
    store.put("groups/g1", {"name": "orphan"})
    store.put("groups/g1/items/a", {"name": "a"})

    result = await CascadingDeleter(store).delete_cascade(group_deletion_plan("g1"))

    assert not result.succeeded
    assert isinstance(result.error, InvalidDeletionRootException)
    assert result.error.details["field"] == "ownerUid"
    assert "groups/g1/items/a" in store.docs
    assert store.commit_attempts == 0


async def test_concurrent_deletion_of_same_root_is_refused() -> None:
    gate = asyncio.Event()

    class SlowStore(InMemoryDocumentStore):
        async def get(self, path):
            await gate.wait()
            return await super().get(path)

    store = SlowStore()
    store.put("roots/r1", {})
    deleter = CascadingDeleter(store)
    first = asyncio.create_task(deleter.delete_cascade(_plain_plan()))
    await settle()

    with pytest.raises(DeletionInProgressException):
        await deleter.delete_cascade(_plain_plan())
    gate.set()
    assert (await first).succeeded


@pytest.mark.parametrize("page_size", [0, 501])
def test_rejects_page_size_out_of_bounds(store, page_size: int) -> None:
    with pytest.raises(ValidationException):
        CascadingDeleter(store, page_size=page_size)


@pytest.mark.parametrize("batch_cap", [1, 500])
def test_rejects_batch_cap_out_of_bounds(store, batch_cap: int) -> None:
    with pytest.raises(ValidationException) as exc_info:
        CascadingDeleter(store, batch_cap=batch_cap)
    assert exc_info.value.details == {"field": "batch_cap"}
