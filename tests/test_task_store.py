from datetime import date

import pytest

from planner.errors import QuotaExceeded, RemoteStoreFailure
from planner.remote import TASKS_COLLECTION
from planner.schemas import TaskCreate, TaskUpdate
from planner.storage import TASKS_KEY
from planner.task_store import FREE_ACTIVE_TASK_LIMIT, TaskStore


def make_task(title="Read chapter 3", due_date="2025-03-05", **extra):
    return TaskCreate(subject="History", title=title, due_date=due_date, **extra)


def seed(store, user_id, count, is_premium=False):
    return [
        store.create(user_id, make_task(title=f"Task {i}", due_date=f"2025-03-{i + 1:02d}"), is_premium)
        for i in range(count)
    ]


class TestQuota:
    def test_free_user_at_limit_is_rejected_without_write(self, local_config):
        store = TaskStore(local_config)
        seed(store, "u1", FREE_ACTIVE_TASK_LIMIT)

        with pytest.raises(QuotaExceeded) as excinfo:
            store.create("u1", make_task(title="One too many"), is_premium=False)

        assert excinfo.value.limit == FREE_ACTIVE_TASK_LIMIT
        assert store.count("u1", is_premium=False) == FREE_ACTIVE_TASK_LIMIT
        assert len(store.list("u1", is_premium=False)) == FREE_ACTIVE_TASK_LIMIT

    def test_free_user_below_limit_can_create(self, local_config):
        store = TaskStore(local_config)
        seed(store, "u1", FREE_ACTIVE_TASK_LIMIT - 1)

        store.create("u1", make_task(), is_premium=False)

        assert store.count("u1", is_premium=False) == FREE_ACTIVE_TASK_LIMIT

    def test_quota_is_per_user(self, local_config):
        store = TaskStore(local_config)
        seed(store, "u1", FREE_ACTIVE_TASK_LIMIT)

        store.create("u2", make_task(), is_premium=False)

        assert store.count("u2", is_premium=False) == 1

    def test_premium_user_has_no_quota(self, remote_config):
        store = TaskStore(remote_config)
        seed(store, "u1", FREE_ACTIVE_TASK_LIMIT + 2, is_premium=True)

        assert store.count("u1", is_premium=True) == FREE_ACTIVE_TASK_LIMIT + 2

    def test_completing_a_task_frees_a_slot(self, local_config):
        store = TaskStore(local_config)
        ids = seed(store, "u1", FREE_ACTIVE_TASK_LIMIT)
        with pytest.raises(QuotaExceeded):
            store.create("u1", make_task(title="Eleventh"), is_premium=False)

        store.update(ids[0], TaskUpdate(is_completed=True), is_premium=False)
        assert store.count("u1", is_premium=False) == FREE_ACTIVE_TASK_LIMIT - 1

        store.create("u1", make_task(title="Eleventh"), is_premium=False)
        assert store.count("u1", is_premium=False) == FREE_ACTIVE_TASK_LIMIT


class TestRouting:
    def test_free_user_uses_local_even_with_remote_available(self, remote_config, remote_client, local_storage):
        store = TaskStore(remote_config)
        task_id = store.create("u1", make_task(), is_premium=False)

        assert remote_client.query(TASKS_COLLECTION) == []
        assert [t["id"] for t in local_storage.read_json(TASKS_KEY, [])] == [task_id]

        store.update(task_id, TaskUpdate(title="Renamed"), is_premium=False)
        assert local_storage.read_json(TASKS_KEY, [])[0]["title"] == "Renamed"

        store.delete(task_id, is_premium=False)
        assert local_storage.read_json(TASKS_KEY, []) == []

    def test_premium_user_uses_remote_when_available(self, remote_config, remote_client, local_storage):
        store = TaskStore(remote_config)
        task_id = store.create("u1", make_task(), is_premium=True)

        assert local_storage.get_item(TASKS_KEY) is None
        assert [d["id"] for d in remote_client.query(TASKS_COLLECTION)] == [task_id]

        store.update(task_id, TaskUpdate(priority="high"), is_premium=True)
        assert remote_client.get(TASKS_COLLECTION, task_id)["priority"] == "high"

        store.delete(task_id, is_premium=True)
        assert remote_client.query(TASKS_COLLECTION) == []

    def test_premium_user_falls_back_to_local_when_remote_unavailable(self, local_config, local_storage):
        store = TaskStore(local_config)
        task_id = store.create("u1", make_task(), is_premium=True)

        assert [t["id"] for t in local_storage.read_json(TASKS_KEY, [])] == [task_id]
        assert [t["id"] for t in store.list("u1", is_premium=True)] == [task_id]

    def test_tasks_stay_in_the_store_they_were_created_in(self, remote_config):
        store = TaskStore(remote_config)
        local_id = store.create("u1", make_task(title="Local"), is_premium=False)
        remote_id = store.create("u1", make_task(title="Remote"), is_premium=True)

        assert [t["id"] for t in store.list("u1", is_premium=False)] == [local_id]
        assert [t["id"] for t in store.list("u1", is_premium=True)] == [remote_id]


class TestCreate:
    def test_create_stamps_store_owned_fields(self, local_config, clock):
        store = TaskStore(local_config)
        task_id = store.create("u1", make_task(notes="p. 40-52"), is_premium=False)

        (task,) = store.list("u1", is_premium=False)
        assert task["id"] == task_id
        assert task["user_id"] == "u1"
        assert task["is_completed"] is False
        assert task["created_at"] == clock().isoformat()
        assert task["priority"] == "medium"
        assert task["reminder"] == ""
        assert task["due_date"] == "2025-03-05"
        assert task["notes"] == "p. 40-52"

    def test_ids_are_unique(self, local_config):
        store = TaskStore(local_config)
        ids = seed(store, "u1", 5)
        assert len(set(ids)) == 5


class TestListing:
    def test_sorted_by_due_date(self, local_config):
        store = TaskStore(local_config)
        for due in ["2025-03-05", "2025-03-01", "2025-03-10"]:
            store.create("u1", make_task(due_date=due), is_premium=False)

        dates = [t["due_date"] for t in store.list("u1", is_premium=False)]
        assert dates == ["2025-03-01", "2025-03-05", "2025-03-10"]

    def test_sorted_by_due_date_remote_with_stable_ties(self, remote_config):
        store = TaskStore(remote_config)
        first = store.create("u1", make_task(title="A", due_date="2025-03-05"), is_premium=True)
        store.create("u1", make_task(title="B", due_date="2025-03-01"), is_premium=True)
        second = store.create("u1", make_task(title="C", due_date="2025-03-05"), is_premium=True)

        items = store.list("u1", is_premium=True)
        assert [t["due_date"] for t in items] == ["2025-03-01", "2025-03-05", "2025-03-05"]
        assert [t["id"] for t in items[1:]] == [first, second]

    def test_only_owners_tasks(self, local_config):
        store = TaskStore(local_config)
        store.create("u1", make_task(), is_premium=False)
        store.create("u2", make_task(), is_premium=False)

        assert {t["user_id"] for t in store.list("u1", is_premium=False)} == {"u1"}

    def test_empty_user_id_lists_nothing(self, local_config):
        assert TaskStore(local_config).list("", is_premium=False) == []


class TestRetention:
    def _old_task(self, store, clock, is_premium, completed):
        task_id = store.create("u1", make_task(), is_premium)
        if completed:
            store.update(task_id, TaskUpdate(is_completed=True), is_premium)
        clock.advance(days=31)
        return task_id

    def test_old_completed_task_hidden_locally(self, local_config, clock):
        store = TaskStore(local_config)
        self._old_task(store, clock, is_premium=False, completed=True)

        assert store.list("u1", is_premium=False) == []

    def test_old_active_task_kept_locally(self, local_config, clock):
        store = TaskStore(local_config)
        task_id = self._old_task(store, clock, is_premium=False, completed=False)

        assert [t["id"] for t in store.list("u1", is_premium=False)] == [task_id]

    def test_recent_completed_task_kept_locally(self, local_config, clock):
        store = TaskStore(local_config)
        task_id = store.create("u1", make_task(), is_premium=False)
        store.update(task_id, TaskUpdate(is_completed=True), is_premium=False)
        clock.advance(days=29)

        assert [t["id"] for t in store.list("u1", is_premium=False)] == [task_id]

    def test_old_completed_task_kept_remotely(self, remote_config, clock):
        store = TaskStore(remote_config)
        task_id = self._old_task(store, clock, is_premium=True, completed=True)

        assert [t["id"] for t in store.list("u1", is_premium=True)] == [task_id]


class TestUpdateDelete:
    def test_update_merges_only_given_fields(self, local_config):
        store = TaskStore(local_config)
        task_id = store.create("u1", make_task(notes="keep me"), is_premium=False)

        store.update(task_id, TaskUpdate(due_date=date(2025, 4, 1)), is_premium=False)

        task = store.get("u1", task_id, is_premium=False)
        assert task["due_date"] == "2025-04-01"
        assert task["notes"] == "keep me"
        assert task["title"] == "Read chapter 3"

    def test_update_and_delete_missing_are_noops(self, local_config):
        store = TaskStore(local_config)
        store.create("u1", make_task(), is_premium=False)

        store.update("missing", TaskUpdate(title="x"), is_premium=False)
        store.delete("missing", is_premium=False)

        assert len(store.list("u1", is_premium=False)) == 1

    def test_update_with_no_fields_does_nothing(self, local_config):
        store = TaskStore(local_config)
        task_id = store.create("u1", make_task(), is_premium=False)

        store.update(task_id, TaskUpdate(), is_premium=False)

        assert store.get("u1", task_id, is_premium=False)["title"] == "Read chapter 3"


class TestRemoteFailure:
    def test_remote_errors_are_wrapped_and_not_written_locally(self, failing_config, local_storage):
        store = TaskStore(failing_config)

        with pytest.raises(RemoteStoreFailure) as excinfo:
            store.create("u1", make_task(), is_premium=True)

        assert isinstance(excinfo.value.__cause__, ConnectionError)
        assert local_storage.get_item(TASKS_KEY) is None

    @pytest.mark.parametrize("call", ["list", "count", "update", "delete"])
    def test_every_remote_operation_propagates(self, failing_config, call):
        store = TaskStore(failing_config)
        calls = {
            "list": lambda: store.list("u1", is_premium=True),
            "count": lambda: store.count("u1", is_premium=True),
            "update": lambda: store.update("t1", TaskUpdate(title="x"), is_premium=True),
            "delete": lambda: store.delete("t1", is_premium=True),
        }
        with pytest.raises(RemoteStoreFailure):
            calls[call]()

    def test_free_user_unaffected_by_remote_outage(self, failing_config):
        store = TaskStore(failing_config)
        store.create("u1", make_task(), is_premium=False)

        assert store.count("u1", is_premium=False) == 1
