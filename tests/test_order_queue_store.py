import json

import pytest

from app.schemas.queue_schemas import QueueStatus
from app.services.order_queue_store import (
    DatabaseQueueStorage,
    JsonFileQueueStorage,
    MemoryQueueStorage,
    OrderQueueStore,
    build_queue_storage,
)
from conftest import make_order


def test_add_order_requires_key():
    store = OrderQueueStore()

    with pytest.raises(ValueError):
        store.add_order(make_order(key=None))


def test_add_order_ignores_duplicate_key():
    store = OrderQueueStore()
    store.add_order(make_order("a"))
    store.add_order(make_order("a", quantity=5))

    queued = store.get_queued_orders()
    assert len(queued) == 1
    assert queued[0].items[0].quantity == 2
    assert queued[0].queued_at is not None


def test_remove_order_marks_processed():
    store = OrderQueueStore()
    store.add_order(make_order("a"))

    store.remove_order("a")

    assert store.get_queued_orders() == []
    assert store.is_order_processed("a")
    assert store.get_order_status("a") == "processed"


def test_remove_unknown_key_is_noop():
    store = OrderQueueStore()
    store.remove_order("missing")
    store.remove_failed_order("missing")

    assert store.get_processed_orders() == []


def test_add_failed_order_moves_from_queue():
    store = OrderQueueStore()
    order = make_order("a")
    store.add_order(order)

    store.add_failed_order(order, "Server exploded")

    assert store.get_queued_orders() == []
    failed = store.get_failed_orders()
    assert len(failed) == 1
    assert failed[0].status == QueueStatus.failed
    assert failed[0].failure_reason == "Server exploded"
    assert store.get_order_status("a") == "failed"


def test_add_failed_order_twice_updates_reason():
    store = OrderQueueStore()
    order = make_order("a")
    store.add_failed_order(order, "first")
    store.add_failed_order(order, "second")

    failed = store.get_failed_orders()
    assert len(failed) == 1
    assert failed[0].failure_reason == "second"


def test_retry_failed_order_requeues():
    store = OrderQueueStore()
    store.add_failed_order(make_order("a"), "boom")

    store.retry_failed_order("a")

    assert store.get_failed_orders() == []
    queued = store.get_queued_orders()
    assert queued[0].idempotency_key == "a"
    assert queued[0].status == QueueStatus.queued
    assert queued[0].failure_reason is None


def test_bulk_add_and_remove():
    store = OrderQueueStore()
    store.add_multiple_orders([make_order("a"), make_order("b"), make_order(None), make_order("a")])

    assert [o.idempotency_key for o in store.get_queued_orders()] == ["a", "b"]

    store.remove_multiple_orders(["a", "b"])
    assert store.get_total_pending_orders() == 0
    assert store.get_processed_orders() == ["a", "b"]


def test_queue_stats():
    store = OrderQueueStore()
    store.add_order(make_order("a"))
    store.add_order(make_order("b"))
    store.add_failed_order(make_order("c"), "nope")
    store.remove_order("b")

    stats = store.get_queue_stats()
    assert (stats.queued, stats.failed, stats.processed, stats.total) == (1, 1, 1, 3)
    assert store.get_order_status("zzz") == "not_found"


def test_drop_order_does_not_mark_processed():
    storage = MemoryQueueStorage({"queued_orders": [{"items": []}], "failed_orders": [], "processed_orders": []})
    store = OrderQueueStore(storage)

    [broken] = store.get_queued_orders()
    store.drop_order(broken)

    assert store.get_queued_orders() == []
    assert store.get_processed_orders() == []
    assert storage.state["queued_orders"] == []


def test_every_mutation_is_persisted():
    storage = MemoryQueueStorage()
    store = OrderQueueStore(storage)
    store.add_order(make_order("a"))

    reloaded = OrderQueueStore(storage)
    assert reloaded.is_order_queued("a")


def test_clear_helpers():
    storage = MemoryQueueStorage()
    store = OrderQueueStore(storage)
    store.add_order(make_order("a"))
    store.add_failed_order(make_order("b"), "x")
    store.remove_order("a")

    store.clear_processed_orders()
    assert store.get_processed_orders() == []

    store.clear_failed_orders()
    assert store.get_failed_orders() == []

    store.add_order(make_order("c"))
    store.clear_queue()
    assert store.get_queued_orders() == []

    store.add_order(make_order("d"))
    store.clear_all_orders()
    assert store.get_total_pending_orders() == 0
    assert storage.read() is None


def test_unreadable_entries_are_skipped():
    storage = MemoryQueueStorage({
        "queued_orders": [{"idempotency_key": "ok", "items": []}, {"items": "not-a-list"}],
        "failed_orders": [],
        "processed_orders": ["x", "x"],
    })

    store = OrderQueueStore(storage)

    assert [o.idempotency_key for o in store.get_queued_orders()] == ["ok"]
    assert store.get_processed_orders() == ["x"]


def test_json_file_storage_roundtrip(tmp_path):
    path = tmp_path / "queue" / "orders.json"
    store = OrderQueueStore(JsonFileQueueStorage(path))
    store.add_order(make_order("a"))
    store.add_failed_order(make_order("b"), "bad gateway")

    on_disk = json.loads(path.read_text(encoding="utf-8"))
    assert on_disk["queued_orders"][0]["idempotency_key"] == "a"

    reloaded = OrderQueueStore(JsonFileQueueStorage(path))
    assert reloaded.is_order_queued("a")
    assert reloaded.get_failed_orders()[0].failure_reason == "bad gateway"


def test_json_file_storage_keeps_corrupt_file(tmp_path):
    path = tmp_path / "orders.json"
    broken = b'{"queued_orders": [{"idempotency_key": "a", "ite'
    path.write_bytes(broken)

    store = OrderQueueStore(JsonFileQueueStorage(path))
    assert store.get_total_pending_orders() == 0

    store.add_order(make_order("b"))

    assert (tmp_path / "orders.json.corrupt").read_bytes() == broken
    assert json.loads(path.read_text(encoding="utf-8"))["queued_orders"][0]["idempotency_key"] == "b"


def test_json_file_storage_second_corruption_does_not_overwrite_first(tmp_path):
    path = tmp_path / "orders.json"
    (tmp_path / "orders.json.corrupt").write_text("first", encoding="utf-8")
    path.write_text("second", encoding="utf-8")

    JsonFileQueueStorage(path).read()

    assert (tmp_path / "orders.json.corrupt").read_text(encoding="utf-8") == "first"
    assert sorted(p.read_text(encoding="utf-8") for p in tmp_path.glob("*.corrupt")) == ["first", "second"]


def test_json_file_storage_write_leaves_no_temp_files(tmp_path):
    path = tmp_path / "orders.json"
    store = OrderQueueStore(JsonFileQueueStorage(path))
    store.add_order(make_order("a"))
    store.add_order(make_order("b"))

    assert [p.name for p in tmp_path.iterdir()] == ["orders.json"]


def test_json_file_storage_failed_write_keeps_previous_state(tmp_path):
    path = tmp_path / "orders.json"
    storage = JsonFileQueueStorage(path)
    storage.write({"queued_orders": [], "failed_orders": [], "processed_orders": ["a"]})

    with pytest.raises(TypeError):
        storage.write({"queued_orders": [object()], "failed_orders": [], "processed_orders": []})

    assert storage.read()["processed_orders"] == ["a"]
    assert [p.name for p in tmp_path.iterdir()] == ["orders.json"]


def test_database_storage_roundtrip(engine):
    store = OrderQueueStore(DatabaseQueueStorage(engine))
    store.add_order(make_order("a"))
    store.add_order(make_order("b"))
    store.remove_order("b")

    reloaded = OrderQueueStore(DatabaseQueueStorage(engine))
    assert [o.idempotency_key for o in reloaded.get_queued_orders()] == ["a"]
    assert reloaded.is_order_processed("b")

    reloaded.clear_all_orders()
    assert DatabaseQueueStorage(engine).read() is None


def test_build_queue_storage(tmp_path, engine):
    assert isinstance(build_queue_storage("memory"), MemoryQueueStorage)
    assert isinstance(build_queue_storage("file", path=tmp_path / "q.json"), JsonFileQueueStorage)
    assert isinstance(build_queue_storage("database", engine=engine), DatabaseQueueStorage)

    with pytest.raises(ValueError):
        build_queue_storage("redis")


def test_processed_lookup_tracks_clears():
    storage = MemoryQueueStorage()
    store = OrderQueueStore(storage)
    store.add_multiple_orders([make_order(f"k{i}") for i in range(500)])
    store.remove_multiple_orders([f"k{i}" for i in range(500)])

    assert store.is_order_processed("k499")
    assert OrderQueueStore(storage).is_order_processed("k0")

    store.clear_processed_orders()
    assert not store.is_order_processed("k0")

    store.add_order(make_order("z"))
    store.remove_order("z")
    assert store.get_processed_orders() == ["z"]

    store.clear_all_orders()
    assert not store.is_order_processed("z")
