from __future__ import annotations

from pathlib import Path

import pytest

from flow_tasks.replica import Replica
from flow_tasks.storage import ReplicaStore, StorageError


def test_load_missing_snapshot_returns_default(tmp_path: Path) -> None:
    store = ReplicaStore(data_dir=tmp_path / "nested")
    assert store.exists() is False

    replica = store.load()

    assert replica.sync_token == "*"
    assert replica.inbox_project().name == "Inbox"


def test_save_then_load_round_trip(tmp_path: Path, replica: Replica) -> None:
    store = ReplicaStore(data_dir=tmp_path / "data")
    replica.sync_token = "tok-7"
    task = replica.create_task("Buy milk", "INBOX_ID")
    replica.set_done(task.id, True)

    store.save(replica)

    assert store.path.name == "sync.json"
    assert not store.path.with_name("sync.json.tmp").exists()
    assert store.load() == replica


def test_load_invalid_snapshot_raises(tmp_path: Path) -> None:
    store = ReplicaStore(data_dir=tmp_path)
    store.path.write_text("{not json", encoding="utf-8")

    with pytest.raises(StorageError):
        store.load()


def test_failed_write_keeps_previous_snapshot(
    tmp_path: Path, replica: Replica, monkeypatch: pytest.MonkeyPatch
) -> None:
    store = ReplicaStore(data_dir=tmp_path)
    store.save(replica)
    previous = store.path.read_text(encoding="utf-8")

    def broken_replace(self: Path, target: Path) -> Path:
        raise OSError("disk full")

    monkeypatch.setattr(Path, "replace", broken_replace)
    replica.create_task("lost", "INBOX_ID")

    with pytest.raises(StorageError):
        store.save(replica)

    assert store.path.read_text(encoding="utf-8") == previous
    assert not store.path.with_name("sync.json.tmp").exists()
