from __future__ import annotations

from pathlib import Path

import pytest

from flow_tasks import cli
from flow_tasks.schemas_sync import SyncRequest, SyncResponse
from flow_tasks.storage import ReplicaStore


def _run(tmp_path: Path, *argv: str) -> int:
    return cli.main(["--data-dir", str(tmp_path), *argv])


def test_add_list_done_undo_offline(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert _run(tmp_path, "add", "Buy", "milk", "tomorrow") == 0
    assert _run(tmp_path, "add", "Call", "mom") == 0
    assert "Task 'Buy milk' added." in capsys.readouterr().out

    assert _run(tmp_path, "list") == 0
    out = capsys.readouterr().out
    assert "Buy milk (due " in out
    assert "Call mom" in out

    replica = ReplicaStore(data_dir=tmp_path).load()
    first = replica.inbox_tasks()[0]
    assert _run(tmp_path, "done", "1") == 0
    assert f"'{first.content}' marked complete." in capsys.readouterr().out

    assert _run(tmp_path, "list") == 0
    assert first.content not in capsys.readouterr().out
    assert _run(tmp_path, "list", "--all") == 0
    assert "[x]" in capsys.readouterr().out

    assert _run(tmp_path, "undo", first.id) == 0
    assert "marked incomplete" in capsys.readouterr().out

    replica = ReplicaStore(data_dir=tmp_path).load()
    # Two creations; the completion was cancelled before it was ever sent.
    assert [c.type for c in replica.commands] == ["item_add", "item_add"]


def test_done_out_of_range(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert _run(tmp_path, "add", "only") == 0
    assert _run(tmp_path, "done", "5") == 1
    err = capsys.readouterr().err
    assert "'5' is outside of the valid range. Pass a number between 1 and 1." in err


def test_undo_unknown_task(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert _run(tmp_path, "undo", "nope") == 1
    assert capsys.readouterr().err.startswith("error:")


def test_sync_command_uses_transport(
    tmp_path: Path, capsys: pytest.CaptureFixture[str], monkeypatch: pytest.MonkeyPatch, fake_transport
) -> None:
    def handler(req: SyncRequest) -> SyncResponse:
        return SyncResponse(
            sync_token="tok-1",
            temp_id_mapping={c.temp_id: "SRV-1" for c in req.commands if c.temp_id},
            sync_status={c.uuid: "ok" for c in req.commands},
        )

    fake_transport.handler = handler
    monkeypatch.setattr(cli, "_transport", lambda cfg, sync_url: fake_transport)

    assert _run(tmp_path, "add", "Buy", "milk") == 0
    assert _run(tmp_path, "sync", "--full") == 0

    assert "Syncing... Done." in capsys.readouterr().out
    assert fake_transport.requests[0].sync_token == "*"
    replica = ReplicaStore(data_dir=tmp_path).load()
    assert [t.id for t in replica.tasks] == ["SRV-1"]
    assert replica.commands == []


def test_sync_failure_reports_error(
    tmp_path: Path, capsys: pytest.CaptureFixture[str], monkeypatch: pytest.MonkeyPatch, fake_transport
) -> None:
    fake_transport.fail = True
    monkeypatch.setattr(cli, "_transport", lambda cfg, sync_url: fake_transport)

    assert _run(tmp_path, "add", "Buy", "milk", "--sync") == 1
    assert "connection refused" in capsys.readouterr().err
    assert len(fake_transport.requests) == 1
    assert len(ReplicaStore(data_dir=tmp_path).load().commands) == 1
