from __future__ import annotations

import argparse
import datetime as dt
import logging
import sys
from collections.abc import Sequence

import anyio

from flow_tasks.config import Settings, settings
from flow_tasks.due_dates import split_due
from flow_tasks.models import Task
from flow_tasks.replica import Replica, ReplicaError
from flow_tasks.services.sync_service import SyncMode
from flow_tasks.storage import ReplicaStore, StorageError
from flow_tasks.transport import HttpxSyncTransport, TransportError
from flow_tasks.worker import SyncSession, open_session

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="flow-tasks", description="Local-first task list synced with the Sync API."
    )
    parser.add_argument("--data-dir", default=None, help="Override the snapshot directory.")
    # Mostly for testing against a mock server.
    parser.add_argument("--sync-url", default=None, help=argparse.SUPPRESS)
    sub = parser.add_subparsers(dest="command", required=True)

    add = sub.add_parser("add", help="Add a task (to the inbox unless --project is given).")
    add.add_argument("text", nargs="+")
    add.add_argument("--project", default=None, help="Project id")
    add.add_argument("--sync", action="store_true", help="Sync right after adding.")

    ls = sub.add_parser("list", help="List inbox (or project) tasks.")
    ls.add_argument("--all", action="store_true", help="Include completed tasks.")
    ls.add_argument("--project", default=None, help="Project id")

    done = sub.add_parser("done", help="Complete the N-th open inbox task.")
    done.add_argument("number", type=int)
    done.add_argument("--sync", action="store_true", help="Sync right after completing.")

    undo = sub.add_parser("undo", help="Mark a task incomplete again.")
    undo.add_argument("task_id")

    sync = sub.add_parser("sync", help="Exchange pending commands with the server.")
    sync.add_argument("--full", action="store_true", help="Ignore the cursor; fetch everything.")
    return parser


def _format_task(index: int, task: Task) -> str:
    mark = "x" if task.done else " "
    due = f" (due {task.due})" if task.due is not None else ""
    return f"{index:>3}. [{mark}] {task.content}{due}"


def _print_listing(replica: Replica, *, include_done: bool, project_id: str | None) -> None:
    if project_id is None:
        for i, task in enumerate(replica.inbox_tasks(include_done=include_done), start=1):
            print(_format_task(i, task))
        return

    index = 1
    for section, tasks in replica.sections_and_tasks_in_project(project_id):
        if section is not None:
            print(f"## {section.name}")
        for task in tasks:
            if task.done and not include_done:
                continue
            print(_format_task(index, task))
            index += 1


def _nth_open_inbox_task(replica: Replica, number: int) -> Task:
    tasks = replica.inbox_tasks()
    if not 1 <= number <= len(tasks):
        raise ReplicaError(
            f"'{number}' is outside of the valid range. Pass a number between 1 and {len(tasks)}."
        )
    return tasks[number - 1]


def _transport(cfg: Settings, sync_url: str | None) -> HttpxSyncTransport:
    return HttpxSyncTransport(
        base_url=sync_url or cfg.sync_base_url(),
        api_token=cfg.api_token,
        timeout_seconds=cfg.request_timeout_seconds,
    )


async def _run_online(args: argparse.Namespace, store: ReplicaStore, cfg: Settings) -> None:
    session: SyncSession
    async with open_session(store=store, transport=_transport(cfg, args.sync_url)) as session:
        if args.command == "add":
            content, due = split_due(" ".join(args.text), dt.date.today())
            project_id = args.project or session.replica.user.inbox_project_id
            _ = session.create_task(content, project_id, due=due)
            print(f"Task '{content}' added.")
        elif args.command == "done":
            task = _nth_open_inbox_task(session.replica, args.number)
            _ = session.set_done(task.id, True)
            print(f"'{task.content}' marked complete.")

        print("Syncing... ", end="", flush=True)
        mode = SyncMode.FULL if getattr(args, "full", False) else SyncMode.INCREMENTAL
        _ = await session.sync_now(mode)
        print("Done.")


def _run_offline(args: argparse.Namespace, store: ReplicaStore) -> None:
    replica = store.load()
    if args.command == "list":
        _print_listing(replica, include_done=args.all, project_id=args.project)
        return

    if args.command == "add":
        content, due = split_due(" ".join(args.text), dt.date.today())
        _ = replica.create_task(content, args.project or replica.user.inbox_project_id, due=due)
        print(f"Task '{content}' added.")
    elif args.command == "done":
        task = _nth_open_inbox_task(replica, args.number)
        _ = replica.set_done(task.id, True)
        print(f"'{task.content}' marked complete.")
    elif args.command == "undo":
        task = replica.set_done(args.task_id, False)
        print(f"'{task.content}' marked incomplete.")
    store.save(replica)


def main(argv: Sequence[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    cfg = settings
    logging.basicConfig(level=getattr(logging, cfg.log_level.upper(), logging.INFO))
    for msg in cfg.security_warnings():
        logger.warning("SECURITY WARNING: %s", msg)

    store = ReplicaStore(data_dir=args.data_dir or cfg.data_path())
    online = args.command == "sync" or getattr(args, "sync", False)
    try:
        if online:
            anyio.run(_run_online, args, store, cfg)
        else:
            _run_offline(args, store)
    except (ReplicaError, StorageError, TransportError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
