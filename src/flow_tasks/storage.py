from __future__ import annotations

import logging
import os
from pathlib import Path

from pydantic import ValidationError

from flow_tasks.replica import Replica

logger = logging.getLogger(__name__)

SNAPSHOT_FILE_NAME = "sync.json"


class StorageError(RuntimeError):
    pass


class ReplicaStore:
    """JSON snapshot of the replica under ``data_dir``.

    Writes go to a sibling temp file that replaces the snapshot only once fully
    written, so a failed save leaves the previous snapshot intact.
    """

    def __init__(self, *, data_dir: str | Path) -> None:
        self._root = Path(data_dir)

    @property
    def path(self) -> Path:
        return self._root / SNAPSHOT_FILE_NAME

    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> Replica:
        path = self.path
        if not path.exists():
            logger.info("no snapshot at %s; starting from an empty replica", path)
            return Replica.default()
        try:
            raw = path.read_text(encoding="utf-8")
        except OSError as e:
            raise StorageError(f"Could not read snapshot '{path}': {e}") from e
        try:
            return Replica.from_snapshot(raw)
        except ValidationError as e:
            raise StorageError(f"Could not parse snapshot '{path}': {e}") from e

    def save(self, replica: Replica) -> None:
        path = self.path
        tmp_path = path.with_name(path.name + ".tmp")
        payload = replica.to_snapshot()
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with tmp_path.open("w", encoding="utf-8") as f:
                _ = f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            _ = tmp_path.replace(path)
        except OSError as e:
            tmp_path.unlink(missing_ok=True)
            raise StorageError(f"Could not write snapshot '{path}': {e}") from e
