"""
JSON record store - file-per-record persistence with a process-wide lock.

Every mutating operation runs as a single locked load/apply/save, so callers
never do read-modify-write across lock boundaries. Writes go to a temporary
file first and are moved into place, so readers never observe a partial
record.
"""

import json
import os
from pathlib import Path
from threading import RLock
from typing import Callable, Dict, Generic, Iterator, List, Optional, Tuple, Type, TypeVar

from pydantic import BaseModel, ValidationError

from app.core import get_logger
from app.core.exceptions import NotFoundError, StorageError

logger = get_logger(__name__, component="record_store")

T = TypeVar("T", bound=BaseModel)


class JsonRecordStore(Generic[T]):
    """Stores pydantic records as ``<storage_dir>/<record_id>.json``."""

    def __init__(self, storage_dir: Path, model: Type[T], lock: Optional[RLock] = None):
        self._storage_dir = Path(storage_dir)
        self._storage_dir.mkdir(parents=True, exist_ok=True)
        self._model = model
        self._lock = lock or RLock()

    @property
    def lock(self) -> RLock:
        return self._lock

    def _file(self, record_id: str) -> Path:
        if not record_id or "/" in record_id or "\\" in record_id or record_id.startswith("."):
            raise StorageError(f"Invalid record id: {record_id!r}")
        return self._storage_dir / f"{record_id}.json"

    def load(self, record_id: str) -> Optional[T]:
        try:
            path = self._file(record_id)
        except StorageError:
            return None
        if not path.exists():
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                return self._model.model_validate(json.load(f))
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            logger.error("Failed to load record", extra={
                "record_id": record_id,
                "model": self._model.__name__,
                "error": str(e),
            })
            raise StorageError(f"Corrupt {self._model.__name__} record {record_id}") from e

    def save(self, record_id: str, record: T) -> T:
        path = self._file(record_id)
        tmp_path = path.with_suffix(".json.tmp")
        with self._lock:
            try:
                with open(tmp_path, "w", encoding="utf-8") as f:
                    f.write(record.model_dump_json(indent=2))
                os.replace(tmp_path, path)
            except OSError as e:
                raise StorageError(f"Failed to save {self._model.__name__} {record_id}: {e}") from e
        return record

    def mutate(self, record_id: str, apply: Callable[[T], None]) -> T:
        """Atomically load a record, apply ``apply`` to it in place and persist it."""
        with self._lock:
            record = self.load(record_id)
            if record is None:
                raise NotFoundError(f"{self._model.__name__} {record_id} not found")
            apply(record)
            return self.save(record_id, record)

    def iter_all(self) -> Iterator[T]:
        with self._lock:
            record_ids = sorted(p.stem for p in self._storage_dir.glob("*.json"))
        for record_id in record_ids:
            try:
                record = self.load(record_id)
            except StorageError:
                continue
            if record is not None:
                yield record

    def all(self) -> List[T]:
        return list(self.iter_all())


class JsonLinesLog:
    """
    Append-only JSON lines files grouped by a partition key.

    Each partition's entry count is cached together with the file size it
    was taken at, so appends do not re-read the file. A size mismatch (the
    file was written by another log instance) falls back to a recount.
    """

    def __init__(self, storage_dir: Path):
        self._storage_dir = Path(storage_dir)
        self._storage_dir.mkdir(parents=True, exist_ok=True)
        self._lock = RLock()
        # partition -> (file size, entry count)
        self._counts: Dict[str, Tuple[int, int]] = {}

    def _file(self, partition: str) -> Path:
        safe = partition.replace("/", "_").replace("\\", "_")
        return self._storage_dir / f"{safe}.jsonl"

    def append(self, partition: str, payload: dict) -> int:
        """Append one entry and return its zero-based sequence number."""
        path = self._file(partition)
        with self._lock:
            sequence = self._next_sequence(partition, path)
            try:
                with open(path, "a", encoding="utf-8") as f:
                    f.write(json.dumps({"sequence": sequence, **payload}, default=str) + "\n")
            except OSError as e:
                self._counts.pop(partition, None)
                raise StorageError(f"Failed to append to log {partition}: {e}") from e
            self._counts[partition] = (path.stat().st_size, sequence + 1)
        return sequence

    def _next_sequence(self, partition: str, path: Path) -> int:
        size = path.stat().st_size if path.exists() else 0
        cached = self._counts.get(partition)
        if cached is not None and cached[0] == size:
            return cached[1]
        return self._count(path)

    @staticmethod
    def _count(path: Path) -> int:
        if not path.exists():
            return 0
        with open(path, "r", encoding="utf-8") as f:
            return sum(1 for line in f if line.strip())

    def read(self, partition: str) -> List[dict]:
        path = self._file(partition)
        with self._lock:
            if not path.exists():
                return []
            entries = []
            with open(path, "r", encoding="utf-8") as f:
                for line in f:
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        entries.append(json.loads(line))
                    except json.JSONDecodeError:
                        logger.warning("Skipping corrupt log line", extra={"partition": partition})
            return entries

    def partitions(self) -> List[str]:
        with self._lock:
            return sorted(p.stem for p in self._storage_dir.glob("*.jsonl"))
