"""JSON-file document store.

Layout: ``<base>/<collection>/<doc_id>.json``, one document per file.

Every write lands through a temp file + fsync + atomic rename, so readers
see either the previous document or the new one. Read-modify-write
operations (create, conditional_update, delete) hold an exclusive
``flock`` on ``<doc_id>.lock`` for their duration; the lock is taken by
the OS, so it serializes writers in other processes as well as other
threads of this one. A successful delete removes the lock file too.
"""
from __future__ import annotations

import fcntl
import json
import logging
import os
import re
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Iterable, Iterator, Optional

from notekeeper.errors import DocumentStoreError

logger = logging.getLogger(__name__)

_NAME_RE = re.compile(r"^[A-Za-z0-9_-]{1,128}$")

Predicate = Callable[[dict[str, Any]], bool]


def _check_name(kind: str, value: str) -> str:
    if not value or not _NAME_RE.match(value):
        raise ValueError(f"Invalid {kind}: {value!r}")
    return value


def _atomic_write_json(path: Path, data: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(f".{path.name}.{uuid.uuid4().hex}.tmp")
    try:
        with tmp_path.open("w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2)
            f.flush()
            os.fsync(f.fileno())
        tmp_path.replace(path)
    finally:
        if tmp_path.exists():
            tmp_path.unlink()


@dataclass(frozen=True)
class Filter:
    field: str
    op: str
    value: Any

    def matches(self, doc: dict[str, Any]) -> bool:
        actual = doc.get(self.field)
        op = self.op
        if op == "==":
            return actual == self.value
        if op == "!=":
            return actual != self.value
        if op == "in":
            return actual in self.value
        if op == "array-contains":
            return isinstance(actual, list) and self.value in actual
        if actual is None:
            # ordering comparisons never match a missing field
            return False
        if op == "<":
            return actual < self.value
        if op == "<=":
            return actual <= self.value
        if op == ">":
            return actual > self.value
        if op == ">=":
            return actual >= self.value
        raise ValueError(f"Unsupported filter op: {op}")


class DocumentStore:
    def __init__(self, base_dir: Path):
        self.base_dir = Path(base_dir)

    def _collection_dir(self, collection: str) -> Path:
        return self.base_dir / _check_name("collection", collection)

    def _doc_path(self, collection: str, doc_id: str) -> Path:
        return self._collection_dir(collection) / f"{_check_name('doc_id', doc_id)}.json"

    @contextmanager
    def _locked(self, collection: str, doc_id: str) -> Iterator[Path]:
        path = self._doc_path(collection, doc_id)
        path.parent.mkdir(parents=True, exist_ok=True)
        lock_path = path.with_suffix(".lock")
        while True:
            lock_file = lock_path.open("a")
            fcntl.flock(lock_file.fileno(), fcntl.LOCK_EX)
            # delete() unlinks the lock file; a waiter that locked the old inode starts over
            try:
                current = os.stat(lock_path)
            except FileNotFoundError:
                current = None
            if current is not None and current.st_ino == os.fstat(lock_file.fileno()).st_ino:
                break
            fcntl.flock(lock_file.fileno(), fcntl.LOCK_UN)
            lock_file.close()
        try:
            yield path
        finally:
            fcntl.flock(lock_file.fileno(), fcntl.LOCK_UN)
            lock_file.close()

    @contextmanager
    def locked(self, collection: str, doc_id: str) -> Iterator[None]:
        """Hold the exclusive lock of ``collection/doc_id`` without touching the document.

        Used as a mutex around multi-document checks. The lock is not
        re-entrant: do not nest it on the same document.
        """
        with self._locked(collection, doc_id):
            yield

    def _read(self, path: Path) -> Optional[dict[str, Any]]:
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as exc:
            raise DocumentStoreError(f"Cannot read {path.name}: {exc}") from exc

    def get(self, collection: str, doc_id: str) -> Optional[dict[str, Any]]:
        return self._read(self._doc_path(collection, doc_id))

    def put(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        with self._locked(collection, doc_id) as path:
            try:
                _atomic_write_json(path, fields)
            except OSError as exc:
                raise DocumentStoreError(f"Cannot write {path.name}: {exc}") from exc

    def create(self, collection: str, doc_id: str, fields: dict[str, Any]) -> bool:
        """Write ``fields`` only if no document with ``doc_id`` exists yet."""
        with self._locked(collection, doc_id) as path:
            if path.exists():
                return False
            try:
                _atomic_write_json(path, fields)
            except OSError as exc:
                raise DocumentStoreError(f"Cannot write {path.name}: {exc}") from exc
            return True

    def conditional_update(
        self,
        collection: str,
        doc_id: str,
        predicate: Predicate,
        patch: dict[str, Any] | Callable[[dict[str, Any]], dict[str, Any]],
    ) -> bool:
        """Merge ``patch`` into the document iff ``predicate(doc)`` holds.

        Check and write happen under the document lock, so two callers racing
        on the same precondition cannot both observe it as true. ``patch``
        may be a callable computing the patch from the current document.
        Returns whether the update was applied; an absent document is never
        updated.
        """
        with self._locked(collection, doc_id) as path:
            current = self._read(path)
            if current is None or not predicate(current):
                return False
            changes = patch(current) if callable(patch) else patch
            updated = {**current, **changes}
            try:
                _atomic_write_json(path, updated)
            except OSError as exc:
                raise DocumentStoreError(f"Cannot write {path.name}: {exc}") from exc
            return True

    def delete(self, collection: str, doc_id: str, predicate: Optional[Predicate] = None) -> bool:
        with self._locked(collection, doc_id) as path:
            current = self._read(path)
            if current is None:
                return False
            if predicate is not None and not predicate(current):
                return False
            try:
                path.unlink()
            except FileNotFoundError:
                return False
            except OSError as exc:
                raise DocumentStoreError(f"Cannot delete {path.name}: {exc}") from exc
            # still held here, so waiters see a replaced inode and retry
            path.with_suffix(".lock").unlink(missing_ok=True)
            return True

    def query(self, collection: str, filters: Iterable[Filter] = ()) -> list[dict[str, Any]]:
        filters = list(filters)
        coll_dir = self._collection_dir(collection)
        if not coll_dir.exists():
            return []
        out: list[dict[str, Any]] = []
        for p in sorted(coll_dir.glob("*.json")):
            try:
                doc = self._read(p)
            except DocumentStoreError:
                logger.warning("Skipping unreadable document %s/%s", collection, p.name)
                continue
            if doc is None:
                # deleted between glob and read
                continue
            if all(f.matches(doc) for f in filters):
                out.append(doc)
        return out
