"""
Phonetic index storage: code -> words, plus a durable "built" flag.

Backends:
- SqliteIndexBackend: one row per (code, word); merges are idempotent unions.
- JsonIndexBackend: dict persisted as JSON, or kept in memory only.

PhoneticIndex wraps a backend with the async interface searchers use; every
storage call runs in a worker thread so a slow disk never stalls the loop.
"""

import asyncio
import json
import logging
import os
import re
import sqlite3
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set

from .errors import StorageUnavailable

logger = logging.getLogger(__name__)

# Bump when the on-disk layout or the meaning of stored codes changes.
SCHEMA_VERSION = 1

BACKENDS = ("sqlite", "json", "memory")


class IndexBackend:
    """Abstract backend for (code, word) entries of one encoder."""

    def is_built(self) -> bool:
        raise NotImplementedError

    def mark_built(self, word_count: int) -> None:
        raise NotImplementedError

    def merge(self, code: str, words: Iterable[str]) -> None:
        """Union words into the bucket for code. Words equal ignoring case count once."""
        raise NotImplementedError

    def merge_batch(self, batch: Dict[str, List[str]]) -> List[str]:
        """Merge several buckets; return the codes whose write failed."""
        failed = []
        for code, words in batch.items():
            try:
                self.merge(code, words)
            except StorageUnavailable:
                logger.exception("Write failed for bucket %r", code)
                failed.append(code)
        return failed

    def lookup(self, code: str) -> List[str]:
        """Words stored for code in insertion order; [] when absent."""
        raise NotImplementedError

    def stats(self) -> Dict[str, int]:
        raise NotImplementedError

    def close(self) -> None:
        """Release resources."""
        pass


class JsonIndexBackend(IndexBackend):
    """In-memory dict, persisted as JSON when a path is given."""

    def __init__(self, path: Optional[Path] = None) -> None:
        self._path = path
        self._index: Dict[str, List[str]] = {}
        self._keys: Dict[str, Set[str]] = {}
        self._built = False
        self._word_count = 0
        if path is not None and path.exists():
            try:
                with open(path, "r", encoding="utf-8") as f:
                    data = json.load(f)
            except OSError as e:
                raise StorageUnavailable(f"Cannot read index {path}: {e}") from e
            except ValueError as e:
                # a write cut short; start over unbuilt so the next build repopulates it
                logger.warning("Discarding unreadable index %s: %s", path, e)
                return
            try:
                self._index = {k: list(v) for k, v in data["entries"].items()}
                self._built = bool(data.get("built"))
                self._word_count = int(data.get("word_count", 0))
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                logger.warning("Discarding malformed index %s: %s", path, e)
                self._index, self._built, self._word_count = {}, False, 0
                return
            self._keys = {k: {w.lower() for w in v} for k, v in self._index.items()}

    def is_built(self) -> bool:
        return self._built

    def mark_built(self, word_count: int) -> None:
        self._built = True
        self._word_count = word_count
        self._save()

    def _merge_in_memory(self, code: str, words: Iterable[str]) -> None:
        bucket = self._index.setdefault(code, [])
        keys = self._keys.setdefault(code, set())
        for w in words:
            k = w.lower()
            if k in keys:
                continue
            keys.add(k)
            bucket.append(w)

    def merge(self, code: str, words: Iterable[str]) -> None:
        self._merge_in_memory(code, words)
        self._save()

    def merge_batch(self, batch: Dict[str, List[str]]) -> List[str]:
        for code, words in batch.items():
            self._merge_in_memory(code, words)
        try:
            self._save()
        except StorageUnavailable:
            logger.exception("Write failed for %d buckets", len(batch))
            return list(batch)
        return []

    def lookup(self, code: str) -> List[str]:
        return list(self._index.get(code, ()))

    def stats(self) -> Dict[str, int]:
        return {
            "buckets": len(self._index),
            "words": sum(len(v) for v in self._index.values()),
            "word_count": self._word_count,
        }

    def _save(self) -> None:
        """Write to a sibling temp file, then swap it in; readers never see a partial file."""
        if self._path is None:
            return
        payload = {
            "schema": SCHEMA_VERSION,
            "built": self._built,
            "word_count": self._word_count,
            "entries": self._index,
        }
        tmp = self._path.with_name(self._path.name + ".tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp, "w", encoding="utf-8") as f:
                json.dump(payload, f, ensure_ascii=False)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp, self._path)
        except OSError as e:
            raise StorageUnavailable(f"Cannot write index {self._path}: {e}") from e


class SqliteIndexBackend(IndexBackend):
    """
    SQLite-backed index: one row per (code, word).
    UNIQUE(code, word_key) makes re-sent words a no-op; lookup uses the code index.
    """

    def __init__(self, path: Path) -> None:
        self._path = path
        self._local = threading.local()
        self._conns: List[sqlite3.Connection] = []
        self._lock = threading.Lock()
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            conn = self._conn()
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS phonetic_entries (
                    code TEXT NOT NULL,
                    word TEXT NOT NULL,
                    word_key TEXT NOT NULL,
                    UNIQUE(code, word_key)
                )
                """
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_phonetic_code ON phonetic_entries(code)"
            )
            conn.execute(
                "CREATE TABLE IF NOT EXISTS build_status "
                "(id INTEGER PRIMARY KEY CHECK (id = 1), built INTEGER NOT NULL, "
                "word_count INTEGER, built_at TEXT)"
            )
        except (sqlite3.Error, OSError) as e:
            self.close()
            raise StorageUnavailable(f"Cannot open index {path}: {e}") from e

    def _conn(self) -> sqlite3.Connection:
        # One connection per worker thread; autocommit, transactions are explicit.
        if not getattr(self._local, "conn", None):
            conn = sqlite3.connect(str(self._path), isolation_level=None, check_same_thread=False)
            self._local.conn = conn
            with self._lock:
                self._conns.append(conn)
        return self._local.conn

    def is_built(self) -> bool:
        try:
            row = self._conn().execute("SELECT built FROM build_status WHERE id = 1").fetchone()
        except sqlite3.Error as e:
            raise StorageUnavailable(f"Cannot read build status of {self._path}: {e}") from e
        return bool(row and row[0])

    def mark_built(self, word_count: int) -> None:
        try:
            self._conn().execute(
                "INSERT OR REPLACE INTO build_status (id, built, word_count, built_at) VALUES (1, 1, ?, ?)",
                (word_count, datetime.now(timezone.utc).isoformat()),
            )
        except sqlite3.Error as e:
            raise StorageUnavailable(f"Cannot mark {self._path} built: {e}") from e

    @staticmethod
    def _rows(code: str, words: Iterable[str]):
        return ((code, w, w.lower()) for w in words)

    def merge(self, code: str, words: Iterable[str]) -> None:
        conn = self._conn()
        try:
            conn.execute("BEGIN")
            conn.executemany(
                "INSERT OR IGNORE INTO phonetic_entries (code, word, word_key) VALUES (?, ?, ?)",
                self._rows(code, words),
            )
            conn.execute("COMMIT")
        except sqlite3.Error as e:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            raise StorageUnavailable(f"Cannot merge bucket {code!r}: {e}") from e

    def merge_batch(self, batch: Dict[str, List[str]]) -> List[str]:
        """One transaction per flush; a failing bucket is rolled back alone."""
        conn = self._conn()
        failed: List[str] = []
        try:
            conn.execute("BEGIN")
            for code, words in batch.items():
                conn.execute("SAVEPOINT bucket")
                try:
                    conn.executemany(
                        "INSERT OR IGNORE INTO phonetic_entries (code, word, word_key) VALUES (?, ?, ?)",
                        self._rows(code, words),
                    )
                except sqlite3.Error:
                    logger.exception("Write failed for bucket %r", code)
                    conn.execute("ROLLBACK TO bucket")
                    failed.append(code)
                conn.execute("RELEASE bucket")
            conn.execute("COMMIT")
        except sqlite3.Error:
            logger.exception("Batch commit failed for %d buckets", len(batch))
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            return list(batch)
        return failed

    def lookup(self, code: str) -> List[str]:
        try:
            cur = self._conn().execute(
                "SELECT word FROM phonetic_entries WHERE code = ? ORDER BY rowid",
                (code,),
            )
            return [row[0] for row in cur.fetchall()]
        except sqlite3.Error as e:
            raise StorageUnavailable(f"Cannot read bucket {code!r}: {e}") from e

    def stats(self) -> Dict[str, int]:
        try:
            conn = self._conn()
            buckets, words = conn.execute(
                "SELECT COUNT(DISTINCT code), COUNT(*) FROM phonetic_entries"
            ).fetchone()
            row = conn.execute("SELECT word_count FROM build_status WHERE id = 1").fetchone()
        except sqlite3.Error as e:
            raise StorageUnavailable(f"Cannot read stats of {self._path}: {e}") from e
        return {"buckets": buckets, "words": words, "word_count": (row[0] or 0) if row else 0}

    def close(self) -> None:
        with self._lock:
            for conn in self._conns:
                conn.close()
            self._conns.clear()
        self._local = threading.local()


class PhoneticIndex:
    """
    Async view of one encoder's index. Owned by exactly one searcher.

    lookup() never raises: an unreadable or unbuilt index answers [].
    close() waits for storage calls still running in worker threads, so a
    cancelled build never writes to a closed backend.
    """

    def __init__(self, name: str, backend: IndexBackend) -> None:
        self.name = name
        self._backend = backend
        self._built = False
        self._closed = False
        self._inflight: Set[asyncio.Future] = set()

    async def _call(self, fn, *args):
        if self._closed:
            raise StorageUnavailable(f"Index {self.name} is closed")
        task = asyncio.ensure_future(asyncio.to_thread(fn, *args))
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)
        # cancelling the caller leaves the thread call to finish; close() awaits it
        return await asyncio.shield(task)

    async def is_built(self) -> bool:
        if not self._built:
            self._built = await self._call(self._backend.is_built)
        return self._built

    async def mark_built(self, word_count: int = 0) -> None:
        """Only call once every bucket of the build has been committed."""
        await self._call(self._backend.mark_built, word_count)
        self._built = True

    async def merge_words(self, code: str, words: Iterable[str]) -> None:
        await self._call(self._backend.merge, code, list(words))

    async def merge_batch(self, batch: Dict[str, List[str]]) -> List[str]:
        return await self._call(self._backend.merge_batch, batch)

    async def lookup(self, code: str) -> List[str]:
        try:
            if not await self.is_built():
                return []
            return await self._call(self._backend.lookup, code)
        except StorageUnavailable:
            logger.exception("Lookup failed on index %s", self.name)
            return []

    async def stats(self) -> Dict[str, int]:
        return await self._call(self._backend.stats)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._inflight:
            await asyncio.gather(*self._inflight, return_exceptions=True)
        await asyncio.to_thread(self._backend.close)


def _safe_name(value: str) -> str:
    return re.sub(r"[^A-Za-z0-9_.-]", "_", value) or "_"


class IndexStore:
    """
    Opens the durable index of each encoder.

    The store name carries the encoder, SCHEMA_VERSION and the word-list
    version, so a new word list gets a fresh, unbuilt index.
    """

    def __init__(
        self,
        root: Optional[Path] = None,
        backend: str = "sqlite",
        word_list_version: str = "unversioned",
    ) -> None:
        if backend not in BACKENDS:
            raise ValueError(f"Unknown index backend {backend!r}. Use one of: {', '.join(BACKENDS)}")
        if backend != "memory" and root is None:
            raise ValueError(f"Index backend {backend!r} needs a root directory")
        self.root = Path(root) if root is not None else None
        self.backend = backend
        self.word_list_version = word_list_version

    def index_name(self, encoder_name: str) -> str:
        return _safe_name(f"{encoder_name}_s{SCHEMA_VERSION}_{self.word_list_version}")

    def index_path(self, encoder_name: str) -> Optional[Path]:
        if self.root is None or self.backend == "memory":
            return None
        suffix = ".db" if self.backend == "sqlite" else ".json"
        return self.root / (self.index_name(encoder_name) + suffix)

    def _open_backend(self, encoder_name: str) -> IndexBackend:
        path = self.index_path(encoder_name)
        if self.backend == "sqlite":
            return SqliteIndexBackend(path)
        return JsonIndexBackend(path)

    async def open(self, encoder_name: str) -> PhoneticIndex:
        """Open or create the index for encoder_name. Raises StorageUnavailable."""
        logger.debug("Opening %s index %s", self.backend, self.index_name(encoder_name))
        task = asyncio.ensure_future(asyncio.to_thread(self._open_backend, encoder_name))
        try:
            backend = await asyncio.shield(task)
        except asyncio.CancelledError:
            task.add_done_callback(_close_opened_backend)
            raise
        return PhoneticIndex(self.index_name(encoder_name), backend)


def _close_opened_backend(task: asyncio.Future) -> None:
    # the opener went away while the worker thread was still opening
    if not task.cancelled() and task.exception() is None:
        task.result().close()
