"""
PhoneticSearcher: one encoder plus its persistent index.

States: UNINITIALIZED -> INITIALIZING -> READY | FAILED.
The build runs at most once per process; every initialize() caller awaits
the same outcome. A FAILED searcher stays unusable and answers [] to queries.
"""

import asyncio
import logging
from enum import Enum
from typing import Dict, List, Optional

from phonetics import Encoder, rank_by_distance

from .builder import DEFAULT_BATCH_SIZE, BuildReport, IndexBuilder, WordSource
from .errors import BuildFailed, QueryFailed
from .index_backend import IndexStore, PhoneticIndex

logger = logging.getLogger(__name__)

DEFAULT_SUGGESTIONS_PER_METHOD = 5


class SearcherState(str, Enum):
    UNINITIALIZED = "UNINITIALIZED"
    INITIALIZING = "INITIALIZING"
    READY = "READY"
    FAILED = "FAILED"


def normalize_query(query: Optional[str]) -> str:
    return (query or "").strip().lower()


class PhoneticSearcher:
    """Single-algorithm suggestions: encode -> lookup -> rank by edit distance -> truncate."""

    def __init__(
        self,
        encoder: Encoder,
        store: IndexStore,
        word_source: WordSource,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ):
        self.encoder = encoder
        self._store = store
        self._builder = IndexBuilder(encoder, word_source, batch_size=batch_size)
        self._index: Optional[PhoneticIndex] = None
        self._state = SearcherState.UNINITIALIZED
        self._init_task: Optional[asyncio.Future] = None
        self.error: Optional[BaseException] = None
        self.build_report: Optional[BuildReport] = None

    @property
    def name(self) -> str:
        return self.encoder.name

    @property
    def store(self) -> IndexStore:
        return self._store

    @property
    def state(self) -> SearcherState:
        return self._state

    def is_ready(self) -> bool:
        return self._state == SearcherState.READY

    async def initialize(self) -> SearcherState:
        """
        Open and, if needed, build the index. Runs once; concurrent and later
        callers get the same terminal state. Never raises.
        """
        if self._init_task is None:
            self._init_task = asyncio.ensure_future(self._do_initialize())
        task = self._init_task
        # cancelling one waiter leaves the shared build running
        try:
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            if not task.cancelled():
                raise
            # the build itself was stopped by close()
            return self._state

    async def _do_initialize(self) -> SearcherState:
        self._state = SearcherState.INITIALIZING
        logger.info("Searcher %s: starting initialization", self.name)
        try:
            self._index = await self._store.open(self.name)
            self.build_report = await self._builder.build(self._index)
            if not await self._index.is_built():
                raise RuntimeError(f"index {self._index.name} is incomplete after build")
        except asyncio.CancelledError:
            logger.warning("Searcher %s: initialization cancelled", self.name)
            self._fail(BuildFailed(f"{self.name}: build cancelled before completion"))
            raise
        except Exception as e:
            logger.error("Searcher %s: initialization failed: %s", self.name, e, exc_info=True)
            self._fail(e)
            return self._state
        self._state = SearcherState.READY
        logger.info("Searcher %s: ready", self.name)
        return self._state

    async def _suggest(self, query: str, limit: int) -> List[str]:
        try:
            code = self.encoder(query)
        except Exception as e:
            raise QueryFailed(f"{self.name}: cannot encode query {query!r}: {e}") from e
        if not isinstance(code, str):
            return []
        candidates = await self._index.lookup(code)
        if not candidates:
            return []
        return rank_by_distance(query, candidates, limit)

    async def suggest(self, query: str, limit: int = DEFAULT_SUGGESTIONS_PER_METHOD) -> List[str]:
        """Up to limit words sharing the query's phonetic code, closest first. Never raises."""
        if self._state != SearcherState.READY or self._index is None:
            return []
        normalized = normalize_query(query)
        if not normalized:
            return []
        try:
            return await self._suggest(normalized, limit)
        except Exception:
            logger.exception("Searcher %s: query %r failed", self.name, query)
            return []

    async def status(self) -> Dict[str, object]:
        info: Dict[str, object] = {"algorithm": self.name, "state": self._state.value}
        if self._index is not None:
            info["index"] = self._index.name
        if self.error is not None:
            info["error"] = str(self.error)
        if self._state == SearcherState.READY:
            try:
                info.update(await self._index.stats())
            except Exception:
                logger.exception("Searcher %s: cannot read index stats", self.name)
        return info

    def _fail(self, error: BaseException) -> None:
        self.error = error
        self._state = SearcherState.FAILED

    async def close(self) -> None:
        """Stop a build still in progress, then release the index."""
        task = self._init_task
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
            if self._state != SearcherState.READY:
                self._fail(BuildFailed(f"{self.name}: closed before initialization finished"))
        if self._index is not None:
            await self._index.close()
