"""
Aggregator: fans a query out to every active searcher, merges their
candidates, de-duplicates them and re-ranks the union by edit distance.

A slow or broken searcher contributes nothing and never delays the others
past the per-query timeout. get_suggestions() never raises.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Mapping, Optional, Sequence

from phonetics import rank_by_distance, resolve_encoders

from .config import EngineConfig
from .index_backend import IndexStore
from .searcher import (
    DEFAULT_SUGGESTIONS_PER_METHOD,
    PhoneticSearcher,
    SearcherState,
    normalize_query,
)
from .wordlist import file_word_source, word_list_version

logger = logging.getLogger(__name__)

DEFAULT_FINAL_LIMIT = 7
DEFAULT_QUERY_TIMEOUT = 2.0


class SuggestionStatus(str, Enum):
    OK = "ok"
    NO_MATCH = "no_match"
    EMPTY_QUERY = "empty_query"
    UNAVAILABLE = "unavailable"
    NOT_CONFIGURED = "not_configured"


@dataclass
class SuggestionResult:
    """Ranked matches plus why the list may be empty."""

    query: str
    status: SuggestionStatus
    matches: List[str] = field(default_factory=list)
    sources: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status in (SuggestionStatus.OK, SuggestionStatus.NO_MATCH, SuggestionStatus.EMPTY_QUERY)


class PhoneticAggregator:
    def __init__(
        self,
        searchers: Mapping[str, PhoneticSearcher],
        active: Optional[Sequence[str]] = None,
        per_method_limit: int = DEFAULT_SUGGESTIONS_PER_METHOD,
        final_limit: int = DEFAULT_FINAL_LIMIT,
        query_timeout: Optional[float] = DEFAULT_QUERY_TIMEOUT,
    ):
        self._searchers: Dict[str, PhoneticSearcher] = dict(searchers)
        self.active = tuple(dict.fromkeys(active if active is not None else self._searchers))
        for name in self.active:
            if name not in self._searchers:
                logger.warning("Active algorithm %r has no searcher; it will be ignored", name)
        self.per_method_limit = per_method_limit
        self.final_limit = final_limit
        self.query_timeout = query_timeout or None

    @classmethod
    def from_config(cls, config: EngineConfig) -> "PhoneticAggregator":
        """Searchers for every active algorithm, sharing one word source and index store."""
        encoders = resolve_encoders(config.active_algorithms)
        version = config.word_list_version
        if version is None:
            try:
                version = word_list_version(config.word_list)
            except OSError as e:
                # The build will fail the same way and report it per searcher
                logger.error("Cannot hash word list %s: %s", config.word_list, e)
                version = "unversioned"
        store = IndexStore(config.index_dir, backend=config.index_backend, word_list_version=version)
        source = file_word_source(config.word_list)
        searchers = {
            name: PhoneticSearcher(encoder, store, source, batch_size=config.batch_size)
            for name, encoder in encoders.items()
        }
        return cls(
            searchers,
            active=list(encoders),
            per_method_limit=config.suggestions_per_method,
            final_limit=config.final_limit,
            query_timeout=config.query_timeout,
        )

    @property
    def searchers(self) -> Dict[str, PhoneticSearcher]:
        return dict(self._searchers)

    def active_searchers(self) -> List[PhoneticSearcher]:
        return [self._searchers[n] for n in self.active if n in self._searchers]

    async def initialize(self) -> Dict[str, SearcherState]:
        """Build every searcher's index concurrently; returns the state of each."""
        names = list(self._searchers)
        states = await asyncio.gather(*(self._searchers[n].initialize() for n in names))
        for name, state in zip(names, states):
            if state != SearcherState.READY:
                logger.warning("Searcher %s is %s and will not contribute suggestions", name, state.value)
        return dict(zip(names, states))

    async def _query_one(self, searcher: PhoneticSearcher, query: str) -> Optional[List[str]]:
        """Words from one searcher, or None when it is not ready, failed or timed out."""
        if not searcher.is_ready():
            return None
        try:
            return await asyncio.wait_for(searcher.suggest(query, self.per_method_limit), self.query_timeout)
        except asyncio.TimeoutError:
            logger.warning("Searcher %s timed out on %r after %ss", searcher.name, query, self.query_timeout)
        except Exception:
            logger.exception("Searcher %s failed on %r", searcher.name, query)
        return None

    async def suggest(self, query: str, final_limit: Optional[int] = None) -> SuggestionResult:
        """Merged, re-ranked suggestions with the reason when empty. Never raises."""
        try:
            return await self._suggest(query, final_limit)
        except Exception:
            logger.exception("Aggregated suggestions failed for %r", query)
            return SuggestionResult(query=query, status=SuggestionStatus.UNAVAILABLE)

    async def _suggest(self, query: str, final_limit: Optional[int]) -> SuggestionResult:
        limit = self.final_limit if final_limit is None else final_limit
        searchers = self.active_searchers()
        if not searchers:
            logger.warning("No active phonetic algorithms configured")
            return SuggestionResult(query=query, status=SuggestionStatus.NOT_CONFIGURED)
        normalized = normalize_query(query)
        if not normalized:
            return SuggestionResult(query=query, status=SuggestionStatus.EMPTY_QUERY)

        results = await asyncio.gather(
            *(self._query_one(s, query) for s in searchers), return_exceptions=True
        )
        combined: List[str] = []
        sources: List[str] = []
        for searcher, result in zip(searchers, results):
            if isinstance(result, BaseException):
                logger.error("Searcher %s raised %r", searcher.name, result)
                continue
            if result is None:
                continue
            logger.debug("Suggestions from %s: %s", searcher.name, result)
            sources.append(searcher.name)
            combined.extend(result)

        if not sources:
            return SuggestionResult(query=query, status=SuggestionStatus.UNAVAILABLE)
        unique = list(dict.fromkeys(combined))
        matches = rank_by_distance(normalized, unique, limit)
        status = SuggestionStatus.OK if matches else SuggestionStatus.NO_MATCH
        return SuggestionResult(query=query, status=status, matches=matches, sources=sources)

    async def get_suggestions(self, query: str, final_limit: Optional[int] = None) -> List[str]:
        """Final ranked, bounded word list. Never raises; worst case []."""
        return (await self.suggest(query, final_limit)).matches

    async def status(self) -> List[Dict[str, object]]:
        out = []
        for name, searcher in self._searchers.items():
            info = await searcher.status()
            info["active"] = name in self.active
            out.append(info)
        return out

    async def close(self) -> None:
        for searcher in self._searchers.values():
            await searcher.close()
