"""Phonetic suggestion engine: per-encoder indexes, searchers and the aggregator."""

from .aggregator import PhoneticAggregator, SuggestionResult, SuggestionStatus
from .builder import BuildReport, IndexBuilder
from .config import EngineConfig, configure_logging
from .errors import (
    BuildFailed,
    EncodeSkipped,
    PhoneticEngineError,
    QueryFailed,
    StorageUnavailable,
)
from .index_backend import (
    IndexStore,
    JsonIndexBackend,
    PhoneticIndex,
    SqliteIndexBackend,
)
from .searcher import PhoneticSearcher, SearcherState
from .wordlist import file_word_source, load_word_list, word_list_version

__all__ = [
    "PhoneticAggregator",
    "SuggestionResult",
    "SuggestionStatus",
    "BuildReport",
    "IndexBuilder",
    "EngineConfig",
    "configure_logging",
    "BuildFailed",
    "EncodeSkipped",
    "PhoneticEngineError",
    "QueryFailed",
    "StorageUnavailable",
    "IndexStore",
    "JsonIndexBackend",
    "PhoneticIndex",
    "SqliteIndexBackend",
    "PhoneticSearcher",
    "SearcherState",
    "file_word_source",
    "load_word_list",
    "word_list_version",
]
