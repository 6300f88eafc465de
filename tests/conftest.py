"""Shared fixtures: table-driven encoders and stub searchers."""

import asyncio
import sys
from pathlib import Path
from typing import Dict, List, Optional

import pytest

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from engine import IndexStore
from phonetics import Encoder

# encode("chat") == encode("chatte") == encode("shat") == "X1", encode("cat") == "X2"
CHAT_CODES = {"chat": "X1", "chatte": "X1", "shat": "X1", "cat": "X2"}
CHAT_WORDS = ["chat", "chatte", "shat", "cat"]


def table_encoder(table: Dict[str, str], name: str = "table") -> Encoder:
    """Encoder backed by a lookup table; unknown words get the empty code."""
    return Encoder(name, lambda text: table.get(text, ""))


class StubSearcher:
    """Searcher double with canned answers, optional failure or delay."""

    def __init__(
        self,
        name: str,
        words: Optional[List[str]] = None,
        error: Optional[Exception] = None,
        delay: float = 0.0,
        ready: bool = True,
    ):
        self.name = name
        self.words = list(words or [])
        self.error = error
        self.delay = delay
        self.ready = ready
        self.calls: List[tuple] = []

    def is_ready(self) -> bool:
        return self.ready

    async def initialize(self):
        from engine import SearcherState
        return SearcherState.READY if self.ready else SearcherState.FAILED

    async def suggest(self, query: str, limit: int = 5) -> List[str]:
        self.calls.append((query, limit))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.words[:limit]

    async def status(self):
        return {"algorithm": self.name, "state": "READY" if self.ready else "FAILED"}

    async def close(self):
        pass


@pytest.fixture
def chat_encoder() -> Encoder:
    return table_encoder(CHAT_CODES, name="chat")


@pytest.fixture
def sqlite_store(tmp_path) -> IndexStore:
    return IndexStore(tmp_path / "indexes", backend="sqlite", word_list_version="test")
