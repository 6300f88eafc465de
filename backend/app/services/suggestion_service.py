"""
Suggestion service: owns the aggregator for the lifetime of the app.

Builds run once at start-up, either awaited (the app serves only when every
index is ready or failed) or in a background task while queries answer
"unavailable".
"""
import asyncio
import logging
from typing import Optional

from engine import EngineConfig, PhoneticAggregator

logger = logging.getLogger(__name__)


class SuggestionService:
    def __init__(self, aggregator: PhoneticAggregator):
        self.aggregator = aggregator
        self._init_task: Optional[asyncio.Task] = None

    @classmethod
    def from_config(cls, config: EngineConfig) -> "SuggestionService":
        logger.info(
            "Suggestion engine: algorithms=%s backend=%s word_list=%s",
            ",".join(config.active_algorithms), config.index_backend, config.word_list,
        )
        return cls(PhoneticAggregator.from_config(config))

    async def start(self, wait: bool = True) -> None:
        if wait:
            await self.aggregator.initialize()
        else:
            self._init_task = asyncio.create_task(self.aggregator.initialize())

    async def stop(self) -> None:
        if self._init_task is not None and not self._init_task.done():
            self._init_task.cancel()
            try:
                await self._init_task
            except asyncio.CancelledError:
                pass
        await self.aggregator.close()
