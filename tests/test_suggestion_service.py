"""Service lifecycle: background builds are stopped cleanly on shutdown."""

import asyncio

from conftest import table_encoder
from backend.app.services.suggestion_service import SuggestionService
from engine import IndexStore, PhoneticAggregator, PhoneticSearcher, SearcherState


def _service(tmp_path, words):
    store = IndexStore(tmp_path, backend="sqlite", word_list_version="v1")
    searchers = {
        name: PhoneticSearcher(table_encoder({}, name=name), store, words, batch_size=1)
        for name in ("first", "second")
    }
    return SuggestionService(PhoneticAggregator(searchers))


def test_stop_cancels_background_build(tmp_path):
    service = _service(tmp_path, [f"mot{i}" for i in range(20000)])

    async def run():
        await service.start(wait=False)
        await asyncio.sleep(0.05)
        await service.stop()
        return asyncio.all_tasks() - {asyncio.current_task()}

    pending = asyncio.run(run())
    assert pending == set()
    for searcher in service.aggregator.searchers.values():
        assert searcher.state == SearcherState.FAILED


def test_stop_after_build_keeps_index(tmp_path):
    service = _service(tmp_path, ["chat", "shat"])

    async def run():
        await service.start(wait=True)
        await service.stop()

    asyncio.run(run())
    for searcher in service.aggregator.searchers.values():
        assert searcher.state == SearcherState.READY

    restarted = _service(tmp_path, [])
    asyncio.run(restarted.start(wait=True))
    for searcher in restarted.aggregator.searchers.values():
        assert searcher.build_report.already_built
    asyncio.run(restarted.stop())
