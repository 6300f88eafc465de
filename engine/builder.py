"""
Index builder: streams a word source through one encoder and merges the
resulting (code -> words) groups into that encoder's PhoneticIndex.

- Working set is bounded by batch_size distinct codes, whatever the list size.
- Batches are flushed in stream order; each flush is awaited before the next.
- The index is marked built only after the last flush committed everything.
"""

import logging
import time
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Union

from phonetics import Encoder

from .errors import BuildFailed, EncodeSkipped, StorageUnavailable
from .index_backend import PhoneticIndex

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 5000

WordSource = Union[Iterable[str], Callable[[], Iterable[str]]]


@dataclass
class BuildReport:
    algorithm: str
    already_built: bool = False
    built: bool = False
    words_seen: int = 0
    words_indexed: int = 0
    words_skipped: int = 0
    batches: int = 0
    failed_buckets: List[str] = field(default_factory=list)
    elapsed_sec: float = 0.0


class IndexBuilder:
    """Populates one PhoneticIndex from a word source with one encoder."""

    def __init__(self, encoder: Encoder, word_source: WordSource, batch_size: int = DEFAULT_BATCH_SIZE):
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        if isinstance(word_source, Iterator):
            # shared by every searcher and re-read on each rebuild
            raise ValueError(
                "word_source must be a collection or a callable returning the words, "
                "not a one-shot iterator"
            )
        self._encoder = encoder
        self._word_source = word_source
        self._batch_size = batch_size

    def encode_word(self, word: str) -> str:
        """Code for an already trimmed word. Raises EncodeSkipped."""
        try:
            code = self._encoder(word.lower())
        except Exception as e:
            raise EncodeSkipped(word, self._encoder.name, e) from e
        if not isinstance(code, str):
            raise EncodeSkipped(word, self._encoder.name, TypeError(f"code is {type(code).__name__}"))
        return code

    def _open_source(self) -> Iterable[str]:
        source = self._word_source
        try:
            return iter(source() if callable(source) else source)
        except Exception as e:
            raise BuildFailed(f"{self._encoder.name}: cannot load word source: {e}") from e

    async def _flush(self, index: PhoneticIndex, batch: Dict[str, Dict[str, str]], report: BuildReport) -> None:
        if not batch:
            return
        payload = {code: list(words.values()) for code, words in batch.items()}
        try:
            failed = await index.merge_batch(payload)
        except StorageUnavailable:
            logger.exception("%s: batch %d could not be written", self._encoder.name, report.batches + 1)
            failed = list(payload)
        report.batches += 1
        report.failed_buckets.extend(failed)
        batch.clear()

    async def build(self, index: PhoneticIndex) -> BuildReport:
        """
        Build index unless it is already built.
        Raises BuildFailed if the word source cannot be read; the index then stays unbuilt.
        """
        name = self._encoder.name
        report = BuildReport(algorithm=name)
        if await index.is_built():
            logger.info("%s: index %s already built", name, index.name)
            report.already_built = True
            report.built = True
            return report

        logger.info("%s: building index %s (batch size %d)", name, index.name, self._batch_size)
        start = time.perf_counter()
        words = self._open_source()
        # code -> {lowercased word: first surface form seen}
        batch: Dict[str, Dict[str, str]] = {}
        while True:
            try:
                raw = next(words)
            except StopIteration:
                break
            except Exception as e:
                raise BuildFailed(
                    f"{name}: word source failed after {report.words_seen} words: {e}"
                ) from e
            report.words_seen += 1
            if not isinstance(raw, str):
                logger.warning("%s: skipping non-string entry %r", name, raw)
                report.words_skipped += 1
                continue
            word = raw.strip()
            if not word:
                continue
            try:
                code = self.encode_word(word)
            except EncodeSkipped as e:
                logger.warning("%s", e)
                report.words_skipped += 1
                continue
            batch.setdefault(code, {}).setdefault(word.lower(), word)
            report.words_indexed += 1
            if len(batch) >= self._batch_size:
                await self._flush(index, batch, report)
        await self._flush(index, batch, report)

        report.elapsed_sec = time.perf_counter() - start
        if report.failed_buckets:
            logger.error(
                "%s: %d buckets failed to write; index %s left unbuilt for the next run",
                name, len(report.failed_buckets), index.name,
            )
            return report
        await index.mark_built(report.words_indexed)
        report.built = True
        logger.info(
            "%s: indexed %d words (%d skipped) in %d batches, %.2fs",
            name, report.words_indexed, report.words_skipped, report.batches, report.elapsed_sec,
        )
        return report
