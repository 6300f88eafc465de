"""
Failure taxonomy of the suggestion engine.

Each error is caught at the smallest scope it can affect: one word, one
algorithm, one searcher. None of them reach callers of the aggregator.
"""


class PhoneticEngineError(Exception):
    """Base class for engine failures."""


class StorageUnavailable(PhoneticEngineError):
    """The durable index store cannot be opened, read or written."""


class BuildFailed(PhoneticEngineError):
    """The word source could not be obtained or parsed; the index stays unbuilt."""


class EncodeSkipped(PhoneticEngineError):
    """A single word could not be encoded and is left out of every bucket."""

    def __init__(self, word: object, algorithm: str, reason: Exception):
        super().__init__(f"{algorithm}: cannot encode {word!r}: {reason}")
        self.word = word
        self.algorithm = algorithm
        self.reason = reason


class QueryFailed(PhoneticEngineError):
    """Unexpected failure inside a single-algorithm query."""
