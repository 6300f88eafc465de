"""Phonetic encoders and edit distance used by the suggestion engine."""

from .distance import levenshtein_distance, rank_by_distance, score_words
from .encoders import (
    DEFAULT_ACTIVE_ALGORITHMS,
    ENCODERS,
    Encoder,
    get_encoder,
    phonex,
    resolve_encoders,
    soundex2,
)

__all__ = [
    "levenshtein_distance",
    "rank_by_distance",
    "score_words",
    "DEFAULT_ACTIVE_ALGORITHMS",
    "ENCODERS",
    "Encoder",
    "get_encoder",
    "phonex",
    "resolve_encoders",
    "soundex2",
]
