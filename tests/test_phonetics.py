"""Encoders and edit-distance ranking."""

import pytest

from phonetics import (
    DEFAULT_ACTIVE_ALGORITHMS,
    ENCODERS,
    get_encoder,
    levenshtein_distance,
    phonex,
    rank_by_distance,
    resolve_encoders,
    soundex2,
)


def test_soundex_groups_similar_names():
    soundex = get_encoder("soundex")
    assert soundex("robert") == "R163"
    assert soundex("rupert") == "R163"


@pytest.mark.parametrize(
    "word,code",
    [("pfister", "P236"), ("tymczak", "T522"), ("honeyman", "H555")],
)
def test_soundex_classic_rules(word, code):
    # first letter's digit is not repeated; vowels separate equal digits
    assert get_encoder("soundex")(word) == code


def test_phonex_french_homophones():
    assert phonex("chat") == phonex("shat") == "5O"
    assert phonex("pain") == phonex("pin") == "T4"
    assert phonex("ça") == phonex("sa")


def test_phonex_no_letters():
    assert phonex("123") == ""
    assert phonex("") == ""


def test_soundex2_folds_accents():
    assert soundex2("éléphant") == soundex2("elephant")
    assert soundex2("café") == soundex2("kafe") == "KF"


def test_soundex2_french_prefixes():
    assert soundex2("phare") == soundex2("fare") == "FR"


def test_soundex2_no_letters():
    assert soundex2("123") == ""
    assert soundex2("-") == ""


def test_soundex2_max_length():
    assert len(soundex2("anticonstitutionnellement")) <= 4


def test_registry_is_read_only():
    with pytest.raises(TypeError):
        ENCODERS["custom"] = ENCODERS["soundex"]


def test_registry_contains_defaults():
    for name in DEFAULT_ACTIVE_ALGORITHMS:
        assert get_encoder(name).name == name


def test_unknown_algorithm_rejected():
    with pytest.raises(ValueError, match="Unsupported algorithm"):
        get_encoder("sonnex")


def test_resolve_encoders_keeps_order_and_drops_duplicates():
    encoders = resolve_encoders(["metaphone", "soundex", "metaphone"])
    assert list(encoders) == ["metaphone", "soundex"]


@pytest.mark.parametrize("name", sorted(ENCODERS))
def test_encoders_return_strings(name):
    encoder = get_encoder(name)
    for word in ("bonjour", "chat", "maison"):
        assert isinstance(encoder(word), str)


def test_levenshtein_distance():
    assert levenshtein_distance("kitten", "sitting") == 3
    assert levenshtein_distance("", "abc") == 3
    assert levenshtein_distance("chat", "chat") == 0
    assert levenshtein_distance("shat", "chat") == 1


def test_rank_by_distance_is_stable():
    words = ["chats", "chat", "chas"]
    assert rank_by_distance("chat", words, 5) == ["chat", "chats", "chas"]


def test_rank_by_distance_ignores_case_of_candidates():
    assert rank_by_distance("paris", ["Paris", "pari"], 5) == ["Paris", "pari"]


def test_rank_by_distance_limit():
    assert rank_by_distance("chat", ["chat", "chats", "chas"], 1) == ["chat"]
    assert rank_by_distance("chat", ["chat"], 0) == []
