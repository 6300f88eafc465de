"""
Phonetic encoders: pure functions from a normalized (trimmed, lower-cased)
word to a phonetic code.

- Codes are opaque strings; "" is a legal code meaning "no signature" and is
  indexed like any other.
- The registry is built once at import time and is read-only.
"""

import re
import unicodedata
from dataclasses import dataclass
from types import MappingProxyType
from typing import Callable, Dict, Iterable, Mapping

import jellyfish
from abydos.phonetic import FONEM

# French Soundex2 rewrite rules, applied in order.
_SOUNDEX2_PRIMARY = (
    (re.compile(r"GU([IE])"), r"K\1"),
    (re.compile(r"G([AO])"), r"K\1"),
    (re.compile(r"GU"), "K"),
    (re.compile(r"C([AOU])"), r"K\1"),
    (re.compile(r"Q|CC|CK"), "K"),
)
_SOUNDEX2_PREFIXES = (
    ("MAC", "MCC"),
    ("ASA", "AZA"),
    ("KN", "NN"),
    ("PF", "FF"),
    ("SCH", "SSS"),
    ("PH", "FF"),
)
_LIGATURES = {"œ": "oe", "æ": "ae", "ß": "ss"}


def _fold_accents(word: str) -> str:
    """'Éléphant' -> 'Elephant'; ligatures expanded."""
    word = "".join(_LIGATURES.get(c, c) for c in word.lower())
    decomposed = unicodedata.normalize("NFKD", word)
    return "".join(c for c in decomposed if not unicodedata.combining(c))


def _squeeze(code: str) -> str:
    out = []
    for c in code:
        if not out or out[-1] != c:
            out.append(c)
    return "".join(out)


def soundex2(word: str, length: int = 4) -> str:
    """
    Soundex2, the French adaptation of Soundex.
    Non-letters are dropped; a word with no letters encodes to "".
    """
    code = re.sub(r"[^A-Z]", "", _fold_accents(word).upper())
    if not code:
        return ""
    for pattern, repl in _SOUNDEX2_PRIMARY:
        code = pattern.sub(repl, code)
    # Vowels other than Y become A, except in first position
    code = code[0] + re.sub(r"[EIOU]", "A", code[1:])
    for prefix, repl in _SOUNDEX2_PREFIXES:
        if code.startswith(prefix):
            code = repl + code[len(prefix):]
            break
    code = re.sub(r"([^CS])H", r"\1", code)
    code = re.sub(r"([^A])Y", r"\1", code)
    code = re.sub(r"[ADTS]$", "", code)
    if not code:
        return ""
    code = code[0] + code[1:].replace("A", "")
    return _squeeze(code)[:length]


# Phonex (French, Brouard) rewrite rules, applied in order over the upper-cased
# word. Digits 1-5 stand for the nasal and diphthong sounds.
_PHONEX_VOWELS = "AEIOUY12345"
_PHONEX_RULES = tuple(
    (re.compile(pattern), repl)
    for pattern, repl in (
        (r"Y", "I"),
        (r"(?<![CSP])H", ""),
        (r"PH", "F"),
        (r"G(AI?[NM])", r"K\1"),
        (r"[AE]I[NM](?=[AEIOU])", "YN"),
        (r"EAU", "O"),
        (r"OUA", "2"),
        (r"[AE]I[NM]", "4"),
        (r"[ÉÈÊ]|AI|EI", "Y"),
        (r"E(R|SS|T)", r"Y\1"),
        (rf"[AE][NM](?![{_PHONEX_VOWELS}NM])", "1"),
        (rf"IN(?![{_PHONEX_VOWELS}N])", "4"),
        (rf"(?<=[{_PHONEX_VOWELS}])S(?=[{_PHONEX_VOWELS}])", "Z"),
        (r"OE|EU", "E"),
        (r"AU", "O"),
        (r"OI|OY", "2"),
        (r"OU", "3"),
        (r"S?CH|SH", "5"),
        (r"SS|SC", "S"),
        (r"Ç", "S"),
        (r"C(?=[EI])", "S"),
        (r"QU|Q|GU|C", "K"),
        (r"G(?=[AO])", "K"),
        (r"A", "O"),
        (r"[DP]", "T"),
        (r"J", "G"),
        (r"[BV]", "F"),
        (r"M", "N"),
    )
)
# Accented letters the rules read before folding
_PHONEX_KEEP = frozenset("éèêç")


def _phonex_fold(word: str) -> str:
    word = "".join(_LIGATURES.get(c, c) for c in word.lower())
    out = []
    for c in word:
        if c in _PHONEX_KEEP:
            out.append(c)
            continue
        out.extend(d for d in unicodedata.normalize("NFKD", c) if not unicodedata.combining(d))
    return "".join(out)


def phonex(word: str) -> str:
    """
    Phonex, Frédéric Brouard's French phonetic key, as a string code.
    Non-letters are dropped; a word with no letters encodes to "".
    """
    code = re.sub(r"[^A-ZÉÈÊÇ]", "", _phonex_fold(word).upper())
    for pattern, repl in _PHONEX_RULES:
        code = pattern.sub(repl, code)
    return re.sub(r"[TX]$", "", _squeeze(code))


_fonem = FONEM()


@dataclass(frozen=True)
class Encoder:
    """A named phonetic algorithm. Stateless; encode must be deterministic."""

    name: str
    encode: Callable[[str], str]

    def __call__(self, text: str) -> str:
        return self.encode(text)


ENCODERS: Mapping[str, Encoder] = MappingProxyType(
    {
        "phonex": Encoder("phonex", phonex),
        "soundex2": Encoder("soundex2", soundex2),
        "fonem": Encoder("fonem", _fonem.encode),
        "soundex": Encoder("soundex", jellyfish.soundex),
        "metaphone": Encoder("metaphone", jellyfish.metaphone),
    }
)

DEFAULT_ACTIVE_ALGORITHMS = ("phonex", "soundex2", "metaphone")


def get_encoder(name: str) -> Encoder:
    try:
        return ENCODERS[name]
    except KeyError:
        raise ValueError(
            f"Unsupported algorithm: {name!r}. Available: {', '.join(sorted(ENCODERS))}"
        ) from None


def resolve_encoders(names: Iterable[str]) -> Dict[str, Encoder]:
    """Encoders for the given names, in the given order, duplicates dropped."""
    return {name: get_encoder(name) for name in dict.fromkeys(names)}
