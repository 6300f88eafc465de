"""
Word-list loading: a JSON array of strings, or one word per line.

The builder consumes any iterable of strings; this module only covers the
file-backed source the CLI and the API use.
"""

import hashlib
import json
from pathlib import Path
from typing import Callable, List

VERSION_LENGTH = 12


def load_word_list(path: Path) -> List[str]:
    """Read the word list at path. Raises OSError or ValueError."""
    path = Path(path)
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".json":
        words = json.loads(text)
        if not isinstance(words, list):
            raise ValueError(f"{path}: expected a JSON array of words")
        return words
    return text.splitlines()


def file_word_source(path: Path) -> Callable[[], List[str]]:
    """Deferred loader: the file is read when a build actually runs."""
    return lambda: load_word_list(path)


def word_list_version(path: Path) -> str:
    """Short content hash identifying this exact word list."""
    h = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(1 << 20), b""):
            h.update(chunk)
    return h.hexdigest()[:VERSION_LENGTH]
