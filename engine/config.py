"""Engine configuration from environment (and .env), built once at start-up."""
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

from dotenv import load_dotenv

from phonetics import DEFAULT_ACTIVE_ALGORITHMS, get_encoder

# Project root (directory holding engine/, phonetics/, backend/)
ROOT_DIR = Path(__file__).resolve().parent.parent

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _split_names(raw: str) -> Tuple[str, ...]:
    return tuple(p.strip() for p in raw.split(",") if p.strip())


@dataclass(frozen=True)
class EngineConfig:
    word_list: Path = ROOT_DIR / "data" / "words.json"
    index_dir: Path = ROOT_DIR / "data" / "indexes"
    index_backend: str = "sqlite"
    active_algorithms: Tuple[str, ...] = DEFAULT_ACTIVE_ALGORITHMS
    suggestions_per_method: int = 5
    final_limit: int = 7
    batch_size: int = 5000
    query_timeout: Optional[float] = 2.0
    word_list_version: Optional[str] = None
    log_level: str = "INFO"

    def __post_init__(self):
        for name in self.active_algorithms:
            get_encoder(name)
        if self.suggestions_per_method < 1 or self.final_limit < 1:
            raise ValueError("Suggestion limits must be at least 1")
        if self.batch_size < 1:
            raise ValueError("batch_size must be at least 1")

    @classmethod
    def from_env(cls, env_file: Optional[Path] = None) -> "EngineConfig":
        """Read PHONO_* variables; a .env file fills in anything unset."""
        load_dotenv(str(env_file or ROOT_DIR / ".env"))
        env = os.environ
        timeout = float(env.get("PHONO_QUERY_TIMEOUT", 2.0))
        return cls(
            word_list=Path(env.get("PHONO_WORD_LIST", str(cls.word_list))),
            index_dir=Path(env.get("PHONO_INDEX_DIR", str(cls.index_dir))),
            index_backend=env.get("PHONO_INDEX_BACKEND", cls.index_backend).lower(),
            active_algorithms=_split_names(
                env.get("PHONO_ACTIVE_ALGORITHMS", ",".join(DEFAULT_ACTIVE_ALGORITHMS))
            ),
            suggestions_per_method=int(env.get("PHONO_SUGGESTIONS_PER_METHOD", 5)),
            final_limit=int(env.get("PHONO_FINAL_LIMIT", 7)),
            batch_size=int(env.get("PHONO_BATCH_SIZE", 5000)),
            query_timeout=timeout if timeout > 0 else None,
            word_list_version=env.get("PHONO_WORD_LIST_VERSION") or None,
            log_level=env.get("PHONO_LOG_LEVEL", "INFO").upper(),
        )


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)
