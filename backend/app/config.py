"""API configuration from environment."""
import os
from pathlib import Path

from dotenv import load_dotenv

# Project root (phonetics/, engine/, backend/)
ROOT_DIR = Path(__file__).resolve().parent.parent.parent

load_dotenv(str(ROOT_DIR / ".env"))

# Input validation
MAX_QUERY_LENGTH = int(os.environ.get("PHONO_MAX_QUERY_LENGTH", 100))


def _cors_origins() -> list[str]:
    raw = os.environ.get(
        "PHONO_CORS_ORIGINS",
        "http://localhost:5173,http://localhost:3000,http://127.0.0.1:5173,http://127.0.0.1:3000",
    )
    return [p.strip() for p in raw.split(",") if p.strip()]


CORS_ORIGINS = _cors_origins()

# 1 = await every index build before serving; 0 = build in the background
BUILD_ON_STARTUP = os.environ.get("PHONO_BUILD_ON_STARTUP", "1").lower() not in ("0", "false", "no")

# Rate limits (per client): requests per window. Suggestions are requested per keystroke.
RATE_LIMIT_SUGGEST_PER_MINUTE = int(os.environ.get("PHONO_RATE_LIMIT_PER_MINUTE", 600))
RATE_LIMIT_WINDOW_SECONDS = 60
