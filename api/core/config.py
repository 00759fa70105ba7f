"""
Environment-driven settings.

Values are read lazily (at call time) so tests can monkeypatch the
environment. A `.env` file at the repository root is loaded once on startup;
variables already present in the environment win.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

REPO_ROOT = Path(__file__).resolve().parents[2]

DEFAULT_WIKI_API_URL = "https://zh.wikipedia.org/w/api.php"
DEFAULT_REQUEST_TIMEOUT_S = 60.0


def load_env(path: Path | None = None) -> bool:
    return load_dotenv(path or REPO_ROOT / ".env", override=False)


def env_str(name: str, default: str = "") -> str:
    return os.environ.get(name, "").strip() or default


def env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def env_flag(name: str) -> bool:
    raw = os.environ.get(name, "").strip()
    return bool(raw) and raw != "0"


def wiki_api_url() -> str:
    return env_str("WIKI_API_URL", DEFAULT_WIKI_API_URL)


def request_timeout_s() -> float:
    value = env_float("REQUEST_TIMEOUT_S", DEFAULT_REQUEST_TIMEOUT_S)
    return value if value > 0 else DEFAULT_REQUEST_TIMEOUT_S


def files_path() -> str | None:
    return env_str("FILES_PATH") or None


def icg_bot_root() -> str | None:
    return env_str("ICG_BOT_ROOT") or None


def icg_bot_err_log() -> str | None:
    return env_str("ICG_BOT_ERR_LOG") or None
