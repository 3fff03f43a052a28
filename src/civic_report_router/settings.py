"""Environment and runtime settings."""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

DEFAULT_STORE_TIMEOUT_SECONDS = 15.0


def load_environment() -> None:
    load_dotenv(override=False)


def get_store_url() -> str:
    return os.getenv("REPORT_STORE_URL", "").strip().rstrip("/")


def get_store_token() -> str:
    return os.getenv("REPORT_STORE_TOKEN", "").strip()


def get_store_timeout_seconds() -> float:
    raw = os.getenv("STORE_TIMEOUT_SECONDS", "").strip()
    if not raw:
        return DEFAULT_STORE_TIMEOUT_SECONDS
    try:
        return float(raw)
    except ValueError as exc:
        raise RuntimeError(f"STORE_TIMEOUT_SECONDS must be a number, got {raw!r}") from exc


def get_lexicon_path() -> Path:
    raw = os.getenv("LEXICON_PATH", "").strip()
    return Path(raw) if raw else Path.cwd() / "config" / "lexicon.json"


def get_entities_path() -> Path:
    raw = os.getenv("ENTITIES_PATH", "").strip()
    return Path(raw) if raw else Path.cwd() / "config" / "entities.json"


def get_reports_db_path() -> Path:
    raw = os.getenv("REPORTS_DB_PATH", "").strip()
    return Path(raw) if raw else Path.home() / ".civic-report-router" / "reports.db"
