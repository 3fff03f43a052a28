from pathlib import Path
from unittest.mock import patch

import pytest

from civic_report_router.settings import (
    DEFAULT_STORE_TIMEOUT_SECONDS,
    get_lexicon_path,
    get_reports_db_path,
    get_store_timeout_seconds,
    get_store_url,
)


def test_store_url_is_trimmed() -> None:
    with patch.dict("os.environ", {"REPORT_STORE_URL": " https://api.example.org/v1/ "}):
        assert get_store_url() == "https://api.example.org/v1"


def test_timeout_default_and_override() -> None:
    with patch.dict("os.environ", {"STORE_TIMEOUT_SECONDS": ""}):
        assert get_store_timeout_seconds() == DEFAULT_STORE_TIMEOUT_SECONDS
    with patch.dict("os.environ", {"STORE_TIMEOUT_SECONDS": "2.5"}):
        assert get_store_timeout_seconds() == 2.5


def test_invalid_timeout() -> None:
    with patch.dict("os.environ", {"STORE_TIMEOUT_SECONDS": "soon"}):
        with pytest.raises(RuntimeError):
            get_store_timeout_seconds()


def test_paths_from_env(tmp_path: Path) -> None:
    with patch.dict(
        "os.environ",
        {"LEXICON_PATH": str(tmp_path / "lex.json"), "REPORTS_DB_PATH": str(tmp_path / "r.db")},
    ):
        assert get_lexicon_path() == tmp_path / "lex.json"
        assert get_reports_db_path() == tmp_path / "r.db"
