from __future__ import annotations

import pytest

from portfolio_consultant.core.config import get_settings
from portfolio_consultant.db.session import engine


def test_sqlite_engine_pragmas() -> None:
    settings = get_settings()
    if not settings.database_url.startswith("sqlite"):
        pytest.skip("SQLite-specific pragmas only apply for sqlite databases.")

    con = engine.raw_connection()
    try:
        cur = con.cursor()
        cur.execute("PRAGMA journal_mode;")
        mode = cur.fetchone()[0]
        cur.execute("PRAGMA foreign_keys;")
        fk = cur.fetchone()[0]
        cur.close()
    finally:
        con.close()

    assert str(mode).lower() == "wal"
    assert int(fk) == 1


def test_pytest_runs_use_separate_database_file() -> None:
    assert get_settings().database_url.endswith("portfolio_consultant_test.db")
