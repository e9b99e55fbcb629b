import sqlite3

import pytest

from src.adapters.sqlite.migrator import SQLiteMigrator


@pytest.fixture
def temp_db_path(tmp_path):
    return str(tmp_path / "test_db.sqlite")


def _tables(db_path: str) -> set[str]:
    conn = sqlite3.connect(db_path)
    try:
        rows = conn.execute("SELECT name FROM sqlite_master WHERE type='table'").fetchall()
    finally:
        conn.close()
    return {row[0] for row in rows}


def test_migrator_creates_tables(temp_db_path):
    applied = SQLiteMigrator(temp_db_path).run_migrations()

    assert applied == ["001_initial.sql"]
    assert {
        "_migrations",
        "traffic_events",
        "conversion_events",
        "search_events",
        "listings",
    } <= _tables(temp_db_path)


def test_migrator_idempotency(temp_db_path):
    migrator = SQLiteMigrator(temp_db_path)
    migrator.run_migrations()

    assert migrator.pending() == []
    assert migrator.run_migrations() == []

    conn = sqlite3.connect(temp_db_path)
    count = conn.execute("SELECT COUNT(*) FROM _migrations").fetchone()[0]
    conn.close()
    assert count == 1


def test_conversion_kind_constraint(temp_db_path):
    SQLiteMigrator(temp_db_path).run_migrations()
    conn = sqlite3.connect(temp_db_path)
    try:
        with pytest.raises(sqlite3.IntegrityError):
            conn.execute(
                "INSERT INTO conversion_events (timestamp, kind, listing_id, visitor_id) "
                "VALUES ('2026-01-01T00:00:00.000000+00:00', 'SHARE', 'l1', 'v1')"
            )
    finally:
        conn.close()


def test_broken_migration_reported(tmp_path, temp_db_path):
    migrations = tmp_path / "migrations"
    migrations.mkdir()
    (migrations / "001_bad.sql").write_text("CREATE TABLE oops (;\n")

    with pytest.raises(RuntimeError, match="001_bad.sql"):
        SQLiteMigrator(temp_db_path, str(migrations)).run_migrations()
