import pytest

from src.adapters.memory_store import InMemoryEventStore, InMemoryListingRepo
from tests.fakes import NOW, FakeTimePort


@pytest.fixture
def time_port() -> FakeTimePort:
    """Clock pinned to NOW."""
    return FakeTimePort(NOW)


@pytest.fixture
def event_store() -> InMemoryEventStore:
    """Empty in-memory event log."""
    return InMemoryEventStore()


@pytest.fixture
def listing_repo() -> InMemoryListingRepo:
    """Empty in-memory listing catalog."""
    return InMemoryListingRepo()


@pytest.fixture
def db_path(tmp_path) -> str:
    """Migrated SQLite database in a temp dir."""
    from src.adapters.sqlite.migrator import SQLiteMigrator

    path = str(tmp_path / "trendboard.db")
    SQLiteMigrator(path).run_migrations()
    return path
