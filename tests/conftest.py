"""
Shared fixtures: a fresh SQLite store per test.
"""
import pytest
import pytest_asyncio

from ingestion.database_source import DatabaseItemSource
from services.database import Database
from services.ledger import Ledger
from services.work_queue import WorkQueue


@pytest_asyncio.fixture
async def db(tmp_path):
    database = Database(str(tmp_path / "bots.db"))
    await database.init_tables()
    await DatabaseItemSource(database).init_tables()
    return database


@pytest.fixture
def ledger(db):
    return Ledger(db)


@pytest.fixture
def queue(db, ledger):
    return WorkQueue(db, ledger)


@pytest.fixture
def source(db):
    return DatabaseItemSource(db)
