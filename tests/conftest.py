import pytest_asyncio

from tabacount.core.db import Database


@pytest_asyncio.fixture
async def db():
    """Migrated in-memory database with the default catalog."""
    database = Database(":memory:")
    await database.connect()
    await database.migrate()
    try:
        yield database
    finally:
        await database.close()
