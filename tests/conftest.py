# ABOUTME: Shared pytest fixtures for storage and pipeline tests
# ABOUTME: Provides an in-memory SQLite database manager and a file-backed one for concurrent sessions

from __future__ import annotations

import pytest_asyncio
from sqlalchemy.pool import StaticPool

from mining_intel.persistence.manager import DatabaseManager


@pytest_asyncio.fixture
async def temp_db() -> DatabaseManager:
    """Provide an in-memory database manager for async tests."""
    db = DatabaseManager(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await db.create_tables()
    yield db
    await db.close()


@pytest_asyncio.fixture
async def file_db(tmp_path) -> DatabaseManager:
    """Provide a database on disk so several companies can hold sessions at once."""
    db = DatabaseManager(f"sqlite+aiosqlite:///{tmp_path / 'pipeline.db'}")
    await db.create_tables()
    yield db
    await db.close()
