"""Pytest configuration for shared package tests."""

from collections.abc import AsyncGenerator

import pytest

from audiobook_shared.db import DatabaseConnection


@pytest.fixture
def database_url(tmp_path) -> str:
    """URL of a throwaway SQLite database file."""
    return f"sqlite+aiosqlite:///{tmp_path / 'shared.db'}"


@pytest.fixture
async def db(database_url) -> AsyncGenerator[DatabaseConnection, None]:
    """Database connection with all tables created."""
    connection = DatabaseConnection(url=database_url)
    await connection.create_tables()
    yield connection
    await connection.close()
