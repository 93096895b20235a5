"""Pytest configuration and fixtures for scoped-permissions tests."""

import pytest
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

from scoped_permissions.features.permissions.repositories import (
    InMemoryPermissionStore,
    StaticPermissionRegistry,
)


@pytest.fixture
def store():
    """Empty in-memory store playing every store role."""
    return InMemoryPermissionStore()


@pytest.fixture
def registry():
    """Registry with a two-level inverting chain and a cycle."""
    return StaticPermissionRegistry({
        "perm1": {"perm2": -1},
        "perm2": {"perm3": -1},
        "perma": {"permb": 1},
        "permb": {"perma": 1},
    })


@pytest.fixture
def now():
    """Fixed reference instant for expiration checks."""
    return datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def mock_connection():
    """Mock asyncpg connection."""
    conn = AsyncMock()
    conn.fetchrow = AsyncMock()
    conn.fetch = AsyncMock(return_value=[])
    conn.fetchval = AsyncMock()
    conn.execute = AsyncMock(return_value="INSERT 0 1")
    conn.executemany = AsyncMock()
    return conn


@pytest.fixture
def mock_database(mock_connection):
    """Mock DatabaseManager whose acquire() yields mock_connection."""
    database = MagicMock()

    @asynccontextmanager
    async def acquire():
        yield mock_connection

    database.acquire = acquire
    return database


@pytest.fixture
def mock_redis():
    """Mock async Redis client."""
    client = AsyncMock()
    client.get = AsyncMock(return_value=None)
    client.setex = AsyncMock()
    client.delete = AsyncMock()
    client.aclose = AsyncMock()
    return client


@pytest.fixture
def seed_groups(store):
    """Create groups from {name: (priority, [parents])}, parents wired after creation."""
    async def seed(groups):
        for name, (priority, _) in groups.items():
            await store.create_group(name, priority)
        for name, (_, parents) in groups.items():
            if parents:
                await store.set_parents(name, parents)
        return store
    return seed
