"""Tests for permission service factories."""

from unittest.mock import MagicMock

from scoped_permissions.config import ResolverSettings
from scoped_permissions.database import RetryingTransactionStrategy
from scoped_permissions.features.permissions import (
    AsyncPGEntryRepository,
    AsyncPGGroupRepository,
    InMemoryPermissionStore,
    RedisResolvedPermissionCache,
    create_in_memory_permission_service,
    create_permission_service,
)


class TestCreatePermissionService:

    def test_wires_asyncpg_repositories(self, mock_database):
        settings = ResolverSettings(_env_file=None, db_schema="perms", default_group="guest", transaction_max_retries=1)

        service = create_permission_service(mock_database, settings=settings)

        assert isinstance(service.entry_store, AsyncPGEntryRepository)
        assert isinstance(service.group_store, AsyncPGGroupRepository)
        assert service.group_source is service.membership_store is service.group_store
        assert service.entry_store.schema == "perms"
        assert isinstance(service.transactions, RetryingTransactionStrategy)
        assert service.transactions.retry_policy.max_retries == 1
        assert service.resolver.memberships.default_group == "guest"
        assert service.cache is None

    def test_creates_redis_cache_when_enabled(self, mock_database):
        settings = ResolverSettings(
            _env_file=None, cache_enabled=True, redis_url="redis://localhost:6379/0", cache_key_prefix="p"
        )

        service = create_permission_service(mock_database, settings=settings)

        assert isinstance(service.cache, RedisResolvedPermissionCache)
        assert service.cache.build_key("a", False, None, []) == "p:resolved:p:a::"

    def test_explicit_cache_wins(self, mock_database):
        cache = MagicMock()
        settings = ResolverSettings(_env_file=None, cache_enabled=True, redis_url="redis://localhost")

        assert create_permission_service(mock_database, settings=settings, cache=cache).cache is cache


class TestCreateInMemoryPermissionService:

    def test_single_store_plays_every_role(self):
        service = create_in_memory_permission_service(default_group="Default")

        assert isinstance(service.entry_store, InMemoryPermissionStore)
        assert service.entry_store is service.group_source is service.membership_store is service.group_store
        assert service.resolver.memberships.default_group == "default"
