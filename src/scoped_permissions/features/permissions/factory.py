"""
Permission Service Factory

Factory functions for creating permission service instances with proper
dependency injection and configuration.
"""
from typing import Optional

from ...config.settings import ResolverSettings, get_settings
from ...database import (
    AsyncPGTransactionStrategy,
    DatabaseManager,
    RetryPolicy,
    RetryingTransactionStrategy,
)
from .entities import PermissionRegistry, PlayerRefresher, ResolvedPermissionCache
from .repositories import (
    AsyncPGEntryRepository,
    AsyncPGGroupRepository,
    InMemoryPermissionStore,
    RedisResolvedPermissionCache,
)
from .services import PermissionService


def create_permission_service(
    database: DatabaseManager,
    settings: Optional[ResolverSettings] = None,
    registry: Optional[PermissionRegistry] = None,
    refresher: Optional[PlayerRefresher] = None,
    cache: Optional[ResolvedPermissionCache] = None
) -> PermissionService:
    """
    Create a PostgreSQL-backed permission service.

    Writes run through a retrying transaction strategy configured from
    settings. When no cache is given and caching is active in settings, a
    Redis cache is created from the configured URL.

    Args:
        database: Database manager owning the asyncpg pool
        settings: Resolver settings, defaults to environment settings
        registry: Optional registry of child permission definitions
        refresher: Optional hook re-applying a player's permissions
        cache: Optional resolved permission cache

    Returns:
        Configured PermissionService instance
    """
    settings = settings or get_settings()

    entries = AsyncPGEntryRepository(database, schema=settings.db_schema)
    groups = AsyncPGGroupRepository(database, schema=settings.db_schema)
    transactions = RetryingTransactionStrategy(
        AsyncPGTransactionStrategy(database),
        RetryPolicy.from_settings(settings),
    )

    if cache is None and settings.cache_active:
        cache = RedisResolvedPermissionCache.from_settings(settings)

    return PermissionService(
        entry_store=entries,
        group_source=groups,
        membership_store=groups,
        group_store=groups,
        registry=registry,
        transactions=transactions,
        cache=cache,
        refresher=refresher,
        default_group=settings.default_group,
    )


def create_in_memory_permission_service(
    store: Optional[InMemoryPermissionStore] = None,
    registry: Optional[PermissionRegistry] = None,
    refresher: Optional[PlayerRefresher] = None,
    default_group: Optional[str] = None
) -> PermissionService:
    """
    Create a permission service over a single in-memory store.

    Returns:
        PermissionService whose four store roles share one InMemoryPermissionStore
    """
    store = store or InMemoryPermissionStore()
    return PermissionService(
        entry_store=store,
        group_source=store,
        membership_store=store,
        group_store=store,
        registry=registry,
        refresher=refresher,
        default_group=default_group,
    )
