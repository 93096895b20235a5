"""Scoped-Permissions - region and world scoped permission resolution.

Resolves effective permission maps for players and groups from entries
scoped by region and world, a priority-ordered group inheritance graph and
expiring memberships, with pluggable stores, caching and transactions.
"""

# Initialize logging configuration on import
from .config.logging_config import setup_logging
setup_logging()

from .__version__ import __version__

from .config import (
    ResolverSettings,
    get_settings,
    Specificity,
    DatabaseSchemas,
)

from .core.exceptions import (
    # Base Exception
    ScopedPermissionsError,

    # Common Exceptions
    ConfigurationError,
    ValidationError,
    MissingGroupError,
    DatabaseError,
    TransientStoreError,
    TransactionError,

    # Utility Functions
    create_error_response,
)

from .database import (
    DatabaseManager,
    RetryPolicy,
    NullTransactionStrategy,
    AsyncPGTransactionStrategy,
    RetryingTransactionStrategy,
)

from .features.permissions import (
    ScopeKey,
    Entry,
    Group,
    Membership,
    ResolverResult,
    MutationResult,
    parse_scope_key,
    format_scope_key,
    GroupGraph,
    MembershipResolver,
    PermissionResolver,
    PermissionService,
    expand_children,
    InMemoryPermissionStore,
    StaticPermissionRegistry,
    AsyncPGEntryRepository,
    AsyncPGGroupRepository,
    RedisResolvedPermissionCache,
    create_permission_service,
    create_in_memory_permission_service,
)

__all__ = [
    "__version__",

    # Configuration
    "ResolverSettings",
    "get_settings",
    "Specificity",
    "DatabaseSchemas",

    # Exceptions
    "ScopedPermissionsError",
    "ConfigurationError",
    "ValidationError",
    "MissingGroupError",
    "DatabaseError",
    "TransientStoreError",
    "TransactionError",
    "create_error_response",

    # Database
    "DatabaseManager",
    "RetryPolicy",
    "NullTransactionStrategy",
    "AsyncPGTransactionStrategy",
    "RetryingTransactionStrategy",

    # Permissions
    "ScopeKey",
    "Entry",
    "Group",
    "Membership",
    "ResolverResult",
    "MutationResult",
    "parse_scope_key",
    "format_scope_key",
    "GroupGraph",
    "MembershipResolver",
    "PermissionResolver",
    "PermissionService",
    "expand_children",
    "InMemoryPermissionStore",
    "StaticPermissionRegistry",
    "AsyncPGEntryRepository",
    "AsyncPGGroupRepository",
    "RedisResolvedPermissionCache",
    "create_permission_service",
    "create_in_memory_permission_service",
]
