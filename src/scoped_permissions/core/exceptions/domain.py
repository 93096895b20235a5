"""Domain-specific exceptions for scoped-permissions.

This module defines the exceptions raised by resolution, the stores and the
transaction strategies.
"""

from typing import Optional

from .base import ScopedPermissionsError


# Configuration Errors
class ConfigurationError(ScopedPermissionsError):
    """Raised when there's a configuration issue."""
    pass


# Validation Errors
class ValidationError(ScopedPermissionsError):
    """Raised when arguments to a mutation are invalid."""
    pass


# Data Integrity Errors
class DataIntegrityError(ScopedPermissionsError):
    """Base class for corrupted or concurrently deleted state."""
    pass


class MissingGroupError(DataIntegrityError):
    """Raised when a group referenced by name does not exist."""

    def __init__(self, group_name: str, message: Optional[str] = None):
        super().__init__(
            message or f"Group {group_name} does not exist",
            details={"group_name": group_name},
        )
        self.group_name = group_name


# Database Errors
class DatabaseError(ScopedPermissionsError):
    """Base class for store-related errors."""
    pass


class TransientStoreError(DatabaseError):
    """Raised on contention (deadlock, serialization failure). Safe to retry."""
    pass


class TransactionError(DatabaseError):
    """Raised when a transaction fails for good, e.g. retries are exhausted."""
    pass
