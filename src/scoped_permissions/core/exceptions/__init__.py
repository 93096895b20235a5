"""Exceptions module for scoped-permissions."""

from .base import (
    ScopedPermissionsError,
    create_error_response,
)

from .domain import (
    ConfigurationError,
    ValidationError,
    DataIntegrityError,
    MissingGroupError,
    DatabaseError,
    TransientStoreError,
    TransactionError,
)

__all__ = [
    "ScopedPermissionsError",
    "create_error_response",
    "ConfigurationError",
    "ValidationError",
    "DataIntegrityError",
    "MissingGroupError",
    "DatabaseError",
    "TransientStoreError",
    "TransactionError",
]
