"""Database module for scoped-permissions."""

from .connection import DatabaseManager
from .transaction import (
    BackoffType,
    RetryPolicy,
    NullTransactionStrategy,
    AsyncPGTransactionStrategy,
    RetryingTransactionStrategy,
    translate_database_error,
)

__all__ = [
    "DatabaseManager",
    "BackoffType",
    "RetryPolicy",
    "NullTransactionStrategy",
    "AsyncPGTransactionStrategy",
    "RetryingTransactionStrategy",
    "translate_database_error",
]
