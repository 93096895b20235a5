"""Transaction strategies for running units of work against a store.

* ``NullTransactionStrategy`` runs work directly (in-memory stores).
* ``AsyncPGTransactionStrategy`` runs work inside one asyncpg transaction.
* ``RetryingTransactionStrategy`` wraps another strategy and retries writes
  that fail with a transient store error. Reads are never retried.
"""

import asyncio
import logging
import random
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, TypeVar

import asyncpg

from ..core.exceptions import DatabaseError, TransientStoreError, TransactionError
from .connection import DatabaseManager


logger = logging.getLogger(__name__)

T = TypeVar("T")


class BackoffType(Enum):
    """Types of backoff strategies."""

    EXPONENTIAL = "exponential"
    LINEAR = "linear"
    FIXED = "fixed"


@dataclass
class RetryPolicy:
    """Configuration for write retry behavior."""

    max_retries: int = 3
    backoff_type: BackoffType = BackoffType.EXPONENTIAL
    initial_delay_ms: int = 50
    max_delay_ms: int = 2000
    jitter: bool = True

    def __post_init__(self):
        """Validate retry policy parameters."""
        if self.max_retries < 0:
            raise ValueError("max_retries must be non-negative")
        if self.initial_delay_ms < 0:
            raise ValueError("initial_delay_ms must be non-negative")
        if self.max_delay_ms < self.initial_delay_ms:
            raise ValueError("max_delay_ms must be >= initial_delay_ms")

    def calculate_delay(self, attempt: int) -> int:
        """
        Calculate delay for a retry attempt.

        Args:
            attempt: Attempt number (1-based)

        Returns:
            Delay in milliseconds
        """
        if attempt <= 0:
            return 0

        if self.backoff_type == BackoffType.EXPONENTIAL:
            delay = self.initial_delay_ms * (2 ** (attempt - 1))
        elif self.backoff_type == BackoffType.LINEAR:
            delay = self.initial_delay_ms * attempt
        else:  # FIXED
            delay = self.initial_delay_ms

        delay = min(delay, self.max_delay_ms)

        # Jitter keeps contending writers from retrying in lockstep
        if self.jitter and delay > 0:
            jitter_range = int(delay * 0.1)
            delay += random.randint(-jitter_range, jitter_range)
            delay = max(0, delay)

        return delay

    def should_retry(self, attempt: int) -> bool:
        """Determine if another attempt is allowed after ``attempt`` failures."""
        return attempt <= self.max_retries

    @classmethod
    def from_settings(cls, settings) -> "RetryPolicy":
        return cls(
            max_retries=settings.transaction_max_retries,
            initial_delay_ms=settings.transaction_initial_delay_ms,
            max_delay_ms=max(settings.transaction_max_delay_ms, settings.transaction_initial_delay_ms),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert retry policy to dictionary."""
        return {
            "max_retries": self.max_retries,
            "backoff_type": self.backoff_type.value,
            "initial_delay_ms": self.initial_delay_ms,
            "max_delay_ms": self.max_delay_ms,
            "jitter": self.jitter,
        }


def translate_database_error(error: Exception) -> DatabaseError:
    """Map an asyncpg error onto the library's store error hierarchy."""
    if isinstance(error, (asyncpg.exceptions.DeadlockDetectedError, asyncpg.exceptions.SerializationError)):
        return TransientStoreError(f"Transient store failure: {error}", details={"sqlstate": getattr(error, "sqlstate", None)})
    return DatabaseError(f"Store operation failed: {error}", details={"sqlstate": getattr(error, "sqlstate", None)})


class NullTransactionStrategy:
    """Runs work directly; for stores that are atomic per call."""

    async def execute(self, work: Callable[[], Awaitable[T]], read_only: bool = False) -> T:
        return await work()


class AsyncPGTransactionStrategy:
    """Runs work inside one asyncpg transaction bound to the current task."""

    def __init__(self, database: DatabaseManager):
        self.database = database

    async def execute(self, work: Callable[[], Awaitable[T]], read_only: bool = False) -> T:
        try:
            async with self.database.transaction(read_only=read_only):
                return await work()
        except asyncpg.PostgresError as e:
            # Commit-time failures surface here rather than inside a repository
            raise translate_database_error(e) from e


class RetryingTransactionStrategy:
    """Retries writes on TransientStoreError according to a RetryPolicy."""

    def __init__(self, inner, retry_policy: RetryPolicy = None):
        self.inner = inner
        self.retry_policy = retry_policy or RetryPolicy()

    async def execute(self, work: Callable[[], Awaitable[T]], read_only: bool = False) -> T:
        if read_only:
            return await self.inner.execute(work, read_only=True)

        attempt = 0
        while True:
            try:
                return await self.inner.execute(work, read_only=False)
            except TransientStoreError as e:
                attempt += 1
                if not self.retry_policy.should_retry(attempt):
                    logger.error(f"Giving up after {attempt} attempts: {e}")
                    raise TransactionError(
                        f"Transaction failed after {attempt} attempts",
                        details={"attempts": attempt},
                    ) from e

                delay_ms = self.retry_policy.calculate_delay(attempt)
                logger.warning(f"Transient store failure (attempt {attempt}), retrying in {delay_ms}ms: {e}")
                await asyncio.sleep(delay_ms / 1000.0)
