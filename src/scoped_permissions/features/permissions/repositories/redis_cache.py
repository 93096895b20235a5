"""
Redis cache implementation for resolved permission maps.

Cache failures are non-fatal: every operation logs a warning and lets the
caller fall back to resolving against the store.
"""
import json
import logging
import re
from typing import Dict, Optional, Sequence

import redis.asyncio as redis
from redis.exceptions import RedisError

from ....config.constants import CacheKeys, CacheTTL, SubjectKind


logger = logging.getLogger(__name__)

_GLOB_SPECIAL = re.compile(r"([*?\[\]\\])")


def _escape_component(value: str) -> str:
    """Escape the key separators so distinct inputs never share a key."""
    return value.replace("\\", "\\\\").replace(":", "\\:").replace(",", "\\,")


def _escape_glob(value: str) -> str:
    """Escape Redis glob metacharacters for use in a SCAN pattern."""
    return _GLOB_SPECIAL.sub(r"\\\1", value)


class RedisResolvedPermissionCache:
    """
    Redis implementation of ResolvedPermissionCache.

    Features:
    - One key per (subject, world, active region set)
    - Automatic TTL management
    - Subject-wide invalidation by key pattern
    """

    def __init__(
        self,
        redis_client: redis.Redis,
        key_prefix: str = "scoped_perms",
        ttl: int = CacheTTL.PERMISSIONS_DEFAULT
    ):
        self._redis = redis_client
        self._key_prefix = key_prefix
        self._ttl = ttl

    @classmethod
    def from_settings(cls, settings) -> "RedisResolvedPermissionCache":
        client = redis.from_url(settings.redis_url)
        return cls(client, key_prefix=settings.cache_key_prefix, ttl=settings.cache_ttl_permissions)

    def build_key(
        self,
        subject_name: str,
        is_group: bool,
        world: Optional[str],
        regions: Sequence[str]
    ) -> str:
        """Build the cache key; region order never matters."""
        return CacheKeys.RESOLVED_PERMISSIONS.format(
            prefix=self._key_prefix,
            kind=SubjectKind.of(is_group),
            subject=_escape_component(subject_name.lower()),
            world=_escape_component((world or "").lower()),
            regions=",".join(sorted({_escape_component(region.lower()) for region in regions})),
        )

    async def get_permissions(
        self,
        subject_name: str,
        is_group: bool,
        world: Optional[str],
        regions: Sequence[str]
    ) -> Optional[Dict[str, bool]]:
        """Get cached resolved permissions."""
        try:
            result = await self._redis.get(self.build_key(subject_name, is_group, world, regions))
            if result is None:
                return None
            if isinstance(result, bytes):
                result = result.decode()
            return {key: bool(value) for key, value in json.loads(result).items()}
        except (RedisError, ValueError) as e:
            logger.warning(f"Failed to get resolved permissions from cache: {e}")
            return None

    async def set_permissions(
        self,
        subject_name: str,
        is_group: bool,
        world: Optional[str],
        regions: Sequence[str],
        permissions: Dict[str, bool]
    ) -> None:
        """Cache resolved permissions."""
        try:
            await self._redis.setex(
                self.build_key(subject_name, is_group, world, regions),
                self._ttl,
                json.dumps(permissions, sort_keys=True),
            )
        except RedisError as e:
            logger.warning(f"Failed to cache resolved permissions: {e}")

    async def invalidate_subject(self, subject_name: str, is_group: bool) -> None:
        """Invalidate every cached map of a subject."""
        pattern = CacheKeys.SUBJECT_PATTERN.format(
            prefix=_escape_glob(self._key_prefix),
            kind=SubjectKind.of(is_group),
            subject=_escape_glob(_escape_component(subject_name.lower())),
        )
        await self._delete_matching(pattern, subject_name)

    async def invalidate_players(self) -> None:
        """Invalidate the cached maps of every player."""
        pattern = CacheKeys.KIND_PATTERN.format(
            prefix=_escape_glob(self._key_prefix),
            kind=SubjectKind.PLAYER,
        )
        await self._delete_matching(pattern, "all players")

    async def _delete_matching(self, pattern: str, label: str) -> None:
        try:
            keys = [key async for key in self._redis.scan_iter(match=pattern)]
            if keys:
                await self._redis.delete(*keys)
        except RedisError as e:
            logger.warning(f"Failed to invalidate cached permissions for {label}: {e}")

    async def close(self) -> None:
        await self._redis.aclose()
