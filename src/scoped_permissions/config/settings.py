"""
Settings for scoped-permissions.

Values are read from environment variables prefixed with
``SCOPED_PERMISSIONS_`` and from an optional ``.env`` file.
"""
import re
from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import CacheTTL, DatabaseSchemas, DefaultValues


_IDENTIFIER = re.compile(r"^[a-z_][a-z0-9_]{0,62}$")


class ResolverSettings(BaseSettings):
    """Runtime configuration for stores, cache and transactions."""

    model_config = SettingsConfigDict(
        env_prefix="SCOPED_PERMISSIONS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database Configuration
    database_url: Optional[str] = Field(default=None)
    db_schema: str = Field(default=DatabaseSchemas.DEFAULT)
    db_pool_min_size: int = Field(default=2, ge=1)
    db_pool_max_size: int = Field(default=10, ge=1)
    db_command_timeout: int = Field(default=60, ge=1)

    # Redis Cache Configuration
    redis_url: Optional[str] = Field(default=None)
    cache_enabled: bool = Field(default=False)
    cache_ttl_permissions: int = Field(default=CacheTTL.PERMISSIONS_DEFAULT, ge=1)
    cache_key_prefix: str = Field(default="scoped_perms")

    # Resolution
    default_group: Optional[str] = Field(default=DefaultValues.DEFAULT_GROUP)

    # Transaction retry policy (writes only)
    transaction_max_retries: int = Field(default=3, ge=0)
    transaction_initial_delay_ms: int = Field(default=50, ge=0)
    transaction_max_delay_ms: int = Field(default=2000, ge=0)

    @field_validator("db_schema")
    @classmethod
    def validate_schema(cls, v: str) -> str:
        v = v.strip().lower()
        if not _IDENTIFIER.match(v):
            raise ValueError(f"Invalid schema name: {v}")
        return v

    @field_validator("default_group")
    @classmethod
    def normalize_default_group(cls, v: Optional[str]) -> Optional[str]:
        # Empty string disables the implicit default membership
        if v is None or not v.strip():
            return None
        return v.strip().lower()

    @property
    def cache_active(self) -> bool:
        return self.cache_enabled and bool(self.redis_url)


@lru_cache()
def get_settings() -> ResolverSettings:
    """Get cached settings instance."""
    return ResolverSettings()


def is_valid_identifier(name: str) -> bool:
    """Check whether a name is safe to interpolate as a SQL identifier."""
    return bool(_IDENTIFIER.match(name))
