"""Table definitions used by the asyncpg repositories."""

import logging

from ....config.settings import is_valid_identifier
from ....core.exceptions import ConfigurationError


logger = logging.getLogger(__name__)


SCHEMA_DDL = """
CREATE SCHEMA IF NOT EXISTS {schema};

CREATE TABLE IF NOT EXISTS {schema}.groups (
    name        TEXT PRIMARY KEY,
    priority    INTEGER NOT NULL DEFAULT 0
);

CREATE TABLE IF NOT EXISTS {schema}.group_parents (
    group_name  TEXT NOT NULL REFERENCES {schema}.groups(name) ON DELETE CASCADE,
    parent_name TEXT NOT NULL REFERENCES {schema}.groups(name) ON DELETE CASCADE,
    position    INTEGER NOT NULL DEFAULT 0,
    PRIMARY KEY (group_name, parent_name)
);

CREATE TABLE IF NOT EXISTS {schema}.entries (
    id                 BIGSERIAL PRIMARY KEY,
    subject_name       TEXT NOT NULL,
    is_group           BOOLEAN NOT NULL,
    region             TEXT,
    world              TEXT,
    permission         TEXT NOT NULL,
    display_permission TEXT NOT NULL,
    value              BOOLEAN NOT NULL
);

CREATE UNIQUE INDEX IF NOT EXISTS entries_scope_key_idx ON {schema}.entries
    (subject_name, is_group, (COALESCE(region, '')), (COALESCE(world, '')), permission);

CREATE TABLE IF NOT EXISTS {schema}.memberships (
    player      TEXT NOT NULL,
    group_name  TEXT NOT NULL REFERENCES {schema}.groups(name) ON DELETE CASCADE,
    expiration  TIMESTAMPTZ,
    PRIMARY KEY (player, group_name)
);

CREATE INDEX IF NOT EXISTS memberships_group_idx ON {schema}.memberships (group_name);
"""


def validate_schema_name(schema: str) -> str:
    """Validate schema name to prevent SQL injection."""
    if not is_valid_identifier(schema):
        raise ConfigurationError(f"Invalid schema name: {schema}")
    return schema


async def create_schema(database, schema: str) -> None:
    """Create the permission tables if they do not exist yet."""
    safe_schema = validate_schema_name(schema)
    async with database.acquire() as conn:
        await conn.execute(SCHEMA_DDL.format(schema=safe_schema))
    logger.info(f"Permission tables ready in schema {safe_schema}")
