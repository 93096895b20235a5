"""AsyncPG-based entry repository implementation.

Concrete implementation of the EntryStore protocol. Queries run on the
connection bound by the current transaction when the caller opened one
through AsyncPGTransactionStrategy.
"""

from typing import List, Optional
import asyncpg
import logging

from ....core.exceptions import MissingGroupError
from ....database import DatabaseManager, translate_database_error
from ..entities import Entry
from .schema import validate_schema_name


logger = logging.getLogger(__name__)


class AsyncPGEntryRepository:
    """AsyncPG implementation of EntryStore protocol."""

    def __init__(self, database: DatabaseManager, schema: str = "permissions"):
        self.database = database
        self.schema = validate_schema_name(schema)

    def _build_entry_from_row(self, row: asyncpg.Record) -> Entry:
        """Build Entry entity from database row."""
        return Entry(
            subject_name=row['subject_name'],
            is_group=row['is_group'],
            region=row['region'],
            world=row['world'],
            permission=row['display_permission'],
            value=row['value']
        )

    async def get_entry(
        self,
        subject_name: str,
        is_group: bool,
        region: Optional[str],
        world: Optional[str],
        permission: str
    ) -> Optional[bool]:
        """Get the stored value at an exact key, or None."""
        query = f"""
            SELECT value FROM {self.schema}.entries
            WHERE subject_name = $1 AND is_group = $2
            AND region IS NOT DISTINCT FROM $3
            AND world IS NOT DISTINCT FROM $4
            AND permission = $5
        """
        try:
            async with self.database.acquire() as conn:
                return await conn.fetchval(
                    query, subject_name.lower(), is_group, _lower(region), _lower(world), permission.lower()
                )
        except asyncpg.PostgresError as e:
            logger.error(f"Failed to get entry {permission} for {subject_name}: {e}")
            raise translate_database_error(e) from e

    async def set_entry(
        self,
        subject_name: str,
        is_group: bool,
        region: Optional[str],
        world: Optional[str],
        permission: str,
        value: bool
    ) -> None:
        """Create or overwrite an entry. Raises MissingGroupError for unknown groups."""
        query = f"""
            INSERT INTO {self.schema}.entries
                (subject_name, is_group, region, world, permission, display_permission, value)
            VALUES ($1, $2, $3, $4, $5, $6, $7)
            ON CONFLICT (subject_name, is_group, (COALESCE(region, '')), (COALESCE(world, '')), permission)
            DO UPDATE SET value = EXCLUDED.value, display_permission = EXCLUDED.display_permission
        """
        try:
            async with self.database.acquire() as conn:
                if is_group:
                    exists = await conn.fetchval(
                        f"SELECT 1 FROM {self.schema}.groups WHERE name = $1", subject_name.lower()
                    )
                    if not exists:
                        raise MissingGroupError(subject_name.lower())

                await conn.execute(
                    query,
                    subject_name.lower(),
                    is_group,
                    _lower(region),
                    _lower(world),
                    permission.lower(),
                    permission,
                    value
                )
        except asyncpg.PostgresError as e:
            logger.error(f"Failed to set entry {permission} for {subject_name}: {e}")
            raise translate_database_error(e) from e

    async def unset_entry(
        self,
        subject_name: str,
        is_group: bool,
        region: Optional[str],
        world: Optional[str],
        permission: str
    ) -> bool:
        """Remove an entry. Returns True if one was removed."""
        query = f"""
            DELETE FROM {self.schema}.entries
            WHERE subject_name = $1 AND is_group = $2
            AND region IS NOT DISTINCT FROM $3
            AND world IS NOT DISTINCT FROM $4
            AND permission = $5
        """
        try:
            async with self.database.acquire() as conn:
                result = await conn.execute(
                    query, subject_name.lower(), is_group, _lower(region), _lower(world), permission.lower()
                )
                return result.split()[-1] == "1"  # Check if one row was deleted
        except asyncpg.PostgresError as e:
            logger.error(f"Failed to unset entry {permission} for {subject_name}: {e}")
            raise translate_database_error(e) from e

    async def list_entries(self, subject_name: str, is_group: bool) -> List[Entry]:
        """List every entry owned by a subject."""
        query = f"""
            SELECT subject_name, is_group, region, world, display_permission, value
            FROM {self.schema}.entries
            WHERE subject_name = $1 AND is_group = $2
            ORDER BY permission, region NULLS FIRST, world NULLS FIRST
        """
        try:
            async with self.database.acquire() as conn:
                rows = await conn.fetch(query, subject_name.lower(), is_group)
                return [self._build_entry_from_row(row) for row in rows]
        except asyncpg.PostgresError as e:
            logger.error(f"Failed to list entries for {subject_name}: {e}")
            raise translate_database_error(e) from e

    async def list_players(self) -> List[str]:
        """List every player with entries or memberships."""
        query = f"""
            SELECT subject_name AS player FROM {self.schema}.entries WHERE is_group = FALSE
            UNION
            SELECT player FROM {self.schema}.memberships
            ORDER BY player
        """
        try:
            async with self.database.acquire() as conn:
                rows = await conn.fetch(query)
                return [row['player'] for row in rows]
        except asyncpg.PostgresError as e:
            logger.error(f"Failed to list players: {e}")
            raise translate_database_error(e) from e

    async def delete_subject(self, subject_name: str, is_group: bool) -> bool:
        """Delete a subject and its entries. Returns True if it existed."""
        name = subject_name.lower()
        try:
            async with self.database.acquire() as conn:
                if is_group:
                    # Entries, memberships and parent links go with the group
                    await conn.execute(
                        f"DELETE FROM {self.schema}.entries WHERE subject_name = $1 AND is_group = TRUE", name
                    )
                    result = await conn.execute(f"DELETE FROM {self.schema}.groups WHERE name = $1", name)
                    return result.split()[-1] != "0"

                entries = await conn.execute(
                    f"DELETE FROM {self.schema}.entries WHERE subject_name = $1 AND is_group = FALSE", name
                )
                memberships = await conn.execute(
                    f"DELETE FROM {self.schema}.memberships WHERE player = $1", name
                )
                return entries.split()[-1] != "0" or memberships.split()[-1] != "0"
        except asyncpg.PostgresError as e:
            logger.error(f"Failed to delete {'group' if is_group else 'player'} {name}: {e}")
            raise translate_database_error(e) from e


def _lower(value: Optional[str]) -> Optional[str]:
    return value.lower() if value is not None else None
