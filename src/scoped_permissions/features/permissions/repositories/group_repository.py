"""AsyncPG-based group and membership repository implementation.

Implements the GroupGraphSource, MembershipStore and GroupStore protocols
over the ``groups``, ``group_parents`` and ``memberships`` tables.
"""

from datetime import datetime
from typing import List, Optional, Sequence
import asyncpg
import logging

from ....core.exceptions import MissingGroupError
from ....database import DatabaseManager, translate_database_error
from ....utils.datetime import ensure_utc
from ..entities import Group, Membership
from .schema import validate_schema_name


logger = logging.getLogger(__name__)


class AsyncPGGroupRepository:
    """AsyncPG implementation of the group graph and membership protocols."""

    def __init__(self, database: DatabaseManager, schema: str = "permissions"):
        self.database = database
        self.schema = validate_schema_name(schema)

    def _build_group_from_row(self, row: asyncpg.Record) -> Group:
        """Build Group entity from database row."""
        return Group(
            name=row['name'],
            priority=row['priority'],
            parents=tuple(row['parents'] or ())
        )

    def _build_membership_from_row(self, row: asyncpg.Record) -> Membership:
        """Build Membership entity from database row."""
        return Membership(
            player=row['player'],
            group_name=row['group_name'],
            expiration=row['expiration']
        )

    def _group_query(self, where: str = "") -> str:
        return f"""
            SELECT g.name, g.priority,
                   COALESCE(
                       ARRAY_AGG(gp.parent_name ORDER BY gp.position, gp.parent_name)
                       FILTER (WHERE gp.parent_name IS NOT NULL),
                       ARRAY[]::TEXT[]
                   ) AS parents
            FROM {self.schema}.groups g
            LEFT JOIN {self.schema}.group_parents gp ON gp.group_name = g.name
            {where}
            GROUP BY g.name, g.priority
            ORDER BY g.name
        """

    # Group graph source

    async def get_group(self, name: str) -> Optional[Group]:
        """Get a group by name."""
        try:
            async with self.database.acquire() as conn:
                row = await conn.fetchrow(self._group_query("WHERE g.name = $1"), name.lower())
                return self._build_group_from_row(row) if row else None
        except asyncpg.PostgresError as e:
            logger.error(f"Failed to get group {name}: {e}")
            raise translate_database_error(e) from e

    async def get_parents(self, name: str) -> List[str]:
        """Get the ordered parent names of a group."""
        query = f"""
            SELECT parent_name FROM {self.schema}.group_parents
            WHERE group_name = $1
            ORDER BY position, parent_name
        """
        try:
            async with self.database.acquire() as conn:
                rows = await conn.fetch(query, name.lower())
                return [row['parent_name'] for row in rows]
        except asyncpg.PostgresError as e:
            logger.error(f"Failed to get parents of {name}: {e}")
            raise translate_database_error(e) from e

    async def list_groups(self) -> List[Group]:
        """List every group."""
        try:
            async with self.database.acquire() as conn:
                rows = await conn.fetch(self._group_query())
                return [self._build_group_from_row(row) for row in rows]
        except asyncpg.PostgresError as e:
            logger.error(f"Failed to list groups: {e}")
            raise translate_database_error(e) from e

    # Membership store

    async def list_memberships(self, player: str) -> List[Membership]:
        """List a player's memberships, expired ones included."""
        query = f"""
            SELECT player, group_name, expiration FROM {self.schema}.memberships
            WHERE player = $1
            ORDER BY group_name
        """
        try:
            async with self.database.acquire() as conn:
                rows = await conn.fetch(query, player.lower())
                return [self._build_membership_from_row(row) for row in rows]
        except asyncpg.PostgresError as e:
            logger.error(f"Failed to list memberships of {player}: {e}")
            raise translate_database_error(e) from e

    async def list_members(self, group_name: str) -> List[Membership]:
        """List the memberships of a group, expired ones included."""
        query = f"""
            SELECT player, group_name, expiration FROM {self.schema}.memberships
            WHERE group_name = $1
            ORDER BY player
        """
        try:
            async with self.database.acquire() as conn:
                rows = await conn.fetch(query, group_name.lower())
                return [self._build_membership_from_row(row) for row in rows]
        except asyncpg.PostgresError as e:
            logger.error(f"Failed to list members of {group_name}: {e}")
            raise translate_database_error(e) from e

    # Group maintenance

    async def create_group(self, name: str, priority: int = 0) -> Group:
        """Create a group, or return the existing one."""
        group = Group(name=name, priority=priority)
        query = f"""
            INSERT INTO {self.schema}.groups (name, priority) VALUES ($1, $2)
            ON CONFLICT (name) DO NOTHING
        """
        try:
            async with self.database.acquire() as conn:
                await conn.execute(query, group.name, group.priority)
                row = await conn.fetchrow(self._group_query("WHERE g.name = $1"), group.name)
                return self._build_group_from_row(row)
        except asyncpg.PostgresError as e:
            logger.error(f"Failed to create group {name}: {e}")
            raise translate_database_error(e) from e

    async def set_priority(self, name: str, priority: int) -> None:
        """Change a group's priority. Raises MissingGroupError."""
        query = f"UPDATE {self.schema}.groups SET priority = $2 WHERE name = $1"
        try:
            async with self.database.acquire() as conn:
                result = await conn.execute(query, name.lower(), priority)
                if result.split()[-1] == "0":
                    raise MissingGroupError(name.lower())
        except asyncpg.PostgresError as e:
            logger.error(f"Failed to set priority of {name}: {e}")
            raise translate_database_error(e) from e

    async def set_parents(self, name: str, parents: Sequence[str]) -> None:
        """Replace a group's parents. Raises MissingGroupError for any unknown name."""
        group_name = name.lower()
        parent_names = list(Group(name=group_name, parents=tuple(parents)).parents)
        try:
            async with self.database.acquire() as conn:
                known = await conn.fetch(
                    f"SELECT name FROM {self.schema}.groups WHERE name = ANY($1::TEXT[])",
                    [group_name] + parent_names
                )
                known_names = {row['name'] for row in known}
                for required in [group_name] + parent_names:
                    if required not in known_names:
                        raise MissingGroupError(required)

                await conn.execute(f"DELETE FROM {self.schema}.group_parents WHERE group_name = $1", group_name)
                if parent_names:
                    await conn.executemany(
                        f"INSERT INTO {self.schema}.group_parents (group_name, parent_name, position) VALUES ($1, $2, $3)",
                        [(group_name, parent, position) for position, parent in enumerate(parent_names)]
                    )
        except asyncpg.PostgresError as e:
            logger.error(f"Failed to set parents of {name}: {e}")
            raise translate_database_error(e) from e

    async def delete_group(self, name: str) -> bool:
        """Delete a group with its entries, memberships and parent links."""
        group_name = name.lower()
        try:
            async with self.database.acquire() as conn:
                await conn.execute(
                    f"DELETE FROM {self.schema}.entries WHERE subject_name = $1 AND is_group = TRUE", group_name
                )
                result = await conn.execute(f"DELETE FROM {self.schema}.groups WHERE name = $1", group_name)
                return result.split()[-1] != "0"
        except asyncpg.PostgresError as e:
            logger.error(f"Failed to delete group {name}: {e}")
            raise translate_database_error(e) from e

    async def add_member(self, player: str, group_name: str, expiration: Optional[datetime] = None) -> None:
        """Add or refresh a membership. Raises MissingGroupError."""
        query = f"""
            INSERT INTO {self.schema}.memberships (player, group_name, expiration)
            VALUES ($1, $2, $3)
            ON CONFLICT (player, group_name) DO UPDATE SET expiration = EXCLUDED.expiration
        """
        try:
            async with self.database.acquire() as conn:
                exists = await conn.fetchval(
                    f"SELECT 1 FROM {self.schema}.groups WHERE name = $1", group_name.lower()
                )
                if not exists:
                    raise MissingGroupError(group_name.lower())
                await conn.execute(query, player.lower(), group_name.lower(), ensure_utc(expiration))
        except asyncpg.PostgresError as e:
            logger.error(f"Failed to add {player} to {group_name}: {e}")
            raise translate_database_error(e) from e

    async def remove_member(self, player: str, group_name: str) -> bool:
        """Remove a membership. Returns True if one was removed."""
        query = f"DELETE FROM {self.schema}.memberships WHERE player = $1 AND group_name = $2"
        try:
            async with self.database.acquire() as conn:
                result = await conn.execute(query, player.lower(), group_name.lower())
                return result.split()[-1] == "1"
        except asyncpg.PostgresError as e:
            logger.error(f"Failed to remove {player} from {group_name}: {e}")
            raise translate_database_error(e) from e
