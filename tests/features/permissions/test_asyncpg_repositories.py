"""Tests for the asyncpg repositories against a mocked connection."""

import pytest
from datetime import datetime, timezone

import asyncpg

from scoped_permissions.core.exceptions import (
    ConfigurationError, DatabaseError, MissingGroupError, TransientStoreError
)
from scoped_permissions.features.permissions.repositories import (
    AsyncPGEntryRepository,
    AsyncPGGroupRepository,
    create_schema,
)


class TestAsyncPGEntryRepository:
    """Test entry repository operations."""

    @pytest.fixture
    def repository(self, mock_database):
        return AsyncPGEntryRepository(mock_database, schema="perms")

    def test_invalid_schema_rejected(self, mock_database):
        with pytest.raises(ConfigurationError):
            AsyncPGEntryRepository(mock_database, schema="perms; DROP TABLE x")

    @pytest.mark.asyncio
    async def test_get_entry(self, repository, mock_connection):
        mock_connection.fetchval.return_value = True

        result = await repository.get_entry("Alice", False, "Spawn", None, "Build")

        assert result is True
        query, *args = mock_connection.fetchval.call_args[0]
        assert "perms.entries" in query
        assert "IS NOT DISTINCT FROM" in query
        assert args == ["alice", False, "spawn", None, "build"]

    @pytest.mark.asyncio
    async def test_set_entry_keeps_display_case(self, repository, mock_connection):
        await repository.set_entry("alice", False, None, "Nether", "Build.Place", True)

        query, *args = mock_connection.execute.call_args[0]
        assert "ON CONFLICT" in query
        assert args == ["alice", False, None, "nether", "build.place", "Build.Place", True]

    @pytest.mark.asyncio
    async def test_set_entry_on_missing_group(self, repository, mock_connection):
        mock_connection.fetchval.return_value = None

        with pytest.raises(MissingGroupError) as exc_info:
            await repository.set_entry("Ghost", True, None, None, "fly", True)

        assert exc_info.value.group_name == "ghost"
        mock_connection.execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_unset_entry(self, repository, mock_connection):
        mock_connection.execute.return_value = "DELETE 1"
        assert await repository.unset_entry("alice", False, None, None, "fly") is True

        mock_connection.execute.return_value = "DELETE 0"
        assert await repository.unset_entry("alice", False, None, None, "fly") is False

    @pytest.mark.asyncio
    async def test_list_entries(self, repository, mock_connection):
        mock_connection.fetch.return_value = [
            {
                'subject_name': 'vip',
                'is_group': True,
                'region': None,
                'world': 'creative',
                'display_permission': 'Build',
                'value': True,
            },
        ]

        entries = await repository.list_entries("VIP", True)

        assert len(entries) == 1
        assert entries[0].permission == "Build"
        assert str(entries[0]) == "creative:Build=true"

    @pytest.mark.asyncio
    async def test_list_players(self, repository, mock_connection):
        mock_connection.fetch.return_value = [{'player': 'alice'}, {'player': 'bob'}]

        assert await repository.list_players() == ["alice", "bob"]
        query = mock_connection.fetch.call_args.args[0]
        assert "perms.entries" in query
        assert "perms.memberships" in query

    @pytest.mark.asyncio
    async def test_delete_player(self, repository, mock_connection):
        mock_connection.execute.side_effect = ["DELETE 2", "DELETE 0"]

        assert await repository.delete_subject("alice", False) is True
        assert mock_connection.execute.call_count == 2

    @pytest.mark.asyncio
    async def test_deadlock_translated_to_transient_error(self, repository, mock_connection):
        mock_connection.execute.side_effect = asyncpg.exceptions.DeadlockDetectedError("deadlock detected")

        with pytest.raises(TransientStoreError):
            await repository.unset_entry("alice", False, None, None, "fly")

    @pytest.mark.asyncio
    async def test_other_errors_translated(self, repository, mock_connection):
        mock_connection.fetch.side_effect = asyncpg.exceptions.UndefinedTableError("relation does not exist")

        with pytest.raises(DatabaseError):
            await repository.list_entries("alice", False)


class TestAsyncPGGroupRepository:
    """Test group and membership repository operations."""

    @pytest.fixture
    def repository(self, mock_database):
        return AsyncPGGroupRepository(mock_database, schema="perms")

    @pytest.mark.asyncio
    async def test_get_group(self, repository, mock_connection):
        mock_connection.fetchrow.return_value = {'name': 'mod', 'priority': 10, 'parents': ['member', 'guest']}

        group = await repository.get_group("MOD")

        assert group.name == "mod"
        assert group.priority == 10
        assert group.parents == ("member", "guest")
        assert mock_connection.fetchrow.call_args[0][1] == "mod"

    @pytest.mark.asyncio
    async def test_get_missing_group(self, repository, mock_connection):
        mock_connection.fetchrow.return_value = None

        assert await repository.get_group("ghost") is None

    @pytest.mark.asyncio
    async def test_get_parents(self, repository, mock_connection):
        mock_connection.fetch.return_value = [{'parent_name': 'member'}, {'parent_name': 'guest'}]

        assert await repository.get_parents("mod") == ["member", "guest"]

    @pytest.mark.asyncio
    async def test_list_memberships(self, repository, mock_connection):
        expiration = datetime(2030, 1, 1, tzinfo=timezone.utc)
        mock_connection.fetch.return_value = [
            {'player': 'alice', 'group_name': 'vip', 'expiration': expiration},
            {'player': 'alice', 'group_name': 'member', 'expiration': None},
        ]

        memberships = await repository.list_memberships("Alice")

        assert [m.group_name for m in memberships] == ["vip", "member"]
        assert memberships[0].expiration == expiration

    @pytest.mark.asyncio
    async def test_set_priority_on_missing_group(self, repository, mock_connection):
        mock_connection.execute.return_value = "UPDATE 0"

        with pytest.raises(MissingGroupError):
            await repository.set_priority("ghost", 5)

    @pytest.mark.asyncio
    async def test_set_parents(self, repository, mock_connection):
        mock_connection.fetch.return_value = [{'name': 'mod'}, {'name': 'member'}, {'name': 'guest'}]

        await repository.set_parents("Mod", ["Member", "guest", "member"])

        rows = mock_connection.executemany.call_args[0][1]
        assert rows == [("mod", "member", 0), ("mod", "guest", 1)]

    @pytest.mark.asyncio
    async def test_set_parents_with_unknown_parent(self, repository, mock_connection):
        mock_connection.fetch.return_value = [{'name': 'mod'}]

        with pytest.raises(MissingGroupError) as exc_info:
            await repository.set_parents("mod", ["ghost"])

        assert exc_info.value.group_name == "ghost"
        mock_connection.executemany.assert_not_called()

    @pytest.mark.asyncio
    async def test_add_member_to_missing_group(self, repository, mock_connection):
        mock_connection.fetchval.return_value = None

        with pytest.raises(MissingGroupError):
            await repository.add_member("alice", "ghost")

    @pytest.mark.asyncio
    async def test_add_member_normalizes_expiration(self, repository, mock_connection):
        mock_connection.fetchval.return_value = 1

        await repository.add_member("Alice", "VIP", datetime(2030, 1, 1))

        args = mock_connection.execute.call_args[0][1:]
        assert args == ("alice", "vip", datetime(2030, 1, 1, tzinfo=timezone.utc))

    @pytest.mark.asyncio
    async def test_remove_member(self, repository, mock_connection):
        mock_connection.execute.return_value = "DELETE 1"

        assert await repository.remove_member("alice", "vip") is True


class TestCreateSchema:

    @pytest.mark.asyncio
    async def test_create_schema(self, mock_database, mock_connection):
        await create_schema(mock_database, "perms")

        ddl = mock_connection.execute.call_args[0][0]
        assert "CREATE SCHEMA IF NOT EXISTS perms" in ddl
        assert "perms.memberships" in ddl

    @pytest.mark.asyncio
    async def test_create_schema_rejects_bad_name(self, mock_database):
        with pytest.raises(ConfigurationError):
            await create_schema(mock_database, "Bad-Name")
