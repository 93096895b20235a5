"""Tests for the permission service."""

import pytest
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

from scoped_permissions.core.exceptions import ConfigurationError, MissingGroupError, ValidationError
from scoped_permissions.features.permissions import (
    PermissionService,
    create_in_memory_permission_service,
)


@pytest.fixture
def refresher():
    mock = AsyncMock()
    mock.refresh_player = AsyncMock()
    return mock


@pytest.fixture
def cache():
    mock = AsyncMock()
    mock.get_permissions = AsyncMock(return_value=None)
    mock.set_permissions = AsyncMock()
    mock.invalidate_subject = AsyncMock()
    return mock


@pytest.fixture
def service(store, registry, refresher):
    return create_in_memory_permission_service(store, registry=registry, refresher=refresher)


class TestEntryOperations:
    """Test set/get/unset of scoped entries."""

    @pytest.mark.asyncio
    async def test_set_then_get_round_trip(self, service):
        result = await service.set_permission("Alice", False, "spawn/nether:Build", False)

        assert result
        assert await service.get_permission("alice", False, "SPAWN/NETHER:build") is False
        assert await service.get_permission("alice", False, "nether:build") is None

    @pytest.mark.asyncio
    async def test_unset_then_get_is_absent(self, service):
        await service.set_permission("alice", False, "build")

        result = await service.unset_permission("alice", False, "build")

        assert result.success
        assert await service.get_permission("alice", False, "build") is None

    @pytest.mark.asyncio
    async def test_missing_value_means_true(self, service):
        await service.set_permission("alice", False, "fly", None)

        assert await service.get_permission("alice", False, "fly") is True

    @pytest.mark.asyncio
    async def test_unset_missing_entry_fails(self, service):
        result = await service.unset_permission("alice", False, "build")

        assert not result
        assert "does not set build" in result.message

    @pytest.mark.asyncio
    async def test_set_on_missing_group_returns_failure(self, service):
        result = await service.set_permission("ghost", True, "build")

        assert result.success is False
        assert isinstance(result.error, MissingGroupError)
        assert result.error.group_name == "ghost"

    @pytest.mark.asyncio
    async def test_list_entries_is_sorted(self, service):
        await service.set_permission("alice", False, "nether:zap")
        await service.set_permission("alice", False, "build")
        await service.set_permission("alice", False, "spawn/build", False)

        entries = await service.list_entries("alice", False)

        assert [str(entry) for entry in entries] == ["build=true", "spawn/build=false", "nether:zap=true"]


class TestEffectivePermissions:
    """Test resolution through the service, with expansion and caching."""

    @pytest.mark.asyncio
    async def test_expands_children(self, service):
        await service.set_permission("alice", False, "perm1")

        assert await service.effective_permissions("alice", False, None) == {
            "perm1": True, "perm2": False, "perm3": True
        }
        assert await service.effective_permissions("alice", False, None, expand=False) == {"perm1": True}

    @pytest.mark.asyncio
    async def test_has_permission(self, service):
        await service.set_permission("alice", False, "creative:build")

        assert await service.has_permission("alice", "Build", "creative") is True
        assert await service.has_permission("alice", "build", "survival") is False
        assert await service.has_permission("alice", "build", "survival", default=True) is True

    @pytest.mark.asyncio
    async def test_dump_sorted_and_filtered(self, service):
        await service.set_permission("alice", False, "perm1")
        await service.set_permission("alice", False, "fly", False)

        assert await service.dump("alice", False, None) == [
            ("fly", False), ("perm1", True), ("perm2", False), ("perm3", True)
        ]
        assert await service.dump("alice", False, None, filter="PERM2") == [("perm2", False)]

    @pytest.mark.asyncio
    async def test_cache_miss_populates_cache(self, store, cache):
        service = PermissionService(store, store, store, store, cache=cache)
        await store.set_entry("alice", False, None, None, "fly", True)

        result = await service.effective_permissions("alice", False, "World", ["b", "A"])

        assert result == {"fly": True}
        cache.get_permissions.assert_awaited_once_with("alice", False, "World", ["a", "b"])
        cache.set_permissions.assert_awaited_once_with("alice", False, "World", ["a", "b"], {"fly": True})

    @pytest.mark.asyncio
    async def test_cache_hit_skips_store(self, cache):
        store = AsyncMock()
        cache.get_permissions.return_value = {"fly": True}
        service = PermissionService(store, store, store, cache=cache)

        assert await service.effective_permissions("alice", False, None) == {"fly": True}
        store.list_entries.assert_not_called()


class TestGroupOperations:
    """Test group maintenance and the refresh of affected players."""

    @pytest.mark.asyncio
    async def test_create_group(self, service, store):
        result = await service.create_group("VIP", 10)

        assert result
        assert (await store.get_group("vip")).priority == 10

    @pytest.mark.asyncio
    async def test_create_existing_group_fails(self, service):
        await service.create_group("vip")

        result = await service.create_group("Vip")

        assert not result
        assert "already exists" in result.message

    @pytest.mark.asyncio
    async def test_create_group_rejects_bad_priority(self, service):
        result = await service.create_group("vip", "high")

        assert not result
        assert isinstance(result.error, ValidationError)

    @pytest.mark.asyncio
    async def test_set_parents_rejects_self_parent(self, service):
        await service.create_group("mod")

        result = await service.set_parents("mod", ["Mod"])

        assert not result
        assert isinstance(result.error, ValidationError)

    @pytest.mark.asyncio
    async def test_set_parents_with_missing_parent_fails(self, service):
        await service.create_group("mod")

        result = await service.set_parents("mod", ["ghost"])

        assert not result
        assert result.error.group_name == "ghost"

    @pytest.mark.asyncio
    async def test_group_mutation_refreshes_members_of_descendants(self, service, refresher):
        await service.create_group("member")
        await service.create_group("mod")
        await service.set_parents("mod", ["member"])
        await service.add_member("alice", "member")
        await service.add_member("bob", "mod")
        await service.add_member("carol", "mod", datetime.now(timezone.utc) - timedelta(days=1))
        refresher.refresh_player.reset_mock()

        result = await service.set_permission("member", True, "kick")

        assert result.affected_players == {"alice", "bob", "carol"}
        refreshed = [call.args[0] for call in refresher.refresh_player.await_args_list]
        assert refreshed == ["alice", "bob", "carol"]

    @pytest.mark.asyncio
    async def test_player_mutation_refreshes_only_that_player(self, service, refresher):
        result = await service.set_permission("Alice", False, "fly")

        assert result.affected_players == {"alice"}
        refresher.refresh_player.assert_awaited_once_with("alice")

    @pytest.mark.asyncio
    async def test_set_group_priority(self, service, store):
        await service.create_group("vip")

        assert await service.set_group_priority("vip", 7)
        assert (await store.get_group("vip")).priority == 7
        assert not await service.set_group_priority("ghost", 7)

    @pytest.mark.asyncio
    async def test_membership_changes_resolution(self, service):
        await service.create_group("vip")
        await service.set_permission("vip", True, "fly")

        await service.add_member("alice", "vip")
        assert await service.has_permission("alice", "fly", None)

        assert await service.remove_member("alice", "vip")
        assert not await service.has_permission("alice", "fly", None)
        assert not await service.remove_member("alice", "vip")

    @pytest.mark.asyncio
    async def test_add_member_to_missing_group_fails(self, service):
        result = await service.add_member("alice", "ghost")

        assert not result
        assert isinstance(result.error, MissingGroupError)

    @pytest.mark.asyncio
    async def test_delete_group_refreshes_former_members(self, service, store, refresher):
        await service.create_group("member")
        await service.create_group("mod")
        await service.set_parents("mod", ["member"])
        await service.add_member("bob", "mod")
        refresher.refresh_player.reset_mock()

        result = await service.delete_group("member")

        assert result.affected_players == {"bob"}
        assert await store.get_group("member") is None
        assert (await store.get_group("mod")).parents == ()
        refresher.refresh_player.assert_awaited_once_with("bob")

    @pytest.mark.asyncio
    async def test_purge_player(self, service, store):
        await service.create_group("vip")
        await service.add_member("alice", "vip")
        await service.set_permission("alice", False, "fly")

        assert await service.purge("alice", False)
        assert await store.list_entries("alice", False) == []
        assert await store.list_memberships("alice") == []
        assert not await service.purge("alice", False)

    @pytest.mark.asyncio
    async def test_group_mutation_invalidates_group_caches(self, store, cache):
        service = PermissionService(store, store, store, store, cache=cache)
        await store.create_group("member")
        await store.create_group("mod")
        await store.set_parents("mod", ["member"])

        await service.set_permission("member", True, "kick")

        invalidated = [call.args for call in cache.invalidate_subject.await_args_list]
        assert ("member", True) in invalidated
        assert ("mod", True) in invalidated

    @pytest.mark.asyncio
    async def test_group_operations_need_group_store(self, store):
        service = PermissionService(store, store, store)

        with pytest.raises(ConfigurationError):
            await service.create_group("vip")


class DictCache:
    """Dictionary-backed ResolvedPermissionCache."""

    def __init__(self):
        self.maps = {}
        self.player_sweeps = 0

    async def get_permissions(self, subject_name, is_group, world, regions):
        return self.maps.get((subject_name.lower(), is_group, world, tuple(regions)))

    async def set_permissions(self, subject_name, is_group, world, regions, permissions):
        self.maps[(subject_name.lower(), is_group, world, tuple(regions))] = dict(permissions)

    async def invalidate_subject(self, subject_name, is_group):
        for key in [key for key in self.maps if key[:2] == (subject_name.lower(), is_group)]:
            del self.maps[key]

    async def invalidate_players(self):
        self.player_sweeps += 1
        for key in [key for key in self.maps if not key[1]]:
            del self.maps[key]


class TestDefaultGroupRefresh:
    """Test that default group changes reach players holding it implicitly."""

    @pytest.fixture
    def dict_cache(self):
        return DictCache()

    @pytest.fixture
    def default_service(self, store, dict_cache, refresher):
        return PermissionService(
            store, store, store, store, cache=dict_cache, refresher=refresher, default_group="Default"
        )

    @pytest.mark.asyncio
    async def test_default_group_change_reaches_cached_player(self, store, default_service, dict_cache):
        await store.create_group("default")
        await store.set_entry("default", True, None, None, "build", True)
        assert await default_service.has_permission("newbie", "build", None) is True
        assert ("newbie", False, None, ()) in dict_cache.maps

        result = await default_service.set_permission("default", True, "build", False)

        assert result.affected_players == set()
        assert dict_cache.player_sweeps == 1
        assert await default_service.has_permission("newbie", "build", None) is False

    @pytest.mark.asyncio
    async def test_ancestor_change_refreshes_known_players(self, store, default_service, dict_cache, refresher):
        await store.create_group("base")
        await store.create_group("default")
        await store.set_parents("default", ["base"])
        await store.set_entry("alice", False, None, None, "fly", True)
        assert await default_service.has_permission("newbie", "build", None) is False

        result = await default_service.set_permission("base", True, "build")

        assert result.affected_players == {"alice"}
        refresher.refresh_player.assert_awaited_once_with("alice")
        assert await default_service.has_permission("newbie", "build", None) is True

    @pytest.mark.asyncio
    async def test_purging_default_group_refreshes_players(self, store, default_service, dict_cache):
        await store.create_group("default")
        await store.set_entry("default", True, None, None, "build", True)
        assert await default_service.has_permission("newbie", "build", None) is True

        result = await default_service.purge("default", True)

        assert result.success
        assert dict_cache.player_sweeps == 1
        assert await default_service.has_permission("newbie", "build", None) is False

    @pytest.mark.asyncio
    async def test_unrelated_group_change_keeps_player_caches(self, store, default_service, dict_cache):
        await store.create_group("default")
        await store.create_group("vip")
        await default_service.has_permission("newbie", "build", None)

        await default_service.set_permission("vip", True, "build")

        assert dict_cache.player_sweeps == 0
        assert ("newbie", False, None, ()) in dict_cache.maps
