"""Contract tests shared by every policy store backend."""

import pytest

from accessmatrix.core.errors import StaleVersion, UnknownMember
from accessmatrix.core.rbac import UserAccount
from accessmatrix.core.rbac.roles import Role
from accessmatrix.store import (
    SetKillSwitch,
    SetUserPermissions,
    SetUserRole,
    UpsertAccessOverride,
    UpsertSettingPermission,
)

from tests.factories import HOUSEHOLD_ID as H


class TestReads:
    """Test reading a household."""

    def test_unknown_household_is_empty(self, store):
        policy = store.snapshot("nowhere")
        assert policy.version == 0
        assert policy.overrides == []
        assert policy.users == []

    def test_provisioning_does_not_bump_version(self, store, household):
        assert store.get_version(H) == 0
        assert [u.id for u in store.get_users(H)] == ["kid", "kid2", "owner", "parent", "parent2"]

    def test_get_user(self, store, household):
        assert store.get_user(H, "parent").role == Role.ADMIN
        assert store.get_user(H, "stranger") is None
        assert store.get_user("elsewhere", "parent") is None


class TestApplyBatch:
    """Test compare-and-swap batches."""

    def test_batch_applies_every_mutation(self, store, household):
        version = store.apply_batch(H, 0, [
            UpsertAccessOverride("meals.cocktails", Role.MEMBER, True),
            UpsertSettingPermission("household.name", Role.ADMIN, True, False),
            SetKillSwitch("lists.todo", False),
            SetUserRole("kid", Role.ADMIN),
            SetUserPermissions("kid", {"can_manage_members": True}),
        ])

        policy = store.snapshot(H)
        assert version == 1
        assert policy.version == 1
        assert policy.overrides[0].feature_key == "meals.cocktails"
        assert policy.overrides[0].allowed is True
        assert policy.setting_permissions[0].view is True
        assert policy.setting_permissions[0].edit is False
        assert policy.kill_switch_for("lists.todo").enabled_globally is False
        kid = policy.get_user("kid")
        assert kid.role == Role.ADMIN
        assert kid.permissions["can_manage_members"] is True

    def test_upsert_replaces(self, store, household):
        store.apply_batch(H, 0, [UpsertAccessOverride("meals.cocktails", Role.MEMBER, True)])
        store.apply_batch(H, 1, [UpsertAccessOverride("meals.cocktails", Role.MEMBER, False)])

        overrides = store.get_overrides(H)
        assert len(overrides) == 1
        assert overrides[0].allowed is False

    def test_stale_version(self, store, household):
        store.apply_batch(H, 0, [SetKillSwitch("lists.todo", False)])
        with pytest.raises(StaleVersion) as exc_info:
            store.apply_batch(H, 0, [SetKillSwitch("lists.todo", True)])

        assert exc_info.value.expected_version == 0
        assert exc_info.value.current_version == 1
        assert store.get_kill_switches(H)[0].enabled_globally is False

    def test_failed_mutation_rolls_back_batch(self, store, household):
        with pytest.raises(UnknownMember):
            store.apply_batch(H, 0, [
                UpsertAccessOverride("meals.cocktails", Role.MEMBER, True),
                SetUserRole("stranger", Role.ADMIN),
            ])

        assert store.get_version(H) == 0
        assert store.get_overrides(H) == []

    def test_merge_and_replace_permissions(self, store, household):
        store.apply_batch(H, 0, [SetUserPermissions("kid", {"share_location": True})])
        kid = store.get_user(H, "kid")
        assert kid.permissions["share_location"] is True
        assert "receive_digest_emails" in kid.permissions

        store.apply_batch(H, 1, [SetUserPermissions("kid", {"share_location": False}, replace=True)])
        assert store.get_user(H, "kid").permissions == {"share_location": False}

    def test_first_write_creates_household(self, store):
        assert store.apply_batch("fresh", 0, [SetKillSwitch("lists.todo", False)]) == 1
        assert store.get_version("fresh") == 1

    def test_empty_batch_bumps_version(self, store, household):
        assert store.apply_batch(H, 0, []) == 1


class TestReset:
    """Test resetting a household."""

    def test_reset_clears_policy_but_keeps_members(self, store, household):
        store.apply_batch(H, 0, [
            UpsertAccessOverride("meals.cocktails", Role.MEMBER, True),
            UpsertSettingPermission("household.name", Role.ADMIN, True, False),
            SetKillSwitch("lists.todo", False),
            SetUserPermissions("kid", {"share_location": True}),
        ])

        assert store.reset_household(H) == 2
        policy = store.snapshot(H)
        assert policy.overrides == []
        assert policy.setting_permissions == []
        assert policy.kill_switches == []
        assert policy.get_user("kid").permissions["share_location"] is True

    def test_reset_isolated_per_household(self, store, household):
        store.create_household("other")
        store.apply_batch("other", 0, [SetKillSwitch("lists.todo", False)])
        store.reset_household(H)
        assert len(store.get_kill_switches("other")) == 1


class TestProvisioning:
    """Test household and member provisioning."""

    def test_create_household_is_idempotent(self, store, household):
        store.apply_batch(H, 0, [SetKillSwitch("lists.todo", False)])
        store.create_household(H)
        assert store.get_version(H) == 1

    def test_add_user_replaces_existing(self, store, household):
        store.add_user(UserAccount("kid", H, Role.ADMIN, {"can_export_data": True}, name="Grown Kid"))
        kid = store.get_user(H, "kid")
        assert kid.role == Role.ADMIN
        assert kid.name == "Grown Kid"
        assert kid.permissions == {"can_export_data": True}

    def test_user_in_two_households(self, store):
        store.add_user(UserAccount("alice", "h1", Role.ADMIN, name="Alice"))
        store.add_user(UserAccount("alice", "h2", Role.MEMBER, name="Alice"))

        assert store.get_user("h1", "alice").role == Role.ADMIN
        assert store.get_user("h2", "alice").role == Role.MEMBER
        assert [u.household_id for u in store.get_users("h1")] == ["h1"]

    def test_batch_touches_only_its_household(self, store):
        store.add_user(UserAccount("alice", "h1", Role.ADMIN))
        store.add_user(UserAccount("alice", "h2", Role.MEMBER))

        store.apply_batch("h2", 0, [SetUserRole("alice", Role.ADMIN)])
        store.apply_batch("h1", 0, [SetUserPermissions("alice", {"can_export_data": False})])

        assert store.get_user("h2", "alice").role == Role.ADMIN
        assert store.get_user("h1", "alice").permissions == {"can_export_data": False}
        assert store.get_user("h2", "alice").permissions == {}
