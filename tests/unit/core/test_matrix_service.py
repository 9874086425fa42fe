"""Tests for the household access matrix service.

Every test runs against both the in-memory and the SQL store.
"""

import pytest

from accessmatrix.core.errors import StaleVersion, UnknownRole, ValidationFailed
from accessmatrix.core.matrix import AccessUpdate, SettingPermissionUpdate
from accessmatrix.core.rbac import AccessResolver, default_catalog
from accessmatrix.core.rbac.roles import Role

from tests.factories import HOUSEHOLD_ID as H


class TestFeatureMatrixRead:
    """Test reading the feature matrix."""

    def test_fresh_household_matches_defaults(self, matrix_service):
        matrix = matrix_service.get_feature_access_matrix(H)
        assert matrix.version == 0
        assert matrix.access == AccessResolver(default_catalog()).build_feature_matrix()

    def test_unknown_household_reads_as_defaults(self, matrix_service):
        matrix = matrix_service.get_feature_access_matrix("elsewhere")
        assert matrix.version == 0
        assert matrix.allowed("core.dashboard", "member")

    def test_check_access(self, matrix_service):
        assert matrix_service.check_access(H, "member", "core.dashboard")
        assert not matrix_service.check_access(H, "member", "meals.cocktails")

    def test_check_access_unknown_role(self, matrix_service):
        with pytest.raises(UnknownRole):
            matrix_service.check_access(H, "owner", "core.dashboard")


class TestBatchUpdateAccess:
    """Test validated, atomic feature updates."""

    def test_apply_batch(self, matrix_service):
        version = matrix_service.batch_update_access(H, 0, [
            AccessUpdate("meals.cocktails", "member", True),
            AccessUpdate("admin.billing_management", "admin", False),
        ], Role.SUPER_ADMIN)

        matrix = matrix_service.get_feature_access_matrix(H)
        assert version == 1
        assert matrix.version == 1
        assert matrix.allowed("meals.cocktails", "member")
        assert not matrix.allowed("admin.billing_management", "admin")

    def test_empty_batch_is_noop(self, matrix_service):
        assert matrix_service.batch_update_access(H, 0, [], "super_admin") == 0
        assert matrix_service.get_feature_access_matrix(H).version == 0

    def test_admin_can_edit_member_access(self, matrix_service):
        version = matrix_service.batch_update_access(
            H, 0, [AccessUpdate("meals.cocktails", "member", True)], "admin"
        )
        assert version == 1

    def test_admin_cannot_edit_admin_access(self, matrix_service):
        with pytest.raises(ValidationFailed) as exc_info:
            matrix_service.batch_update_access(
                H, 0, [AccessUpdate("meals.cocktails", "admin", False)], "admin"
            )
        assert exc_info.value.codes == ["rank_violation"]

    def test_member_cannot_write(self, matrix_service):
        with pytest.raises(ValidationFailed) as exc_info:
            matrix_service.batch_update_access(
                H, 0, [AccessUpdate("meals.cocktails", "member", True)], "member"
            )
        assert exc_info.value.codes == ["rank_violation"]

    def test_ceiling_violation_rejected(self, matrix_service):
        """Granting a member a feature that requires admin is rejected outright."""
        with pytest.raises(ValidationFailed) as exc_info:
            matrix_service.batch_update_access(
                H, 0, [AccessUpdate("financial.reports", "member", True)], "super_admin"
            )

        error = exc_info.value.errors[0]
        assert error.code == "ceiling_violation"
        assert error.feature_key == "financial.reports"
        assert error.role == "member"
        matrix = matrix_service.get_feature_access_matrix(H)
        assert matrix.version == 0
        assert not matrix.allowed("financial.reports", "member")

    def test_denying_below_ceiling_is_allowed(self, matrix_service):
        version = matrix_service.batch_update_access(
            H, 0, [AccessUpdate("financial.reports", "member", False)], "super_admin"
        )
        assert version == 1

    def test_one_invalid_item_rejects_whole_batch(self, matrix_service):
        before = matrix_service.get_feature_access_matrix(H)
        with pytest.raises(ValidationFailed):
            matrix_service.batch_update_access(H, 0, [
                AccessUpdate("meals.cocktails", "member", True),
                AccessUpdate("lists.shared", "member", True),
                AccessUpdate("ai.assistant", "member", True),
                AccessUpdate("no.such_feature", "member", True),
            ], "super_admin")

        after = matrix_service.get_feature_access_matrix(H)
        assert after.version == before.version
        assert after.access == before.access

    def test_every_violation_reported(self, matrix_service):
        with pytest.raises(ValidationFailed) as exc_info:
            matrix_service.batch_update_access(H, 0, [
                AccessUpdate("no.such_feature", "member", True),
                AccessUpdate("core.dashboard", "owner", True),
                AccessUpdate("core.dashboard", "super_admin", False),
                AccessUpdate("admin.user_management", "member", True),
            ], "super_admin")

        assert sorted(exc_info.value.codes) == [
            "ceiling_violation",
            "immutable_super_admin",
            "unknown_feature",
            "unknown_role",
        ]

    def test_stale_version_rejected(self, matrix_service):
        """Two writers read version 0; the second loses and the first's write survives."""
        matrix_service.batch_update_access(
            H, 0, [AccessUpdate("meals.cocktails", "member", True)], "super_admin"
        )
        with pytest.raises(StaleVersion) as exc_info:
            matrix_service.batch_update_access(
                H, 0, [AccessUpdate("meals.cocktails", "member", False)], "super_admin"
            )

        assert exc_info.value.current_version == 1
        matrix = matrix_service.get_feature_access_matrix(H)
        assert matrix.allowed("meals.cocktails", "member")
        assert matrix.version == 1

    def test_rewriting_override_replaces_it(self, matrix_service):
        matrix_service.batch_update_access(
            H, 0, [AccessUpdate("meals.cocktails", "member", True)], "super_admin"
        )
        matrix_service.batch_update_access(
            H, 1, [AccessUpdate("meals.cocktails", "member", False)], "super_admin"
        )
        assert not matrix_service.check_access(H, "member", "meals.cocktails")


class TestResetToDefaults:
    """Test resetting a household."""

    def test_reset_restores_default_matrix(self, matrix_service):
        matrix_service.batch_update_access(H, 0, [
            AccessUpdate("meals.cocktails", "member", True),
            AccessUpdate("core.dashboard", "admin", False),
        ], "super_admin")
        matrix_service.set_kill_switch(H, 1, "lists.todo", False, "super_admin")
        matrix_service.batch_update_setting_permissions(
            H, 2, [SettingPermissionUpdate("household.name", "admin", True, False)], "super_admin"
        )

        version = matrix_service.reset_to_defaults(H, "super_admin")

        resolver = AccessResolver(default_catalog())
        assert version == 4
        assert matrix_service.get_feature_access_matrix(H).access == resolver.build_feature_matrix()
        assert matrix_service.get_setting_permission_matrix(H).access == resolver.build_setting_matrix()

    def test_reset_requires_super_admin(self, matrix_service):
        with pytest.raises(ValidationFailed) as exc_info:
            matrix_service.reset_to_defaults(H, "admin")
        assert exc_info.value.codes == ["privilege_escalation"]


class TestKillSwitches:
    """Test kill switches through the service."""

    def test_kill_switch_beats_override(self, matrix_service):
        matrix_service.batch_update_access(
            H, 0, [AccessUpdate("financial.budget_tracking", "member", True)], "super_admin"
        )
        matrix_service.set_kill_switch(H, 1, "financial.budget_tracking", False, "super_admin")

        assert not matrix_service.check_access(H, "member", "financial.budget_tracking")
        assert matrix_service.check_access(H, "super_admin", "financial.budget_tracking")
        matrix = matrix_service.get_feature_access_matrix(H)
        assert matrix.kill_switches == {"financial.budget_tracking": False}

    def test_reenabling_restores_access(self, matrix_service):
        matrix_service.set_kill_switch(H, 0, "core.dashboard", False, "super_admin")
        matrix_service.set_kill_switch(H, 1, "core.dashboard", True, "super_admin")
        assert matrix_service.check_access(H, "member", "core.dashboard")

    def test_kill_switch_requires_super_admin(self, matrix_service):
        with pytest.raises(ValidationFailed) as exc_info:
            matrix_service.set_kill_switch(H, 0, "core.dashboard", False, "admin")
        assert exc_info.value.codes == ["privilege_escalation"]

    def test_kill_switch_unknown_feature(self, matrix_service):
        with pytest.raises(ValidationFailed) as exc_info:
            matrix_service.set_kill_switch(H, 0, "no.such_feature", False, "super_admin")
        assert exc_info.value.codes == ["unknown_feature"]

    def test_accessible_features(self, matrix_service):
        matrix_service.set_kill_switch(H, 0, "lists.todo", False, "super_admin")
        features = matrix_service.accessible_features(H, "member")
        assert "core.dashboard" in features
        assert "lists.todo" not in features


class TestSettingPermissions:
    """Test setting permission batches."""

    def test_apply_setting_batch(self, matrix_service):
        version = matrix_service.batch_update_setting_permissions(H, 0, [
            SettingPermissionUpdate("household.timezone", "admin", True, False),
            SettingPermissionUpdate("financial.currency", "member", True, True),
        ], "super_admin")

        matrix = matrix_service.get_setting_permission_matrix(H)
        assert version == 1
        assert matrix.get("household.timezone", "admin").edit is False
        assert matrix.get("financial.currency", "member").edit is True

    def test_edit_without_view_rejected(self, matrix_service):
        with pytest.raises(ValidationFailed) as exc_info:
            matrix_service.batch_update_setting_permissions(
                H, 0, [SettingPermissionUpdate("profile.display_name", "member", False, True)], "admin"
            )
        assert exc_info.value.codes == ["inconsistent_permission"]
        assert matrix_service.get_setting_permission_matrix(H).version == 0

    def test_setting_ceiling(self, matrix_service):
        with pytest.raises(ValidationFailed) as exc_info:
            matrix_service.batch_update_setting_permissions(
                H, 0, [SettingPermissionUpdate("household.name", "member", True, False)], "super_admin"
            )
        assert exc_info.value.codes == ["ceiling_violation"]

    def test_unknown_setting(self, matrix_service):
        with pytest.raises(ValidationFailed) as exc_info:
            matrix_service.batch_update_setting_permissions(
                H, 0, [SettingPermissionUpdate("core.dashboard", "member", True, True)], "super_admin"
            )
        assert exc_info.value.codes == ["unknown_setting"]

    def test_empty_setting_batch(self, matrix_service):
        assert matrix_service.batch_update_setting_permissions(H, 0, [], "member") == 0
