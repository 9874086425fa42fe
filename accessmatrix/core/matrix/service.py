"""Household feature and setting matrix management.

Reads resolve the full (feature, role) grid for a household at one version.
Writes validate every item up front and hand the store a single batch, so a
rejected request leaves the household exactly as it was.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple, Union

from ...common.logger import get_logger
from ...store.base import (
    PolicyStore,
    SetKillSwitch,
    UpsertAccessOverride,
    UpsertSettingPermission,
)
from ...store.retry import RetryStrategy
from ..errors import (
    AccessControlError,
    CeilingViolation,
    ImmutableSuperAdmin,
    InconsistentPermission,
    PrivilegeEscalation,
    RankViolation,
    UnknownFeature,
    UnknownRole,
    UnknownSetting,
    ValidationFailed,
)
from ..rbac.catalog import FeatureCatalog, default_catalog
from ..rbac.resolver import AccessResolver, SettingAccess, parse_role
from ..rbac.roles import Role

logger = get_logger("matrix_service")


@dataclass(frozen=True)
class AccessUpdate:
    """One requested change to the feature matrix."""

    feature_key: str
    role: Union[str, Role]
    allowed: bool


@dataclass(frozen=True)
class SettingPermissionUpdate:
    """One requested change to the setting matrix."""

    setting_key: str
    role: Union[str, Role]
    view: bool
    edit: bool


@dataclass
class FeatureMatrix:
    """Resolved feature access for every (feature, role) pair."""

    household_id: str
    version: int
    access: Dict[Tuple[str, Role], bool] = field(default_factory=dict)
    kill_switches: Dict[str, bool] = field(default_factory=dict)

    def allowed(self, feature_key: str, role: Union[str, Role]) -> bool:
        return self.access[(feature_key, Role.parse(role))]


@dataclass
class SettingMatrix:
    """Resolved view/edit access for every (setting, role) pair."""

    household_id: str
    version: int
    access: Dict[Tuple[str, Role], SettingAccess] = field(default_factory=dict)

    def get(self, setting_key: str, role: Union[str, Role]) -> SettingAccess:
        return self.access[(setting_key, Role.parse(role))]


class PermissionMatrixService:
    """
    Service for reading and editing a household's access matrix.

    Handles:
    - Resolving the feature and setting matrices at a single version
    - Validated, all-or-nothing batch updates under optimistic concurrency
    - Resetting a household to the built-in defaults
    - Kill switches
    """

    def __init__(
        self,
        store: PolicyStore,
        catalog: Optional[FeatureCatalog] = None,
        retry: Optional[RetryStrategy] = None,
    ):
        """
        Initialize the matrix service.

        Args:
            store: Policy store backend
            catalog: Feature catalog (built-in catalog when omitted)
            retry: Retry strategy for transient store failures
        """
        self.store = store
        self.catalog = catalog or default_catalog()
        self.resolver = AccessResolver(self.catalog)
        self.retry = retry or RetryStrategy()

    # Reads

    def get_feature_access_matrix(self, household_id: str) -> FeatureMatrix:
        """Resolve every (feature, role) pair for a household."""
        policy = self.retry.call(
            lambda: self.store.snapshot(household_id), "read feature matrix"
        )
        return FeatureMatrix(
            household_id=household_id,
            version=policy.version,
            access=self.resolver.build_feature_matrix(policy.overrides, policy.kill_switches),
            kill_switches={s.feature_key: s.enabled_globally for s in policy.kill_switches},
        )

    def get_setting_permission_matrix(self, household_id: str) -> SettingMatrix:
        """Resolve view/edit for every (setting, role) pair for a household."""
        policy = self.retry.call(
            lambda: self.store.snapshot(household_id), "read setting matrix"
        )
        return SettingMatrix(
            household_id=household_id,
            version=policy.version,
            access=self.resolver.build_setting_matrix(policy.setting_permissions),
        )

    def check_access(self, household_id: str, role: Union[str, Role], feature_key: str) -> bool:
        """Resolve a single feature for a role in a household.

        Raises:
            UnknownRole: If the role is invalid
            UnknownFeature: If the feature is not in the catalog
        """
        role = parse_role(role)
        if role == Role.SUPER_ADMIN:
            return True
        policy = self.retry.call(lambda: self.store.snapshot(household_id), "check access")
        return self.resolver.resolve_access(
            role, feature_key, policy.overrides, policy.kill_switch_for(feature_key)
        )

    def accessible_features(self, household_id: str, role: Union[str, Role]) -> List[str]:
        """Feature keys a role can use in a household."""
        role = parse_role(role)
        policy = self.retry.call(lambda: self.store.snapshot(household_id), "list features")
        return self.resolver.accessible_features(role, policy.overrides, policy.kill_switches)

    # Writes

    def batch_update_access(
        self,
        household_id: str,
        expected_version: int,
        updates: Iterable[AccessUpdate],
        actor_role: Union[str, Role],
    ) -> int:
        """
        Apply feature overrides atomically.

        Args:
            household_id: Household to edit
            expected_version: Version the caller last read
            updates: Requested overrides
            actor_role: Role of the user making the change

        Returns:
            The new household version (unchanged for an empty batch)

        Raises:
            ValidationFailed: If any item is invalid; nothing is applied
            StaleVersion: If the household moved past ``expected_version``
        """
        updates = list(updates)
        if not updates:
            return self.retry.call(lambda: self.store.get_version(household_id), "read version")

        actor = self._actor_role(actor_role)
        errors: List[AccessControlError] = []
        mutations = []

        for update in updates:
            item_errors, role = self._check_target(update.role, actor, feature_key=update.feature_key)
            try:
                definition = self.catalog.lookup(update.feature_key)
            except UnknownFeature as e:
                item_errors.append(e)
                definition = None

            if definition is not None and role is not None and update.allowed and not definition.allows(role):
                item_errors.append(CeilingViolation(
                    f"{update.feature_key} requires {definition.minimum_role.value}; "
                    f"cannot grant it to {role.value}",
                    feature_key=update.feature_key,
                    role=role.value,
                ))

            if item_errors:
                errors.extend(item_errors)
            else:
                mutations.append(UpsertAccessOverride(update.feature_key, role, bool(update.allowed)))

        self._raise_if_invalid(household_id, "feature access", errors)

        version = self.retry.call(
            lambda: self.store.apply_batch(household_id, expected_version, mutations),
            "update feature access",
        )
        logger.info(
            f"Updated {len(mutations)} feature override(s) for household {household_id} -> v{version}"
        )
        return version

    def batch_update_setting_permissions(
        self,
        household_id: str,
        expected_version: int,
        updates: Iterable[SettingPermissionUpdate],
        actor_role: Union[str, Role],
    ) -> int:
        """
        Apply setting permissions atomically.

        An item granting edit without view is rejected, never corrected.

        Raises:
            ValidationFailed: If any item is invalid; nothing is applied
            StaleVersion: If the household moved past ``expected_version``
        """
        updates = list(updates)
        if not updates:
            return self.retry.call(lambda: self.store.get_version(household_id), "read version")

        actor = self._actor_role(actor_role)
        errors: List[AccessControlError] = []
        mutations = []

        for update in updates:
            item_errors, role = self._check_target(update.role, actor, setting_key=update.setting_key)
            try:
                definition = self.catalog.lookup_setting(update.setting_key)
            except UnknownSetting as e:
                item_errors.append(e)
                definition = None

            if update.edit and not update.view:
                item_errors.append(InconsistentPermission(
                    f"{update.setting_key}: edit cannot be granted without view",
                    setting_key=update.setting_key,
                    role=role.value if role else str(update.role),
                ))

            if (
                definition is not None
                and role is not None
                and (update.view or update.edit)
                and not definition.allows(role)
            ):
                item_errors.append(CeilingViolation(
                    f"{update.setting_key} requires {definition.minimum_role.value}; "
                    f"cannot grant it to {role.value}",
                    setting_key=update.setting_key,
                    role=role.value,
                ))

            if item_errors:
                errors.extend(item_errors)
            else:
                mutations.append(UpsertSettingPermission(
                    update.setting_key, role, bool(update.view), bool(update.edit)
                ))

        self._raise_if_invalid(household_id, "setting permissions", errors)

        version = self.retry.call(
            lambda: self.store.apply_batch(household_id, expected_version, mutations),
            "update setting permissions",
        )
        logger.info(
            f"Updated {len(mutations)} setting permission(s) for household {household_id} -> v{version}"
        )
        return version

    def set_kill_switch(
        self,
        household_id: str,
        expected_version: int,
        feature_key: str,
        enabled: bool,
        actor_role: Union[str, Role],
    ) -> int:
        """
        Enable or disable a feature for every non-super-admin role.

        Raises:
            ValidationFailed: If the actor is not super_admin or the feature is unknown
            StaleVersion: If the household moved past ``expected_version``
        """
        errors: List[AccessControlError] = []
        actor = self._actor_role(actor_role)
        if actor != Role.SUPER_ADMIN:
            errors.append(PrivilegeEscalation(
                "Only super_admin can change kill switches",
                feature_key=feature_key,
                role=actor.value,
            ))
        if feature_key not in self.catalog:
            errors.append(UnknownFeature(feature_key))
        self._raise_if_invalid(household_id, "kill switch", errors)

        version = self.retry.call(
            lambda: self.store.apply_batch(
                household_id, expected_version, [SetKillSwitch(feature_key, bool(enabled))]
            ),
            "set kill switch",
        )
        state = "enabled" if enabled else "disabled"
        logger.info(f"Kill switch {feature_key} {state} for household {household_id} -> v{version}")
        return version

    def reset_to_defaults(self, household_id: str, actor_role: Union[str, Role]) -> int:
        """
        Remove every override, setting permission and kill switch.

        Raises:
            ValidationFailed: If the actor is not super_admin
        """
        actor = self._actor_role(actor_role)
        if actor != Role.SUPER_ADMIN:
            self._raise_if_invalid(household_id, "reset", [
                PrivilegeEscalation("Only super_admin can reset to defaults", role=actor.value)
            ])

        version = self.retry.call(
            lambda: self.store.reset_household(household_id), "reset household"
        )
        logger.info(f"Reset household {household_id} to defaults -> v{version}")
        return version

    # Helpers

    @staticmethod
    def _actor_role(actor_role: Union[str, Role]) -> Role:
        try:
            return parse_role(actor_role)
        except UnknownRole as e:
            raise ValidationFailed([e]) from None

    @staticmethod
    def _check_target(
        target: Union[str, Role],
        actor: Role,
        **keys,
    ) -> Tuple[List[AccessControlError], Optional[Role]]:
        """Validate the role an item targets against the acting role."""
        errors: List[AccessControlError] = []
        try:
            role = parse_role(target)
        except UnknownRole:
            errors.append(UnknownRole(str(target), **keys))
            return errors, None

        if role == Role.SUPER_ADMIN:
            errors.append(ImmutableSuperAdmin(
                "super_admin access cannot be overridden", role=role.value, **keys
            ))
        elif not actor.outranks(role):
            errors.append(RankViolation(
                f"{actor.value} cannot change access for {role.value}",
                role=role.value,
                **keys,
            ))
        return errors, role

    @staticmethod
    def _raise_if_invalid(household_id: str, what: str, errors: List[AccessControlError]) -> None:
        if not errors:
            return
        failure = ValidationFailed(errors)
        logger.warning(
            f"Rejected {what} update for household {household_id}: {', '.join(failure.codes)}"
        )
        raise failure
