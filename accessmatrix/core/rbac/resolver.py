"""Access resolution for household features and settings.

Combines the catalog, household overrides and the role hierarchy into an
effective boolean. Everything here is pure: no I/O, no mutation, so the
same inputs always produce the same answer.

Precedence for features:
1. super_admin always has access
2. a disabled kill switch denies every other role
3. roles below the feature's minimum role are denied (ceiling)
4. a household override for (feature, role) wins
5. otherwise the category default applies

Settings follow the same precedence (without kill switches), and edit is
denied whenever view is denied.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Tuple, Union

from ..errors import UnknownRole
from .records import AccessOverride, KillSwitch, SettingPermission, UserAccount
from .catalog import FeatureCatalog, SettingDefinition, default_catalog
from .defaults import SettingAction, category_default, setting_default
from .roles import PermissionKey, Role, ROLES_BY_RANK, get_default_permission


OverrideIndex = Dict[Tuple[str, Role], bool]
SettingIndex = Dict[Tuple[str, Role], SettingPermission]

OverrideSource = Union[Iterable[AccessOverride], Mapping[Tuple[str, Role], bool]]
SettingSource = Union[Iterable[SettingPermission], Mapping[Tuple[str, Role], SettingPermission]]


@dataclass(frozen=True)
class SettingAccess:
    """Resolved view/edit pair for one setting and role."""

    view: bool
    edit: bool


def parse_role(role: Union[str, Role]) -> Role:
    """Parse a role, raising the engine's error type."""
    try:
        return Role.parse(role)
    except ValueError:
        raise UnknownRole(str(role)) from None


def index_overrides(overrides: OverrideSource) -> OverrideIndex:
    """Index feature overrides by (feature_key, role)."""
    if isinstance(overrides, Mapping):
        return dict(overrides)
    return {(o.feature_key, o.role): o.allowed for o in overrides}


def index_setting_permissions(permissions: SettingSource) -> SettingIndex:
    """Index setting permissions by (setting_key, role)."""
    if isinstance(permissions, Mapping):
        return dict(permissions)
    return {(p.setting_key, p.role): p for p in permissions}


def index_kill_switches(switches: Iterable[KillSwitch]) -> Dict[str, KillSwitch]:
    return {s.feature_key: s for s in switches}


class AccessResolver:
    """Resolves effective access against a catalog."""

    def __init__(self, catalog: Optional[FeatureCatalog] = None):
        self.catalog = catalog or default_catalog()

    def resolve_access(
        self,
        role: Union[str, Role],
        feature_key: str,
        overrides: OverrideSource = (),
        kill_switch: Optional[KillSwitch] = None,
    ) -> bool:
        """Resolve whether ``role`` may use ``feature_key``.

        Args:
            role: Role being resolved
            feature_key: Catalog feature key
            overrides: Household overrides (records or a prebuilt index)
            kill_switch: The household kill switch for this feature, if any

        Returns:
            Effective access

        Raises:
            UnknownFeature: If the feature is not in the catalog
            UnknownRole: If the role string is invalid
        """
        role = parse_role(role)
        if role == Role.SUPER_ADMIN:
            return True

        if kill_switch is not None and not kill_switch.enabled_globally:
            return False

        definition = self.catalog.lookup(feature_key)
        if not definition.allows(role):
            return False

        index = index_overrides(overrides)
        allowed = index.get((feature_key, role))
        if allowed is not None:
            return allowed

        return category_default(definition.category, role)

    def resolve_setting_permission(
        self,
        role: Union[str, Role],
        setting_key: str,
        action: Union[str, SettingAction],
        overrides: SettingSource = (),
    ) -> bool:
        """Resolve one action (view or edit) on a setting.

        Edit resolves False whenever view resolves False, even if a stored
        permission says otherwise.

        Raises:
            UnknownSetting: If the setting is not in the catalog
            UnknownRole: If the role string is invalid
            ValueError: If the action is not view or edit
        """
        role = parse_role(role)
        action = SettingAction.parse(action)

        if role == Role.SUPER_ADMIN:
            return True

        definition = self.catalog.lookup_setting(setting_key)
        index = index_setting_permissions(overrides)

        view = self._resolve_setting_action(definition, role, SettingAction.VIEW, index)
        if action == SettingAction.VIEW or not view:
            return view
        return self._resolve_setting_action(definition, role, SettingAction.EDIT, index)

    def resolve_setting(
        self,
        role: Union[str, Role],
        setting_key: str,
        overrides: SettingSource = (),
    ) -> SettingAccess:
        """Resolve both actions on a setting."""
        index = index_setting_permissions(overrides)
        return SettingAccess(
            view=self.resolve_setting_permission(role, setting_key, SettingAction.VIEW, index),
            edit=self.resolve_setting_permission(role, setting_key, SettingAction.EDIT, index),
        )

    def resolve_permission(self, user: UserAccount, permission_key: Union[str, PermissionKey]) -> bool:
        """Effective value of a per-user permission boolean.

        super_admin always holds every privileged permission; otherwise a
        stored value wins over the role default.
        """
        key = PermissionKey.parse(permission_key)
        if user.role == Role.SUPER_ADMIN and key.privileged:
            return True
        stored = user.stored_permission(key)
        if stored is not None:
            return bool(stored)
        return get_default_permission(user.role, key)

    def build_feature_matrix(
        self,
        overrides: OverrideSource = (),
        kill_switches: Iterable[KillSwitch] = (),
    ) -> Dict[Tuple[str, Role], bool]:
        """Resolve every (feature, role) pair in the catalog."""
        index = index_overrides(overrides)
        switches = index_kill_switches(kill_switches)
        return {
            (feature.key, role): self.resolve_access(role, feature.key, index, switches.get(feature.key))
            for feature in self.catalog.features()
            for role in ROLES_BY_RANK
        }

    def build_setting_matrix(
        self,
        permissions: SettingSource = (),
    ) -> Dict[Tuple[str, Role], SettingAccess]:
        """Resolve view/edit for every (setting, role) pair in the catalog."""
        index = index_setting_permissions(permissions)
        return {
            (setting.key, role): self.resolve_setting(role, setting.key, index)
            for setting in self.catalog.settings()
            for role in ROLES_BY_RANK
        }

    def accessible_features(
        self,
        role: Union[str, Role],
        overrides: OverrideSource = (),
        kill_switches: Iterable[KillSwitch] = (),
    ) -> List[str]:
        """Feature keys ``role`` resolves True for, in catalog order."""
        role = parse_role(role)
        index = index_overrides(overrides)
        switches = index_kill_switches(kill_switches)
        return [
            feature.key
            for feature in self.catalog.features()
            if self.resolve_access(role, feature.key, index, switches.get(feature.key))
        ]

    def _resolve_setting_action(
        self,
        definition: SettingDefinition,
        role: Role,
        action: SettingAction,
        index: SettingIndex,
    ) -> bool:
        if not definition.allows(role):
            return False
        stored = index.get((definition.key, role))
        if stored is not None:
            return stored.view if action == SettingAction.VIEW else stored.edit
        return setting_default(definition.category, role, action)


def resolve_access(
    role: Union[str, Role],
    feature_key: str,
    overrides: OverrideSource = (),
    kill_switch: Optional[KillSwitch] = None,
    catalog: Optional[FeatureCatalog] = None,
) -> bool:
    """Module-level shorthand for :meth:`AccessResolver.resolve_access`."""
    return AccessResolver(catalog).resolve_access(role, feature_key, overrides, kill_switch)


def resolve_setting_permission(
    role: Union[str, Role],
    setting_key: str,
    action: Union[str, SettingAction],
    overrides: SettingSource = (),
    catalog: Optional[FeatureCatalog] = None,
) -> bool:
    """Module-level shorthand for :meth:`AccessResolver.resolve_setting_permission`."""
    return AccessResolver(catalog).resolve_setting_permission(role, setting_key, action, overrides)
