"""Domain records shared by the resolver, the services and the stores.

These are plain immutable values; persistence rows live in
``accessmatrix.db.models`` and are converted at the store boundary.
"""

from dataclasses import dataclass, field, replace
from typing import Dict, Optional

from .roles import PERSONAL_PREFERENCES, PermissionKey, Role, get_default_permissions


@dataclass(frozen=True)
class AccessOverride:
    """Household-specific feature access for one role."""

    household_id: str
    feature_key: str
    role: Role
    allowed: bool


@dataclass(frozen=True)
class SettingPermission:
    """Household-specific view/edit access to a setting for one role."""

    household_id: str
    setting_key: str
    role: Role
    view: bool
    edit: bool


@dataclass(frozen=True)
class KillSwitch:
    """Super-admin switch that disables a feature for every other role."""

    household_id: str
    feature_key: str
    enabled_globally: bool


@dataclass(frozen=True)
class UserAccount:
    """A household member and their stored permission booleans.

    ``permissions`` holds only what has been written; anything missing
    falls back to the role default.
    """

    id: str
    household_id: str
    role: Role
    permissions: Dict[str, bool] = field(default_factory=dict)
    name: Optional[str] = None

    def stored_permission(self, key: PermissionKey) -> Optional[bool]:
        return self.permissions.get(key.value)

    def effective_permissions(self) -> Dict[str, bool]:
        """Role defaults overlaid with stored values.

        A super_admin always holds every privileged permission; only their
        personal preferences follow what is stored.
        """
        effective = get_default_permissions(self.role)
        for key, value in self.permissions.items():
            if key not in effective:
                continue
            if self.role == Role.SUPER_ADMIN and PermissionKey(key).privileged:
                continue
            effective[key] = bool(value)
        return effective

    def with_role(self, role: Role) -> "UserAccount":
        """Copy with a new role and its default privileged permissions.

        Personal preferences the user has already stored are kept.
        """
        permissions = get_default_permissions(role)
        for key in PERSONAL_PREFERENCES:
            if key.value in self.permissions:
                permissions[key.value] = bool(self.permissions[key.value])
        return replace(self, role=role, permissions=permissions)
