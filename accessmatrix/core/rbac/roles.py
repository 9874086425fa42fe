"""Role hierarchy and per-user permission defaults.

Defines the 3 household roles, ordered by rank:
1. Member - Basic access with configurable features
2. Admin - Household management, limited member administration
3. Super Admin - Full access; never overridable, never editable by others

Every call site that needs a role's default permission booleans reads
``DEFAULT_PERMISSIONS``; there is no other copy of this table.
"""

from enum import Enum
from typing import Dict, FrozenSet, Union


class Role(str, Enum):
    """Household roles, comparable by rank."""

    MEMBER = "member"
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"

    @property
    def rank(self) -> int:
        return _ROLE_RANKS[self]

    @classmethod
    def parse(cls, value: Union[str, "Role"]) -> "Role":
        """Parse a role string like 'admin'.

        Raises:
            ValueError: If the value is not a known role
        """
        if isinstance(value, Role):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"Invalid role: {value}") from None

    def outranks(self, other: "Role") -> bool:
        """True when this role is strictly above ``other``."""
        return self.rank > other.rank

    def at_least(self, other: "Role") -> bool:
        return self.rank >= other.rank


_ROLE_RANKS: Dict[Role, int] = {
    Role.MEMBER: 0,
    Role.ADMIN: 1,
    Role.SUPER_ADMIN: 2,
}

# Lowest to highest
ROLES_BY_RANK = tuple(sorted(Role, key=lambda r: r.rank))


class PermissionKey(str, Enum):
    """Per-user permission booleans."""

    # Privileged: grant/revoke goes through rank and holder checks
    CAN_MANAGE_MEMBERS = "can_manage_members"
    CAN_MANAGE_ADMINS = "can_manage_admins"
    CAN_VIEW_ANALYTICS = "can_view_analytics"
    CAN_MANAGE_BILLING = "can_manage_billing"
    CAN_MANAGE_FEATURES = "can_manage_features"
    CAN_EXPORT_DATA = "can_export_data"

    # Personal preferences: a user may always edit their own
    SHARE_LOCATION = "share_location"
    RECEIVE_DIGEST_EMAILS = "receive_digest_emails"
    SHOW_IN_DIRECTORY = "show_in_directory"

    @property
    def privileged(self) -> bool:
        return self not in PERSONAL_PREFERENCES

    @property
    def label(self) -> str:
        return PERMISSION_LABELS[self]

    @classmethod
    def parse(cls, value: Union[str, "PermissionKey"]) -> "PermissionKey":
        if isinstance(value, PermissionKey):
            return value
        try:
            return cls(value)
        except ValueError:
            raise ValueError(f"Invalid permission key: {value}") from None


PERSONAL_PREFERENCES: FrozenSet[PermissionKey] = frozenset([
    PermissionKey.SHARE_LOCATION,
    PermissionKey.RECEIVE_DIGEST_EMAILS,
    PermissionKey.SHOW_IN_DIRECTORY,
])

PRIVILEGED_PERMISSIONS: FrozenSet[PermissionKey] = frozenset(
    key for key in PermissionKey if key not in PERSONAL_PREFERENCES
)

PERMISSION_LABELS: Dict[PermissionKey, str] = {
    PermissionKey.CAN_MANAGE_MEMBERS: "Manage Members",
    PermissionKey.CAN_MANAGE_ADMINS: "Manage Admins",
    PermissionKey.CAN_VIEW_ANALYTICS: "View Analytics",
    PermissionKey.CAN_MANAGE_BILLING: "Manage Billing",
    PermissionKey.CAN_MANAGE_FEATURES: "Manage Features",
    PermissionKey.CAN_EXPORT_DATA: "Export Data",
    PermissionKey.SHARE_LOCATION: "Share Location",
    PermissionKey.RECEIVE_DIGEST_EMAILS: "Receive Digest Emails",
    PermissionKey.SHOW_IN_DIRECTORY: "Show In Household Directory",
}

_PERSONAL_DEFAULTS: Dict[PermissionKey, bool] = {
    PermissionKey.SHARE_LOCATION: False,
    PermissionKey.RECEIVE_DIGEST_EMAILS: True,
    PermissionKey.SHOW_IN_DIRECTORY: True,
}

# Super Admin: everything
SUPER_ADMIN_PERMISSIONS: Dict[PermissionKey, bool] = {key: True for key in PermissionKey}

# Admin: manages members and sees analytics, but not other admins, billing or features
ADMIN_PERMISSIONS: Dict[PermissionKey, bool] = {
    PermissionKey.CAN_MANAGE_MEMBERS: True,
    PermissionKey.CAN_MANAGE_ADMINS: False,
    PermissionKey.CAN_VIEW_ANALYTICS: True,
    PermissionKey.CAN_MANAGE_BILLING: False,
    PermissionKey.CAN_MANAGE_FEATURES: False,
    PermissionKey.CAN_EXPORT_DATA: True,
    **_PERSONAL_DEFAULTS,
}

# Member: no special permissions
MEMBER_PERMISSIONS: Dict[PermissionKey, bool] = {
    **{key: False for key in PRIVILEGED_PERMISSIONS},
    **_PERSONAL_DEFAULTS,
}

DEFAULT_PERMISSIONS: Dict[Role, Dict[PermissionKey, bool]] = {
    Role.SUPER_ADMIN: SUPER_ADMIN_PERMISSIONS,
    Role.ADMIN: ADMIN_PERMISSIONS,
    Role.MEMBER: MEMBER_PERMISSIONS,
}


def get_default_permissions(role: Union[str, Role]) -> Dict[str, bool]:
    """Get the permission booleans a user of ``role`` starts with.

    Returns a fresh dict keyed by permission string.
    """
    role = Role.parse(role)
    return {key.value: value for key, value in DEFAULT_PERMISSIONS[role].items()}


def get_default_permission(role: Union[str, Role], key: Union[str, PermissionKey]) -> bool:
    """Get a single default permission boolean."""
    return DEFAULT_PERMISSIONS[Role.parse(role)][PermissionKey.parse(key)]
