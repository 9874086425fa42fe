"""Base classes for policy stores.

Defines the interface every policy store must implement, along with the
snapshot and mutation records that cross the store boundary.

A store keeps one logical policy set per household, guarded by a revision
counter. ``apply_batch`` is compare-and-swap on that counter: either every
mutation lands and the version moves forward by one, or nothing changes.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Union

from ..core.rbac.records import AccessOverride, KillSwitch, SettingPermission, UserAccount
from ..core.rbac.roles import Role


@dataclass(frozen=True)
class UpsertAccessOverride:
    """Create or replace the feature override for (feature_key, role)."""

    feature_key: str
    role: Role
    allowed: bool


@dataclass(frozen=True)
class UpsertSettingPermission:
    """Create or replace the setting permission for (setting_key, role)."""

    setting_key: str
    role: Role
    view: bool
    edit: bool


@dataclass(frozen=True)
class SetKillSwitch:
    """Create or replace the kill switch for a feature."""

    feature_key: str
    enabled_globally: bool


@dataclass(frozen=True)
class SetUserRole:
    user_id: str
    role: Role


@dataclass(frozen=True)
class SetUserPermissions:
    """Write permission booleans for a user.

    With ``replace`` the stored set becomes exactly ``permissions``;
    otherwise the values are merged into what is stored.
    """

    user_id: str
    permissions: Dict[str, bool]
    replace: bool = False


Mutation = Union[
    UpsertAccessOverride,
    UpsertSettingPermission,
    SetKillSwitch,
    SetUserRole,
    SetUserPermissions,
]


@dataclass
class HouseholdPolicy:
    """Consistent snapshot of everything stored for a household."""

    household_id: str
    version: int
    overrides: List[AccessOverride] = field(default_factory=list)
    setting_permissions: List[SettingPermission] = field(default_factory=list)
    kill_switches: List[KillSwitch] = field(default_factory=list)
    users: List[UserAccount] = field(default_factory=list)

    def get_user(self, user_id: str) -> Optional[UserAccount]:
        for user in self.users:
            if user.id == user_id:
                return user
        return None

    def kill_switch_for(self, feature_key: str) -> Optional[KillSwitch]:
        for switch in self.kill_switches:
            if switch.feature_key == feature_key:
                return switch
        return None


class PolicyStore(ABC):
    """Abstract base class for household policy persistence.

    Implementations raise ``StaleVersion`` from ``apply_batch`` on a version
    mismatch and ``StoreUnavailable`` when the backend times out or cannot
    be reached. Reading an unknown household returns empty collections at
    version 0.
    """

    @property
    @abstractmethod
    def backend_name(self) -> str:
        """Return the name of this store backend."""
        pass

    @abstractmethod
    def get_overrides(self, household_id: str) -> List[AccessOverride]:
        pass

    @abstractmethod
    def get_setting_permissions(self, household_id: str) -> List[SettingPermission]:
        pass

    @abstractmethod
    def get_kill_switches(self, household_id: str) -> List[KillSwitch]:
        pass

    @abstractmethod
    def get_users(self, household_id: str) -> List[UserAccount]:
        pass

    @abstractmethod
    def get_version(self, household_id: str) -> int:
        pass

    @abstractmethod
    def snapshot(self, household_id: str) -> HouseholdPolicy:
        """Read every record for a household at a single version."""
        pass

    @abstractmethod
    def apply_batch(
        self,
        household_id: str,
        expected_version: int,
        mutations: Sequence[Mutation],
    ) -> int:
        """Apply mutations atomically if the household is at ``expected_version``.

        Returns:
            The new version

        Raises:
            StaleVersion: If the stored version differs
        """
        pass

    @abstractmethod
    def reset_household(self, household_id: str) -> int:
        """Remove every override, setting permission and kill switch.

        Members and their permission booleans are kept.

        Returns:
            The new version
        """
        pass

    @abstractmethod
    def create_household(self, household_id: str, name: Optional[str] = None) -> None:
        """Provision a household at version 0 (no-op if it exists)."""
        pass

    @abstractmethod
    def add_user(self, user: UserAccount) -> None:
        """Provision a member. Does not move the household version."""
        pass

    def get_user(self, household_id: str, user_id: str) -> Optional[UserAccount]:
        """Look up one member of a household."""
        for user in self.get_users(household_id):
            if user.id == user_id:
                return user
        return None
