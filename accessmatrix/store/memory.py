"""In-process policy store.

Keeps household state in dictionaries. Writers build the next state on a
copy and swap it in under a lock, so readers always see a whole version
and never wait on a writer for longer than the swap.
"""

import copy
import threading
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Sequence, Tuple

from ..common.logger import get_logger
from ..core.errors import StaleVersion, UnknownMember
from ..core.rbac.records import AccessOverride, KillSwitch, SettingPermission, UserAccount
from ..core.rbac.roles import Role
from .base import (
    HouseholdPolicy,
    Mutation,
    PolicyStore,
    SetKillSwitch,
    SetUserPermissions,
    SetUserRole,
    UpsertAccessOverride,
    UpsertSettingPermission,
)

logger = get_logger("store.memory")


@dataclass
class _HouseholdState:
    name: Optional[str] = None
    version: int = 0
    overrides: Dict[Tuple[str, Role], bool] = field(default_factory=dict)
    setting_permissions: Dict[Tuple[str, Role], Tuple[bool, bool]] = field(default_factory=dict)
    kill_switches: Dict[str, bool] = field(default_factory=dict)
    users: Dict[str, UserAccount] = field(default_factory=dict)


class InMemoryPolicyStore(PolicyStore):
    """Dictionary-backed store for tests and single-process deployments."""

    def __init__(self):
        self._households: Dict[str, _HouseholdState] = {}
        self._lock = threading.Lock()

    @property
    def backend_name(self) -> str:
        return "memory"

    def _state(self, household_id: str) -> _HouseholdState:
        return self._households.get(household_id) or _HouseholdState()

    def get_overrides(self, household_id: str) -> List[AccessOverride]:
        state = self._state(household_id)
        return [
            AccessOverride(household_id, feature_key, role, allowed)
            for (feature_key, role), allowed in sorted(state.overrides.items())
        ]

    def get_setting_permissions(self, household_id: str) -> List[SettingPermission]:
        state = self._state(household_id)
        return [
            SettingPermission(household_id, setting_key, role, view, edit)
            for (setting_key, role), (view, edit) in sorted(state.setting_permissions.items())
        ]

    def get_kill_switches(self, household_id: str) -> List[KillSwitch]:
        state = self._state(household_id)
        return [
            KillSwitch(household_id, feature_key, enabled)
            for feature_key, enabled in sorted(state.kill_switches.items())
        ]

    def get_users(self, household_id: str) -> List[UserAccount]:
        state = self._state(household_id)
        return [
            replace(user, permissions=dict(user.permissions))
            for user in sorted(state.users.values(), key=lambda u: u.id)
        ]

    def get_version(self, household_id: str) -> int:
        return self._state(household_id).version

    def snapshot(self, household_id: str) -> HouseholdPolicy:
        # States are replaced, never mutated in place, so one lookup is consistent
        state = self._state(household_id)
        return HouseholdPolicy(
            household_id=household_id,
            version=state.version,
            overrides=[
                AccessOverride(household_id, k, r, v)
                for (k, r), v in sorted(state.overrides.items())
            ],
            setting_permissions=[
                SettingPermission(household_id, k, r, view, edit)
                for (k, r), (view, edit) in sorted(state.setting_permissions.items())
            ],
            kill_switches=[
                KillSwitch(household_id, k, v) for k, v in sorted(state.kill_switches.items())
            ],
            users=[
                replace(u, permissions=dict(u.permissions))
                for u in sorted(state.users.values(), key=lambda u: u.id)
            ],
        )

    def apply_batch(
        self,
        household_id: str,
        expected_version: int,
        mutations: Sequence[Mutation],
    ) -> int:
        with self._lock:
            current = self._state(household_id)
            if current.version != expected_version:
                raise StaleVersion(household_id, expected_version, current.version)

            state = copy.deepcopy(current)
            for mutation in mutations:
                self._apply(household_id, state, mutation)
            state.version += 1
            self._households[household_id] = state

        logger.debug(
            f"Applied {len(mutations)} mutation(s) to {household_id} -> v{state.version}"
        )
        return state.version

    def reset_household(self, household_id: str) -> int:
        with self._lock:
            state = copy.deepcopy(self._state(household_id))
            state.overrides.clear()
            state.setting_permissions.clear()
            state.kill_switches.clear()
            state.version += 1
            self._households[household_id] = state
        return state.version

    def create_household(self, household_id: str, name: Optional[str] = None) -> None:
        with self._lock:
            if household_id not in self._households:
                self._households[household_id] = _HouseholdState(name=name)

    def add_user(self, user: UserAccount) -> None:
        with self._lock:
            state = copy.deepcopy(self._state(user.household_id))
            state.users[user.id] = replace(user, permissions=dict(user.permissions))
            self._households[user.household_id] = state

    def clear(self) -> None:
        """Drop every household."""
        with self._lock:
            self._households = {}

    @staticmethod
    def _apply(household_id: str, state: _HouseholdState, mutation: Mutation) -> None:
        if isinstance(mutation, UpsertAccessOverride):
            state.overrides[(mutation.feature_key, mutation.role)] = mutation.allowed
        elif isinstance(mutation, UpsertSettingPermission):
            state.setting_permissions[(mutation.setting_key, mutation.role)] = (
                mutation.view,
                mutation.edit,
            )
        elif isinstance(mutation, SetKillSwitch):
            state.kill_switches[mutation.feature_key] = mutation.enabled_globally
        elif isinstance(mutation, SetUserRole):
            user = state.users.get(mutation.user_id)
            if user is None:
                raise UnknownMember(mutation.user_id, household_id)
            state.users[user.id] = replace(user, role=mutation.role)
        elif isinstance(mutation, SetUserPermissions):
            user = state.users.get(mutation.user_id)
            if user is None:
                raise UnknownMember(mutation.user_id, household_id)
            permissions = {} if mutation.replace else dict(user.permissions)
            permissions.update(mutation.permissions)
            state.users[user.id] = replace(user, permissions=permissions)
        else:
            raise TypeError(f"Unsupported mutation: {type(mutation).__name__}")
