"""Role changes and per-user permission edits within a household."""

from dataclasses import replace
from typing import List, Optional, Union

from ...common.logger import get_logger
from ...store.base import HouseholdPolicy, PolicyStore, SetUserPermissions, SetUserRole
from ...store.retry import RetryStrategy
from ..errors import (
    AccessControlError,
    ImmutableSuperAdmin,
    PrivilegeEscalation,
    RankViolation,
    SelfRoleChange,
    UnknownMember,
    UnknownRole,
    UnknownSetting,
    ValidationFailed,
)
from ..rbac.records import UserAccount
from ..rbac.resolver import AccessResolver, parse_role
from ..rbac.roles import PermissionKey, Role

logger = get_logger("role_manager")

ActorRef = Union[str, UserAccount]


def can_edit_member(actor: UserAccount, target: UserAccount) -> bool:
    """Whether ``actor`` may edit anything on ``target``'s row.

    Everyone may edit themselves. super_admin may edit anyone except other
    super_admins; admin may edit members.
    """
    if actor.id == target.id:
        return True
    if target.role == Role.SUPER_ADMIN:
        return False
    return actor.role.outranks(target.role)


def can_change_role(actor: UserAccount, target: UserAccount) -> bool:
    """Only super_admin changes roles, never their own or another super_admin's."""
    return (
        actor.role == Role.SUPER_ADMIN
        and actor.id != target.id
        and target.role != Role.SUPER_ADMIN
    )


class RoleManager:
    """
    Manages member roles and permission booleans.

    Every write is a single versioned batch: a role change and the reset of
    the member's permissions land together or not at all.
    """

    def __init__(self, store: PolicyStore, retry: Optional[RetryStrategy] = None):
        self.store = store
        self.retry = retry or RetryStrategy()
        self.resolver = AccessResolver()

    def list_members(self, household_id: str) -> List[UserAccount]:
        """Members of a household with their effective permissions."""
        users = self.retry.call(lambda: self.store.get_users(household_id), "list members")
        return [replace(user, permissions=user.effective_permissions()) for user in users]

    def change_role(
        self,
        household_id: str,
        actor: ActorRef,
        target_user_id: str,
        new_role: Union[str, Role],
    ) -> UserAccount:
        """
        Change a member's role and reset their privileged permissions.

        Args:
            household_id: Household the members belong to
            actor: Acting user (id or account)
            target_user_id: Member whose role changes
            new_role: Role to assign

        Returns:
            The updated member

        Raises:
            ValidationFailed: If any rule is violated; nothing is applied
            StaleVersion: If the household changed concurrently
        """
        policy = self._snapshot(household_id)
        actor_account, target = self._load_pair(policy, actor, target_user_id)

        errors: List[AccessControlError] = []
        role: Optional[Role] = None
        try:
            role = parse_role(new_role)
        except UnknownRole:
            errors.append(UnknownRole(str(new_role), user_id=target_user_id))

        if actor_account.role != Role.SUPER_ADMIN:
            errors.append(PrivilegeEscalation(
                "Only super_admin can change roles",
                role=actor_account.role.value,
                user_id=target_user_id,
            ))
        if actor_account.id == target.id:
            errors.append(SelfRoleChange("Users cannot change their own role", user_id=target.id))
        elif target.role == Role.SUPER_ADMIN:
            errors.append(ImmutableSuperAdmin(
                "super_admin role cannot be changed", role=target.role.value, user_id=target.id
            ))
        self._raise_if_invalid(household_id, "role change", errors)

        updated = target.with_role(role)
        self.retry.call(
            lambda: self.store.apply_batch(household_id, policy.version, [
                SetUserRole(target.id, role),
                SetUserPermissions(target.id, updated.permissions, replace=True),
            ]),
            "change role",
        )
        logger.info(
            f"Changed role of {target.id} in household {household_id}: "
            f"{target.role.value} -> {role.value}"
        )
        return updated

    def update_permission(
        self,
        household_id: str,
        actor: ActorRef,
        target_user_id: str,
        permission_key: Union[str, PermissionKey],
        enabled: bool,
    ) -> UserAccount:
        """
        Grant or revoke one permission boolean on a member.

        Personal preferences can always be edited on oneself. Privileged
        permissions can only be changed on a lower-ranked member, and only
        by an actor who currently holds that permission.

        Raises:
            ValidationFailed: If any rule is violated; nothing is applied
            StaleVersion: If the household changed concurrently
        """
        try:
            key = PermissionKey.parse(permission_key)
        except ValueError:
            self._raise_if_invalid(household_id, "permission", [
                UnknownSetting(str(permission_key), permission=True, user_id=target_user_id)
            ])

        policy = self._snapshot(household_id)
        actor_account, target = self._load_pair(policy, actor, target_user_id)
        errors = self._permission_errors(actor_account, target, key)
        self._raise_if_invalid(household_id, "permission", errors)

        permissions = dict(target.permissions)
        permissions[key.value] = bool(enabled)
        self.retry.call(
            lambda: self.store.apply_batch(household_id, policy.version, [
                SetUserPermissions(target.id, {key.value: bool(enabled)}),
            ]),
            "update permission",
        )
        logger.info(
            f"Set {key.value}={bool(enabled)} for {target.id} in household {household_id} "
            f"(by {actor_account.id})"
        )
        return replace(target, permissions=permissions)

    def _permission_errors(
        self,
        actor: UserAccount,
        target: UserAccount,
        key: PermissionKey,
    ) -> List[AccessControlError]:
        errors: List[AccessControlError] = []
        labels = {"permission_key": key.value, "user_id": target.id}

        if actor.id == target.id:
            if key.privileged:
                errors.append(PrivilegeEscalation(
                    f"Users cannot change their own {key.value}", role=actor.role.value, **labels
                ))
            return errors

        if target.role == Role.SUPER_ADMIN:
            errors.append(ImmutableSuperAdmin(
                "super_admin permissions cannot be changed", role=target.role.value, **labels
            ))
        elif not actor.role.outranks(target.role):
            errors.append(RankViolation(
                f"{actor.role.value} cannot edit a {target.role.value}", role=target.role.value, **labels
            ))

        if key.privileged and not self.resolver.resolve_permission(actor, key):
            errors.append(PrivilegeEscalation(
                f"{actor.id} does not hold {key.value}", role=actor.role.value, **labels
            ))
        return errors

    def _snapshot(self, household_id: str) -> HouseholdPolicy:
        return self.retry.call(lambda: self.store.snapshot(household_id), "read members")

    def _load_pair(self, policy: HouseholdPolicy, actor: ActorRef, target_user_id: str):
        """Resolve the actor and target from one snapshot."""
        actor_id = actor.id if isinstance(actor, UserAccount) else actor
        errors: List[AccessControlError] = []

        actor_account = policy.get_user(actor_id)
        if actor_account is None:
            errors.append(UnknownMember(actor_id, policy.household_id))
        target = policy.get_user(target_user_id)
        if target is None:
            errors.append(UnknownMember(target_user_id, policy.household_id))

        self._raise_if_invalid(policy.household_id, "member", errors)
        return actor_account, target

    @staticmethod
    def _raise_if_invalid(household_id: str, what: str, errors: List[AccessControlError]) -> None:
        if not errors:
            return
        failure = ValidationFailed(errors)
        logger.warning(
            f"Rejected {what} update for household {household_id}: {', '.join(failure.codes)}"
        )
        raise failure
