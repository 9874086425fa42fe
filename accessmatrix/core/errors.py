"""Error taxonomy for household access control.

Validation errors are permanent: they carry the offending feature, setting,
role or permission key and are returned to the caller verbatim. Only
``StaleVersion`` and ``StoreUnavailable`` are retryable.
"""

from typing import Any, Dict, Iterable, List, Optional


class AccessControlError(Exception):
    """Base class for every error raised by the access engine."""

    code = "access_control_error"
    retryable = False

    def __init__(
        self,
        message: str,
        *,
        feature_key: Optional[str] = None,
        setting_key: Optional[str] = None,
        permission_key: Optional[str] = None,
        role: Optional[str] = None,
        user_id: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.feature_key = feature_key
        self.setting_key = setting_key
        self.permission_key = permission_key
        self.role = role
        self.user_id = user_id

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a dict, omitting unset keys."""
        data: Dict[str, Any] = {"code": self.code, "message": self.message}
        for attr in ("feature_key", "setting_key", "permission_key", "role", "user_id"):
            value = getattr(self, attr)
            if value is not None:
                data[attr] = value
        return data


class UnknownFeature(AccessControlError):
    code = "unknown_feature"

    def __init__(self, feature_key: str, **kwargs):
        super().__init__(f"Unknown feature: {feature_key}", feature_key=feature_key, **kwargs)


class UnknownSetting(AccessControlError):
    """Unknown setting key or unknown per-user permission key."""

    code = "unknown_setting"

    def __init__(self, key: str, *, permission: bool = False, **kwargs):
        if permission:
            super().__init__(f"Unknown permission: {key}", permission_key=key, **kwargs)
        else:
            super().__init__(f"Unknown setting: {key}", setting_key=key, **kwargs)


class UnknownRole(AccessControlError):
    code = "unknown_role"

    def __init__(self, role: str, **kwargs):
        super().__init__(f"Unknown role: {role}", role=role, **kwargs)


class UnknownMember(AccessControlError):
    code = "unknown_member"

    def __init__(self, user_id: str, household_id: str):
        super().__init__(
            f"User {user_id} is not a member of household {household_id}",
            user_id=user_id,
        )
        self.household_id = household_id


class CeilingViolation(AccessControlError):
    code = "ceiling_violation"


class PrivilegeEscalation(AccessControlError):
    code = "privilege_escalation"


class RankViolation(AccessControlError):
    code = "rank_violation"


class ImmutableSuperAdmin(AccessControlError):
    code = "immutable_super_admin"


class SelfRoleChange(AccessControlError):
    code = "self_role_change"


class InconsistentPermission(AccessControlError):
    """A setting permission with edit granted but view denied."""

    code = "inconsistent_permission"


class ValidationFailed(AccessControlError):
    """Aggregate of every rule a mutating call violated.

    Nothing is applied when this is raised.
    """

    code = "validation_failed"

    def __init__(self, errors: Iterable[AccessControlError]):
        self.errors: List[AccessControlError] = list(errors)
        codes = ", ".join(sorted({e.code for e in self.errors}))
        super().__init__(f"{len(self.errors)} validation error(s): {codes}")

    @property
    def codes(self) -> List[str]:
        return [e.code for e in self.errors]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "errors": [e.to_dict() for e in self.errors],
        }


class StaleVersion(AccessControlError):
    """Optimistic concurrency conflict; re-fetch and retry."""

    code = "stale_version"
    retryable = True

    def __init__(self, household_id: str, expected_version: int, current_version: int):
        super().__init__(
            f"Household {household_id} is at version {current_version}, "
            f"expected {expected_version}"
        )
        self.household_id = household_id
        self.expected_version = expected_version
        self.current_version = current_version

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["expected_version"] = self.expected_version
        data["current_version"] = self.current_version
        return data


class StoreUnavailable(AccessControlError):
    """The policy store timed out or could not be reached."""

    code = "store_unavailable"
    retryable = True


class ServiceUnavailable(AccessControlError):
    """Store retries exhausted."""

    code = "service_unavailable"

    def __init__(self, message: str, attempts: int):
        super().__init__(message)
        self.attempts = attempts
