"""Policy store backends.

Stores persist household overrides, setting permissions, kill switches and
members behind a version counter. Use ``create_policy_store`` to build the
backend selected in settings.
"""

from typing import Optional

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
from .memory import InMemoryPolicyStore
from .retry import RetryStrategy, call_with_retry


def create_policy_store(settings=None) -> PolicyStore:
    """Create the store backend named by ``settings.store_backend``.

    The SQL backend expects a migrated schema (``alembic upgrade head`` or
    ``accessmatrix.db.migrate.upgrade_database``).

    Raises:
        ValueError: If the backend name is unknown
    """
    from ..core.config import get_settings

    settings = settings or get_settings()
    backend = settings.store_backend.lower()

    if backend == "memory":
        return InMemoryPolicyStore()
    if backend == "sql":
        from ..db.session import create_session_factory
        from .sql import SqlPolicyStore

        return SqlPolicyStore(create_session_factory(settings))

    raise ValueError(f"Unknown store backend: {settings.store_backend}")


__all__ = [
    "HouseholdPolicy",
    "Mutation",
    "PolicyStore",
    "SetKillSwitch",
    "SetUserPermissions",
    "SetUserRole",
    "UpsertAccessOverride",
    "UpsertSettingPermission",
    "InMemoryPolicyStore",
    "RetryStrategy",
    "call_with_retry",
    "create_policy_store",
]
