from functools import lru_cache
from typing import Optional

from fastapi import Depends, Header, HTTPException, Path, status

from accessmatrix.core.config import get_settings
from accessmatrix.core.matrix import PermissionMatrixService
from accessmatrix.core.membership import RoleManager
from accessmatrix.core.rbac import FeatureCatalog, UserAccount, default_catalog, load_catalog
from accessmatrix.store import PolicyStore, RetryStrategy, create_policy_store


@lru_cache
def get_store() -> PolicyStore:
    """Policy store dependency (one per process)."""
    return create_policy_store(get_settings())


@lru_cache
def get_catalog() -> FeatureCatalog:
    """Feature catalog dependency: the configured YAML file, or the built-in one."""
    settings = get_settings()
    if settings.catalog_path:
        return load_catalog(settings.catalog_path)
    return default_catalog()


def get_retry_strategy() -> RetryStrategy:
    return RetryStrategy.from_settings(get_settings())


def get_matrix_service(
    store: PolicyStore = Depends(get_store),
    catalog: FeatureCatalog = Depends(get_catalog),
    retry: RetryStrategy = Depends(get_retry_strategy),
) -> PermissionMatrixService:
    return PermissionMatrixService(store, catalog, retry)


def get_role_manager(
    store: PolicyStore = Depends(get_store),
    retry: RetryStrategy = Depends(get_retry_strategy),
) -> RoleManager:
    return RoleManager(store, retry)


def get_current_member(
    household_id: str = Path(...),
    x_user_id: Optional[str] = Header(None),
    store: PolicyStore = Depends(get_store),
    retry: RetryStrategy = Depends(get_retry_strategy),
) -> UserAccount:
    """Load the acting user as a member of the household in the path.

    Identity is established upstream and passed in ``X-User-Id``. The lookup
    goes through the same retry strategy as the services, so an outage ends
    in ``ServiceUnavailable``.
    """
    if not x_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-User-Id header",
        )

    member = retry.call(lambda: store.get_user(household_id, x_user_id), "load current member")
    if member is None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not a member of this household",
        )
    return member
