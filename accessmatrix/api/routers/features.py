"""Feature access matrix API endpoints."""

from fastapi import APIRouter, Depends

from accessmatrix.api.deps import get_current_member, get_matrix_service
from accessmatrix.api.schemas.access import (
    AccessBatchRequest,
    FeatureMatrixResponse,
    FeatureRow,
    KillSwitchRequest,
)
from accessmatrix.api.schemas.common import ERROR_RESPONSES, VersionResponse
from accessmatrix.core.matrix import AccessUpdate, PermissionMatrixService
from accessmatrix.core.rbac import UserAccount
from accessmatrix.core.rbac.roles import ROLES_BY_RANK

router = APIRouter(
    prefix="/households/{household_id}",
    tags=["features"],
    responses=ERROR_RESPONSES,
)


@router.get("/features", response_model=FeatureMatrixResponse)
def get_feature_matrix(
    household_id: str,
    current_member: UserAccount = Depends(get_current_member),
    service: PermissionMatrixService = Depends(get_matrix_service),
):
    """Resolved access for every feature and role."""
    matrix = service.get_feature_access_matrix(household_id)
    return FeatureMatrixResponse(
        household_id=household_id,
        version=matrix.version,
        features=[
            FeatureRow(
                feature_key=f.key,
                category=f.category.value,
                minimum_role=f.minimum_role.value,
                kill_switch_enabled=matrix.kill_switches.get(f.key, True),
                roles={role.value: matrix.access[(f.key, role)] for role in ROLES_BY_RANK},
            )
            for f in service.catalog.features()
        ],
    )


@router.put("/features", response_model=VersionResponse)
def update_feature_matrix(
    household_id: str,
    request: AccessBatchRequest,
    current_member: UserAccount = Depends(get_current_member),
    service: PermissionMatrixService = Depends(get_matrix_service),
):
    """Apply a batch of overrides; all or nothing."""
    version = service.batch_update_access(
        household_id,
        request.expected_version,
        [AccessUpdate(u.feature_key, u.role, u.allowed) for u in request.updates],
        current_member.role,
    )
    return VersionResponse(version=version)


@router.post("/features/reset", response_model=VersionResponse)
def reset_feature_matrix(
    household_id: str,
    current_member: UserAccount = Depends(get_current_member),
    service: PermissionMatrixService = Depends(get_matrix_service),
):
    """Drop every override and kill switch for the household."""
    version = service.reset_to_defaults(household_id, current_member.role)
    return VersionResponse(version=version)


@router.put("/kill-switches/{feature_key}", response_model=VersionResponse)
def set_kill_switch(
    household_id: str,
    feature_key: str,
    request: KillSwitchRequest,
    current_member: UserAccount = Depends(get_current_member),
    service: PermissionMatrixService = Depends(get_matrix_service),
):
    version = service.set_kill_switch(
        household_id,
        request.expected_version,
        feature_key,
        request.enabled,
        current_member.role,
    )
    return VersionResponse(version=version)
