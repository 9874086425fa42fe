"""Setting permission matrix API endpoints."""

from fastapi import APIRouter, Depends

from accessmatrix.api.deps import get_current_member, get_matrix_service
from accessmatrix.api.schemas.access import (
    SettingBatchRequest,
    SettingCell,
    SettingMatrixResponse,
    SettingRow,
)
from accessmatrix.api.schemas.common import ERROR_RESPONSES, VersionResponse
from accessmatrix.core.matrix import PermissionMatrixService, SettingPermissionUpdate
from accessmatrix.core.rbac import UserAccount
from accessmatrix.core.rbac.roles import ROLES_BY_RANK

router = APIRouter(
    prefix="/households/{household_id}/settings",
    tags=["settings"],
    responses=ERROR_RESPONSES,
)


@router.get("", response_model=SettingMatrixResponse)
def get_setting_matrix(
    household_id: str,
    current_member: UserAccount = Depends(get_current_member),
    service: PermissionMatrixService = Depends(get_matrix_service),
):
    """Resolved view/edit access for every setting and role."""
    matrix = service.get_setting_permission_matrix(household_id)
    rows = []
    for setting in service.catalog.settings():
        cells = {}
        for role in ROLES_BY_RANK:
            access = matrix.get(setting.key, role)
            cells[role.value] = SettingCell(view=access.view, edit=access.edit)
        rows.append(SettingRow(
            setting_key=setting.key,
            category=setting.category.value,
            minimum_role=setting.minimum_role.value,
            roles=cells,
        ))
    return SettingMatrixResponse(household_id=household_id, version=matrix.version, settings=rows)


@router.put("", response_model=VersionResponse)
def update_setting_matrix(
    household_id: str,
    request: SettingBatchRequest,
    current_member: UserAccount = Depends(get_current_member),
    service: PermissionMatrixService = Depends(get_matrix_service),
):
    """Apply a batch of setting permissions; all or nothing."""
    version = service.batch_update_setting_permissions(
        household_id,
        request.expected_version,
        [SettingPermissionUpdate(u.setting_key, u.role, u.view, u.edit) for u in request.updates],
        current_member.role,
    )
    return VersionResponse(version=version)
