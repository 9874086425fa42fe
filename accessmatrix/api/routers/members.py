"""Household member API endpoints."""

from typing import List

from fastapi import APIRouter, Depends

from accessmatrix.api.deps import get_current_member, get_role_manager
from accessmatrix.api.schemas.access import (
    MemberResponse,
    PermissionUpdateRequest,
    RoleChangeRequest,
)
from accessmatrix.api.schemas.common import ERROR_RESPONSES
from accessmatrix.core.membership import RoleManager, can_change_role, can_edit_member
from accessmatrix.core.rbac import UserAccount

router = APIRouter(
    prefix="/households/{household_id}/members",
    tags=["members"],
    responses=ERROR_RESPONSES,
)


def _to_response(member: UserAccount, actor: UserAccount) -> MemberResponse:
    return MemberResponse(
        id=member.id,
        name=member.name,
        role=member.role.value,
        permissions=member.effective_permissions(),
        can_edit=can_edit_member(actor, member),
        can_change_role=can_change_role(actor, member),
    )


@router.get("", response_model=List[MemberResponse])
def list_members(
    household_id: str,
    current_member: UserAccount = Depends(get_current_member),
    manager: RoleManager = Depends(get_role_manager),
):
    """List members with effective permissions and what the caller may change."""
    return [_to_response(m, current_member) for m in manager.list_members(household_id)]


@router.put("/{user_id}/role", response_model=MemberResponse)
def change_member_role(
    household_id: str,
    user_id: str,
    request: RoleChangeRequest,
    current_member: UserAccount = Depends(get_current_member),
    manager: RoleManager = Depends(get_role_manager),
):
    member = manager.change_role(household_id, current_member, user_id, request.role)
    return _to_response(member, current_member)


@router.put("/{user_id}/permissions/{permission_key}", response_model=MemberResponse)
def update_member_permission(
    household_id: str,
    user_id: str,
    permission_key: str,
    request: PermissionUpdateRequest,
    current_member: UserAccount = Depends(get_current_member),
    manager: RoleManager = Depends(get_role_manager),
):
    member = manager.update_permission(
        household_id, current_member, user_id, permission_key, request.enabled
    )
    return _to_response(member, current_member)
