"""Schemas for the feature, setting and member endpoints."""

from typing import Dict, List, Optional
from pydantic import BaseModel, Field


# Catalog
class FeatureInfo(BaseModel):
    key: str
    label: str
    category: str
    description: str = ""
    minimum_role: str


class CategoryGroup(BaseModel):
    category: str
    features: List[FeatureInfo]


# Feature matrix
class FeatureRow(BaseModel):
    feature_key: str
    category: str
    minimum_role: str
    kill_switch_enabled: bool = True
    roles: Dict[str, bool]


class FeatureMatrixResponse(BaseModel):
    household_id: str
    version: int
    features: List[FeatureRow]


class AccessUpdateItem(BaseModel):
    feature_key: str
    role: str
    allowed: bool


class AccessBatchRequest(BaseModel):
    expected_version: int = Field(..., ge=0)
    updates: List[AccessUpdateItem] = Field(default_factory=list)


class KillSwitchRequest(BaseModel):
    expected_version: int = Field(..., ge=0)
    enabled: bool


# Setting matrix
class SettingCell(BaseModel):
    view: bool
    edit: bool


class SettingRow(BaseModel):
    setting_key: str
    category: str
    minimum_role: str
    roles: Dict[str, SettingCell]


class SettingMatrixResponse(BaseModel):
    household_id: str
    version: int
    settings: List[SettingRow]


class SettingUpdateItem(BaseModel):
    setting_key: str
    role: str
    view: bool
    edit: bool


class SettingBatchRequest(BaseModel):
    expected_version: int = Field(..., ge=0)
    updates: List[SettingUpdateItem] = Field(default_factory=list)


# Members
class MemberResponse(BaseModel):
    id: str
    name: Optional[str] = None
    role: str
    permissions: Dict[str, bool]
    can_edit: bool = False
    can_change_role: bool = False


class RoleChangeRequest(BaseModel):
    role: str


class PermissionUpdateRequest(BaseModel):
    enabled: bool
