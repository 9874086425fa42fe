"""Household access matrix service."""

from .service import (
    AccessUpdate,
    FeatureMatrix,
    PermissionMatrixService,
    SettingMatrix,
    SettingPermissionUpdate,
)

__all__ = [
    "AccessUpdate",
    "FeatureMatrix",
    "PermissionMatrixService",
    "SettingMatrix",
    "SettingPermissionUpdate",
]
