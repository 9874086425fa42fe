"""RBAC (Role-Based Access Control) module for household access.

This module defines the role hierarchy, the feature catalog, the fixed
category defaults and the pure access resolver.
"""

from .roles import Role, PermissionKey, DEFAULT_PERMISSIONS, get_default_permissions
from .records import AccessOverride, KillSwitch, SettingPermission, UserAccount
from .catalog import (
    FeatureCatalog,
    FeatureCategory,
    FeatureDefinition,
    SettingDefinition,
    default_catalog,
    load_catalog,
)
from .defaults import SettingAction, category_default, setting_default
from .resolver import AccessResolver, SettingAccess, resolve_access, resolve_setting_permission

__all__ = [
    "Role",
    "PermissionKey",
    "DEFAULT_PERMISSIONS",
    "get_default_permissions",
    "AccessOverride",
    "KillSwitch",
    "SettingPermission",
    "UserAccount",
    "FeatureCatalog",
    "FeatureCategory",
    "FeatureDefinition",
    "SettingDefinition",
    "default_catalog",
    "load_catalog",
    "SettingAction",
    "category_default",
    "setting_default",
    "AccessResolver",
    "SettingAccess",
    "resolve_access",
    "resolve_setting_permission",
]
