"""Built-in access defaults per category and role.

These tables are fixed and are not household-configurable. They apply
only when no household override exists, and never lift a role above a
feature's minimum role (the resolver checks the ceiling first).
"""

from enum import Enum
from typing import Dict, FrozenSet, Union

from .catalog import FeatureCategory
from .roles import Role


class SettingAction(str, Enum):
    """Actions resolved for settings."""

    VIEW = "view"
    EDIT = "edit"

    @classmethod
    def parse(cls, value: Union[str, "SettingAction"]) -> "SettingAction":
        if isinstance(value, SettingAction):
            return value
        try:
            return cls(value)
        except ValueError:
            raise ValueError(f"Invalid setting action: {value}") from None


# Roles granted a feature by default, per category
CATEGORY_DEFAULTS: Dict[FeatureCategory, FrozenSet[Role]] = {
    FeatureCategory.CORE: frozenset([Role.MEMBER, Role.ADMIN, Role.SUPER_ADMIN]),
    FeatureCategory.PREMIUM: frozenset([Role.ADMIN, Role.SUPER_ADMIN]),
    FeatureCategory.ADMIN: frozenset([Role.ADMIN, Role.SUPER_ADMIN]),
    FeatureCategory.SUPER_ADMIN: frozenset([Role.SUPER_ADMIN]),
    FeatureCategory.DEVELOPMENT: frozenset([Role.SUPER_ADMIN]),
}

# Roles granted each setting action by default, per category
SETTING_DEFAULTS: Dict[FeatureCategory, Dict[SettingAction, FrozenSet[Role]]] = {
    FeatureCategory.CORE: {
        SettingAction.VIEW: frozenset([Role.MEMBER, Role.ADMIN, Role.SUPER_ADMIN]),
        SettingAction.EDIT: frozenset([Role.MEMBER, Role.ADMIN, Role.SUPER_ADMIN]),
    },
    FeatureCategory.PREMIUM: {
        SettingAction.VIEW: frozenset([Role.MEMBER, Role.ADMIN, Role.SUPER_ADMIN]),
        SettingAction.EDIT: frozenset([Role.ADMIN, Role.SUPER_ADMIN]),
    },
    FeatureCategory.ADMIN: {
        SettingAction.VIEW: frozenset([Role.ADMIN, Role.SUPER_ADMIN]),
        SettingAction.EDIT: frozenset([Role.ADMIN, Role.SUPER_ADMIN]),
    },
    FeatureCategory.SUPER_ADMIN: {
        SettingAction.VIEW: frozenset([Role.SUPER_ADMIN]),
        SettingAction.EDIT: frozenset([Role.SUPER_ADMIN]),
    },
    FeatureCategory.DEVELOPMENT: {
        SettingAction.VIEW: frozenset([Role.ADMIN, Role.SUPER_ADMIN]),
        SettingAction.EDIT: frozenset([Role.SUPER_ADMIN]),
    },
}


def category_default(category: FeatureCategory, role: Role) -> bool:
    """Default feature access for a role in a category."""
    return role in CATEGORY_DEFAULTS[category]


def setting_default(category: FeatureCategory, role: Role, action: SettingAction) -> bool:
    """Default setting access for a role and action in a category."""
    return role in SETTING_DEFAULTS[category][action]
