"""Database models for household access policies."""

from accessmatrix.db.models.household import Household
from accessmatrix.db.models.member import HouseholdMember
from accessmatrix.db.models.access import (
    FeatureAccessOverride,
    SettingPermissionOverride,
    FeatureKillSwitch,
)

__all__ = [
    "Household",
    "HouseholdMember",
    "FeatureAccessOverride",
    "SettingPermissionOverride",
    "FeatureKillSwitch",
]
