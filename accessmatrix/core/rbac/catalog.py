"""Feature and setting catalog.

Static registry of every toggleable feature and configurable setting,
deployed with the application and immutable at runtime.

Key format: "area.name"
Examples:
  - core.dashboard
  - financial.budget_tracking
  - admin.user_management
  - household.timezone
"""

import os
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

import yaml

from ..errors import UnknownFeature, UnknownSetting
from .roles import Role


class FeatureCategory(str, Enum):
    """Feature categories. Each one implies a minimum-role floor."""

    CORE = "core"                 # Always-on household pages
    PREMIUM = "premium"           # Paid extras, configurable per role
    ADMIN = "admin"               # Household administration
    SUPER_ADMIN = "super_admin"   # System-level controls
    DEVELOPMENT = "development"   # Debug and diagnostics tooling

    @property
    def floor(self) -> Role:
        return CATEGORY_FLOORS[self]


CATEGORY_FLOORS: Dict[FeatureCategory, Role] = {
    FeatureCategory.CORE: Role.MEMBER,
    FeatureCategory.PREMIUM: Role.MEMBER,
    FeatureCategory.ADMIN: Role.ADMIN,
    FeatureCategory.SUPER_ADMIN: Role.SUPER_ADMIN,
    FeatureCategory.DEVELOPMENT: Role.ADMIN,
}


@dataclass(frozen=True)
class FeatureDefinition:
    """A toggleable capability."""

    key: str
    label: str
    category: FeatureCategory
    description: str = ""
    minimum_role: Optional[Role] = None

    def __post_init__(self):
        floor = self.category.floor
        if self.minimum_role is None:
            object.__setattr__(self, "minimum_role", floor)
        elif self.minimum_role.rank < floor.rank:
            raise ValueError(
                f"{self.key}: minimum role {self.minimum_role.value} is below "
                f"the {self.category.value} category floor {floor.value}"
            )

    def allows(self, role: Role) -> bool:
        """True when ``role`` is at or above the minimum role."""
        return role.at_least(self.minimum_role)


@dataclass(frozen=True)
class SettingDefinition(FeatureDefinition):
    """A configurable setting, resolved separately for view and edit."""


# (key, label, category, description[, minimum_role])
_FEATURES: List[tuple] = [
    # Core pages
    ("core.dashboard", "Dashboard", FeatureCategory.CORE, "Main dashboard overview and home page"),
    ("core.profile", "Profile", FeatureCategory.CORE, "User profile management"),
    ("core.settings", "Settings", FeatureCategory.CORE, "Application settings"),
    ("meals.planner", "Meals", FeatureCategory.CORE, "Weekly meal planning"),
    ("meals.recipe_library", "Recipe Library", FeatureCategory.CORE, "Access to the recipe collection"),
    ("lists.grocery", "Grocery Lists", FeatureCategory.CORE, "Grocery list management"),
    ("lists.todo", "Todo Lists", FeatureCategory.CORE, "Todo list management"),
    ("calendar.events", "Calendar Events", FeatureCategory.CORE, "Family calendar and events"),
    ("projects.board", "Projects", FeatureCategory.CORE, "Project management and collaboration"),

    # Premium features
    ("meals.cocktails", "Cocktails", FeatureCategory.PREMIUM, "Cocktail recipes"),
    ("meals.quick_meals", "Quick Meals", FeatureCategory.PREMIUM, "Quick meal suggestions"),
    ("lists.shared", "Shared Lists", FeatureCategory.PREMIUM, "Shared list collaboration"),
    ("calendar.scheduling", "Calendar Scheduling", FeatureCategory.PREMIUM, "Advanced scheduling"),
    ("work.tracker", "Work", FeatureCategory.PREMIUM, "Work-related tools and tracking"),
    ("sports.ticker", "Sports Ticker", FeatureCategory.PREMIUM, "Live sports scores"),
    ("ai.assistant", "AI Features", FeatureCategory.PREMIUM, "AI-powered suggestions"),
    ("financial.budget_tracking", "Budget Tracking", FeatureCategory.PREMIUM, "Household budgets and expenses"),
    ("financial.reports", "Financial Reports", FeatureCategory.PREMIUM, "Spending summaries and reports", Role.ADMIN),

    # Admin features
    ("admin.household_management", "Household Management", FeatureCategory.ADMIN, "Manage household settings and members"),
    ("admin.user_management", "User Management", FeatureCategory.ADMIN, "Manage user roles and permissions"),
    ("admin.feature_access_control", "Feature Access Control", FeatureCategory.ADMIN, "Control feature access for household members"),
    ("admin.billing_management", "Billing Management", FeatureCategory.ADMIN, "Manage the household subscription"),

    # Super admin features
    ("system.admin", "System Admin", FeatureCategory.SUPER_ADMIN, "System administration"),
    ("system.global_feature_control", "Global Feature Control", FeatureCategory.SUPER_ADMIN, "Kill switches for every household"),
    ("system.analytics_dashboard", "Analytics Dashboard", FeatureCategory.SUPER_ADMIN, "Platform analytics"),

    # Development tooling
    ("development.logs_dashboard", "Logs Dashboard", FeatureCategory.DEVELOPMENT, "System logs and monitoring interface"),
    ("development.auth_debug", "Auth Debug", FeatureCategory.DEVELOPMENT, "Authentication troubleshooting"),
    ("development.customer_review", "Customer Review", FeatureCategory.DEVELOPMENT, "Review new customer signups"),
]

_SETTINGS: List[tuple] = [
    ("profile.display_name", "Display Name", FeatureCategory.CORE, "Name shown to other members"),
    ("notifications.email_digest", "Email Digest", FeatureCategory.CORE, "Weekly summary email"),
    ("meals.dietary_restrictions", "Dietary Restrictions", FeatureCategory.CORE, "Family allergies and diets"),
    ("calendar.external_sync", "External Calendar Sync", FeatureCategory.PREMIUM, "Google/Outlook calendar sync"),
    ("financial.currency", "Currency", FeatureCategory.PREMIUM, "Currency for budgets and reports"),
    ("household.name", "Household Name", FeatureCategory.ADMIN, "Display name of the household"),
    ("household.timezone", "Timezone", FeatureCategory.ADMIN, "Household timezone"),
    ("household.location", "Location", FeatureCategory.ADMIN, "Household coordinates for weather"),
    ("billing.plan", "Subscription Plan", FeatureCategory.ADMIN, "Current subscription tier"),
    ("system.maintenance_mode", "Maintenance Mode", FeatureCategory.SUPER_ADMIN, "Put the app into maintenance"),
    ("development.debug_logging", "Debug Logging", FeatureCategory.DEVELOPMENT, "Verbose client logging"),
]


def _build(cls, entries: Iterable[tuple]) -> List[FeatureDefinition]:
    definitions = []
    for entry in entries:
        key, label, category, description = entry[:4]
        minimum_role = entry[4] if len(entry) > 4 else None
        definitions.append(cls(
            key=key,
            label=label,
            category=category,
            description=description,
            minimum_role=minimum_role,
        ))
    return definitions


FEATURE_DEFINITIONS: Tuple[FeatureDefinition, ...] = tuple(_build(FeatureDefinition, _FEATURES))
SETTING_DEFINITIONS: Tuple[SettingDefinition, ...] = tuple(_build(SettingDefinition, _SETTINGS))


class FeatureCatalog:
    """Read-only registry of feature and setting definitions."""

    def __init__(
        self,
        features: Iterable[FeatureDefinition],
        settings: Iterable[SettingDefinition] = (),
    ):
        self._features: Dict[str, FeatureDefinition] = {}
        self._settings: Dict[str, SettingDefinition] = {}

        for feature in features:
            if feature.key in self._features:
                raise ValueError(f"Duplicate feature key: {feature.key}")
            self._features[feature.key] = feature

        for setting in settings:
            if setting.key in self._settings:
                raise ValueError(f"Duplicate setting key: {setting.key}")
            self._settings[setting.key] = setting

    def lookup(self, key: str) -> FeatureDefinition:
        """Get a feature definition.

        Raises:
            UnknownFeature: If no feature has this key
        """
        try:
            return self._features[key]
        except KeyError:
            raise UnknownFeature(key) from None

    def lookup_setting(self, key: str) -> SettingDefinition:
        """Get a setting definition.

        Raises:
            UnknownSetting: If no setting has this key
        """
        try:
            return self._settings[key]
        except KeyError:
            raise UnknownSetting(key) from None

    def features(self) -> List[FeatureDefinition]:
        return sorted(self._features.values(), key=lambda f: f.key)

    def settings(self) -> List[SettingDefinition]:
        return sorted(self._settings.values(), key=lambda s: s.key)

    def list_by_category(self) -> List[Tuple[FeatureCategory, List[FeatureDefinition]]]:
        """Group features by category, in category declaration order."""
        grouped = []
        for category in FeatureCategory:
            members = [f for f in self.features() if f.category == category]
            if members:
                grouped.append((category, members))
        return grouped

    def __contains__(self, key: object) -> bool:
        return key in self._features

    def __len__(self) -> int:
        return len(self._features)

    def __iter__(self) -> Iterator[FeatureDefinition]:
        return iter(self.features())


@lru_cache
def default_catalog() -> FeatureCatalog:
    """The catalog shipped with this release."""
    return FeatureCatalog(FEATURE_DEFINITIONS, SETTING_DEFINITIONS)


def parse_definition(cls, entry: Dict[str, Any]) -> FeatureDefinition:
    """Parse one feature or setting entry from a catalog file.

    Args:
        cls: FeatureDefinition or SettingDefinition
        entry: Mapping with key, label, category and optional description
            and minimum_role

    Returns:
        Definition instance
    """
    if "key" not in entry or "category" not in entry:
        raise ValueError(f"Catalog entry needs 'key' and 'category': {entry}")

    minimum_role = entry.get("minimum_role")
    return cls(
        key=entry["key"],
        label=entry.get("label", entry["key"]),
        category=FeatureCategory(entry["category"]),
        description=entry.get("description", ""),
        minimum_role=Role.parse(minimum_role) if minimum_role else None,
    )


def load_catalog(catalog_path: str) -> FeatureCatalog:
    """Load a catalog from a YAML file.

    Expected layout::

        features:
          - key: core.dashboard
            label: Dashboard
            category: core
        settings:
          - key: household.name
            category: admin

    Args:
        catalog_path: Path to the catalog file

    Returns:
        FeatureCatalog instance

    Raises:
        FileNotFoundError: If the file doesn't exist
        yaml.YAMLError: If the file is invalid YAML
        ValueError: If an entry is malformed
    """
    catalog_file = Path(catalog_path)

    if not catalog_file.exists():
        raise FileNotFoundError(f"Catalog file not found: {catalog_path}")

    with catalog_file.open("r") as f:
        data = yaml.safe_load(f)

    if data is None:
        data = {}

    if not isinstance(data, dict):
        raise TypeError(
            f"Catalog root must be a mapping, got {type(data).__name__}"
        )

    data = _expand_env_vars(data)

    features = [parse_definition(FeatureDefinition, e) for e in data.get("features", [])]
    settings = [parse_definition(SettingDefinition, e) for e in data.get("settings", [])]
    return FeatureCatalog(features, settings)


def _expand_env_vars(obj: Any) -> Any:
    """Recursively expand environment variables in catalog values."""
    if isinstance(obj, dict):
        return {key: _expand_env_vars(value) for key, value in obj.items()}
    elif isinstance(obj, list):
        return [_expand_env_vars(item) for item in obj]
    elif isinstance(obj, str):
        return os.path.expandvars(obj)
    else:
        return obj
