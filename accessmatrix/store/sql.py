"""SQLAlchemy-backed policy store.

Every household row carries a ``version`` column. ``apply_batch`` bumps it
with a conditional UPDATE inside the same transaction as the row writes, so
a concurrent writer that read the same version loses the race and gets
``StaleVersion`` instead of silently overwriting.
"""

from contextlib import contextmanager
from typing import Iterator, List, Optional, Sequence

from sqlalchemy import and_, update
from sqlalchemy.exc import IntegrityError, OperationalError, TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session, sessionmaker

from ..common.logger import get_logger
from ..core.errors import StaleVersion, StoreUnavailable, UnknownMember
from ..core.rbac.records import AccessOverride, KillSwitch, SettingPermission, UserAccount
from ..core.rbac.roles import Role
from ..db.models import (
    FeatureAccessOverride,
    FeatureKillSwitch,
    Household,
    HouseholdMember,
    SettingPermissionOverride,
)
from .base import (
    HouseholdPolicy,
    Mutation,
    PolicyStore,
    SetKillSwitch,
    SetUserPermissions,
    SetUserRole,
    UpsertAccessOverride,
    UpsertSettingPermission,
)

logger = get_logger("store.sql")

SNAPSHOT_ATTEMPTS = 3


def _to_user(row: HouseholdMember) -> UserAccount:
    return UserAccount(
        id=row.user_id,
        household_id=row.household_id,
        role=Role.parse(row.role),
        permissions=dict(row.permissions or {}),
        name=row.name,
    )


class SqlPolicyStore(PolicyStore):
    """Policy store over a relational database.

    Args:
        session_factory: A configured ``sessionmaker``
    """

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    @property
    def backend_name(self) -> str:
        return "sql"

    @contextmanager
    def _session(self) -> Iterator[Session]:
        """Open a session and translate backend failures to ``StoreUnavailable``."""
        session = self.session_factory()
        try:
            yield session
        except (OperationalError, PoolTimeoutError) as e:
            session.rollback()
            logger.warning(f"Policy store unavailable: {e}")
            raise StoreUnavailable(f"Policy store unavailable: {e.__class__.__name__}") from e
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    # Reads

    def _overrides(self, session: Session, household_id: str) -> List[AccessOverride]:
        rows = (
            session.query(FeatureAccessOverride)
            .filter(FeatureAccessOverride.household_id == household_id)
            .order_by(FeatureAccessOverride.feature_key, FeatureAccessOverride.role)
            .all()
        )
        return [
            AccessOverride(household_id, row.feature_key, Role.parse(row.role), row.allowed)
            for row in rows
        ]

    def _setting_permissions(self, session: Session, household_id: str) -> List[SettingPermission]:
        rows = (
            session.query(SettingPermissionOverride)
            .filter(SettingPermissionOverride.household_id == household_id)
            .order_by(SettingPermissionOverride.setting_key, SettingPermissionOverride.role)
            .all()
        )
        return [
            SettingPermission(household_id, row.setting_key, Role.parse(row.role), row.can_view, row.can_edit)
            for row in rows
        ]

    def _kill_switches(self, session: Session, household_id: str) -> List[KillSwitch]:
        rows = (
            session.query(FeatureKillSwitch)
            .filter(FeatureKillSwitch.household_id == household_id)
            .order_by(FeatureKillSwitch.feature_key)
            .all()
        )
        return [KillSwitch(household_id, row.feature_key, row.enabled_globally) for row in rows]

    def _users(self, session: Session, household_id: str) -> List[UserAccount]:
        rows = (
            session.query(HouseholdMember)
            .filter(HouseholdMember.household_id == household_id)
            .order_by(HouseholdMember.user_id)
            .all()
        )
        return [_to_user(row) for row in rows]

    @staticmethod
    def _version(session: Session, household_id: str) -> int:
        household = session.get(Household, household_id)
        return household.version if household else 0

    def get_overrides(self, household_id: str) -> List[AccessOverride]:
        with self._session() as session:
            return self._overrides(session, household_id)

    def get_setting_permissions(self, household_id: str) -> List[SettingPermission]:
        with self._session() as session:
            return self._setting_permissions(session, household_id)

    def get_kill_switches(self, household_id: str) -> List[KillSwitch]:
        with self._session() as session:
            return self._kill_switches(session, household_id)

    def get_users(self, household_id: str) -> List[UserAccount]:
        with self._session() as session:
            return self._users(session, household_id)

    def get_version(self, household_id: str) -> int:
        with self._session() as session:
            return self._version(session, household_id)

    def snapshot(self, household_id: str) -> HouseholdPolicy:
        """Read every record for a household at a single version.

        Every committed write bumps the household version in the same
        transaction, so rows read between two equal version reads belong to
        that version. A read that straddles a commit is repeated.

        Raises:
            StoreUnavailable: If writers kept moving the version for every attempt
        """
        with self._session() as session:
            for _ in range(SNAPSHOT_ATTEMPTS):
                version = self._version(session, household_id)
                policy = HouseholdPolicy(
                    household_id=household_id,
                    version=version,
                    overrides=self._overrides(session, household_id),
                    setting_permissions=self._setting_permissions(session, household_id),
                    kill_switches=self._kill_switches(session, household_id),
                    users=self._users(session, household_id),
                )
                # End the read so the next statements see later commits
                session.commit()
                if self._version(session, household_id) == version:
                    return policy
                logger.debug(f"Household {household_id} moved past v{version} during snapshot")
        raise StoreUnavailable(f"Household {household_id} changed during every snapshot attempt")

    # Writes

    def _bump_version(self, session: Session, household_id: str, expected_version: int) -> int:
        """Compare-and-swap the household version.

        An unknown household is created on its first write at version 0.
        """
        result = session.execute(
            update(Household)
            .where(and_(Household.id == household_id, Household.version == expected_version))
            .values(version=Household.version + 1)
        )
        if result.rowcount == 1:
            return expected_version + 1

        current = session.get(Household, household_id)
        if current is None and expected_version == 0:
            session.add(Household(id=household_id, version=1))
            session.flush()
            return 1

        raise StaleVersion(household_id, expected_version, current.version if current else 0)

    def apply_batch(
        self,
        household_id: str,
        expected_version: int,
        mutations: Sequence[Mutation],
    ) -> int:
        with self._session() as session:
            try:
                new_version = self._bump_version(session, household_id, expected_version)
                for mutation in mutations:
                    self._apply(session, household_id, mutation)
                session.commit()
            except IntegrityError:
                # Lost a race creating the household or a unique row
                session.rollback()
                raise StaleVersion(
                    household_id, expected_version, self._version(session, household_id)
                ) from None

        logger.debug(
            f"Applied {len(mutations)} mutation(s) to {household_id} -> v{new_version}"
        )
        return new_version

    def reset_household(self, household_id: str) -> int:
        with self._session() as session:
            household = session.get(Household, household_id)
            if household is None:
                household = Household(id=household_id, version=0)
                session.add(household)
            for model in (FeatureAccessOverride, SettingPermissionOverride, FeatureKillSwitch):
                session.query(model).filter(model.household_id == household_id).delete(
                    synchronize_session=False
                )
            household.version = (household.version or 0) + 1
            session.commit()
            return household.version

    def create_household(self, household_id: str, name: Optional[str] = None) -> None:
        with self._session() as session:
            if session.get(Household, household_id) is None:
                session.add(Household(id=household_id, name=name, version=0))
                session.commit()

    def add_user(self, user: UserAccount) -> None:
        with self._session() as session:
            if session.get(Household, user.household_id) is None:
                session.add(Household(id=user.household_id, version=0))
            row = (
                session.query(HouseholdMember)
                .filter_by(household_id=user.household_id, user_id=user.id)
                .first()
            )
            if row is None:
                row = HouseholdMember(household_id=user.household_id, user_id=user.id)
                session.add(row)
            row.name = user.name
            row.role = user.role.value
            row.permissions = dict(user.permissions)
            session.commit()

    @staticmethod
    def _member(session: Session, household_id: str, user_id: str) -> HouseholdMember:
        row = (
            session.query(HouseholdMember)
            .filter(
                and_(
                    HouseholdMember.household_id == household_id,
                    HouseholdMember.user_id == user_id,
                )
            )
            .first()
        )
        if row is None:
            raise UnknownMember(user_id, household_id)
        return row

    def _apply(self, session: Session, household_id: str, mutation: Mutation) -> None:
        if isinstance(mutation, UpsertAccessOverride):
            row = (
                session.query(FeatureAccessOverride)
                .filter_by(household_id=household_id, feature_key=mutation.feature_key, role=mutation.role.value)
                .first()
            )
            if row is None:
                row = FeatureAccessOverride(
                    household_id=household_id,
                    feature_key=mutation.feature_key,
                    role=mutation.role.value,
                )
                session.add(row)
            row.allowed = mutation.allowed
        elif isinstance(mutation, UpsertSettingPermission):
            row = (
                session.query(SettingPermissionOverride)
                .filter_by(household_id=household_id, setting_key=mutation.setting_key, role=mutation.role.value)
                .first()
            )
            if row is None:
                row = SettingPermissionOverride(
                    household_id=household_id,
                    setting_key=mutation.setting_key,
                    role=mutation.role.value,
                )
                session.add(row)
            row.can_view = mutation.view
            row.can_edit = mutation.edit
        elif isinstance(mutation, SetKillSwitch):
            row = (
                session.query(FeatureKillSwitch)
                .filter_by(household_id=household_id, feature_key=mutation.feature_key)
                .first()
            )
            if row is None:
                row = FeatureKillSwitch(household_id=household_id, feature_key=mutation.feature_key)
                session.add(row)
            row.enabled_globally = mutation.enabled_globally
        elif isinstance(mutation, SetUserRole):
            self._member(session, household_id, mutation.user_id).role = mutation.role.value
        elif isinstance(mutation, SetUserPermissions):
            row = self._member(session, household_id, mutation.user_id)
            permissions = {} if mutation.replace else dict(row.permissions or {})
            permissions.update(mutation.permissions)
            # Reassign so the JSON column is flagged dirty
            row.permissions = permissions
        else:
            raise TypeError(f"Unsupported mutation: {type(mutation).__name__}")
        session.flush()
