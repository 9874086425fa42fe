"""Tests specific to the SQL policy store."""

import pytest
from sqlalchemy.exc import OperationalError

from accessmatrix.core.errors import StoreUnavailable
from accessmatrix.core.rbac.roles import Role
from accessmatrix.db.models import FeatureAccessOverride, Household
from accessmatrix.db.seed import seed_household, seed_members
from accessmatrix.store import UpsertAccessOverride
from accessmatrix.store.sql import SqlPolicyStore


pytestmark = pytest.mark.db


class TestSqlPolicyStore:
    """Test persistence details of the SQL store."""

    def test_backend_name(self, sql_store):
        assert sql_store.backend_name == "sql"

    def test_version_stored_on_household_row(self, sql_store, sql_session_factory):
        sql_store.create_household("h", name="Home")
        sql_store.apply_batch("h", 0, [UpsertAccessOverride("meals.cocktails", Role.MEMBER, True)])

        session = sql_session_factory()
        try:
            household = session.get(Household, "h")
            assert household.version == 1
            assert household.name == "Home"
            row = session.query(FeatureAccessOverride).filter_by(household_id="h").one()
            assert row.role == "member"
            assert row.allowed is True
        finally:
            session.close()

    def test_operational_error_becomes_store_unavailable(self):
        class BrokenSession:
            def get(self, *args, **kwargs):
                raise OperationalError("SELECT 1", {}, Exception("database is locked"))

            def rollback(self):
                pass

            def close(self):
                pass

        store = SqlPolicyStore(lambda: BrokenSession())
        with pytest.raises(StoreUnavailable):
            store.get_version("h")

    def test_snapshot_rereads_when_a_write_lands_mid_read(self, sql_store, monkeypatch):
        sql_store.create_household("h")
        read_users = sql_store._users
        writes = []

        def users_with_concurrent_write(session, household_id):
            if not writes:
                writes.append(sql_store.apply_batch(
                    household_id, 0, [UpsertAccessOverride("meals.cocktails", Role.MEMBER, True)]
                ))
            return read_users(session, household_id)

        monkeypatch.setattr(sql_store, "_users", users_with_concurrent_write)
        policy = sql_store.snapshot("h")

        assert writes == [1]
        assert policy.version == 1
        assert [(o.feature_key, o.allowed) for o in policy.overrides] == [("meals.cocktails", True)]

    def test_snapshot_gives_up_when_version_keeps_moving(self, sql_store, monkeypatch):
        versions = iter(range(100))
        monkeypatch.setattr(sql_store, "_version", lambda session, household_id: next(versions))

        with pytest.raises(StoreUnavailable):
            sql_store.snapshot("h")


class TestSeed:
    """Test database seeding."""

    def test_seed_is_idempotent(self, sql_session_factory, sql_store):
        session = sql_session_factory()
        try:
            seed_household(session, "demo", name="Demo")
            seed_members(session, "demo", [("owner", "Owner", "super_admin"), ("kid", "Kid", "member")])
            session.commit()

            seed_household(session, "demo", name="Renamed")
            members = seed_members(session, "demo", [("kid", "Kid", "admin")])
            session.commit()

            assert session.get(Household, "demo").name == "Demo"
            assert members["kid"].role == "member"
        finally:
            session.close()

        kid = sql_store.get_user("demo", "kid")
        assert kid.role == Role.MEMBER
        assert kid.permissions["show_in_directory"] is True

    def test_seed_same_user_in_two_households(self, sql_session_factory, sql_store):
        session = sql_session_factory()
        try:
            for household_id, role in (("h1", "admin"), ("h2", "member")):
                seed_household(session, household_id)
                seed_members(session, household_id, [("alice", "Alice", role)])
            session.commit()
        finally:
            session.close()

        assert sql_store.get_user("h1", "alice").role == Role.ADMIN
        assert sql_store.get_user("h2", "alice").role == Role.MEMBER
