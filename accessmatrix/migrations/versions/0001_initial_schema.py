"""Initial schema: households, members, overrides, setting permissions, kill switches

Revision ID: 0001
Revises: None
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create all policy store tables."""

    # --- households (no FK deps) ---
    op.create_table(
        "households",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("name", sa.String(255), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_households"),
    )

    # --- household_members (FK -> households) ---
    op.create_table(
        "household_members",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("household_id", sa.String(64), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("name", sa.String(255), nullable=True),
        sa.Column("role", sa.String(20), nullable=False),
        sa.Column("permissions", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_household_members"),
        sa.ForeignKeyConstraint(
            ["household_id"],
            ["households.id"],
            name="fk_household_members_household_id_households",
        ),
        sa.UniqueConstraint("household_id", "user_id", name="uq_household_member"),
    )
    op.create_index("ix_household_members_household_id", "household_members", ["household_id"])

    # --- feature_access_overrides (FK -> households) ---
    op.create_table(
        "feature_access_overrides",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("household_id", sa.String(64), nullable=False),
        sa.Column("feature_key", sa.String(100), nullable=False),
        sa.Column("role", sa.String(20), nullable=False),
        sa.Column("allowed", sa.Boolean(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_feature_access_overrides"),
        sa.ForeignKeyConstraint(
            ["household_id"],
            ["households.id"],
            name="fk_feature_access_overrides_household_id_households",
        ),
        sa.UniqueConstraint("household_id", "feature_key", "role", name="uq_feature_access_override"),
    )
    op.create_index(
        "ix_feature_access_overrides_household_id", "feature_access_overrides", ["household_id"]
    )

    # --- setting_permission_overrides (FK -> households) ---
    op.create_table(
        "setting_permission_overrides",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("household_id", sa.String(64), nullable=False),
        sa.Column("setting_key", sa.String(100), nullable=False),
        sa.Column("role", sa.String(20), nullable=False),
        sa.Column("can_view", sa.Boolean(), nullable=False),
        sa.Column("can_edit", sa.Boolean(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_setting_permission_overrides"),
        sa.ForeignKeyConstraint(
            ["household_id"],
            ["households.id"],
            name="fk_setting_permission_overrides_household_id_households",
        ),
        sa.UniqueConstraint(
            "household_id", "setting_key", "role", name="uq_setting_permission_override"
        ),
    )
    op.create_index(
        "ix_setting_permission_overrides_household_id",
        "setting_permission_overrides",
        ["household_id"],
    )

    # --- feature_kill_switches (FK -> households) ---
    op.create_table(
        "feature_kill_switches",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("household_id", sa.String(64), nullable=False),
        sa.Column("feature_key", sa.String(100), nullable=False),
        sa.Column("enabled_globally", sa.Boolean(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_feature_kill_switches"),
        sa.ForeignKeyConstraint(
            ["household_id"],
            ["households.id"],
            name="fk_feature_kill_switches_household_id_households",
        ),
        sa.UniqueConstraint("household_id", "feature_key", name="uq_feature_kill_switch"),
    )
    op.create_index(
        "ix_feature_kill_switches_household_id", "feature_kill_switches", ["household_id"]
    )


def downgrade() -> None:
    """Drop all policy store tables in reverse dependency order."""
    op.drop_table("feature_kill_switches")
    op.drop_table("setting_permission_overrides")
    op.drop_table("feature_access_overrides")
    op.drop_table("household_members")
    op.drop_table("households")
