"""Run the Alembic migrations that build the SQL policy store schema."""

from pathlib import Path
from typing import Optional

from alembic import command
from alembic.config import Config

from accessmatrix.core.config import get_settings

MIGRATIONS_DIR = Path(__file__).resolve().parent.parent / "migrations"


def alembic_config(database_url: Optional[str] = None) -> Config:
    """Alembic config pointing at the packaged migrations.

    Works without ``alembic.ini`` so an installed package can migrate itself.
    """
    cfg = Config()
    cfg.set_main_option("script_location", str(MIGRATIONS_DIR))
    url = database_url or get_settings().database_url
    # Config values go through configparser interpolation
    cfg.set_main_option("sqlalchemy.url", url.replace("%", "%%"))
    return cfg


def upgrade_database(database_url: Optional[str] = None, revision: str = "head") -> None:
    command.upgrade(alembic_config(database_url), revision)


def downgrade_database(database_url: Optional[str] = None, revision: str = "base") -> None:
    command.downgrade(alembic_config(database_url), revision)
