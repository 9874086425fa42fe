"""Engine and session factory for the SQL policy store."""

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from accessmatrix.core.config import Settings, get_settings


def build_engine(database_url: str, timeout: float = 5.0, echo: bool = False) -> Engine:
    """Create an engine whose connection waits are bounded by ``timeout``.

    SQLite gets a busy timeout; other backends get a pool timeout and a
    connect timeout.
    """
    if database_url.startswith("sqlite"):
        return create_engine(
            database_url,
            echo=echo,
            connect_args={"check_same_thread": False, "timeout": timeout},
        )
    return create_engine(
        database_url,
        echo=echo,
        pool_pre_ping=True,
        pool_timeout=timeout,
        connect_args={"connect_timeout": max(1, int(timeout))},
    )


def create_session_factory(settings: Settings = None) -> sessionmaker:
    """Build a session factory for the configured database."""
    settings = settings or get_settings()
    engine = build_engine(settings.database_url, settings.store_timeout_seconds, echo=settings.debug)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)
