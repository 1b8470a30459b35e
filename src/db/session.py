"""Database session management for Resale Arbitrage Catalog."""

from __future__ import annotations

import logging
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path

from sqlalchemy import create_engine, event, inspect
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from src.core.config import Settings

from .models import Base

logger = logging.getLogger(__name__)


class Database:
    """Engine and session factory for one catalog store.

    Built once at process start and handed to the repository.
    """

    def __init__(self, url: str, echo: bool = False) -> None:
        self.url = url
        self.engine = self._create_engine(url, echo)
        self._session_factory = sessionmaker(bind=self.engine, expire_on_commit=False)

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        """Create the database configured in settings."""
        return cls(settings.database.resolve_url(), echo=settings.database.echo)

    @staticmethod
    def _create_engine(url: str, echo: bool) -> Engine:
        if not url.startswith("sqlite"):
            return create_engine(url, echo=echo, pool_pre_ping=True)

        kwargs: dict = {"connect_args": {"check_same_thread": False}}
        if url in ("sqlite://", "sqlite:///:memory:"):
            # One shared connection so every session sees the same in-memory db
            kwargs["poolclass"] = StaticPool
        engine = create_engine(url, echo=echo, **kwargs)

        # Enable foreign keys for SQLite
        @event.listens_for(engine, "connect")
        def set_sqlite_pragma(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return engine

    def get_session(self) -> Session:
        """Create a new database session."""
        return self._session_factory()

    @contextmanager
    def session_scope(self) -> Generator[Session, None, None]:
        """Provide a transactional scope around a series of operations."""
        session = self.get_session()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def init_schema(self, use_migrations: bool = True) -> None:
        """Initialize the database schema.

        Args:
            use_migrations: If True, use Alembic migrations. If False, use create_all().
        """
        if use_migrations:
            _run_migrations(self.engine)
        else:
            Base.metadata.create_all(self.engine)

    def reset(self) -> None:
        """Drop and recreate all tables (for testing only)."""
        Base.metadata.drop_all(self.engine)
        Base.metadata.create_all(self.engine)

    def close(self) -> None:
        """Close the database connection."""
        self.engine.dispose()


def _run_migrations(engine: Engine) -> None:
    """Run Alembic migrations to latest version."""
    from alembic import command
    from alembic.config import Config
    from alembic.runtime.migration import MigrationContext
    from alembic.script import ScriptDirectory

    # alembic.ini sits next to the src directory
    package_dir = Path(__file__).resolve().parent.parent.parent
    alembic_ini = package_dir / "alembic.ini"
    migrations_dir = package_dir / "migrations"

    if not alembic_ini.exists():
        logger.warning(f"alembic.ini not found at {alembic_ini}, falling back to create_all()")
        Base.metadata.create_all(engine)
        return

    alembic_cfg = Config(str(alembic_ini))
    alembic_cfg.set_main_option("script_location", str(migrations_dir))
    alembic_cfg.set_main_option(
        "sqlalchemy.url", engine.url.render_as_string(hide_password=False).replace("%", "%%")
    )

    with engine.connect() as connection:
        context = MigrationContext.configure(connection)
        current_rev = context.get_current_revision()

    script = ScriptDirectory.from_config(alembic_cfg)
    head_rev = script.get_current_head()

    if current_rev == head_rev:
        logger.debug(f"Catalog schema at revision {head_rev}")
        return

    # env.py reuses this connection, which keeps in-memory databases working
    with engine.begin() as connection:
        alembic_cfg.attributes["connection"] = connection
        tables = set(inspect(connection).get_table_names())

        if current_rev is None and tables - {"alembic_version"}:
            # Schema built by create_all() before migrations were used
            logger.info(f"Stamping unversioned catalog schema as {head_rev}")
            command.stamp(alembic_cfg, "head")
            return

        logger.info(f"Migrating catalog schema from {current_rev or 'empty'} to {head_rev}")
        command.upgrade(alembic_cfg, "head")
