"""Engine, sessions and schema setup for the RevSnap database."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from sqlalchemy import create_engine, event, inspect
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from revsnap.core.config import get_settings

from .models import Base

logger = logging.getLogger(__name__)

_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None


def _sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def get_engine(database_url: str | None = None) -> Engine:
    """Return the process-wide engine, creating it on first use.

    database_url only matters on that first call. Use close_database()
    to point the process at another database.
    """
    global _engine
    if _engine is not None:
        return _engine

    url = database_url or get_settings().get_database_url()
    if url.startswith("sqlite"):
        _engine = create_engine(url, pool_pre_ping=True, connect_args={"check_same_thread": False})
        event.listen(_engine, "connect", _sqlite_foreign_keys)
    else:
        _engine = create_engine(url, pool_pre_ping=True)

    logger.debug(f"Database engine ready: {_engine.url!r}")
    return _engine


def get_session() -> Session:
    """Open a new session bound to the global engine."""
    global _session_factory
    if _session_factory is None:
        _session_factory = sessionmaker(bind=get_engine(), expire_on_commit=False)
    return _session_factory()


@contextmanager
def session_scope() -> Iterator[Session]:
    """Commit on success, roll back on error, always close."""
    session = get_session()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def init_database(database_url: str | None = None, use_migrations: bool = True) -> None:
    """Create or upgrade the schema.

    Args:
        database_url: Database to use; defaults to the configured one.
        use_migrations: Bring the schema to the Alembic head. When False,
            tables are created straight from the ORM metadata.
    """
    engine = get_engine(database_url)
    if not use_migrations:
        Base.metadata.create_all(engine)
        return

    project_dir = Path(__file__).resolve().parents[2]
    alembic_ini = project_dir / "alembic.ini"
    if alembic_ini.exists():
        _upgrade_to_head(engine, alembic_ini, project_dir / "migrations")
    else:
        logger.warning(f"No alembic.ini at {alembic_ini}, creating tables from metadata")
        Base.metadata.create_all(engine)


def _upgrade_to_head(engine: Engine, alembic_ini: Path, script_location: Path) -> None:
    from alembic import command
    from alembic.config import Config
    from alembic.runtime.migration import MigrationContext
    from alembic.script import ScriptDirectory

    cfg = Config(str(alembic_ini))
    # env.py leaves our logging alone when this is False
    cfg.attributes["configure_logger"] = False
    cfg.set_main_option("script_location", str(script_location))
    cfg.set_main_option(
        "sqlalchemy.url", engine.url.render_as_string(hide_password=False).replace("%", "%%")
    )

    with engine.connect() as connection:
        current = MigrationContext.configure(connection).get_current_revision()
    head = ScriptDirectory.from_config(cfg).get_current_head()

    if current == head:
        logger.debug(f"Database schema at {head}")
        return

    if current is None and inspect(engine).get_table_names():
        # Schema built by create_all before migrations were used
        logger.info(f"Stamping existing schema as {head}")
        command.stamp(cfg, "head")
        return

    logger.info(f"Migrating database schema {current or 'empty'} -> {head}")
    command.upgrade(cfg, "head")


def close_database() -> None:
    """Dispose of the engine so the next call to get_engine() starts fresh."""
    global _engine, _session_factory
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _session_factory = None
