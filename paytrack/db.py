# paytrack/db.py
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from sqlalchemy.pool import StaticPool

from . import config

# -----------------------------------------------------------------------------
# SQLAlchemy setup
# -----------------------------------------------------------------------------

Base = declarative_base()


def _enable_sqlite_fks(dbapi_conn, _record) -> None:
    # SQLite ignores ON DELETE CASCADE unless foreign keys are switched on
    cur = dbapi_conn.cursor()
    cur.execute("PRAGMA foreign_keys=ON")
    cur.close()


def make_engine(url: str) -> Engine:
    """Build an engine for ``url``; SQLite gets thread-safe, FK-enforcing settings."""
    if url.startswith("sqlite"):
        # writers queue on the file lock instead of failing fast
        kwargs = dict(connect_args={"check_same_thread": False, "timeout": 30}, future=True)
        if url in ("sqlite://", "sqlite:///:memory:"):
            # one shared connection, otherwise every checkout sees an empty DB
            kwargs["poolclass"] = StaticPool
        eng = create_engine(url, **kwargs)
        event.listen(eng, "connect", _enable_sqlite_fks)
        return eng

    return create_engine(
        url,
        pool_pre_ping=True,   # drop dead connections before issuing queries
        future=True,          # 2.0-style engine
    )


def make_session_factory(eng: Engine) -> sessionmaker:
    return sessionmaker(bind=eng, autoflush=False, autocommit=False, future=True)


engine = make_engine(config.DATABASE_URL)

SessionLocal = make_session_factory(engine)


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency that yields a DB session and ensures close."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(eng: Engine = None) -> None:
    """Create tables if they don't exist yet."""
    from . import models  # noqa: F401  ensure models are registered
    Base.metadata.create_all(bind=eng or engine)


def dispose_db(eng: Engine = None) -> None:
    """Release pooled connections at shutdown."""
    (eng or engine).dispose()
