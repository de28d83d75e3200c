"""
Motor y sesiones SQLAlchemy.

El motor se crea perezosamente la primera vez que se pide. En SQLite se
activan las claves foráneas por conexión; en PostgreSQL se usa el pool
configurado en `Settings`.
"""
from contextlib import contextmanager
from functools import lru_cache
from pathlib import Path
from typing import Iterator

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from app.core.config import settings


class Base(DeclarativeBase):
    pass


def _asegurar_directorio_sqlite(url: str) -> None:
    if ":memory:" in url:
        return
    Path(url.split("sqlite:///", 1)[1]).parent.mkdir(parents=True, exist_ok=True)


def enable_sqlite_foreign_keys(engine: Engine) -> None:
    @event.listens_for(engine, "connect")
    def _pragmas(dbapi_conn, _record):
        cursor = dbapi_conn.cursor()
        try:
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.execute("PRAGMA busy_timeout=30000")
        finally:
            cursor.close()


@lru_cache
def get_engine() -> Engine:
    url = settings.database_url

    if settings.uses_sqlite:
        _asegurar_directorio_sqlite(url)
        engine = create_engine(
            url,
            connect_args={"check_same_thread": False, "timeout": 30},
            pool_pre_ping=True,
        )
        enable_sqlite_foreign_keys(engine)
        return engine

    return create_engine(
        url,
        pool_pre_ping=True,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_timeout=settings.db_pool_timeout,
    )


@lru_cache
def get_session_factory() -> sessionmaker:
    return sessionmaker(bind=get_engine(), autoflush=False, expire_on_commit=False)


@contextmanager
def get_session() -> Iterator[Session]:
    """Sesión para scripts y arranque: confirma al salir o deshace si falla."""
    session = get_session_factory()()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def get_db() -> Iterator[Session]:
    """
    Dependencia de FastAPI: una sesión por petición.

    No confirma nada; cada servicio hace commit de su propia operación.
    """
    db = get_session_factory()()
    try:
        yield db
    finally:
        db.close()
