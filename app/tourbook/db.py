from __future__ import annotations

from contextlib import contextmanager
from collections.abc import Generator

from flask import Flask, current_app, g
from sqlalchemy import Engine, create_engine, event
from sqlalchemy.orm import Session, sessionmaker


def _engine_options(db_url: str) -> dict[str, object]:
    options: dict[str, object] = {"future": True, "pool_pre_ping": True}
    if db_url.startswith("postgres"):
        # Managed Postgres drops idle connections; keep the pool small and recycled.
        options.update(pool_recycle=1800, pool_size=5, max_overflow=10, pool_timeout=30)
    return options


def _enable_sqlite_foreign_keys(engine: Engine) -> None:
    """Category -> destination -> place -> ad cascades rely on FK enforcement, off by default in SQLite."""

    @event.listens_for(engine, "connect")
    def _fk_pragma(dbapi_connection, connection_record):  # type: ignore[no-redef]
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def init_db(app: Flask) -> None:
    db_url = app.config["DATABASE_URL"]
    engine = create_engine(db_url, **_engine_options(db_url))
    if db_url.startswith("sqlite"):
        _enable_sqlite_foreign_keys(engine)

    if app.config.get("ENV") != "production":
        @event.listens_for(engine, "checkout")
        def _receive_checkout(dbapi_connection, connection_record, connection_proxy):  # type: ignore[no-redef]
            app.logger.debug("DB connection checkout from pool")

    app.extensions["sqlalchemy_engine"] = engine
    app.extensions["sqlalchemy_sessionmaker"] = sessionmaker(
        bind=engine,
        class_=Session,
        autoflush=False,
        expire_on_commit=False,
    )


def db_session(app: Flask | None = None) -> Session:
    """Session bound to the current request; opened lazily, closed on teardown."""
    s: Session | None = getattr(g, "db_session", None)
    if s is None:
        sm = (app or current_app).extensions["sqlalchemy_sessionmaker"]
        s = g.db_session = sm()
    return s


def teardown_db_session(exc: BaseException | None) -> None:
    s: Session | None = getattr(g, "db_session", None)
    if s is None:
        return
    if exc is not None:
        s.rollback()
    s.close()
    g.db_session = None


@contextmanager
def session_scope(app: Flask) -> Generator[Session, None, None]:
    """
    Session outside a request (seed scripts, test fixtures). Commits on a clean
    exit and rolls back when the block raises.
    """
    s: Session = app.extensions["sqlalchemy_sessionmaker"]()
    try:
        yield s
        s.commit()
    except Exception:
        s.rollback()
        raise
    finally:
        s.close()
