from __future__ import annotations

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool


class Base(DeclarativeBase):
    pass


def normalize_db_url(url: str) -> str:
    u = (url or "").strip()

    # remove wrapping quotes (common when pasted)
    if len(u) >= 2 and (u[0] == u[-1]) and (u[0] in ("'", '"')):
        u = u[1:-1].strip()

    # ignore CI/template placeholders like: ${{Postgres.DATABASE_URL}}
    if "${{" in u or "}}" in u:
        return ""

    # Railway/Heroku style scheme
    if u.startswith("postgres://"):
        u = "postgresql://" + u[len("postgres://") :]

    return u


def make_engine(url: str) -> Engine:
    engine_kwargs: dict = {"pool_pre_ping": True}

    if url.startswith("sqlite"):
        engine_kwargs["connect_args"] = {"check_same_thread": False}
        if ":memory:" in url or url in ("sqlite://", "sqlite+pysqlite://"):
            # one shared connection, otherwise every checkout sees an empty database
            engine_kwargs["poolclass"] = StaticPool

    engine = create_engine(url, **engine_kwargs)
    if url.startswith("sqlite"):
        _sqlite_explicit_transactions(engine)
    return engine


def _sqlite_explicit_transactions(engine: Engine) -> None:
    """
    Let SQLAlchemy emit BEGIN itself instead of pysqlite, so SAVEPOINT (used
    for account inserts) nests inside the unit of work's transaction.
    """

    @event.listens_for(engine, "connect")
    def _no_driver_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin(conn):
        conn.exec_driver_sql("BEGIN")


def make_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, class_=Session, autoflush=False, expire_on_commit=False)


def init_db(engine: Engine) -> None:
    """
    Create missing tables from the models. Local/dev shortcut for `alembic upgrade head`.
    """
    from tai_ledger import models  # noqa: F401

    Base.metadata.create_all(bind=engine)
