# tests/conftest.py
from __future__ import annotations

import contextlib
import os
import threading
from collections.abc import Callable, Generator, Iterator
from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SCHEDULER_ENABLED", "false")

from publora_engine.core.security import Principal
from publora_engine.db.session import Base
from publora_engine.db.session import get_db as app_get_session
from publora_engine.main import app as fastapi_app
from publora_engine.models import Account, PlatformConnection, WorkspaceUser
from publora_engine.services.api_keys import create_account

TEST_DB_URL = "sqlite://"


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # Let SQLAlchemy own BEGIN so SAVEPOINTs behave on pysqlite.
    @event.listens_for(engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, connection_record) -> None:
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(conn) -> None:
        conn.exec_driver_sql("BEGIN")

    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(engine: Engine) -> Iterator[Session]:
    # Repositories commit and roll back themselves, so tests run against the
    # engine directly and wipe every table afterwards.
    SessionLocal = sessionmaker(
        bind=engine,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture()
def session_factory(db_session: Session) -> Callable[[], contextlib.AbstractContextManager[Session]]:
    """Scheduler session factory that hands out the test session without closing it.

    The worker runs its database steps in threads; the lock keeps them from
    sharing the session at the same time.
    """
    lock = threading.Lock()

    @contextlib.contextmanager
    def factory() -> Iterator[Session]:
        with lock:
            yield db_session

    return factory


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_session_dependency(app: FastAPI, db_session: Session) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[app_get_session] = _get_session_override
    try:
        yield
    finally:
        app.dependency_overrides.pop(app_get_session, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture()
def account_with_key(db_session: Session) -> tuple[Account, str]:
    """Create an account and return it with its raw API key."""
    return create_account(db_session, "Acme", label="tests")


@pytest.fixture()
def account(account_with_key: tuple[Account, str]) -> Account:
    return account_with_key[0]


@pytest.fixture()
def auth_headers(account_with_key: tuple[Account, str]) -> dict[str, str]:
    return {"x-publora-key": account_with_key[1]}


@pytest.fixture()
def principal(account: Account) -> Principal:
    return Principal(account_id=account.id)


def _make_connection(
    db: Session,
    account_id: int,
    platform_id: str,
    *,
    workspace_user_id: str | None = None,
    **overrides: Any,
) -> PlatformConnection:
    platform, _, external_id = platform_id.partition("-")
    values: dict[str, Any] = {
        "account_id": account_id,
        "workspace_user_id": workspace_user_id,
        "platform": platform,
        "external_id": external_id,
        "platform_id": platform_id,
        "username": f"{platform}_user",
        "display_name": f"{platform.title()} User",
        "access_token": f"{platform}-token",
        "extra": {},
    }
    values.update(overrides)
    connection = PlatformConnection(**values)
    db.add(connection)
    db.commit()
    return connection


@pytest.fixture()
def connections(db_session: Session, account: Account) -> list[PlatformConnection]:
    """Connect the account to X and LinkedIn."""
    return [
        _make_connection(db_session, account.id, "twitter-123"),
        _make_connection(db_session, account.id, "linkedin-456"),
    ]


@pytest.fixture()
def workspace_user(db_session: Session, account: Account) -> WorkspaceUser:
    user = WorkspaceUser(id="wsuser0001", account_id=account.id, email="jane@example.com")
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture()
def connection_factory(db_session: Session, account: Account) -> Callable[..., PlatformConnection]:
    """Return ``make(platform_id, **overrides)`` creating connections for ``account``."""

    def make(platform_id: str, **overrides: Any) -> PlatformConnection:
        return _make_connection(db_session, account.id, platform_id, **overrides)

    return make
