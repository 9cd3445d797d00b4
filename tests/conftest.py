"""
Shared fixtures. Environment is set before any app module is imported:
settings are read once at import time.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("PAYMENT_WEBHOOK_SECRET", "test-lenco-webhook-key")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/15")
os.environ.setdefault("CELERY_BROKER_URL", "memory://")
os.environ.setdefault("CELERY_RESULT_BACKEND", "cache+memory://")
os.environ.setdefault("RESEND_API_KEY", "re_test_key")

import json  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy import create_engine, event  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.db.base import Base  # noqa: E402
from app.models import (  # noqa: E402,F401
    academy_course,
    audit_log,
    class_purchase,
    enrollment,
    live_class,
    notification_outbox,
    payment,
    subscription,
    tutor_application,
    user,
)
from app.services.payments.signature import compute_signature  # noqa: E402

TEST_SECRET = os.environ["PAYMENT_WEBHOOK_SECRET"]


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # pysqlite: let SQLAlchemy own BEGIN so SAVEPOINTs nest correctly.
    @event.listens_for(engine, "connect")
    def _connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin(conn):
        conn.exec_driver_sql("BEGIN")

    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def seed(session_factory):
    """Commit rows in a throwaway session."""

    def _seed(*objects):
        session = session_factory()
        try:
            session.add_all(objects)
            session.commit()
        finally:
            session.close()

    return _seed


@pytest.fixture
def sign():
    """Encode a payload and sign it the way the provider does."""

    def _sign(payload, secret: str = TEST_SECRET) -> tuple[bytes, str]:
        raw = payload if isinstance(payload, bytes) else json.dumps(payload).encode("utf-8")
        return raw, compute_signature(raw, secret)

    return _sign
