"""Shared pytest fixtures."""

from __future__ import annotations

from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import StaticPool, create_engine
from sqlalchemy.orm import sessionmaker

from wattsense import models  # noqa: F401 — register tables on Base.metadata
from wattsense.app import create_app
from wattsense.config import Settings
from wattsense.context import build_context
from wattsense.db import Base, get_db
from wattsense.models import Budget, SensorDataA, SensorDataB, User
from wattsense.services.alerts import NotificationResult


class FakeNotifier:
    """Records sent messages; fails for addresses in ``fail_for`` (or always)."""

    def __init__(self, fail: bool = False, fail_for: set[str] | None = None):
        self.fail = fail
        self.fail_for = fail_for or set()
        self.sent: list[tuple[str, str, str]] = []

    def send(self, to: str, subject: str, body: str) -> NotificationResult:
        if self.fail or to in self.fail_for:
            return NotificationResult(success=False, error="smtp unavailable")
        self.sent.append((to, subject, body))
        return NotificationResult(success=True)


class StaticTips:
    def __init__(self, tips: list[str]):
        self.tips = tips

    def generate_tips(self, prompt: str) -> list[str]:
        return list(self.tips)


def make_memory_engine():
    return create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )


@pytest.fixture()
def engine():
    engine = make_memory_engine()
    Base.metadata.create_all(engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture()
def db_session(engine):
    """In-memory DB session for service-level tests."""
    Session = sessionmaker(bind=engine)
    session = Session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture()
def ctx(engine, notifier):
    return build_context(
        settings=Settings(scheduler_enabled=False, smtp_host="", gemini_api_key=None, _env_file=None),
        engine=engine,
        notifier=notifier,
        tip_generator=StaticTips([]),
    )


@pytest.fixture()
def client(ctx, db_session):
    """TestClient with overridden DB dependency."""
    app = create_app(ctx)

    def override():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override
    return TestClient(app)


@pytest.fixture()
def make_user(db_session):
    def _make(auth_id: str = "user_ana", email: str | None = "ana@example.com", name: str | None = "Ana") -> User:
        user = User(auth_id=auth_id, email=email, name=name)
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user
    return _make


@pytest.fixture()
def make_budget(db_session):
    def _make(user: User, amount: float = 100_000.0, start=None, end=None, last_alert_sent=None) -> Budget:
        budget = Budget(
            user_id=user.id, amount=amount,
            start_date=start, end_date=end, last_alert_sent=last_alert_sent,
        )
        db_session.add(budget)
        db_session.commit()
        db_session.refresh(budget)
        return budget
    return _make


@pytest.fixture()
def add_reading(db_session):
    """Insert one reading into series "A" or "B"."""
    def _add(series: str, when: datetime, price: float = 0.0, energy: float = 0.0, **fields):
        model = SensorDataA if series == "A" else SensorDataB
        row = model(date=when, price=price, energy=energy, **fields)
        db_session.add(row)
        db_session.commit()
        return row
    return _add


@pytest.fixture()
def notifier_factory():
    return FakeNotifier


@pytest.fixture()
def tips_factory():
    return StaticTips
