"""Shared fixtures: SQLite schema, user factory and authenticated clients."""
from __future__ import annotations

import os
import time
from typing import Any, Callable, Iterator
from uuid import UUID

import pytest
from fastapi.testclient import TestClient

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///./test_huddle.db")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("POLL_WEBHOOK_TOKEN", "test-webhook-token")

from huddle.clients.summarizer import SummarizerError, set_poll_summarizer  # noqa: E402
from huddle.database import Base, SessionLocal, engine  # noqa: E402
from huddle.main import app  # noqa: E402
from huddle.models import Friendship, User, ordered_pair  # noqa: E402
from huddle.services import get_current_user  # noqa: E402
from huddle.services.realtime import FanoutHub, get_fanout_hub  # noqa: E402


class StubSummarizer:
    """Collects aggregates and answers with a fixed summary, or fails on demand."""

    def __init__(self) -> None:
        self.calls: list[Any] = []
        self.reply = "Pizza won by a landslide."
        self.fail = False
        self.delay = 0.0

    def summarize(self, aggregate: Any) -> str:
        self.calls.append(aggregate)
        if self.delay:
            time.sleep(self.delay)
        if self.fail:
            raise SummarizerError("summarizer offline")
        return self.reply


@pytest.fixture(scope="module", autouse=True)
def _create_schema() -> Iterator[None]:
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def _clean_database() -> Iterator[None]:
    with SessionLocal() as session:
        for table in reversed(Base.metadata.sorted_tables):
            session.execute(table.delete())
        session.commit()
    yield


@pytest.fixture(autouse=True)
def summarizer() -> Iterator[StubSummarizer]:
    stub = StubSummarizer()
    set_poll_summarizer(stub)
    yield stub
    set_poll_summarizer(None)


@pytest.fixture
def user_factory() -> Callable[..., User]:
    def _factory(username: str, *, display_name: str | None = None) -> User:
        with SessionLocal() as session:
            user = User(username=username, display_name=display_name)
            session.add(user)
            session.commit()
            session.refresh(user)
            return user

    return _factory


@pytest.fixture
def befriend() -> Callable[[User, User], UUID]:
    def _befriend(first: User, second: User) -> UUID:
        user_a_id, user_b_id = ordered_pair(first.id, second.id)
        with SessionLocal() as session:
            friendship = Friendship(user_a_id=user_a_id, user_b_id=user_b_id)
            session.add(friendship)
            session.commit()
            return friendship.id

    return _befriend


@pytest.fixture
def hub() -> Iterator[FanoutHub]:
    fresh = FanoutHub()
    app.dependency_overrides[get_fanout_hub] = lambda: fresh
    yield fresh
    app.dependency_overrides.pop(get_fanout_hub, None)


@pytest.fixture
def authed_client() -> Iterator[Callable[[User], TestClient]]:
    with TestClient(app) as client:
        def _with_user(user: User) -> TestClient:
            def _override() -> User:
                return user

            app.dependency_overrides[get_current_user] = _override
            return client

        yield _with_user
    app.dependency_overrides.clear()


@pytest.fixture
def db_session() -> Iterator[Any]:
    with SessionLocal() as session:
        yield session
