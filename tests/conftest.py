"""Root conftest for all tests.

Provides an isolated in-memory SQLite database per test (wired into
cogload.db.session so get_session()/get_db() use it) and a fake text
generator standing in for the LLM.
"""

import asyncio

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

import cogload.db.session as session_module
from cogload.db.models import Base


class FakeTextGenerator:
    """Records prompts and returns canned text (or fails on demand)."""

    def __init__(self, text: str = "Spread your study sessions out and start the exam prep early.", error: Exception | None = None, delay: float = 0.0):
        self.text = text
        self.error = error
        self.delay = delay
        self.calls: list[dict] = []

    async def generate(self, prompt: str, *, system_prompt: str, max_tokens: int | None = None) -> str:
        self.calls.append({"prompt": prompt, "system_prompt": system_prompt, "max_tokens": max_tokens})
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.text


@pytest.fixture
def db_engine(monkeypatch):
    """In-memory SQLite engine shared by every session opened during the test.

    StaticPool keeps a single connection so separate sessions see the same
    in-memory database.
    """
    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)

    monkeypatch.setattr(session_module, "_get_engine", lambda: engine)
    monkeypatch.setattr(session_module, "_SessionLocal", None)

    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return session_module.get_session


@pytest.fixture
def seed(session_factory):
    """Insert ORM objects and commit."""

    def _seed(*objects) -> None:
        with session_factory() as session:
            session.add_all(objects)

    return _seed


@pytest.fixture
def fake_generator() -> FakeTextGenerator:
    return FakeTextGenerator()


@pytest.fixture
def generator_factory():
    return FakeTextGenerator
