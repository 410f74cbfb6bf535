"""Shared pytest fixtures for Clarity tests."""

import json
from collections.abc import Iterator
from types import SimpleNamespace

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from clarity.api.dependencies import get_agent
from clarity.agents.transaction_agent import TransactionAgent
from clarity.core.db import User, create_db_engine, create_session_factory, init_db
from clarity.core.settings import Settings
from clarity.main import create_app
from clarity.services.auth_service import hash_password

STRONG_PASSWORD = "Sup3r$ecret"


class FakeCompletions:
    """Stands in for ``client.chat.completions``; replies with canned text or raises."""

    def __init__(self, reply: str | None = None, error: Exception | None = None) -> None:
        self.reply = reply
        self.error = error
        self.calls: list[dict] = []

    def create(self, **kwargs: object) -> SimpleNamespace:
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        message = SimpleNamespace(content=self.reply)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


class FakeLLMClient:
    """Minimal Groq-shaped client used by the agent tests."""

    def __init__(self, reply: str | dict | None = None, error: Exception | None = None) -> None:
        if isinstance(reply, dict):
            reply = json.dumps(reply)
        self.completions = FakeCompletions(reply, error)
        self.chat = SimpleNamespace(completions=self.completions)

    @property
    def calls(self) -> list[dict]:
        return self.completions.calls

    def reply_with(self, reply: str | dict) -> None:
        self.completions.reply = json.dumps(reply) if isinstance(reply, dict) else reply

    def fail_with(self, error: Exception) -> None:
        self.completions.error = error


@pytest.fixture
def settings() -> Settings:
    """Settings for an in-memory database and no model key."""
    return Settings(
        _env_file=None,
        database_url="sqlite://",
        jwt_secret="test-secret",
        groq_api_key=None,
        groq_model="test-model",
    )


@pytest.fixture
def app(settings: Settings) -> FastAPI:
    """Create an application bound to the test settings."""
    return create_app(settings)


@pytest.fixture
def client(app: FastAPI) -> Iterator[TestClient]:
    """Create a test client; entering it runs the startup hook that creates the tables."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def session() -> Iterator[Session]:
    """Create a session on a fresh in-memory database."""
    engine = create_db_engine("sqlite://")
    init_db(engine)
    db = create_session_factory(engine)()
    yield db
    db.close()
    engine.dispose()


@pytest.fixture
def user(session: Session) -> User:
    """Create a user directly in the database."""
    obj = User(name="Asha", email="asha@example.com", password_hash=hash_password(STRONG_PASSWORD))
    session.add(obj)
    session.commit()
    return obj


@pytest.fixture
def other_user(session: Session) -> User:
    """Create a second user directly in the database."""
    obj = User(name="Bikash", email="bikash@example.com", password_hash=hash_password(STRONG_PASSWORD))
    session.add(obj)
    session.commit()
    return obj


def register(client: TestClient, email: str = "asha@example.com", name: str = "Asha") -> dict:
    """Register a user through the API and return the auth headers."""
    response = client.post("/api/auth/register", json={"name": name, "email": email, "password": STRONG_PASSWORD})
    if response.status_code != 201:
        msg = f"Registration failed: {response.status_code} {response.text}"
        raise AssertionError(msg)
    return {"Authorization": f"Bearer {response.json()['token']}"}


@pytest.fixture
def auth_headers(client: TestClient) -> dict:
    """Auth headers for a freshly registered user."""
    return register(client)


@pytest.fixture
def fake_llm(app: FastAPI, settings: Settings) -> FakeLLMClient:
    """Route the AI endpoint through a fake LLM client; set ``reply`` or ``error`` per test."""
    llm = FakeLLMClient()
    app.dependency_overrides[get_agent] = lambda: TransactionAgent(settings, llm_client=llm)
    return llm
