import os
import tempfile
from pathlib import Path

# Must be set before any task_chat.server module is imported.
_tmp = Path(tempfile.mkdtemp(prefix="task_chat_tests_"))
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("LOG_FILE", str(_tmp / "server.log"))

import asyncio  # noqa: E402
from typing import Any, List, Optional, Tuple  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from task_chat.server import auth  # noqa: E402
from task_chat.server.database import Base, get_db  # noqa: E402
from task_chat.server.gateway import ChatGateway  # noqa: E402
from task_chat.server.main import create_app  # noqa: E402


class FakeSocketServer:
    """Records what a python-socketio AsyncServer would have sent."""

    def __init__(self) -> None:
        self.handlers = {}
        self.emitted: List[Tuple[str, Any, Optional[str]]] = []
        self.failing_sids = set()

    def on(self, event, handler=None, namespace=None):
        self.handlers[event] = handler

    async def emit(self, event, data=None, to=None, room=None, **kwargs):
        target = to or room
        if target in self.failing_sids:
            raise ConnectionError(f"transport closed for {target}")
        self.emitted.append((event, data, target))

    def sent(self, event: str, to: Optional[str] = "any") -> list:
        return [data for name, data, target in self.emitted if name == event and (to == "any" or target == to)]

    def clear(self) -> None:
        self.emitted.clear()


def run(coro):
    return asyncio.run(coro)


@pytest.fixture
def sio():
    return FakeSocketServer()


@pytest.fixture
def gateway(sio):
    return ChatGateway(sio).attach()


@pytest.fixture
def db_session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    yield factory
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


def make_app(db_session_factory, sio, **kwargs):
    application = create_app(sio=sio, **kwargs)

    def override_get_db():
        db = db_session_factory()
        try:
            yield db
        finally:
            db.close()

    application.dependency_overrides[get_db] = override_get_db
    return application


@pytest.fixture
def app(db_session_factory, sio):
    application = make_app(db_session_factory, sio)
    yield application
    application.dependency_overrides.clear()
    auth.TOKEN_STORE.clear()


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


def register(client, username, email=None, password="s3cret-pass"):
    email = email or f"{username}@example.com"
    resp = client.post("/auth/register", json={"username": username, "email": email, "password": password})
    assert resp.status_code == 201, resp.text
    body = resp.json()
    return body["user"], {"Authorization": f"Bearer {body['token']}"}
