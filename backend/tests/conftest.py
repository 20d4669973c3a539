from pathlib import Path
import os
import random
import tempfile
import uuid

# Point the app at a throwaway SQLite file before anything imports it.
_DB_PATH = Path(tempfile.gettempdir()) / f"trainingstore-test-{uuid.uuid4().hex}.db"
os.environ["DATABASE_URL"] = f"sqlite:///{_DB_PATH}"

import pytest
from fastapi import HTTPException
from fastapi.testclient import TestClient
from sqlmodel import Session

from trainingstore.auth import Caller, get_authenticator
from trainingstore.database import engine, create_db_and_tables
from trainingstore.limits import StoreLimits
from trainingstore.store import TrainingStore


@pytest.fixture(scope="session", autouse=True)
def reset_db():
    """Ensure a fresh SQLite database for tests."""
    create_db_and_tables()
    yield
    engine.dispose()
    if _DB_PATH.exists():
        try:
            _DB_PATH.unlink()
        except OSError:
            pass


class StubAuthenticator:
    """Resolves callers from opaque test tokens instead of signed JWTs."""
    def __init__(self):
        self.callers = {}

    def add(self, token: str, caller: Caller) -> dict:
        self.callers[token] = caller
        return {'Authorization': f'Bearer {token}'}

    def resolve(self, token):
        if token not in self.callers:
            raise HTTPException(status_code=401, detail='invalid token')
        return self.callers[token]


def create_training(num=100):
    return [random.random() for _ in range(num)]


def stub_limits(per_project: int) -> StoreLimits:
    return StoreLimits(
        text_training_items_per_project=per_project,
        number_training_items_per_project=per_project,
        number_training_items_per_class_project=per_project,
        image_training_items_per_project=100,
        sound_training_items_per_project=per_project,
    )


@pytest.fixture
def class_id():
    cid = uuid.uuid4().hex
    yield cid
    with Session(engine) as session:
        TrainingStore(session).delete_all_for_class(cid)


@pytest.fixture
def user_id():
    return uuid.uuid4().hex


@pytest.fixture
def store():
    with Session(engine) as session:
        yield TrainingStore(session)


@pytest.fixture
def auth_stub():
    from trainingstore.main import app
    stub = StubAuthenticator()
    app.dependency_overrides[get_authenticator] = lambda: stub
    yield stub
    app.dependency_overrides.pop(get_authenticator, None)


@pytest.fixture
def client(auth_stub):
    from trainingstore.main import app
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def users(auth_stub, class_id, user_id):
    """Headers for the four kinds of caller used by the API tests."""
    return {
        'STUDENT': auth_stub.add('student', Caller(user_id=user_id, role='student', tenant=class_id)),
        'OTHERSTUDENT': auth_stub.add('otherstudent', Caller(user_id=uuid.uuid4().hex, role='student', tenant=class_id)),
        'SUPERVISOR': auth_stub.add('supervisor', Caller(user_id=uuid.uuid4().hex, role='supervisor', tenant=class_id)),
        'OTHERCLASS': auth_stub.add('otherclass', Caller(user_id=uuid.uuid4().hex, role='supervisor', tenant='DIFFERENT')),
        'OTHERSTUDENT_ID': auth_stub.callers['otherstudent'].user_id,
    }
