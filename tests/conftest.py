import os

os.environ.setdefault("HOMEBOOK_DATABASE_URL", "sqlite://")

from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from homebook.api.main import app
from homebook.db import Base, get_db
from homebook.schemas import Importance, Note
from homebook.storage import MemoryKeyValueStorage
from homebook.store import NoteStore


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    db = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def client(engine):
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    def _get_test_db():
        db = TestingSession()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _get_test_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def memory_store():
    return NoteStore(MemoryKeyValueStorage())


@pytest.fixture
def make_note():
    def _make_note(note_id, title="A", content="x", importance=Importance.LOW):
        return Note(
            id=note_id,
            title=title,
            content=content,
            date=datetime(2024, 5, 1, 9, 30, tzinfo=timezone.utc),
            importance=importance,
        )

    return _make_note
