import os

# Point the module-level engine at a throwaway in-memory database before
# the application is imported.
os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from classroom.database import build_engine, create_tables, get_db, utcnow
from classroom.main import app
from classroom.models import Student, CallHistory, CallMode

OWNER = "teacher-1"
OTHER_OWNER = "teacher-2"


@pytest.fixture
def engine():
    eng = build_engine("sqlite://", poolclass=StaticPool)
    create_tables(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    test_client = TestClient(app)
    test_client.headers.update({"X-User-ID": OWNER})
    yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def make_students(db):
    """Create n students for an owner and return them."""
    def _make(n, owner_id=OWNER, archived=False, points=0):
        students = [
            Student(owner_id=owner_id, name="Student {}".format(i + 1),
                    student_no="S{:03d}".format(i + 1), points=points,
                    is_archived=archived)
            for i in range(n)
        ]
        db.add_all(students)
        db.commit()
        return students
    return _make


@pytest.fixture
def add_call(db):
    """Insert a call record for a student, hours_ago hours in the past."""
    def _add(student, hours_ago, owner_id=OWNER, mode=CallMode.RANDOM):
        record = CallHistory(owner_id=owner_id, student_id=student.id, mode=mode.value,
                             called_at=utcnow() - timedelta(hours=hours_ago))
        db.add(record)
        db.commit()
        return record
    return _add
