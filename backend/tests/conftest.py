from datetime import date
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine
from lms.database import create_db_and_tables, enable_sqlite_foreign_keys, get_session
from lms.main import app
from lms import models


@pytest.fixture
def engine():
    """A fresh in-memory SQLite database per test."""
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    enable_sqlite_foreign_keys(engine)
    create_db_and_tables(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def client(engine):
    def override_get_session():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_module():
    """Factory for unsaved modules with sensible defaults."""
    def _make(plan_id, course_id, trainer="A", start=date(2024, 1, 1), end=date(2024, 1, 31), batch_id=None):
        return models.Module(
            learning_plan_id=plan_id,
            course_id=course_id,
            trainer=trainer,
            start_date=start,
            end_date=end,
            batch_id=batch_id,
        )
    return _make
