"""
Integration test fixtures. Overrides get_db for API tests with in-memory DB.
"""
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool


@pytest.fixture
def session_factory():
    """In-memory engine shared across threads (TestClient runs the app in a worker thread)."""
    import pathway.models  # noqa: F401
    from pathway.config import Base
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def override_get_db(session_factory):
    def _get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    return _get_db


@pytest.fixture
def api_client(override_get_db):
    """FastAPI TestClient with in-memory DB override."""
    from fastapi.testclient import TestClient
    from pathway.api import app
    from pathway.config import get_db
    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def seeded_store(session_factory):
    """Save the sample path (created by the first registered user, id "1") and its question banks."""
    from infra.store.sql_store import SqlDocumentStore
    from pathway.bootstrap import build_engine
    from pathway.schemas.quiz_schemas import QuestionBank
    from tests.sample_content import sample_path_definition, sample_question_banks

    db = session_factory()
    try:
        engine = build_engine(SqlDocumentStore(db), retry_min_wait=0, retry_max_wait=0)
        engine.content.save_path(sample_path_definition(creator_id="1"))
        for bank in sample_question_banks():
            engine.content.save_quiz(QuestionBank.model_validate(bank))
    finally:
        db.close()
    return session_factory
