"""
Pytest configuration and shared fixtures for the test suite.
Ensures proper Python path and provides common fixtures for unit and integration tests.
"""
import sys
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

# Add project root to Python path for imports
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from tests.sample_content import sample_path_definition, sample_question_banks  # noqa: E402


# ----- In-memory DB (for tests that need DB without touching real DB) -----
@pytest.fixture
def in_memory_engine():
    """Create an in-memory SQLite engine for tests."""
    return create_engine("sqlite:///:memory:", echo=False)


@pytest.fixture
def db_session(in_memory_engine):
    """Create an in-memory database session. Uses pathway.config.Base for schema."""
    import pathway.models  # noqa: F401
    from pathway.config import Base
    Base.metadata.create_all(in_memory_engine)
    SessionLocal = sessionmaker(bind=in_memory_engine)
    session = SessionLocal()
    yield session
    session.close()


# ----- Progress engine over the in-memory document store -----
@pytest.fixture
def documents():
    from infra.store.memory_store import InMemoryDocumentStore
    return InMemoryDocumentStore()


@pytest.fixture
def events():
    """Event bus that also records every published event in `events.seen`."""
    from pathway.services.events import EventBus, ProgressEventType
    bus = EventBus()
    bus.seen = []
    for event_type in ProgressEventType:
        bus.subscribe(event_type, bus.seen.append)
    return bus


@pytest.fixture
def engine(documents, events):
    from pathway.bootstrap import build_engine
    return build_engine(documents, events=events, retry_attempts=3, retry_min_wait=0, retry_max_wait=0, cas_max_attempts=5)


@pytest.fixture
def path_definition():
    return sample_path_definition()


@pytest.fixture
def seeded_engine(engine, path_definition):
    """Engine with the sample path and its question banks saved."""
    from pathway.schemas.quiz_schemas import QuestionBank
    engine.content.save_path(path_definition)
    for bank in sample_question_banks():
        engine.content.save_quiz(QuestionBank.model_validate(bank))
    return engine
