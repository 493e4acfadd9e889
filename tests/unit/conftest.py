"""
Unit test fixtures. Services run over the in-memory document store; no real DB.
"""
import pytest

from infra.store.memory_store import InMemoryDocumentStore
from pathway.services.progress_store import ProgressStore


@pytest.fixture
def progress_store(documents: InMemoryDocumentStore) -> ProgressStore:
    """Typed store with zero backoff so retry tests run instantly."""
    return ProgressStore(documents, retry_attempts=3, retry_min_wait=0, retry_max_wait=0, cas_max_attempts=5)
