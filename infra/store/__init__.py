"""
Document store implementations live here (infra adapters).

The `DocumentStore` contract itself lives in `pathway.services.progress_store`;
these classes implement it.
"""

from infra.store.memory_store import InMemoryDocumentStore
from infra.store.sql_store import SqlDocumentStore

__all__ = ["InMemoryDocumentStore", "SqlDocumentStore"]
