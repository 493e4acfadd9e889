from __future__ import annotations

import copy
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from pathway.services.progress_store import DocumentStore, apply_query, collection_of
from pathway.utils.errors import VersionConflict


@dataclass
class InMemoryDocumentStore(DocumentStore):
    """
    Dict-backed DocumentStore with the same versioning semantics as the SQL
    adapter. Used by tests and local tooling.
    """

    _docs: Dict[str, Tuple[Dict[str, Any], int]] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock)

    def get_versioned(self, key: str) -> Tuple[Optional[Dict[str, Any]], int]:
        with self._lock:
            entry = self._docs.get(key)
            if entry is None:
                return None, 0
            data, version = entry
            return copy.deepcopy(data), version

    def set(self, key: str, data: Dict[str, Any], *, merge: bool = False) -> int:
        with self._lock:
            current, version = self._docs.get(key, ({}, 0))
            new_data = {**current, **data} if merge else dict(data)
            self._docs[key] = (copy.deepcopy(new_data), version + 1)
            return version + 1

    def compare_and_set(self, key: str, data: Dict[str, Any], expected_version: int) -> int:
        with self._lock:
            _, version = self._docs.get(key, (None, 0))
            if version != expected_version:
                raise VersionConflict(key, expected_version, version)
            self._docs[key] = (copy.deepcopy(data), version + 1)
            return version + 1

    def query(
        self,
        collection: str,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        with self._lock:
            docs = [copy.deepcopy(d) for k, (d, _) in self._docs.items() if collection_of(k) == collection]
        return apply_query(docs, filters, order_by, descending, limit)
