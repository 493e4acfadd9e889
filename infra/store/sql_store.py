from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import insert, update
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from sqlalchemy.orm import Session

from pathway.models.models import ProgressDocument
from pathway.services.progress_store import DocumentStore, apply_query, collection_of
from pathway.utils.errors import TransientStoreError, VersionConflict
from pathway.utils.logger import configure_logging

logger = configure_logging()


@dataclass
class SqlDocumentStore(DocumentStore):
    """
    SQLAlchemy-backed DocumentStore over the `progress_documents` table.

    - Compare-and-set is a conditional UPDATE on (key, version); a version of 0
      inserts, and a duplicate-key insert is reported as a conflict.
    - Connection/operational failures surface as TransientStoreError so the
      ProgressStore can retry them.
    """

    db: Session

    def _transient(self, op: str, key: str, exc: Exception) -> TransientStoreError:
        self.db.rollback()
        logger.warning("store %s failed key=%s error=%s", op, key, exc)
        return TransientStoreError(f"Store {op} failed for {key}")

    def get_versioned(self, key: str) -> Tuple[Optional[Dict[str, Any]], int]:
        try:
            row = self.db.query(ProgressDocument).filter(ProgressDocument.key == key).first()
        except (OperationalError, DBAPIError) as e:
            raise self._transient("get", key, e) from e
        if row is None:
            return None, 0
        data, version = dict(row.data), int(row.version)
        # Expire so a later read in the same session sees other writers' commits.
        self.db.expire(row)
        return data, version

    def set(self, key: str, data: Dict[str, Any], *, merge: bool = False) -> int:
        now = datetime.now(timezone.utc)
        try:
            row = self.db.query(ProgressDocument).filter(ProgressDocument.key == key).first()
            if row is None:
                row = ProgressDocument(key=key, collection=collection_of(key), data=dict(data), version=1, created_at=now, updated_at=now)
            else:
                row.data = {**row.data, **data} if merge else dict(data)
                row.version = int(row.version) + 1
                row.updated_at = now
            self.db.add(row)
            self.db.commit()
            return int(row.version)
        except (OperationalError, DBAPIError) as e:
            raise self._transient("set", key, e) from e

    def compare_and_set(self, key: str, data: Dict[str, Any], expected_version: int) -> int:
        now = datetime.now(timezone.utc)
        try:
            if expected_version == 0:
                self.db.execute(
                    insert(ProgressDocument).values(
                        key=key, collection=collection_of(key), data=dict(data), version=1, created_at=now, updated_at=now
                    )
                )
                self.db.commit()
                return 1
            result = self.db.execute(
                update(ProgressDocument)
                .where(ProgressDocument.key == key, ProgressDocument.version == expected_version)
                .values(data=dict(data), version=expected_version + 1, updated_at=now)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                self.db.rollback()
                _, actual = self.get_versioned(key)
                raise VersionConflict(key, expected_version, actual)
            self.db.commit()
            return expected_version + 1
        except IntegrityError as e:
            self.db.rollback()
            _, actual = self.get_versioned(key)
            raise VersionConflict(key, expected_version, actual) from e
        except (OperationalError, DBAPIError) as e:
            raise self._transient("compare_and_set", key, e) from e

    def query(
        self,
        collection: str,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        try:
            rows = self.db.query(ProgressDocument).filter(ProgressDocument.collection == collection).all()
        except (OperationalError, DBAPIError) as e:
            raise self._transient("query", collection, e) from e
        return apply_query([dict(r.data) for r in rows], filters, order_by, descending, limit)
