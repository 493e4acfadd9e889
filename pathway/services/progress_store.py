"""
Progress store: the document-store contract the engine depends on, plus a typed
facade with the document key conventions and an atomic read-modify-write.

Infrastructure (SQLAlchemy, in-memory) implements `DocumentStore`; services only
ever see `ProgressStore`.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional, Tuple, Type, TypeVar

from pydantic import BaseModel
from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
    wait_none,
)

from pathway.schemas.learning_path_schemas import LearningPath
from pathway.schemas.progress_schemas import (
    LearningPathProgress,
    MilestoneQuizProgress,
    ProgressAnalytics,
    QuizAttempt,
    StreakInfo,
    VideoProgress,
)
from pathway.schemas.quiz_schemas import QuestionBank
from pathway.utils.errors import TransientStoreError, VersionConflict
from pathway.utils.logger import configure_logging

logger = configure_logging()

M = TypeVar("M", bound=BaseModel)


class DocumentStore(ABC):
    """
    Generic document persistence contract.

    Keys are slash-separated paths; the collection of a key is the key without
    its last segment. Every document carries a version, 0 meaning "absent".
    """

    @abstractmethod
    def get_versioned(self, key: str) -> Tuple[Optional[Dict[str, Any]], int]:
        raise NotImplementedError

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        return self.get_versioned(key)[0]

    @abstractmethod
    def set(self, key: str, data: Dict[str, Any], *, merge: bool = False) -> int:
        """Unconditional write (shallow merge into the existing document when `merge`). Returns the new version."""
        raise NotImplementedError

    @abstractmethod
    def compare_and_set(self, key: str, data: Dict[str, Any], expected_version: int) -> int:
        """Write only if the stored version equals `expected_version`, else raise VersionConflict."""
        raise NotImplementedError

    @abstractmethod
    def query(
        self,
        collection: str,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        raise NotImplementedError


def collection_of(key: str) -> str:
    return key.rsplit("/", 1)[0] if "/" in key else ""


def apply_query(
    docs: List[Dict[str, Any]],
    filters: Optional[Dict[str, Any]] = None,
    order_by: Optional[str] = None,
    descending: bool = False,
    limit: Optional[int] = None,
) -> List[Dict[str, Any]]:
    """Equality filters, ordering and limit over already-loaded documents (shared by adapters)."""
    out = [d for d in docs if all(d.get(k) == v for k, v in (filters or {}).items())]
    if order_by:
        # Missing values sort first ascending / last descending.
        out.sort(key=lambda d: (d.get(order_by) is not None, d.get(order_by) or 0), reverse=descending)
    if limit is not None:
        out = out[:limit]
    return out


# ----- Document keys -----

def path_key(path_id: str) -> str:
    return f"learningPaths/{path_id}"


def question_bank_key(quiz_id: str) -> str:
    return f"quizzes/{quiz_id}"


def video_progress_key(user_id: str, video_id: str) -> str:
    return f"progress/{user_id}_{video_id}"


def quiz_progress_key(milestone_id: str, user_id: str) -> str:
    return f"milestones/{milestone_id}/quizProgress/{user_id}"


def attempt_key(attempt_id: str) -> str:
    return f"quizAttempts/{attempt_id}"


def path_progress_key(user_id: str, path_id: str) -> str:
    return f"learningPathProgress/{user_id}_{path_id}"


def analytics_key(path_id: str, user_id: str) -> str:
    return f"learningPaths/{path_id}/analytics/{user_id}"


def streak_key(user_id: str) -> str:
    return f"streaks/{user_id}"


PATHS_COLLECTION = "learningPaths"
ATTEMPTS_COLLECTION = "quizAttempts"
PATH_PROGRESS_COLLECTION = "learningPathProgress"


def _is_retryable(exc: BaseException) -> bool:
    # A lost CAS needs a fresh read, not a blind retry of the same write.
    return isinstance(exc, TransientStoreError) and not isinstance(exc, VersionConflict)


class ProgressStore:
    """Typed access to progress documents with bounded retry on transient failures."""

    def __init__(
        self,
        documents: DocumentStore,
        *,
        retry_attempts: Optional[int] = None,
        retry_min_wait: Optional[float] = None,
        retry_max_wait: Optional[float] = None,
        cas_max_attempts: Optional[int] = None,
    ):
        from pathway.config import settings

        self.documents = documents
        self.retry_attempts = retry_attempts or settings.store_retry_attempts
        self.retry_min_wait = settings.store_retry_min_wait if retry_min_wait is None else retry_min_wait
        self.retry_max_wait = settings.store_retry_max_wait if retry_max_wait is None else retry_max_wait
        self.cas_max_attempts = cas_max_attempts or settings.cas_max_attempts

    def _call(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        retrying = Retrying(
            stop=stop_after_attempt(self.retry_attempts),
            wait=wait_exponential(multiplier=self.retry_min_wait, min=self.retry_min_wait, max=self.retry_max_wait),
            retry=retry_if_exception(_is_retryable),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        return retrying(fn, *args, **kwargs)

    # ----- generic -----

    def load(self, key: str, model: Type[M]) -> Optional[M]:
        data = self._call(self.documents.get, key)
        return model.model_validate(data) if data is not None else None

    def save(self, key: str, record: BaseModel, *, merge: bool = False) -> None:
        self._call(self.documents.set, key, record.model_dump(mode="json"), merge=merge)

    def query(
        self,
        collection: str,
        model: Type[M],
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[M]:
        rows = self._call(self.documents.query, collection, filters, order_by, descending, limit)
        return [model.model_validate(r) for r in rows]

    def update(
        self,
        key: str,
        model: Type[M],
        reducer: Callable[[Optional[M]], M],
    ) -> Tuple[Optional[M], M]:
        """
        Atomic read-modify-write. `reducer` gets the current record (None if absent)
        and returns the new one; it is re-applied to a fresh read whenever a
        concurrent writer wins the compare-and-set. Returns (before, after).
        """
        for attempt in Retrying(
            stop=stop_after_attempt(self.cas_max_attempts),
            retry=retry_if_exception_type(VersionConflict),
            wait=wait_none(),
            reraise=True,
        ):
            with attempt:
                data, version = self._call(self.documents.get_versioned, key)
                before = model.model_validate(data) if data is not None else None
                after = reducer(before.model_copy(deep=True) if before is not None else None)
                try:
                    self._call(self.documents.compare_and_set, key, after.model_dump(mode="json"), version)
                except VersionConflict:
                    logger.warning("cas conflict key=%s attempt=%s", key, attempt.retry_state.attempt_number)
                    raise
        return before, after

    # ----- definitions -----

    def get_path(self, path_id: str) -> Optional[LearningPath]:
        return self.load(path_key(path_id), LearningPath)

    def put_path(self, path: LearningPath) -> None:
        self.save(path_key(path.id), path)

    def get_question_bank(self, quiz_id: str) -> Optional[QuestionBank]:
        return self.load(question_bank_key(quiz_id), QuestionBank)

    def put_question_bank(self, bank: QuestionBank) -> None:
        self.save(question_bank_key(bank.id), bank)

    # ----- progress -----

    def get_video_progress(self, user_id: str, video_id: str) -> Optional[VideoProgress]:
        return self.load(video_progress_key(user_id, video_id), VideoProgress)

    def get_quiz_progress(self, milestone_id: str, user_id: str) -> Optional[MilestoneQuizProgress]:
        return self.load(quiz_progress_key(milestone_id, user_id), MilestoneQuizProgress)

    def get_attempt(self, attempt_id: str) -> Optional[QuizAttempt]:
        return self.load(attempt_key(attempt_id), QuizAttempt)

    def put_attempt(self, attempt: QuizAttempt) -> None:
        self.save(attempt_key(attempt.id), attempt)

    def get_path_progress(self, user_id: str, path_id: str) -> Optional[LearningPathProgress]:
        return self.load(path_progress_key(user_id, path_id), LearningPathProgress)

    def put_analytics(self, path_id: str, user_id: str, analytics: ProgressAnalytics) -> None:
        self.save(analytics_key(path_id, user_id), analytics)

    def get_analytics(self, path_id: str, user_id: str) -> Optional[ProgressAnalytics]:
        return self.load(analytics_key(path_id, user_id), ProgressAnalytics)

    def get_streak(self, user_id: str) -> Optional[StreakInfo]:
        return self.load(streak_key(user_id), StreakInfo)
