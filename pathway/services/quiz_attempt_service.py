"""
Quiz attempts: start, grade, submit.

Quiz progress only moves forward. `best_score` is the max over submitted
attempts and `is_completed` stays True once reached, however many retries
follow.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from pathway.schemas.learning_path_schemas import DEFAULT_PASSING_SCORE
from pathway.schemas.progress_schemas import AttemptStats, MilestoneQuizProgress, QuizAttempt, utcnow
from pathway.schemas.quiz_schemas import (
    FillInBlankQuestion,
    MultipleChoiceQuestion,
    ScoreResult,
    SubmissionResult,
    TimestampReferenceQuestion,
    TrueFalseQuestion,
)
from pathway.services.content_service import ContentRepository
from pathway.services.events import EventBus, ProgressEvent, ProgressEventType
from pathway.services.progress_store import ATTEMPTS_COLLECTION, ProgressStore, attempt_key, quiz_progress_key
from pathway.services.unlock_service import UnlockService
from pathway.utils.common import ensure_owner
from pathway.utils.errors import AttemptsExhaustedError, NotFoundError, QuizLockedError, UnauthorizedError, ValidationError
from pathway.utils.logger import configure_logging

logger = configure_logging()


def _normalize(text: Any) -> str:
    return str(text).strip().casefold()


def is_correct(question, answer: Any) -> bool:
    if answer is None:
        return False
    if isinstance(question, (MultipleChoiceQuestion, TimestampReferenceQuestion)):
        return not isinstance(answer, bool) and isinstance(answer, int) and answer == question.correct_option_index
    if isinstance(question, TrueFalseQuestion):
        return isinstance(answer, bool) and answer == question.correct_answer
    if isinstance(question, FillInBlankQuestion):
        accepted = {_normalize(a) for a in [question.correct_answer, *question.acceptable_answers]}
        return _normalize(answer) in accepted
    return False


def score_answers(questions: Iterable, answers: Mapping[str, Any]) -> ScoreResult:
    """
    Grade `answers` (question id -> answer) against `questions`.

    Unanswered questions count as wrong; an answer for a question that is not
    part of the attempt is a ValidationError. No questions scores 0.
    """
    questions = list(questions)
    by_id = {q.id: q for q in questions}
    unknown = [qid for qid in answers if qid not in by_id]
    if unknown:
        raise ValidationError("Answers reference unknown questions", details={"question_ids": unknown})

    total = len(questions)
    correct = sum(1 for q in questions if is_correct(q, answers.get(q.id)))
    return ScoreResult(score=(correct / total * 100) if total else 0.0, correct_count=correct, total_questions=total)


def merge_attempt(
    current: Optional[MilestoneQuizProgress],
    attempt: QuizAttempt,
    passing_score: float,
    now: datetime,
    max_attempts: Optional[int] = None,
) -> MilestoneQuizProgress:
    """
    Fold one submitted attempt into quiz progress.

    Folding an attempt that is already recorded is a no-op. Any other attempt
    past `max_attempts` raises AttemptsExhaustedError, so attempts opened
    before the limit was reached cannot be graded once it is.
    """
    qp = current or MilestoneQuizProgress(
        milestone_id=attempt.milestone_id,
        user_id=attempt.user_id,
        question_bank_id=attempt.question_bank_id,
        created_at=now,
    )
    if any(a.id == attempt.id for a in qp.attempts):
        return qp
    if max_attempts is not None and qp.completed_attempts >= max_attempts:
        raise AttemptsExhaustedError(
            f"Maximum attempts reached for quiz {attempt.question_bank_id}",
            details={"max_attempts": max_attempts, "attempts": qp.completed_attempts},
        )
    qp.attempts.append(attempt)
    qp.best_score = max(qp.best_score, attempt.score or 0.0)
    qp.is_completed = qp.is_completed or qp.best_score >= passing_score
    qp.last_attempt_at = attempt.completed_at
    qp.updated_at = now
    return qp


class QuizAttemptService:
    def __init__(
        self,
        store: ProgressStore,
        content: ContentRepository,
        unlocks: UnlockService,
        events: Optional[EventBus] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.content = content
        self.unlocks = unlocks
        self.events = events
        self.clock = clock

    def start_attempt(
        self,
        path_id: str,
        milestone_id: str,
        user_id: str,
        question_ids: Optional[List[str]] = None,
    ) -> QuizAttempt:
        path = self.content.get_path(path_id)
        milestone = self.content.milestone_of(path, milestone_id)
        ref = milestone.quiz_ref
        if ref is None:
            raise ValidationError(f"Milestone {milestone_id} has no quiz")

        unlock = self.unlocks.quiz_unlock(path, milestone, self.unlocks.snapshot(path, user_id))
        if not unlock.is_unlocked:
            missing = unlock.missing.model_dump(exclude_none=True) if unlock.missing else {}
            raise QuizLockedError(unlock.reason or "Quiz is locked", details={"missing": missing})

        progress = self.store.get_quiz_progress(milestone_id, user_id)
        used = progress.completed_attempts if progress else 0
        if ref.max_attempts is not None and used >= ref.max_attempts:
            raise AttemptsExhaustedError(
                f"Maximum attempts reached for quiz {ref.quiz_id}",
                details={"max_attempts": ref.max_attempts, "attempts": used},
            )

        bank = self.content.get_quiz(ref.quiz_id)
        bank_ids = [q.id for q in bank.questions]
        if question_ids is None:
            question_ids = bank_ids
        else:
            unknown = [q for q in question_ids if q not in bank_ids]
            if unknown:
                raise ValidationError("Unknown question ids", details={"question_ids": unknown})

        now = self.clock()
        attempt = QuizAttempt(
            id=uuid.uuid4().hex,
            user_id=user_id,
            path_id=path_id,
            milestone_id=milestone_id,
            question_bank_id=ref.quiz_id,
            question_ids=list(question_ids),
            started_at=now,
            metadata={"time_limit": ref.time_limit, "passing_score": ref.passing_score},
        )
        self.store.put_attempt(attempt)

        def mark_unlocked(current: Optional[MilestoneQuizProgress]) -> MilestoneQuizProgress:
            qp = current or MilestoneQuizProgress(
                milestone_id=milestone_id, user_id=user_id, question_bank_id=ref.quiz_id, created_at=now
            )
            qp.unlocked = True
            qp.updated_at = now
            return qp

        self.store.update(quiz_progress_key(milestone_id, user_id), MilestoneQuizProgress, mark_unlocked)
        logger.info(
            "quiz attempt started attempt_id=%s user_id=%s milestone_id=%s quiz_id=%s questions=%s",
            attempt.id, user_id, milestone_id, ref.quiz_id, len(attempt.question_ids),
        )
        return attempt

    def submit_attempt(
        self,
        attempt_id: str,
        user_id: str,
        answers: Dict[str, Any],
        score: Optional[float] = None,
    ) -> SubmissionResult:
        """
        Complete an attempt and fold it into the milestone's quiz progress.

        `score` is for trusted callers that graded elsewhere; without it the
        answers are graded against the question bank.
        """
        attempt = self.store.get_attempt(attempt_id)
        if attempt is None:
            raise NotFoundError(f"Quiz attempt {attempt_id} not found")
        if attempt.user_id != str(user_id):
            raise UnauthorizedError(f"Quiz attempt {attempt_id} belongs to another user")
        if attempt.is_submitted:
            raise ValidationError(f"Quiz attempt {attempt_id} was already submitted")

        if score is None:
            bank = self.content.get_quiz(attempt.question_bank_id)
            wanted = set(attempt.question_ids)
            questions = [q for q in bank.questions if not wanted or q.id in wanted]
            score = score_answers(questions, answers).score
        elif not 0 <= score <= 100:
            raise ValidationError("Score must be between 0 and 100")

        now = self.clock()
        path = self.content.get_path(attempt.path_id)
        milestone = self.content.milestone_of(path, attempt.milestone_id)
        ref = milestone.quiz_ref
        passing = ref.passing_score if ref else DEFAULT_PASSING_SCORE

        # Progress first, then the attempt document: if sealing fails the
        # caller can resubmit, and the fold is a no-op for a known attempt id.
        graded = attempt.model_copy(update={
            "answers": dict(answers),
            "score": float(score),
            "completed_at": now,
            "time_spent_ms": max(0, int((now - attempt.started_at).total_seconds() * 1000)),
        })
        before, progress = self.store.update(
            quiz_progress_key(attempt.milestone_id, user_id),
            MilestoneQuizProgress,
            lambda cur: merge_attempt(cur, graded, passing, now, max_attempts=ref.max_attempts if ref else None),
        )
        recorded = next(a for a in progress.attempts if a.id == attempt_id)

        def seal(current: Optional[QuizAttempt]) -> QuizAttempt:
            if current is None:
                raise NotFoundError(f"Quiz attempt {attempt_id} not found")
            if current.is_submitted:
                raise ValidationError(f"Quiz attempt {attempt_id} was already submitted")
            return recorded.model_copy(deep=True)

        _, attempt = self.store.update(attempt_key(attempt_id), QuizAttempt, seal)
        logger.info(
            "quiz attempt submitted attempt_id=%s user_id=%s score=%.1f best=%.1f passed=%s",
            attempt.id, user_id, attempt.score, progress.best_score, progress.is_completed,
        )

        first_pass = next((a for a in progress.attempts if (a.score or 0.0) >= passing), None)
        newly_passed = first_pass is not None and first_pass.id == attempt_id
        if before is not None and before.is_completed and not any(a.id == attempt_id for a in before.attempts):
            newly_passed = False
        if newly_passed and self.events is not None:
            self.events.publish(
                ProgressEvent(
                    type=ProgressEventType.QUIZ_PASSED,
                    user_id=str(user_id),
                    path_id=attempt.path_id,
                    milestone_id=attempt.milestone_id,
                    payload={"quiz_id": attempt.question_bank_id, "score": progress.best_score},
                )
            )
        return SubmissionResult(attempt=attempt, quiz_progress=progress)

    def get_progress(self, milestone_id: str, user_id: str, actor_id: Optional[str] = None) -> Optional[MilestoneQuizProgress]:
        ensure_owner(actor_id, user_id)
        return self.store.get_quiz_progress(milestone_id, user_id)

    def list_attempts(self, user_id: str, quiz_id: str, limit: Optional[int] = None) -> List[QuizAttempt]:
        """Submitted attempts, newest first."""
        attempts = self.store.query(
            ATTEMPTS_COLLECTION,
            QuizAttempt,
            filters={"user_id": str(user_id), "question_bank_id": quiz_id},
        )
        done = sorted((a for a in attempts if a.is_submitted), key=lambda a: a.completed_at, reverse=True)
        return done[:limit] if limit is not None else done

    def best_attempt(self, user_id: str, quiz_id: str) -> Optional[QuizAttempt]:
        attempts = self.list_attempts(user_id, quiz_id)
        return max(attempts, key=lambda a: a.score or 0.0) if attempts else None

    def attempt_stats(self, user_id: str, quiz_id: str) -> Optional[AttemptStats]:
        attempts = self.list_attempts(user_id, quiz_id)
        if not attempts:
            return None
        scores = [a.score or 0.0 for a in attempts]
        times = [a.time_spent_ms or 0 for a in attempts]
        return AttemptStats(
            total_attempts=len(attempts),
            average_score=sum(scores) / len(scores),
            best_score=max(scores),
            average_time_ms=sum(times) / len(times),
            last_attempt_at=attempts[0].completed_at,
        )
