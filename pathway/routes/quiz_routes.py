"""
Milestone quiz endpoints: entry point, attempts, submissions and stats.
"""

from typing import Optional

from fastapi import APIRouter, Depends

from pathway.bootstrap import ProgressEngine, get_engine
from pathway.schemas.path_schemas import MilestoneQuizResponse
from pathway.schemas.progress_schemas import AttemptStats
from pathway.schemas.quiz_schemas import (
    StartAttemptRequest,
    StartAttemptResponse,
    SubmitAttemptRequest,
    SubmitAttemptResponse,
    public_question,
)
from pathway.schemas.user_schemas import User
from pathway.utils.auth import get_current_user
from pathway.utils.errors import ValidationError

quiz_routes = APIRouter()


@quiz_routes.get("/paths/{path_id}/milestones/{milestone_id}/quiz", response_model=MilestoneQuizResponse)
async def get_milestone_quiz(
    path_id: str,
    milestone_id: str,
    current_user: User = Depends(get_current_user),
    engine: ProgressEngine = Depends(get_engine),
) -> MilestoneQuizResponse:
    path = engine.content.get_visible_path(path_id, current_user.id)
    milestone = engine.content.milestone_of(path, milestone_id)
    if milestone.quiz_ref is None:
        raise ValidationError(f"Milestone {milestone_id} has no quiz")

    unlock = engine.unlocks.quiz_unlock(path, milestone, engine.unlocks.snapshot(path, current_user.id))
    bank = engine.content.get_quiz(milestone.quiz_ref.quiz_id)
    progress = engine.quizzes.get_progress(milestone_id, current_user.id, actor_id=current_user.id)
    return MilestoneQuizResponse(
        milestone_id=milestone_id,
        quiz=milestone.quiz_ref,
        unlock=unlock,
        question_count=len(bank.questions),
        attempts_used=progress.completed_attempts if progress else 0,
        progress=progress,
    )


@quiz_routes.post("/paths/{path_id}/milestones/{milestone_id}/quiz/attempts", response_model=StartAttemptResponse)
async def start_quiz_attempt(
    path_id: str,
    milestone_id: str,
    body: Optional[StartAttemptRequest] = None,
    current_user: User = Depends(get_current_user),
    engine: ProgressEngine = Depends(get_engine),
) -> StartAttemptResponse:
    """Open a timed attempt. Fails with 403 while the quiz is locked and 409 once attempts run out."""
    engine.content.get_visible_path(path_id, current_user.id)
    attempt = engine.quizzes.start_attempt(
        path_id,
        milestone_id,
        current_user.id,
        question_ids=body.question_ids if body else None,
    )
    bank = engine.content.get_quiz(attempt.question_bank_id)
    wanted = set(attempt.question_ids)
    questions = [public_question(q) for q in bank.questions if q.id in wanted]
    return StartAttemptResponse(attempt=attempt, questions=questions)


@quiz_routes.post("/quiz/attempts/{attempt_id}/submit", response_model=SubmitAttemptResponse)
async def submit_quiz_attempt(
    attempt_id: str,
    body: SubmitAttemptRequest,
    current_user: User = Depends(get_current_user),
    engine: ProgressEngine = Depends(get_engine),
) -> SubmitAttemptResponse:
    """
    Grade and record an attempt, then fold the result into path progress.
    Scores are always computed server-side from the question bank.
    """
    result = engine.quizzes.submit_attempt(attempt_id, current_user.id, body.answers)
    path_progress = engine.paths.on_quiz_completed(
        result.attempt.path_id,
        result.attempt.milestone_id,
        current_user.id,
        result.quiz_progress,
        actor_id=current_user.id,
    )
    return SubmitAttemptResponse(
        attempt=result.attempt,
        quiz_progress=result.quiz_progress,
        path_progress=path_progress,
    )


@quiz_routes.get("/quiz/{quiz_id}/stats", response_model=Optional[AttemptStats])
async def get_quiz_stats(
    quiz_id: str,
    current_user: User = Depends(get_current_user),
    engine: ProgressEngine = Depends(get_engine),
) -> Optional[AttemptStats]:
    """Attempt statistics for the caller; null before the first submission."""
    return engine.quizzes.attempt_stats(current_user.id, quiz_id)
