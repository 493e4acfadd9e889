"""
Per-user progress records. These are the documents the progress store holds.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, Field, field_serializer


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class VideoProgress(BaseModel):
    """Per user x video. `completed` never reverts to False once set."""
    video_id: str
    user_id: str
    completed: bool = False
    last_position: float = 0  # seconds
    time_watched_ms: int = 0
    last_watched_at: datetime = Field(default_factory=utcnow)
    completed_at: Optional[datetime] = None


class QuizAttempt(BaseModel):
    """One timed submission. Immutable once `completed_at` is set."""
    id: str
    user_id: str
    path_id: str
    milestone_id: str
    question_bank_id: str
    question_ids: list[str] = Field(default_factory=list)
    answers: dict[str, Any] = Field(default_factory=dict)
    score: Optional[float] = None
    started_at: datetime = Field(default_factory=utcnow)
    completed_at: Optional[datetime] = None
    time_spent_ms: Optional[int] = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def is_submitted(self) -> bool:
        return self.completed_at is not None


class MilestoneQuizProgress(BaseModel):
    """
    Per user x milestone quiz. `best_score` only grows and `is_completed` never
    reverts. `unlocked` is a cache hint for clients; unlock is always recomputed.
    """
    milestone_id: str
    user_id: str
    question_bank_id: str
    attempts: list[QuizAttempt] = Field(default_factory=list)
    best_score: float = 0.0
    is_completed: bool = False
    unlocked: bool = False
    last_attempt_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @property
    def completed_attempts(self) -> int:
        return sum(1 for a in self.attempts if a.is_submitted)


class LearningPathProgress(BaseModel):
    """
    Per user x path aggregate. Set fields are real sets in memory; they are
    written as sorted lists and de-duplicated again on load.
    """
    user_id: str
    path_id: str
    current_milestone_id: str = ""
    completed_milestones: set[str] = Field(default_factory=set)
    completed_videos: set[str] = Field(default_factory=set)
    quiz_scores: dict[str, float] = Field(default_factory=dict)
    started_at: datetime = Field(default_factory=utcnow)
    last_accessed_at: datetime = Field(default_factory=utcnow)
    completed_at: Optional[datetime] = None

    @field_serializer("completed_milestones", "completed_videos")
    def _serialize_set(self, value: set[str]) -> list[str]:
        return sorted(value)


class MilestoneStatus(BaseModel):
    milestone_id: str
    is_completed: bool
    video_progress: dict[str, VideoProgress] = Field(default_factory=dict)
    quiz_progress: Optional[MilestoneQuizProgress] = None


class MissingRequirements(BaseModel):
    videos: Optional[list[str]] = None
    quizzes: Optional[list[str]] = None
    previous_milestone: Optional[str] = None

    def is_empty(self) -> bool:
        return not (self.videos or self.quizzes or self.previous_milestone)


class UnlockResult(BaseModel):
    is_unlocked: bool
    reason: Optional[str] = None
    missing: Optional[MissingRequirements] = None


class ProgressAnalytics(BaseModel):
    total_time_spent_ms: int = 0
    average_quiz_score: float = 0.0
    completed_videos: int = 0
    total_videos: int = 0
    completed_quizzes: int = 0
    total_quizzes: int = 0
    last_accessed_at: Optional[datetime] = None


class AttemptStats(BaseModel):
    total_attempts: int
    average_score: float
    best_score: float
    average_time_ms: float
    last_attempt_at: Optional[datetime] = None


class StreakInfo(BaseModel):
    user_id: str
    current_streak: int = 0
    longest_streak: int = 0
    last_watched_date: Optional[str] = None  # YYYY-MM-DD
