"""
Request / response bodies for the path, video and progress endpoints.
"""

from typing import Optional

from pydantic import BaseModel, Field

from pathway.schemas.learning_path_schemas import Difficulty, LearningPath, QuizRef
from pathway.schemas.progress_schemas import (
    LearningPathProgress,
    MilestoneQuizProgress,
    UnlockResult,
    VideoProgress,
)


class PathSummary(BaseModel):
    id: str
    title: str
    description: str
    difficulty: Difficulty
    estimated_hours: float
    category: str
    tags: list[str]
    is_public: bool
    milestone_count: int

    @classmethod
    def from_path(cls, path: LearningPath) -> "PathSummary":
        return cls(
            id=path.id,
            title=path.title,
            description=path.description,
            difficulty=path.difficulty,
            estimated_hours=path.estimated_hours,
            category=path.category,
            tags=list(path.tags),
            is_public=path.is_public,
            milestone_count=len(path.milestones),
        )


class PathListResponse(BaseModel):
    paths: list[PathSummary]


class VideoPositionRequest(BaseModel):
    position: float = Field(ge=0)  # seconds
    watched_ms: int = Field(default=0, ge=0)


class VideoCompleteRequest(BaseModel):
    position: Optional[float] = Field(default=None, ge=0)
    watched_ms: int = Field(default=0, ge=0)


class VideoCompleteResponse(BaseModel):
    video: Optional[VideoProgress]
    path_progress: LearningPathProgress


class MilestoneUnlocksResponse(BaseModel):
    unlocks: dict[str, UnlockResult]


class MilestoneQuizResponse(BaseModel):
    """What a client needs to render a milestone quiz entry point (no answers)."""
    milestone_id: str
    quiz: QuizRef
    unlock: UnlockResult
    question_count: int
    attempts_used: int
    progress: Optional[MilestoneQuizProgress] = None


class UserProgressResponse(BaseModel):
    paths: list[LearningPathProgress]
