"""
Learning path definition schemas (authored content, read-only to learners).

A milestone may declare its quiz in three places (a quiz item in `content`,
`quiz`, or `quizzes`). They are collapsed into a single `quiz_ref` when the
model is built, so progress code never has to pick between them.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field, model_validator

DEFAULT_PASSING_SCORE = 70.0

Difficulty = Literal["beginner", "intermediate", "advanced"]


class UnlockCriteria(BaseModel):
    """Conjunctive gate. Every field left unset is vacuously satisfied."""
    previous_milestone_id: Optional[str] = None
    required_videos: list[str] = Field(default_factory=list)
    required_quizzes: list[str] = Field(default_factory=list)
    required_score: Optional[float] = None

    def is_empty(self) -> bool:
        return not (self.previous_milestone_id or self.required_videos or self.required_quizzes)


class QuizRequirements(BaseModel):
    passing_score: Optional[float] = None
    max_attempts: Optional[int] = Field(default=None, ge=1)
    time_limit: Optional[int] = None  # seconds
    required_video_ids: list[str] = Field(default_factory=list)
    unlock_criteria: Optional[UnlockCriteria] = None


class MilestoneQuiz(BaseModel):
    id: str
    requirements: QuizRequirements = Field(default_factory=QuizRequirements)


class VideoContent(BaseModel):
    type: Literal["video"] = "video"
    video_id: str
    title: str = ""
    description: str = ""
    duration: float = 0  # seconds
    order: int
    is_required: bool = True


class QuizContent(BaseModel):
    type: Literal["quiz"] = "quiz"
    quiz_id: str
    title: str = ""
    description: str = ""
    time_limit: Optional[int] = None
    passing_score: Optional[float] = None
    max_attempts: Optional[int] = Field(default=None, ge=1)
    order: int
    is_required: bool = True


ContentItem = Annotated[Union[VideoContent, QuizContent], Field(discriminator="type")]


class QuizRef(BaseModel):
    """The one quiz that gates a milestone, with its effective requirements."""
    quiz_id: str
    source: Literal["content", "quiz", "quizzes"]
    passing_score: float = DEFAULT_PASSING_SCORE
    max_attempts: Optional[int] = None
    time_limit: Optional[int] = None
    required_video_ids: list[str] = Field(default_factory=list)
    unlock_criteria: Optional[UnlockCriteria] = None


def resolve_quiz_ref(
    content: list,
    quiz: Optional[MilestoneQuiz],
    quizzes: list[MilestoneQuiz],
    required_score: Optional[float],
) -> Optional[QuizRef]:
    """Pick the milestone quiz: content item first, then `quiz`, then `quizzes[0]`."""
    fallback_score = required_score if required_score is not None else DEFAULT_PASSING_SCORE

    quiz_items = sorted((c for c in content if isinstance(c, QuizContent)), key=lambda c: c.order)
    if quiz_items:
        item = quiz_items[0]
        # A content quiz may still carry requirements declared on `quiz`/`quizzes` under the same id.
        declared = next((q for q in ([quiz] if quiz else []) + list(quizzes) if q.id == item.quiz_id), None)
        reqs = declared.requirements if declared else QuizRequirements()
        passing = item.passing_score if item.passing_score is not None else reqs.passing_score
        return QuizRef(
            quiz_id=item.quiz_id,
            source="content",
            passing_score=passing if passing is not None else fallback_score,
            max_attempts=item.max_attempts or reqs.max_attempts,
            time_limit=item.time_limit or reqs.time_limit,
            required_video_ids=list(reqs.required_video_ids),
            unlock_criteria=reqs.unlock_criteria,
        )

    for source, candidate in (("quiz", quiz), ("quizzes", quizzes[0] if quizzes else None)):
        if candidate is None:
            continue
        reqs = candidate.requirements
        return QuizRef(
            quiz_id=candidate.id,
            source=source,
            passing_score=reqs.passing_score if reqs.passing_score is not None else fallback_score,
            max_attempts=reqs.max_attempts,
            time_limit=reqs.time_limit,
            required_video_ids=list(reqs.required_video_ids),
            unlock_criteria=reqs.unlock_criteria,
        )
    return None


class Milestone(BaseModel):
    id: str
    title: str = ""
    description: str = ""
    order: int
    content: list[ContentItem] = Field(default_factory=list)
    required_score: Optional[float] = None
    quiz: Optional[MilestoneQuiz] = None
    quizzes: list[MilestoneQuiz] = Field(default_factory=list)
    unlock_criteria: Optional[UnlockCriteria] = None
    quiz_ref: Optional[QuizRef] = None

    @model_validator(mode="after")
    def _resolve_quiz_ref(self) -> "Milestone":
        resolved = resolve_quiz_ref(self.content, self.quiz, self.quizzes, self.required_score)
        if self.quiz_ref is not None and self.quiz_ref != resolved:
            raise ValueError(f"milestone {self.id}: quiz_ref does not match the declared quiz")
        self.quiz_ref = resolved
        return self

    def ordered_content(self) -> list[Union[VideoContent, QuizContent]]:
        return sorted(self.content, key=lambda c: c.order)

    def video_ids(self) -> list[str]:
        return [c.video_id for c in self.ordered_content() if isinstance(c, VideoContent)]


class LearningPath(BaseModel):
    id: str
    title: str
    description: str = ""
    difficulty: Difficulty = "beginner"
    estimated_hours: float = 0
    prerequisites: list[str] = Field(default_factory=list)
    milestones: list[Milestone] = Field(default_factory=list)
    creator_id: str
    is_public: bool = False
    category: str = ""
    tags: list[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @model_validator(mode="after")
    def _check_structure(self) -> "LearningPath":
        ids = [m.id for m in self.milestones]
        if len(set(ids)) != len(ids):
            raise ValueError("milestone ids must be unique within a path")

        if self.milestones and self.milestones[0].order != 1:
            raise ValueError(f"milestone order must start at 1, got {self.milestones[0].order}")
        for prev, cur in zip(self.milestones, self.milestones[1:]):
            if cur.order != prev.order + 1:
                raise ValueError(
                    f"milestone order must be contiguous and ascending: {prev.id}={prev.order}, {cur.id}={cur.order}"
                )

        position = {m.id: i for i, m in enumerate(self.milestones)}
        quiz_ids = {m.quiz_ref.quiz_id for m in self.milestones if m.quiz_ref}
        for i, m in enumerate(self.milestones):
            criteria = [m.unlock_criteria]
            if m.quiz_ref:
                criteria.append(m.quiz_ref.unlock_criteria)
            for c in criteria:
                if c is None:
                    continue
                prev_id = c.previous_milestone_id
                if prev_id is not None:
                    if prev_id not in position:
                        raise ValueError(f"milestone {m.id} references unknown milestone {prev_id}")
                    if position[prev_id] >= i:
                        raise ValueError(f"milestone {m.id} must reference an earlier milestone, got {prev_id}")
                unknown = [q for q in c.required_quizzes if q not in quiz_ids]
                if unknown:
                    raise ValueError(f"milestone {m.id} references unknown quizzes {unknown}")
        return self

    def milestone(self, milestone_id: str) -> Optional[Milestone]:
        return next((m for m in self.milestones if m.id == milestone_id), None)

    def milestone_for_quiz(self, quiz_id: str) -> Optional[Milestone]:
        return next((m for m in self.milestones if m.quiz_ref and m.quiz_ref.quiz_id == quiz_id), None)

    def milestones_with_video(self, video_id: str) -> list[Milestone]:
        return [m for m in self.milestones if video_id in m.video_ids()]

    def all_video_ids(self) -> list[str]:
        seen: dict[str, None] = {}
        for m in self.milestones:
            for vid in m.video_ids():
                seen.setdefault(vid, None)
        return list(seen)
