from __future__ import annotations

from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, Field

from pathway.schemas.progress_schemas import LearningPathProgress, MilestoneQuizProgress, QuizAttempt


class _QuestionBase(BaseModel):
    id: str
    question: str = ""
    explanation: str = ""
    difficulty: Optional[Literal["beginner", "intermediate", "advanced"]] = None


class MultipleChoiceQuestion(_QuestionBase):
    type: Literal["multiple_choice"] = "multiple_choice"
    options: list[str]
    correct_option_index: int


class TimestampReferenceQuestion(_QuestionBase):
    type: Literal["timestamp_reference"] = "timestamp_reference"
    options: list[str]
    correct_option_index: int
    timestamp: float = 0  # seconds into the video


class TrueFalseQuestion(_QuestionBase):
    type: Literal["true_false"] = "true_false"
    correct_answer: bool


class FillInBlankQuestion(_QuestionBase):
    type: Literal["fill_in_blank"] = "fill_in_blank"
    text_before: str = ""
    text_after: str = ""
    correct_answer: str
    acceptable_answers: list[str] = Field(default_factory=list)


Question = Annotated[
    Union[MultipleChoiceQuestion, TimestampReferenceQuestion, TrueFalseQuestion, FillInBlankQuestion],
    Field(discriminator="type"),
]


class QuestionBank(BaseModel):
    id: str
    title: str = ""
    video_id: Optional[str] = None
    questions: list[Question] = Field(default_factory=list)


class ScoreResult(BaseModel):
    score: float
    correct_count: int
    total_questions: int


# ----- Request / response bodies -----

class StartAttemptRequest(BaseModel):
    question_ids: Optional[list[str]] = None


class SubmitAttemptRequest(BaseModel):
    answers: dict[str, Any]


class SubmissionResult(BaseModel):
    attempt: QuizAttempt
    quiz_progress: MilestoneQuizProgress


_ANSWER_FIELDS = {"correct_option_index", "correct_answer", "acceptable_answers", "explanation"}


def public_question(question) -> dict[str, Any]:
    """Question as shown while an attempt is open (answer keys stripped)."""
    return question.model_dump(exclude=_ANSWER_FIELDS)


class StartAttemptResponse(BaseModel):
    attempt: QuizAttempt
    questions: list[dict[str, Any]]


class SubmitAttemptResponse(BaseModel):
    attempt: QuizAttempt
    quiz_progress: MilestoneQuizProgress
    path_progress: Optional[LearningPathProgress] = None
