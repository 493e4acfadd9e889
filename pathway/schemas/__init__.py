"""
API schemas package. Import from submodules or from this package.

Example:
    from pathway.schemas import LearningPath, LearningPathProgress
    from pathway.schemas.quiz_schemas import QuestionBank
"""

from pathway.schemas.auth_schemas import (
    AuthTokenPayload,
    LoginRequest,
    LoginResponse,
    LogoutResponse,
    RegisterRequest,
    RegisterResponse,
)
from pathway.schemas.user_schemas import User
from pathway.schemas.learning_path_schemas import (
    DEFAULT_PASSING_SCORE,
    LearningPath,
    Milestone,
    MilestoneQuiz,
    QuizContent,
    QuizRef,
    QuizRequirements,
    UnlockCriteria,
    VideoContent,
)
from pathway.schemas.progress_schemas import (
    AttemptStats,
    LearningPathProgress,
    MilestoneQuizProgress,
    MilestoneStatus,
    MissingRequirements,
    ProgressAnalytics,
    QuizAttempt,
    StreakInfo,
    UnlockResult,
    VideoProgress,
)
from pathway.schemas.quiz_schemas import (
    FillInBlankQuestion,
    MultipleChoiceQuestion,
    QuestionBank,
    ScoreResult,
    StartAttemptRequest,
    StartAttemptResponse,
    SubmissionResult,
    SubmitAttemptRequest,
    SubmitAttemptResponse,
    TimestampReferenceQuestion,
    TrueFalseQuestion,
)
from pathway.schemas.path_schemas import (
    MilestoneQuizResponse,
    MilestoneUnlocksResponse,
    PathListResponse,
    PathSummary,
    UserProgressResponse,
    VideoCompleteRequest,
    VideoCompleteResponse,
    VideoPositionRequest,
)

__all__ = [
    # auth
    "AuthTokenPayload",
    "LoginRequest",
    "LoginResponse",
    "LogoutResponse",
    "RegisterRequest",
    "RegisterResponse",
    # user
    "User",
    # learning path definitions
    "DEFAULT_PASSING_SCORE",
    "LearningPath",
    "Milestone",
    "MilestoneQuiz",
    "QuizContent",
    "QuizRef",
    "QuizRequirements",
    "UnlockCriteria",
    "VideoContent",
    # progress records
    "AttemptStats",
    "LearningPathProgress",
    "MilestoneQuizProgress",
    "MilestoneStatus",
    "MissingRequirements",
    "ProgressAnalytics",
    "QuizAttempt",
    "StreakInfo",
    "UnlockResult",
    "VideoProgress",
    # quizzes
    "FillInBlankQuestion",
    "MultipleChoiceQuestion",
    "QuestionBank",
    "ScoreResult",
    "StartAttemptRequest",
    "StartAttemptResponse",
    "SubmissionResult",
    "SubmitAttemptRequest",
    "SubmitAttemptResponse",
    "TimestampReferenceQuestion",
    "TrueFalseQuestion",
    # paths
    "MilestoneQuizResponse",
    "MilestoneUnlocksResponse",
    "PathListResponse",
    "PathSummary",
    "UserProgressResponse",
    "VideoCompleteRequest",
    "VideoCompleteResponse",
    "VideoPositionRequest",
]
