"""Unit tests for milestone completion aggregation."""
import pytest

from pathway.schemas.learning_path_schemas import Milestone
from pathway.schemas.progress_schemas import MilestoneQuizProgress, VideoProgress
from pathway.services.milestone_service import is_milestone_complete


def _video(video_id: str, completed: bool) -> VideoProgress:
    return VideoProgress(video_id=video_id, user_id="u", completed=completed)


VIDEOS_ONLY = Milestone.model_validate(
    {
        "id": "m",
        "order": 1,
        "content": [
            {"type": "video", "video_id": "v1", "order": 1},
            {"type": "video", "video_id": "v2", "order": 2},
        ],
    }
)

WITH_QUIZ = Milestone.model_validate(
    {
        "id": "mq",
        "order": 1,
        "content": [
            {"type": "video", "video_id": "v1", "order": 1},
            {"type": "quiz", "quiz_id": "q", "order": 2},
        ],
    }
)


@pytest.mark.unit
class TestIsMilestoneComplete:
    def test_no_quiz_completes_from_videos_alone(self):
        videos = {"v1": _video("v1", True), "v2": _video("v2", True)}
        assert is_milestone_complete(VIDEOS_ONLY, videos, None) is True

    def test_missing_video_document_is_incomplete(self):
        assert is_milestone_complete(VIDEOS_ONLY, {"v1": _video("v1", True)}, None) is False

    def test_unfinished_video_is_incomplete(self):
        videos = {"v1": _video("v1", True), "v2": _video("v2", False)}
        assert is_milestone_complete(VIDEOS_ONLY, videos, None) is False

    def test_quiz_must_be_completed(self):
        videos = {"v1": _video("v1", True)}
        qp = MilestoneQuizProgress(milestone_id="mq", user_id="u", question_bank_id="q", best_score=50)
        assert is_milestone_complete(WITH_QUIZ, videos, None) is False
        assert is_milestone_complete(WITH_QUIZ, videos, qp) is False
        qp.is_completed = True
        assert is_milestone_complete(WITH_QUIZ, videos, qp) is True


@pytest.mark.unit
class TestMilestoneService:
    def test_compute_completion_reads_store(self, seeded_engine):
        m1 = seeded_engine.content.get_milestone("path-1", "m1")
        status = seeded_engine.milestones.compute_completion(m1, "u1")
        assert status.is_completed is False
        assert status.video_progress == {}

        seeded_engine.videos.mark_completed("u1", "v1")
        seeded_engine.videos.mark_completed("u1", "v2")
        status = seeded_engine.milestones.compute_completion(m1, "u1")
        assert status.is_completed is True
        assert set(status.video_progress) == {"v1", "v2"}
        assert status.quiz_progress is None

    def test_supplied_quiz_progress_is_used(self, seeded_engine):
        m2 = seeded_engine.content.get_milestone("path-1", "m2")
        seeded_engine.videos.mark_completed("u1", "v3")
        fresh = MilestoneQuizProgress(milestone_id="m2", user_id="u1", question_bank_id="q2", best_score=100, is_completed=True)
        status = seeded_engine.milestones.compute_completion(m2, "u1", quiz_progress=fresh)
        assert status.is_completed is True
        assert status.quiz_progress == fresh
        # Nothing was stored, so reading back alone stays incomplete.
        assert seeded_engine.milestones.compute_completion(m2, "u1").is_completed is False
