"""Unit tests for unlock evaluation (pure) and the store-backed unlock service."""
import pytest

from pathway.schemas.learning_path_schemas import Milestone, UnlockCriteria
from pathway.schemas.progress_schemas import MilestoneQuizProgress
from pathway.services.unlock_service import ProgressSnapshot, content_item_unlock, evaluate, merge_results
from pathway.utils.errors import NotFoundError, UnauthorizedError


def _quiz(best: float, completed: bool) -> MilestoneQuizProgress:
    return MilestoneQuizProgress(milestone_id="m", user_id="u", question_bank_id="q", best_score=best, is_completed=completed)


@pytest.mark.unit
class TestEvaluate:
    def test_no_criteria_is_unlocked(self):
        result = evaluate(None, ProgressSnapshot())
        assert result.is_unlocked is True
        assert result.missing is None

    def test_empty_criteria_is_unlocked(self):
        assert evaluate(UnlockCriteria(), ProgressSnapshot()).is_unlocked is True

    def test_lists_every_unmet_requirement(self):
        criteria = UnlockCriteria(previous_milestone_id="m1", required_videos=["a", "b", "c"], required_quizzes=["q1", "q2"])
        snap = ProgressSnapshot(completed_videos=frozenset({"b"}), quiz_progress={"q2": _quiz(90, True)})
        result = evaluate(criteria, snap)
        assert result.is_unlocked is False
        assert result.missing.videos == ["a", "c"]
        assert result.missing.quizzes == ["q1"]
        assert result.missing.previous_milestone == "m1"

    def test_all_met(self):
        criteria = UnlockCriteria(previous_milestone_id="m1", required_videos=["a"], required_quizzes=["q1"])
        snap = ProgressSnapshot(
            completed_videos=frozenset({"a"}),
            quiz_progress={"q1": _quiz(75, True)},
            completed_milestones=frozenset({"m1"}),
        )
        assert evaluate(criteria, snap).is_unlocked is True

    def test_incomplete_quiz_does_not_count(self):
        criteria = UnlockCriteria(required_quizzes=["q1"])
        snap = ProgressSnapshot(quiz_progress={"q1": _quiz(65, False)})
        assert evaluate(criteria, snap).missing.quizzes == ["q1"]

    def test_required_score_tightens_quiz_check(self):
        criteria = UnlockCriteria(required_quizzes=["q1"], required_score=90)
        snap = ProgressSnapshot(quiz_progress={"q1": _quiz(80, True)})
        assert evaluate(criteria, snap).missing.quizzes == ["q1"]
        snap = ProgressSnapshot(quiz_progress={"q1": _quiz(95, True)})
        assert evaluate(criteria, snap).is_unlocked is True

    def test_evaluation_is_repeatable(self):
        criteria = UnlockCriteria(required_videos=["a"])
        snap = ProgressSnapshot()
        assert evaluate(criteria, snap) == evaluate(criteria, snap)


@pytest.mark.unit
class TestContentOrdering:
    def _milestone(self) -> Milestone:
        return Milestone.model_validate(
            {
                "id": "m",
                "order": 1,
                "content": [
                    {"type": "video", "video_id": "v1", "order": 1},
                    {"type": "video", "video_id": "v2", "order": 2},
                    {"type": "quiz", "quiz_id": "q", "order": 3},
                    {"type": "video", "video_id": "v3", "order": 4},
                ],
            }
        )

    def test_first_item_always_unlocked(self):
        assert content_item_unlock(self._milestone(), 0, ProgressSnapshot()).is_unlocked is True

    def test_lists_every_earlier_incomplete_item(self):
        result = content_item_unlock(self._milestone(), 3, ProgressSnapshot(completed_videos=frozenset({"v2"})))
        assert result.missing.videos == ["v1"]
        assert result.missing.quizzes == ["q"]

    def test_out_of_range_index(self):
        with pytest.raises(IndexError):
            content_item_unlock(self._milestone(), 9, ProgressSnapshot())

    def test_merge_results_unions_missing(self):
        a = evaluate(UnlockCriteria(required_videos=["v1"]), ProgressSnapshot())
        b = evaluate(UnlockCriteria(required_videos=["v1", "v2"], previous_milestone_id="m0"), ProgressSnapshot())
        merged = merge_results(a, b)
        assert merged.missing.videos == ["v1", "v2"]
        assert merged.missing.previous_milestone == "m0"


@pytest.mark.unit
class TestUnlockService:
    def test_first_milestone_unlocked_second_locked(self, seeded_engine):
        assert seeded_engine.unlocks.check_milestone("path-1", "m1", "u1").is_unlocked is True
        result = seeded_engine.unlocks.check_milestone("path-1", "m2", "u1")
        assert result.is_unlocked is False
        assert result.missing.previous_milestone == "m1"

    def test_previous_milestone_derived_from_videos(self, seeded_engine):
        seeded_engine.videos.mark_completed("u1", "v1")
        seeded_engine.videos.mark_completed("u1", "v2")
        # No path progress record was ever written; completion is derived.
        assert seeded_engine.store.get_path_progress("u1", "path-1") is None
        assert seeded_engine.unlocks.check_milestone("path-1", "m2", "u1").is_unlocked is True

    def test_quiz_gate_merges_milestone_and_content_order(self, seeded_engine):
        result = seeded_engine.unlocks.check_quiz("path-1", "m2", "u1")
        assert result.is_unlocked is False
        assert result.missing.previous_milestone == "m1"
        assert result.missing.videos == ["v3"]

    def test_quiz_required_videos(self, seeded_engine):
        result = seeded_engine.unlocks.check_quiz("path-1", "m3", "u1")
        assert "v4" in result.missing.videos
        assert result.missing.quizzes == ["q2"]

    def test_unlocked_milestones(self, seeded_engine):
        unlocks = seeded_engine.unlocks.unlocked_milestones("path-1", "u1")
        assert unlocks["m1"].is_unlocked is True
        assert unlocks["m2"].is_unlocked is False
        assert unlocks["m3"].is_unlocked is False

    def test_unknown_milestone(self, seeded_engine):
        with pytest.raises(NotFoundError):
            seeded_engine.unlocks.check_milestone("path-1", "nope", "u1")

    def test_unknown_path(self, engine):
        with pytest.raises(NotFoundError):
            engine.unlocks.check_milestone("missing", "m1", "u1")

    def test_other_users_progress_is_private(self, seeded_engine):
        with pytest.raises(UnauthorizedError):
            seeded_engine.unlocks.check_milestone("path-1", "m1", "u1", actor_id="u2")
