"""
Unlock evaluation.

`evaluate` is a pure function of (criteria, snapshot). Snapshots are rebuilt
from the underlying video/quiz facts on every check; nothing here trusts a
stored "unlocked" or "milestone completed" flag.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional

from pathway.schemas.learning_path_schemas import LearningPath, Milestone, QuizContent, UnlockCriteria, VideoContent
from pathway.schemas.progress_schemas import MilestoneQuizProgress, MissingRequirements, UnlockResult, VideoProgress
from pathway.services.content_service import ContentRepository
from pathway.services.milestone_service import is_milestone_complete
from pathway.services.progress_store import ProgressStore
from pathway.utils.common import ensure_owner


@dataclass(frozen=True)
class ProgressSnapshot:
    """What one user has completed, as far as gating is concerned."""
    completed_videos: FrozenSet[str] = frozenset()
    quiz_progress: Mapping[str, MilestoneQuizProgress] = field(default_factory=dict)  # by quiz id
    completed_milestones: FrozenSet[str] = frozenset()

    def quiz_satisfied(self, quiz_id: str, required_score: Optional[float] = None) -> bool:
        qp = self.quiz_progress.get(quiz_id)
        if qp is None or qp.is_completed is not True:
            return False
        return required_score is None or qp.best_score >= required_score


def _dedupe(items: Iterable[str]) -> List[str]:
    return list(dict.fromkeys(items))


def _result(missing: MissingRequirements, reason: str) -> UnlockResult:
    if missing.is_empty():
        return UnlockResult(is_unlocked=True)
    return UnlockResult(is_unlocked=False, reason=reason, missing=missing)


def evaluate(criteria: Optional[UnlockCriteria], snapshot: ProgressSnapshot) -> UnlockResult:
    """
    Conjunctive check of `criteria` against `snapshot`.

    Every unmet sub-requirement is listed in `missing`; an absent sub-criterion
    is vacuously met, so `None` criteria are always unlocked. `required_score`
    tightens the required-quiz check (best score must reach it).
    """
    if criteria is None:
        return UnlockResult(is_unlocked=True)

    missing = MissingRequirements()
    prev = criteria.previous_milestone_id
    if prev and prev not in snapshot.completed_milestones:
        missing.previous_milestone = prev

    videos = [v for v in _dedupe(criteria.required_videos) if v not in snapshot.completed_videos]
    if videos:
        missing.videos = videos

    quizzes = [q for q in _dedupe(criteria.required_quizzes) if not snapshot.quiz_satisfied(q, criteria.required_score)]
    if quizzes:
        missing.quizzes = quizzes

    return _result(missing, "Missing unlock requirements")


def merge_results(*results: UnlockResult, reason: str = "Missing prerequisites") -> UnlockResult:
    """Conjunction of several unlock results; missing items are unioned in order."""
    missing = MissingRequirements()
    videos: List[str] = []
    quizzes: List[str] = []
    for r in results:
        if r.is_unlocked or r.missing is None:
            continue
        videos.extend(r.missing.videos or [])
        quizzes.extend(r.missing.quizzes or [])
        if r.missing.previous_milestone and not missing.previous_milestone:
            missing.previous_milestone = r.missing.previous_milestone
    missing.videos = _dedupe(videos) or None
    missing.quizzes = _dedupe(quizzes) or None
    return _result(missing, reason)


def content_item_unlock(milestone: Milestone, index: int, snapshot: ProgressSnapshot) -> UnlockResult:
    """Content inside a milestone unlocks in order: item `index` needs every earlier item done."""
    items = milestone.ordered_content()
    if index < 0 or index >= len(items):
        raise IndexError(f"milestone {milestone.id} has no content item {index}")

    missing = MissingRequirements()
    videos = [c.video_id for c in items[:index] if isinstance(c, VideoContent) and c.video_id not in snapshot.completed_videos]
    quizzes = [c.quiz_id for c in items[:index] if isinstance(c, QuizContent) and not snapshot.quiz_satisfied(c.quiz_id)]
    missing.videos = videos or None
    missing.quizzes = quizzes or None
    return _result(missing, "Complete earlier content first")


def _criteria_video_ids(path: LearningPath) -> List[str]:
    ids: List[str] = []
    for m in path.milestones:
        if m.unlock_criteria:
            ids.extend(m.unlock_criteria.required_videos)
        if m.quiz_ref:
            ids.extend(m.quiz_ref.required_video_ids)
            if m.quiz_ref.unlock_criteria:
                ids.extend(m.quiz_ref.unlock_criteria.required_videos)
    return ids


class UnlockService:
    """Builds snapshots from the store and evaluates milestone / quiz gates."""

    def __init__(self, store: ProgressStore, content: ContentRepository):
        self.store = store
        self.content = content

    def snapshot(self, path: LearningPath, user_id: str) -> ProgressSnapshot:
        videos: Dict[str, Optional[VideoProgress]] = {}
        for video_id in _dedupe(path.all_video_ids() + _criteria_video_ids(path)):
            videos[video_id] = self.store.get_video_progress(user_id, video_id)

        quiz_by_milestone: Dict[str, Optional[MilestoneQuizProgress]] = {}
        quiz_progress: Dict[str, MilestoneQuizProgress] = {}
        for m in path.milestones:
            if m.quiz_ref is None:
                continue
            qp = self.store.get_quiz_progress(m.id, user_id)
            quiz_by_milestone[m.id] = qp
            if qp is not None:
                quiz_progress[m.quiz_ref.quiz_id] = qp

        completed_milestones = frozenset(
            m.id for m in path.milestones if is_milestone_complete(m, videos, quiz_by_milestone.get(m.id))
        )
        return ProgressSnapshot(
            completed_videos=frozenset(v for v, vp in videos.items() if vp is not None and vp.completed is True),
            quiz_progress=quiz_progress,
            completed_milestones=completed_milestones,
        )

    def check_milestone(self, path_id: str, milestone_id: str, user_id: str, actor_id: Optional[str] = None) -> UnlockResult:
        ensure_owner(actor_id, user_id)
        path = self.content.get_path(path_id)
        milestone = self.content.milestone_of(path, milestone_id)
        return evaluate(milestone.unlock_criteria, self.snapshot(path, user_id))

    def quiz_unlock(self, path: LearningPath, milestone: Milestone, snapshot: ProgressSnapshot) -> UnlockResult:
        """Milestone gate AND quiz requirements AND in-milestone content order."""
        ref = milestone.quiz_ref
        if ref is None:
            return UnlockResult(is_unlocked=True)

        results = [evaluate(milestone.unlock_criteria, snapshot)]
        results.append(evaluate(UnlockCriteria(required_videos=ref.required_video_ids), snapshot))
        results.append(evaluate(ref.unlock_criteria, snapshot))
        if ref.source == "content":
            items = milestone.ordered_content()
            index = next(i for i, c in enumerate(items) if isinstance(c, QuizContent) and c.quiz_id == ref.quiz_id)
            results.append(content_item_unlock(milestone, index, snapshot))
        return merge_results(*results)

    def check_quiz(self, path_id: str, milestone_id: str, user_id: str, actor_id: Optional[str] = None) -> UnlockResult:
        ensure_owner(actor_id, user_id)
        path = self.content.get_path(path_id)
        milestone = self.content.milestone_of(path, milestone_id)
        return self.quiz_unlock(path, milestone, self.snapshot(path, user_id))

    def unlocked_milestones(self, path_id: str, user_id: str, actor_id: Optional[str] = None) -> Dict[str, UnlockResult]:
        ensure_owner(actor_id, user_id)
        path = self.content.get_path(path_id)
        snap = self.snapshot(path, user_id)
        return {m.id: evaluate(m.unlock_criteria, snap) for m in path.milestones}
