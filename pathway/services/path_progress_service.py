"""
Path progress: folds video and quiz completions into the per-user path record.

Every change goes through `apply_progress`, a pure and monotonic reducer (sets
only grow, scores only rise, `completed_at` is set once). The store re-applies
it on a fresh read whenever a concurrent writer wins, so concurrent completions
for the same user and path never lose each other's additions.
"""

from __future__ import annotations

from datetime import datetime
from typing import Callable, Iterable, List, Mapping, Optional

from pathway.schemas.learning_path_schemas import LearningPath
from pathway.schemas.progress_schemas import LearningPathProgress, MilestoneQuizProgress, utcnow
from pathway.services.analytics_service import AnalyticsService
from pathway.services.content_service import ContentRepository
from pathway.services.events import EventBus, ProgressEvent, ProgressEventType
from pathway.services.milestone_service import MilestoneService
from pathway.services.progress_store import PATH_PROGRESS_COLLECTION, ProgressStore, path_progress_key
from pathway.services.streak_service import StreakService
from pathway.services.unlock_service import UnlockService
from pathway.services.video_progress_service import VideoProgressService
from pathway.utils.common import ensure_owner
from pathway.utils.errors import NotFoundError, ValidationError
from pathway.utils.logger import configure_logging, log_request

logger = configure_logging()


def current_milestone(path: LearningPath, completed: Iterable[str]) -> str:
    """First incomplete milestone in order; the last one once all are done."""
    done = set(completed)
    for m in path.milestones:
        if m.id not in done:
            return m.id
    return path.milestones[-1].id if path.milestones else ""


def is_path_complete(path: LearningPath, completed: Iterable[str]) -> bool:
    done = set(completed)
    return bool(path.milestones) and all(m.id in done for m in path.milestones)


def apply_progress(
    current: Optional[LearningPathProgress],
    path: LearningPath,
    user_id: str,
    now: datetime,
    *,
    videos: Iterable[str] = (),
    quiz_scores: Optional[Mapping[str, float]] = None,
    milestones: Iterable[str] = (),
) -> LearningPathProgress:
    """
    Merge newly observed facts into a path progress record.

    `milestones` must only contain IDs whose completion predicate held when the
    caller evaluated it; IDs outside the path are ignored. Milestones with no
    videos and no quiz are complete on any update.
    """
    progress = current or LearningPathProgress(user_id=user_id, path_id=path.id, started_at=now)
    path_milestones = {m.id for m in path.milestones}
    empty = {m.id for m in path.milestones if not m.video_ids() and m.quiz_ref is None}

    progress.completed_videos |= set(videos)
    for quiz_id, score in (quiz_scores or {}).items():
        progress.quiz_scores[quiz_id] = max(progress.quiz_scores.get(quiz_id, 0.0), float(score))
    progress.completed_milestones |= {m for m in milestones if m in path_milestones} | empty

    progress.current_milestone_id = current_milestone(path, progress.completed_milestones)
    if progress.completed_at is None and is_path_complete(path, progress.completed_milestones):
        progress.completed_at = now
    progress.last_accessed_at = now
    return progress


class PathProgressService:
    def __init__(
        self,
        store: ProgressStore,
        content: ContentRepository,
        milestones: MilestoneService,
        unlocks: UnlockService,
        videos: VideoProgressService,
        analytics: AnalyticsService,
        streaks: StreakService,
        events: Optional[EventBus] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.content = content
        self.milestones = milestones
        self.unlocks = unlocks
        self.videos = videos
        self.analytics = analytics
        self.streaks = streaks
        self.events = events
        self.clock = clock

    # ----- reads -----

    def get_progress(self, path_id: str, user_id: str, actor_id: Optional[str] = None) -> LearningPathProgress:
        """Stored record, or an unsaved zero-value record when the user has not started."""
        ensure_owner(actor_id, user_id)
        path = self.content.get_path(path_id)
        stored = self.store.get_path_progress(user_id, path_id)
        if stored is not None:
            return stored
        now = self.clock()
        return LearningPathProgress(
            user_id=user_id,
            path_id=path_id,
            current_milestone_id=current_milestone(path, ()),
            started_at=now,
            last_accessed_at=now,
        )

    def list_user_progress(self, user_id: str) -> List[LearningPathProgress]:
        return self.store.query(
            PATH_PROGRESS_COLLECTION,
            LearningPathProgress,
            filters={"user_id": str(user_id)},
            order_by="last_accessed_at",
            descending=True,
        )

    # ----- completion events -----

    def on_video_completed(self, path_id: str, user_id: str, video_id: str, actor_id: Optional[str] = None) -> LearningPathProgress:
        ensure_owner(actor_id, user_id)
        path = self.content.get_path(path_id)
        affected = path.milestones_with_video(video_id)
        if not affected:
            raise NotFoundError(f"Video {video_id} is not part of path {path_id}")

        self.videos.mark_completed(user_id, video_id)
        self.streaks.record_activity(user_id)

        completed = [m.id for m in affected if self.milestones.compute_completion(m, user_id).is_completed]
        return self._commit(path, user_id, videos=[video_id], milestones=completed)

    def on_quiz_completed(
        self,
        path_id: str,
        milestone_id: str,
        user_id: str,
        quiz_progress: MilestoneQuizProgress,
        actor_id: Optional[str] = None,
    ) -> LearningPathProgress:
        ensure_owner(actor_id, user_id)
        path = self.content.get_path(path_id)
        milestone = self.content.milestone_of(path, milestone_id)
        if milestone.quiz_ref is None:
            raise ValidationError(f"Milestone {milestone_id} has no quiz")

        status = self.milestones.compute_completion(milestone, user_id, quiz_progress)
        return self._commit(
            path,
            user_id,
            quiz_scores={milestone.quiz_ref.quiz_id: quiz_progress.best_score},
            milestones=[milestone_id] if status.is_completed else [],
        )

    def refresh(self, path_id: str, user_id: str, actor_id: Optional[str] = None) -> LearningPathProgress:
        """Re-aggregate every milestone from the underlying facts. Only ever adds."""
        ensure_owner(actor_id, user_id)
        path = self.content.get_path(path_id)
        snap = self.unlocks.snapshot(path, user_id)
        path_videos = set(path.all_video_ids())
        return self._commit(
            path,
            user_id,
            videos=[v for v in snap.completed_videos if v in path_videos],
            quiz_scores={q: qp.best_score for q, qp in snap.quiz_progress.items() if qp.attempts},
            milestones=snap.completed_milestones,
        )

    def _commit(
        self,
        path: LearningPath,
        user_id: str,
        *,
        videos: Iterable[str] = (),
        quiz_scores: Optional[Mapping[str, float]] = None,
        milestones: Iterable[str] = (),
    ) -> LearningPathProgress:
        now = self.clock()
        videos, milestones = list(videos), list(milestones)
        with log_request(logger, f"path_progress_update user_id={user_id} path_id={path.id}"):
            before, after = self.store.update(
                path_progress_key(user_id, path.id),
                LearningPathProgress,
                lambda cur: apply_progress(cur, path, user_id, now, videos=videos, quiz_scores=quiz_scores, milestones=milestones),
            )

        previously = before.completed_milestones if before is not None else set()
        newly = [m.id for m in path.milestones if m.id in after.completed_milestones and m.id not in previously]
        path_done = after.completed_at is not None and (before is None or before.completed_at is None)
        logger.info(
            "path progress updated user_id=%s path_id=%s milestones=%s/%s new=%s current=%s",
            user_id, path.id, len(after.completed_milestones), len(path.milestones), newly, after.current_milestone_id,
        )

        for milestone_id in newly:
            self._publish(ProgressEventType.MILESTONE_COMPLETED, user_id, path.id, milestone_id)
        if path_done:
            self._publish(ProgressEventType.PATH_COMPLETED, user_id, path.id, None)

        self.analytics.record(path.id, user_id)
        return after

    def _publish(self, event_type: ProgressEventType, user_id: str, path_id: str, milestone_id: Optional[str]) -> None:
        if self.events is None:
            return
        self.events.publish(ProgressEvent(type=event_type, user_id=str(user_id), path_id=path_id, milestone_id=milestone_id))
