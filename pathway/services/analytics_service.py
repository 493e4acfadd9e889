from typing import Optional

from pathway.schemas.progress_schemas import ProgressAnalytics
from pathway.services.content_service import ContentRepository
from pathway.services.progress_store import ProgressStore
from pathway.utils.logger import configure_logging

logger = configure_logging()


class AnalyticsService:
    """Read-only statistics over a user's progress on one path."""

    def __init__(self, store: ProgressStore, content: ContentRepository):
        self.store = store
        self.content = content

    def generate(self, path_id: str, user_id: str) -> ProgressAnalytics:
        path = self.content.get_path(path_id)

        video_ids = path.all_video_ids()
        completed_videos = 0
        total_time_ms = 0
        for video_id in video_ids:
            vp = self.store.get_video_progress(user_id, video_id)
            if vp is None:
                continue
            total_time_ms += vp.time_watched_ms
            if vp.completed is True:
                completed_videos += 1

        quiz_milestones = [m for m in path.milestones if m.quiz_ref is not None]
        completed_scores = []
        for m in quiz_milestones:
            qp = self.store.get_quiz_progress(m.id, user_id)
            if qp is not None and qp.is_completed is True:
                completed_scores.append(qp.best_score)

        progress = self.store.get_path_progress(user_id, path_id)
        return ProgressAnalytics(
            total_time_spent_ms=total_time_ms,
            average_quiz_score=sum(completed_scores) / len(completed_scores) if completed_scores else 0.0,
            completed_videos=completed_videos,
            total_videos=len(video_ids),
            completed_quizzes=len(completed_scores),
            total_quizzes=len(quiz_milestones),
            last_accessed_at=progress.last_accessed_at if progress else None,
        )

    def record(self, path_id: str, user_id: str) -> ProgressAnalytics:
        analytics = self.generate(path_id, user_id)
        self.store.put_analytics(path_id, user_id, analytics)
        logger.debug(
            "analytics recorded path_id=%s user_id=%s videos=%s/%s quizzes=%s/%s",
            path_id,
            user_id,
            analytics.completed_videos,
            analytics.total_videos,
            analytics.completed_quizzes,
            analytics.total_quizzes,
        )
        return analytics

    def get(self, path_id: str, user_id: str) -> Optional[ProgressAnalytics]:
        return self.store.get_analytics(path_id, user_id)
