from datetime import datetime
from typing import Callable, Optional

from pathway.schemas.progress_schemas import VideoProgress, utcnow
from pathway.services.progress_store import ProgressStore, video_progress_key
from pathway.utils.logger import configure_logging

logger = configure_logging()


def _fresh(user_id: str, video_id: str, now: datetime) -> VideoProgress:
    return VideoProgress(video_id=video_id, user_id=user_id, last_watched_at=now)


class VideoProgressService:
    """Per user x video watch state. Documents are created lazily on first write."""

    def __init__(self, store: ProgressStore, clock: Callable[[], datetime] = utcnow):
        self.store = store
        self.clock = clock

    def get(self, user_id: str, video_id: str) -> Optional[VideoProgress]:
        return self.store.get_video_progress(user_id, video_id)

    def is_video_completed(self, user_id: str, video_id: str) -> bool:
        vp = self.get(user_id, video_id)
        return vp is not None and vp.completed is True

    def initialize(self, user_id: str, video_id: str) -> VideoProgress:
        """Create the record if absent; an existing record is returned untouched."""
        now = self.clock()

        def reducer(current: Optional[VideoProgress]) -> VideoProgress:
            return current if current is not None else _fresh(user_id, video_id, now)

        _, after = self.store.update(video_progress_key(user_id, video_id), VideoProgress, reducer)
        return after

    def update_position(self, user_id: str, video_id: str, position: float, watched_ms: int = 0) -> VideoProgress:
        """Record the playback position and add `watched_ms` to the watch time."""
        now = self.clock()

        def reducer(current: Optional[VideoProgress]) -> VideoProgress:
            vp = current or _fresh(user_id, video_id, now)
            vp.last_position = max(0.0, float(position))
            vp.time_watched_ms += max(0, int(watched_ms))
            vp.last_watched_at = now
            return vp

        _, after = self.store.update(video_progress_key(user_id, video_id), VideoProgress, reducer)
        return after

    def mark_completed(self, user_id: str, video_id: str, position: Optional[float] = None, watched_ms: int = 0) -> VideoProgress:
        """
        Flag the video completed. Position and watch time are kept (and extended
        when given); `completed_at` keeps the first completion time.
        """
        now = self.clock()

        def reducer(current: Optional[VideoProgress]) -> VideoProgress:
            vp = current or _fresh(user_id, video_id, now)
            if position is not None:
                vp.last_position = max(0.0, float(position))
            vp.time_watched_ms += max(0, int(watched_ms))
            vp.last_watched_at = now
            if not vp.completed:
                vp.completed = True
                vp.completed_at = now
            return vp

        before, after = self.store.update(video_progress_key(user_id, video_id), VideoProgress, reducer)
        if before is None or not before.completed:
            logger.info("video completed user_id=%s video_id=%s", user_id, video_id)
        return after
