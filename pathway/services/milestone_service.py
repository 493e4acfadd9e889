"""
Milestone aggregation: video completion + quiz completion -> milestone completion.
"""

from typing import Dict, Mapping, Optional

from pathway.schemas.learning_path_schemas import Milestone
from pathway.schemas.progress_schemas import MilestoneQuizProgress, MilestoneStatus, VideoProgress
from pathway.services.progress_store import ProgressStore


def is_milestone_complete(
    milestone: Milestone,
    video_progress: Mapping[str, Optional[VideoProgress]],
    quiz_progress: Optional[MilestoneQuizProgress],
) -> bool:
    """Every video completed and, when the milestone has a quiz, that quiz completed."""
    for video_id in milestone.video_ids():
        vp = video_progress.get(video_id)
        if vp is None or vp.completed is not True:
            return False
    if milestone.quiz_ref is None:
        return True
    return quiz_progress is not None and quiz_progress.is_completed is True


class MilestoneService:
    """Read-only aggregation over the progress store."""

    def __init__(self, store: ProgressStore):
        self.store = store

    def load_video_progress(self, milestone: Milestone, user_id: str) -> Dict[str, VideoProgress]:
        out: Dict[str, VideoProgress] = {}
        for video_id in milestone.video_ids():
            vp = self.store.get_video_progress(user_id, video_id)
            if vp is not None:
                out[video_id] = vp
        return out

    def compute_completion(
        self,
        milestone: Milestone,
        user_id: str,
        quiz_progress: Optional[MilestoneQuizProgress] = None,
    ) -> MilestoneStatus:
        """
        Completion status of one milestone for a user.

        `quiz_progress` lets a caller that just recorded an attempt pass the fresh
        state instead of reading it back. Missing documents count as incomplete.
        """
        videos = self.load_video_progress(milestone, user_id)
        if milestone.quiz_ref is not None and quiz_progress is None:
            quiz_progress = self.store.get_quiz_progress(milestone.id, user_id)
        elif milestone.quiz_ref is None:
            quiz_progress = None

        return MilestoneStatus(
            milestone_id=milestone.id,
            is_completed=is_milestone_complete(milestone, videos, quiz_progress),
            video_progress=videos,
            quiz_progress=quiz_progress,
        )
