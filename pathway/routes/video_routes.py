"""
Video watch endpoints. Completing a video feeds the path progress updater.
"""

from fastapi import APIRouter, Depends

from pathway.bootstrap import ProgressEngine, get_engine
from pathway.schemas.path_schemas import VideoCompleteRequest, VideoCompleteResponse, VideoPositionRequest
from pathway.schemas.progress_schemas import VideoProgress
from pathway.schemas.user_schemas import User
from pathway.utils.auth import get_current_user
from pathway.utils.errors import NotFoundError

video_routes = APIRouter()


def _ensure_video_in_path(engine: ProgressEngine, path_id: str, video_id: str, user: User) -> None:
    path = engine.content.get_visible_path(path_id, user.id)
    if video_id not in path.all_video_ids():
        raise NotFoundError(f"Video {video_id} is not part of path {path_id}")


@video_routes.post("/paths/{path_id}/videos/{video_id}/progress", response_model=VideoProgress)
async def update_video_position(
    path_id: str,
    video_id: str,
    body: VideoPositionRequest,
    current_user: User = Depends(get_current_user),
    engine: ProgressEngine = Depends(get_engine),
) -> VideoProgress:
    """Record playback position and accumulated watch time."""
    _ensure_video_in_path(engine, path_id, video_id, current_user)
    return engine.videos.update_position(current_user.id, video_id, body.position, body.watched_ms)


@video_routes.post("/paths/{path_id}/videos/{video_id}/complete", response_model=VideoCompleteResponse)
async def complete_video(
    path_id: str,
    video_id: str,
    body: VideoCompleteRequest | None = None,
    current_user: User = Depends(get_current_user),
    engine: ProgressEngine = Depends(get_engine),
) -> VideoCompleteResponse:
    """
    Mark a video completed and re-aggregate the milestones that contain it.
    Repeating the call is harmless.
    """
    _ensure_video_in_path(engine, path_id, video_id, current_user)
    if body is not None and (body.position is not None or body.watched_ms):
        engine.videos.mark_completed(current_user.id, video_id, position=body.position, watched_ms=body.watched_ms)
    progress = engine.paths.on_video_completed(path_id, current_user.id, video_id, actor_id=current_user.id)
    return VideoCompleteResponse(
        video=engine.videos.get(current_user.id, video_id),
        path_progress=progress,
    )
