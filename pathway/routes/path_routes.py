"""
Learning path endpoints: definitions, per-user progress, unlock state and analytics.
"""

from typing import Any

from fastapi import APIRouter, Body, Depends

from pathway.bootstrap import ProgressEngine, get_engine
from pathway.schemas.learning_path_schemas import LearningPath
from pathway.schemas.path_schemas import MilestoneUnlocksResponse, PathListResponse, PathSummary
from pathway.schemas.progress_schemas import LearningPathProgress, MilestoneStatus, ProgressAnalytics, UnlockResult
from pathway.schemas.user_schemas import User
from pathway.utils.auth import get_current_user

path_routes = APIRouter()


@path_routes.post("/paths", response_model=LearningPath)
async def save_path(
    definition: dict[str, Any] = Body(...),
    current_user: User = Depends(get_current_user),
    engine: ProgressEngine = Depends(get_engine),
) -> LearningPath:
    """
    Create or replace a learning path. The caller becomes the creator of a new
    path; only the creator may replace an existing one.
    """
    definition = {**definition, "creator_id": current_user.id}
    return engine.content.save_path(definition, actor_id=current_user.id)


@path_routes.get("/paths", response_model=PathListResponse)
async def list_paths(
    mine: bool = False,
    current_user: User = Depends(get_current_user),
    engine: ProgressEngine = Depends(get_engine),
) -> PathListResponse:
    """Public paths, or the caller's own paths with `?mine=true`."""
    if mine:
        paths = engine.content.list_paths_by_creator(current_user.id)
    else:
        paths = engine.content.list_public_paths()
    return PathListResponse(paths=[PathSummary.from_path(p) for p in paths])


@path_routes.get("/paths/{path_id}", response_model=LearningPath)
async def get_path(
    path_id: str,
    current_user: User = Depends(get_current_user),
    engine: ProgressEngine = Depends(get_engine),
) -> LearningPath:
    return engine.content.get_visible_path(path_id, current_user.id)


@path_routes.get("/paths/{path_id}/progress", response_model=LearningPathProgress)
async def get_path_progress(
    path_id: str,
    current_user: User = Depends(get_current_user),
    engine: ProgressEngine = Depends(get_engine),
) -> LearningPathProgress:
    engine.content.get_visible_path(path_id, current_user.id)
    return engine.paths.get_progress(path_id, current_user.id, actor_id=current_user.id)


@path_routes.post("/paths/{path_id}/progress/refresh", response_model=LearningPathProgress)
async def refresh_path_progress(
    path_id: str,
    current_user: User = Depends(get_current_user),
    engine: ProgressEngine = Depends(get_engine),
) -> LearningPathProgress:
    """Re-aggregate every milestone from recorded video and quiz progress."""
    engine.content.get_visible_path(path_id, current_user.id)
    return engine.paths.refresh(path_id, current_user.id, actor_id=current_user.id)


@path_routes.get("/paths/{path_id}/analytics", response_model=ProgressAnalytics)
async def get_path_analytics(
    path_id: str,
    current_user: User = Depends(get_current_user),
    engine: ProgressEngine = Depends(get_engine),
) -> ProgressAnalytics:
    engine.content.get_visible_path(path_id, current_user.id)
    return engine.analytics.generate(path_id, current_user.id)


@path_routes.get("/paths/{path_id}/unlocks", response_model=MilestoneUnlocksResponse)
async def list_milestone_unlocks(
    path_id: str,
    current_user: User = Depends(get_current_user),
    engine: ProgressEngine = Depends(get_engine),
) -> MilestoneUnlocksResponse:
    engine.content.get_visible_path(path_id, current_user.id)
    unlocks = engine.unlocks.unlocked_milestones(path_id, current_user.id, actor_id=current_user.id)
    return MilestoneUnlocksResponse(unlocks=unlocks)


@path_routes.get("/paths/{path_id}/milestones/{milestone_id}/unlock", response_model=UnlockResult)
async def check_milestone_unlock(
    path_id: str,
    milestone_id: str,
    current_user: User = Depends(get_current_user),
    engine: ProgressEngine = Depends(get_engine),
) -> UnlockResult:
    engine.content.get_visible_path(path_id, current_user.id)
    return engine.unlocks.check_milestone(path_id, milestone_id, current_user.id, actor_id=current_user.id)


@path_routes.get("/paths/{path_id}/milestones/{milestone_id}/status", response_model=MilestoneStatus)
async def get_milestone_status(
    path_id: str,
    milestone_id: str,
    current_user: User = Depends(get_current_user),
    engine: ProgressEngine = Depends(get_engine),
) -> MilestoneStatus:
    engine.content.get_visible_path(path_id, current_user.id)
    milestone = engine.content.get_milestone(path_id, milestone_id)
    return engine.milestones.compute_completion(milestone, current_user.id)
