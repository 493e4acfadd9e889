"""
User-level progress endpoints.
"""

from fastapi import APIRouter, Depends

from pathway.bootstrap import ProgressEngine, get_engine
from pathway.schemas.path_schemas import UserProgressResponse
from pathway.schemas.progress_schemas import StreakInfo
from pathway.schemas.user_schemas import User
from pathway.utils.auth import get_current_user

user_routes = APIRouter()


@user_routes.get("/user/progress", response_model=UserProgressResponse)
async def get_user_progress(
    current_user: User = Depends(get_current_user),
    engine: ProgressEngine = Depends(get_engine),
) -> UserProgressResponse:
    """Every path the user has started, most recently accessed first."""
    return UserProgressResponse(paths=engine.paths.list_user_progress(current_user.id))


@user_routes.get("/user/streak", response_model=StreakInfo)
async def get_user_streak(
    current_user: User = Depends(get_current_user),
    engine: ProgressEngine = Depends(get_engine),
) -> StreakInfo:
    return engine.streaks.get(current_user.id)
