"""
Common utility functions used across services and routes.
"""

from datetime import date, datetime
from typing import Optional

from pathway.utils.errors import UnauthorizedError


def iso_day(dt: datetime | date) -> str:
    """YYYY-MM-DD for a datetime or date."""
    return dt.strftime("%Y-%m-%d")


def ensure_owner(actor_id: Optional[str], user_id: str) -> None:
    """Progress records belong to their user only. `actor_id=None` means a trusted internal caller."""
    if actor_id is not None and str(actor_id) != str(user_id):
        raise UnauthorizedError(f"User {actor_id} may not access progress of user {user_id}")
