from datetime import date, datetime, timedelta
from typing import Callable, Optional, Union

from pathway.schemas.progress_schemas import StreakInfo, utcnow
from pathway.services.progress_store import ProgressStore, streak_key
from pathway.utils.common import iso_day


def advance_streak(current: Optional[StreakInfo], user_id: str, today: date) -> StreakInfo:
    """Daily watch streak: same day is a no-op, the next day extends it, a gap restarts it."""
    day = iso_day(today)
    if current is None or current.last_watched_date is None:
        return StreakInfo(user_id=user_id, current_streak=1, longest_streak=1, last_watched_date=day)
    if current.last_watched_date == day:
        return current

    last = date.fromisoformat(current.last_watched_date)
    if today < last:
        # Out-of-order activity never rewinds the streak.
        return current
    streak = current.current_streak + 1 if today - last == timedelta(days=1) else 1
    return StreakInfo(
        user_id=user_id,
        current_streak=streak,
        longest_streak=max(current.longest_streak, streak),
        last_watched_date=day,
    )


class StreakService:
    def __init__(self, store: ProgressStore, clock: Callable[[], datetime] = utcnow):
        self.store = store
        self.clock = clock

    def record_activity(self, user_id: str, today: Optional[Union[date, datetime]] = None) -> StreakInfo:
        day = today or self.clock()
        if isinstance(day, datetime):
            day = day.date()
        _, after = self.store.update(streak_key(user_id), StreakInfo, lambda cur: advance_streak(cur, user_id, day))
        return after

    def get(self, user_id: str) -> StreakInfo:
        return self.store.get_streak(user_id) or StreakInfo(user_id=user_id)
