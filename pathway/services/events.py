"""
In-process progress events.

Publishing happens after the progress write has been committed; a failing
handler is logged and never rolls that write back.
"""

from collections import defaultdict
from datetime import datetime
from enum import Enum
from typing import Any, Callable, DefaultDict, Dict, List, Optional

from pydantic import BaseModel, Field

from pathway.schemas.progress_schemas import utcnow
from pathway.utils.logger import configure_logging

logger = configure_logging()


class ProgressEventType(str, Enum):
    MILESTONE_COMPLETED = "milestone_completed"
    PATH_COMPLETED = "path_completed"
    QUIZ_PASSED = "quiz_passed"


class ProgressEvent(BaseModel):
    type: ProgressEventType
    user_id: str
    path_id: str
    milestone_id: Optional[str] = None
    payload: Dict[str, Any] = Field(default_factory=dict)
    occurred_at: datetime = Field(default_factory=utcnow)


Handler = Callable[[ProgressEvent], None]


class EventBus:
    def __init__(self):
        self._handlers: DefaultDict[ProgressEventType, List[Handler]] = defaultdict(list)

    def subscribe(self, event_type: ProgressEventType, handler: Handler) -> None:
        self._handlers[ProgressEventType(event_type)].append(handler)

    def publish(self, event: ProgressEvent) -> int:
        """Deliver to every subscriber; returns how many handlers succeeded."""
        delivered = 0
        for handler in list(self._handlers.get(event.type, [])):
            try:
                handler(event)
                delivered += 1
            except Exception:
                logger.exception(
                    "event handler failed type=%s user_id=%s path_id=%s handler=%s",
                    event.type.value,
                    event.user_id,
                    event.path_id,
                    getattr(handler, "__name__", repr(handler)),
                )
        return delivered


def log_notifier(event: ProgressEvent) -> None:
    """Default subscriber: notification delivery is external, so just record the event."""
    logger.info(
        "event type=%s user_id=%s path_id=%s milestone_id=%s",
        event.type.value,
        event.user_id,
        event.path_id,
        event.milestone_id,
    )
