from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from fastapi import Depends
from sqlalchemy.orm import Session

from infra.store.sql_store import SqlDocumentStore

from pathway.config import get_db
from pathway.schemas.progress_schemas import utcnow
from pathway.services.analytics_service import AnalyticsService
from pathway.services.content_service import ContentRepository
from pathway.services.events import EventBus, ProgressEventType, log_notifier
from pathway.services.milestone_service import MilestoneService
from pathway.services.path_progress_service import PathProgressService
from pathway.services.progress_store import DocumentStore, ProgressStore
from pathway.services.quiz_attempt_service import QuizAttemptService
from pathway.services.streak_service import StreakService
from pathway.services.unlock_service import UnlockService
from pathway.services.video_progress_service import VideoProgressService


@dataclass
class ProgressEngine:
    store: ProgressStore
    content: ContentRepository
    videos: VideoProgressService
    milestones: MilestoneService
    unlocks: UnlockService
    quizzes: QuizAttemptService
    analytics: AnalyticsService
    streaks: StreakService
    paths: PathProgressService
    events: EventBus


def build_event_bus() -> EventBus:
    bus = EventBus()
    for event_type in ProgressEventType:
        bus.subscribe(event_type, log_notifier)
    return bus


def build_engine(
    documents: DocumentStore,
    events: Optional[EventBus] = None,
    clock: Callable[[], datetime] = utcnow,
    **store_options,
) -> ProgressEngine:
    """Wire every service over one document store."""
    store = ProgressStore(documents, **store_options)
    events = events if events is not None else EventBus()

    content = ContentRepository(store)
    videos = VideoProgressService(store, clock=clock)
    milestones = MilestoneService(store)
    unlocks = UnlockService(store, content)
    analytics = AnalyticsService(store, content)
    streaks = StreakService(store, clock=clock)
    quizzes = QuizAttemptService(store, content, unlocks, events=events, clock=clock)
    paths = PathProgressService(
        store,
        content,
        milestones,
        unlocks,
        videos,
        analytics,
        streaks,
        events=events,
        clock=clock,
    )
    return ProgressEngine(
        store=store,
        content=content,
        videos=videos,
        milestones=milestones,
        unlocks=unlocks,
        quizzes=quizzes,
        analytics=analytics,
        streaks=streaks,
        paths=paths,
        events=events,
    )


event_bus = build_event_bus()


def get_engine(db: Session = Depends(get_db)) -> ProgressEngine:
    return build_engine(SqlDocumentStore(db), events=event_bus)
