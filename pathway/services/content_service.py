"""
Content definitions: learning paths and question banks.

Paths are owned by their creator; learners only ever read them. Definitions are
validated when saved, so progress code can rely on well-formed milestones.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from pathway.schemas.learning_path_schemas import LearningPath, Milestone
from pathway.schemas.quiz_schemas import QuestionBank
from pathway.services.progress_store import PATHS_COLLECTION, ProgressStore
from pathway.utils.errors import NotFoundError, UnauthorizedError, ValidationError
from pathway.utils.logger import configure_logging

logger = configure_logging()


def parse_path(data: Union[LearningPath, Dict[str, Any]]) -> LearningPath:
    """Validate a path definition, reporting schema problems as ValidationError."""
    if isinstance(data, LearningPath):
        data = data.model_dump()
    try:
        return LearningPath.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError("Invalid learning path", details={"errors": e.errors(include_url=False, include_context=False)}) from e


class ContentRepository:
    def __init__(self, store: ProgressStore):
        self.store = store

    def get_path(self, path_id: str) -> LearningPath:
        path = self.store.get_path(path_id)
        if path is None:
            raise NotFoundError(f"Learning path {path_id} not found")
        return path

    def get_visible_path(self, path_id: str, viewer_id: str) -> LearningPath:
        """Like `get_path`, but a private path only exists for its creator."""
        path = self.get_path(path_id)
        if not path.is_public and path.creator_id != str(viewer_id):
            raise NotFoundError(f"Learning path {path_id} not found")
        return path

    def milestone_of(self, path: LearningPath, milestone_id: str) -> Milestone:
        milestone = path.milestone(milestone_id)
        if milestone is None:
            raise NotFoundError(f"Milestone {milestone_id} not found in path {path.id}")
        return milestone

    def get_milestone(self, path_id: str, milestone_id: str) -> Milestone:
        return self.milestone_of(self.get_path(path_id), milestone_id)

    def get_quiz(self, quiz_id: str) -> QuestionBank:
        bank = self.store.get_question_bank(quiz_id)
        if bank is None:
            raise NotFoundError(f"Quiz {quiz_id} not found")
        return bank

    def save_path(self, path: Union[LearningPath, Dict[str, Any]], actor_id: Optional[str] = None) -> LearningPath:
        """
        Create or replace a path definition. Only the creator may replace an
        existing path; `actor_id=None` is a trusted internal caller (seeding).
        """
        parsed = parse_path(path)
        existing = self.store.get_path(parsed.id)
        if actor_id is not None:
            owner = existing.creator_id if existing else parsed.creator_id
            if str(owner) != str(actor_id):
                raise UnauthorizedError(f"Only the creator may modify path {parsed.id}")

        now = datetime.now(timezone.utc)
        parsed = parsed.model_copy(
            update={
                "created_at": existing.created_at if existing and existing.created_at else (parsed.created_at or now),
                "updated_at": now,
            }
        )
        self.store.put_path(parsed)
        logger.info("path saved path_id=%s milestones=%s creator=%s", parsed.id, len(parsed.milestones), parsed.creator_id)
        return parsed

    def save_quiz(self, bank: QuestionBank) -> QuestionBank:
        self.store.put_question_bank(bank)
        logger.info("question bank saved quiz_id=%s questions=%s", bank.id, len(bank.questions))
        return bank

    def list_public_paths(self) -> List[LearningPath]:
        paths = self.store.query(PATHS_COLLECTION, LearningPath, filters={"is_public": True}, order_by="created_at", descending=True)
        return paths

    def list_paths_by_creator(self, creator_id: str) -> List[LearningPath]:
        return self.store.query(PATHS_COLLECTION, LearningPath, filters={"creator_id": creator_id}, order_by="created_at", descending=True)
