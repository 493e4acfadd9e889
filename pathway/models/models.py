from pathway.config import Base
from sqlalchemy import Column, Integer, String, JSON, DateTime
from datetime import datetime, timezone


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True)
    hashed_password = Column(String)
    preferences = Column(JSON)


class ProgressDocument(Base):
    """
    One document of the progress store (path definitions, question banks and
    every per-user progress record). `version` backs compare-and-set updates.
    """
    __tablename__ = "progress_documents"
    key = Column(String, primary_key=True)  # e.g. learningPathProgress/{userId}_{pathId}
    collection = Column(String, index=True, nullable=False)
    data = Column(JSON, nullable=False)
    version = Column(Integer, default=1, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
