import logging

from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.ext.declarative import declarative_base
from dotenv import load_dotenv
load_dotenv()


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    database_url: str = "sqlite:///./pathway.db"
    log_level: str = "INFO"
    log_dir: str = "logs"
    log_console: bool = False

    jwt_secret_key: str = "change-me-in-production"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 30

    # Bounded retry for transient store errors (seconds).
    store_retry_attempts: int = 3
    store_retry_min_wait: float = 0.1
    store_retry_max_wait: float = 2.0
    # Optimistic-concurrency retries for read-modify-write updates.
    cas_max_attempts: int = 5


settings = Settings()


def _connect_args(url: str) -> dict:
    if url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


engine = create_engine(settings.database_url, connect_args=_connect_args(settings.database_url))
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def create_db():
    # Register ORM tables on Base before create_all.
    import pathway.models  # noqa: F401
    Base.metadata.create_all(bind=engine)
    logging.getLogger("pathway").info("database ready url=%s", settings.database_url)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
