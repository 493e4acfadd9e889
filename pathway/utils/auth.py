from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Cookie, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from pathway.config import get_db, settings
from pathway.models.models import User as DbUser
from pathway.schemas.auth_schemas import AuthTokenPayload
from pathway.schemas.user_schemas import User
from pathway.utils.jwt import create_access_token, get_password_hash, verify_password, verify_token
from pathway.utils.logger import configure_logging

logger = configure_logging()


def get_current_user(access_token: Optional[str] = Cookie(None), db: Session = Depends(get_db)) -> User:
    if not access_token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing token",
        )

    payload = verify_token(access_token)
    if payload is None or payload.sub is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token"
        )
    user = get_user_by_email(payload.sub, db)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found"
        )
    return User(id=str(user.id), email=user.email, preferences=user.preferences)


def set_auth_cookie(response: Response, user: DbUser) -> None:
    expires = timedelta(minutes=settings.access_token_expire_minutes)
    token = create_access_token(AuthTokenPayload(sub=user.email, exp=datetime.now(timezone.utc) + expires))
    response.set_cookie(
        key="access_token",
        value=token,
        httponly=True,
        secure=False,
        samesite="lax",
        max_age=int(expires.total_seconds()),
    )


def clear_auth_cookie(response: Response) -> None:
    response.delete_cookie(
        key="access_token",
        httponly=True,
        secure=False,
        samesite="lax"
    )


def get_user_by_email(email: str, db: Session) -> Optional[DbUser]:
    return db.query(DbUser).filter(DbUser.email == email).first()


def create_user(email: str, password: str, db: Session) -> DbUser:
    user = DbUser(email=email, hashed_password=get_password_hash(password), preferences={})
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("user created user_id=%s", user.id)
    return user


def authenticate_user(email: str, password: str, db: Session) -> Optional[DbUser]:
    user = get_user_by_email(email, db)
    if not user or not verify_password(password, user.hashed_password):
        return None
    return user
