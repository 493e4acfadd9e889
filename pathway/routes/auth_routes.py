from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from pathway.config import get_db
from pathway.schemas.auth_schemas import LoginRequest, LoginResponse, LogoutResponse, RegisterRequest, RegisterResponse
from pathway.schemas.user_schemas import User
from pathway.utils.auth import (
    authenticate_user,
    clear_auth_cookie,
    create_user,
    get_current_user,
    get_user_by_email,
    set_auth_cookie,
)

auth_routes = APIRouter()


@auth_routes.post("/login")
def login(request: LoginRequest, response: Response, db: Session = Depends(get_db)) -> LoginResponse:
    """Authenticate user and set HTTP-only cookie with token."""
    user = authenticate_user(request.email.strip().lower(), request.password, db)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password"
        )
    set_auth_cookie(response, user)
    return LoginResponse(message="Login successful", token_set=True)


@auth_routes.post("/register")
def register(request: RegisterRequest, response: Response, db: Session = Depends(get_db)) -> RegisterResponse:
    """Register a new user."""
    email = request.email.strip().lower()
    if get_user_by_email(email, db):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already registered"
        )

    if request.password != request.confirm_password:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Passwords do not match"
        )

    user = create_user(email, request.password, db)
    set_auth_cookie(response, user)
    return RegisterResponse(message="Registration successful", user_id=str(user.id))


@auth_routes.post("/logout")
def logout(response: Response) -> LogoutResponse:
    """Clear the authentication cookie."""
    clear_auth_cookie(response)
    return LogoutResponse(message="Logout successful - cookie cleared")


@auth_routes.get("/me")
def get_current_user_info(current_user: User = Depends(get_current_user)) -> User:
    """Returns current user info."""
    return current_user
