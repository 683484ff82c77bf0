"""Authentication router: registration, login and the current user."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from core.logger import get_logger
from core.security import get_current_user
from database.deps import get_db_write
from database.models import User
from schemas.user_schema import LoginRequest, LoginResponse, RegisterRequest, UserDetail, UserResponse
from services.user_service import user_service

logger = get_logger("api.auth")
router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/register", response_model=UserResponse, status_code=201)
def register(payload: RegisterRequest, db: Session = Depends(get_db_write)):
    """Create a standard account.

    Raises:
        ConflictError: If the username is already taken.
    """
    profile = payload.model_dump(exclude={"username", "password"}, exclude_none=True)
    user = user_service.register(db, payload.username, payload.password, **profile)
    return UserResponse(user=UserDetail.model_validate(user))


@router.post("/login", response_model=LoginResponse)
def login(payload: LoginRequest, db: Session = Depends(get_db_write)):
    """Exchange username and password for a bearer token."""
    user, token = user_service.login(db, payload.username, payload.password)
    logger.info("User %s logged in", user.id)
    return LoginResponse(login_token=token, user=UserDetail.model_validate(user))


@router.get("/me", response_model=UserResponse)
def me(current_user: User = Depends(get_current_user)):
    return UserResponse(user=UserDetail.model_validate(current_user))
