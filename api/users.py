"""User API router.

Profile reads and updates, plus the admin-only permission change. Wallet
and meal-plan views for a user live in the grocery and meal routers.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from core.logger import get_logger
from core.security import get_current_user
from database.deps import get_db_read, get_db_write
from database.models import User
from schemas.user_schema import PermissionUpdateRequest, UserDetail, UserResponse, UserUpdateRequest
from services.user_service import user_service

logger = get_logger("api.users")
router = APIRouter(prefix="/api/users", tags=["users"])


@router.get("/{user_id}", response_model=UserResponse)
def get_user(user_id: int, db: Session = Depends(get_db_read), current_user: User = Depends(get_current_user)):
    return UserResponse(user=UserDetail.model_validate(user_service.get_user(db, user_id)))


@router.put("/{user_id}", response_model=UserResponse)
def update_user(
    user_id: int,
    payload: UserUpdateRequest,
    db: Session = Depends(get_db_write),
    current_user: User = Depends(get_current_user),
):
    """Update profile fields and, optionally, login credentials.

    Args:
        user_id: Id of the user to update; must be the caller unless the
            caller is an admin.
        payload: `UserUpdateRequest`; omitted fields are left unchanged.

    Raises:
        PermissionDeniedError: If a non-admin updates another user.
        NotFoundError: If the user does not exist.
        ConflictError: If the new username is already taken.
    """
    user = user_service.update_profile(db, user_id, current_user, payload.model_dump(exclude_none=True))
    return UserResponse(user=UserDetail.model_validate(user))


@router.put("/{user_id}/permission", response_model=UserResponse)
def set_permission(
    user_id: int,
    payload: PermissionUpdateRequest,
    db: Session = Depends(get_db_write),
    current_user: User = Depends(get_current_user),
):
    user = user_service.set_permission_level(db, user_id, current_user, payload.permission_level)
    return UserResponse(user=UserDetail.model_validate(user))
