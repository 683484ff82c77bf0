"""User accounts: registration, login, profile updates and permission changes."""

from sqlalchemy.orm import Session

from core.exceptions import AuthenticationError, ConflictError
from core.logger import get_logger
from core.repository import atomic, BaseRepository
from core.security import create_access_token, hash_password, verify_password
from database.models import ADMIN, User
from services.permissions import require_level, require_self_or_admin

logger = get_logger("services.user_service")

_PROFILE_FIELDS = ("height", "weight", "gender", "date_of_birth", "daily_kcal_goal")


class UserService:
    def register(self, session: Session, username: str, password: str, **profile) -> User:
        """Create a standard-level user.

        Raises:
            ConflictError: If the username is taken.
        """
        if session.query(User).filter(User.username == username).first() is not None:
            raise ConflictError("Username already exists", resource="User")
        user = User(username=username, password_hash=hash_password(password))
        for key in _PROFILE_FIELDS:
            if profile.get(key) is not None:
                setattr(user, key, profile[key])
        with atomic(session, operation="register", conflict_message="Username already exists"):
            BaseRepository(User, session).add(user)
        logger.info("Registered user %s id=%s", user.username, user.id)
        return user

    def authenticate(self, session: Session, username: str, password: str) -> User:
        user = session.query(User).filter(User.username == username).first()
        if user is None or not verify_password(user.password_hash, password):
            logger.info("Failed login for %s", username)
            raise AuthenticationError("Invalid username or password")
        return user

    def login(self, session: Session, username: str, password: str):
        """Return (user, token) for valid credentials."""
        user = self.authenticate(session, username, password)
        return user, create_access_token(user.id)

    def get_user(self, session: Session, user_id: int) -> User:
        return BaseRepository(User, session).get_or_404(user_id)

    def update_profile(self, session: Session, user_id: int, requesting_user, changes: dict) -> User:
        """Apply profile changes; only the user themself or an admin may do this.

        `changes` may contain the profile fields and `login_cred`
        ({"username", "password"}); a new password is re-hashed.
        """
        require_self_or_admin(requesting_user, user_id, "update this profile")
        repo = BaseRepository(User, session)
        with atomic(session, operation="update user", conflict_message="Username already exists"):
            user = repo.get_or_404(user_id, lock=True)
            for key in _PROFILE_FIELDS:
                if changes.get(key) is not None:
                    setattr(user, key, changes[key])
            cred = changes.get("login_cred") or {}
            if cred.get("username"):
                user.username = cred["username"]
            if cred.get("password"):
                user.password_hash = hash_password(cred["password"])
            session.flush()
        logger.info("User %s updated by %s", user_id, requesting_user.id)
        return user

    def set_permission_level(self, session: Session, user_id: int, requesting_user, level: int) -> User:
        require_level(requesting_user, ADMIN, "change permission levels")
        with atomic(session, operation="set permission"):
            user = BaseRepository(User, session).get_or_404(user_id, lock=True)
            user.permission_level = level
        logger.info("User %s permission level set to %s by %s", user_id, level, requesting_user.id)
        return user

    def ensure_admin(self, session: Session, username: str, password: str) -> User:
        """Create the bootstrap admin if missing, or promote an existing user."""
        user = session.query(User).filter(User.username == username).first()
        with atomic(session, operation="bootstrap admin"):
            if user is None:
                user = BaseRepository(User, session).add(
                    User(username=username, password_hash=hash_password(password), permission_level=ADMIN)
                )
                logger.info("Bootstrap admin %s created", username)
            elif user.permission_level != ADMIN:
                user.permission_level = ADMIN
                logger.info("User %s promoted to admin", username)
        return user


user_service = UserService()
__all__ = ["UserService", "user_service"]
