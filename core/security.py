"""Credential hashing, bearer tokens and the current-user dependency.

Passwords are hashed with werkzeug; access tokens are itsdangerous signed,
timestamped payloads carrying the user id.
"""

from typing import Optional

from fastapi import Depends, Header
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer
from sqlalchemy.orm import Session
from werkzeug.security import check_password_hash, generate_password_hash

from core import config
from core.exceptions import AuthenticationError, ConfigurationError
from core.logger import get_logger
from database.deps import get_db_write
from database.models import User

logger = get_logger("core.security")

_TOKEN_SALT = "grocery-access-token"


def hash_password(password: str) -> str:
    return generate_password_hash(password)


def verify_password(password_hash: str, password: str) -> bool:
    return check_password_hash(password_hash, password)


def _get_signer() -> URLSafeTimedSerializer:
    if not config.SECRET_KEY:
        raise ConfigurationError("SECRET_KEY must be set", config_key="SECRET_KEY")
    return URLSafeTimedSerializer(config.SECRET_KEY, salt=_TOKEN_SALT)


def create_access_token(user_id: int) -> str:
    return _get_signer().dumps({"user_id": user_id})


def decode_access_token(token: str, max_age: Optional[int] = None) -> int:
    """Return the user id in `token`.

    Raises:
        AuthenticationError: If the token is malformed, tampered or expired.
    """
    try:
        payload = _get_signer().loads(token, max_age=max_age or config.TOKEN_MAX_AGE)
    except SignatureExpired:
        raise AuthenticationError("Token expired")
    except BadSignature:
        raise AuthenticationError("Invalid token")
    return payload["user_id"]


def get_current_user(
    authorization: Optional[str] = Header(None),
    db: Session = Depends(get_db_write),
) -> User:
    """FastAPI dependency resolving `Authorization: Bearer <token>` to a User."""
    if not authorization:
        raise AuthenticationError("Missing bearer token")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        raise AuthenticationError("Authorization header must be 'Bearer <token>'")
    user = db.get(User, decode_access_token(token.strip()))
    if user is None:
        logger.warning("Token for missing user presented")
        raise AuthenticationError("Unknown user")
    return user
