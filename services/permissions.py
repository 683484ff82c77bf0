"""Authorization rules for users, groceries, recipes and meals.

Permission levels are ordered: 0 (admin) is more privileged than 1
(trusted), which is more privileged than 2 (standard). A rule names the
*maximum* level allowed, so `has_level(user, TRUSTED)` admits admins too.
"""

from core.exceptions import PermissionDeniedError
from core.logger import get_logger
from database.models import ADMIN, TRUSTED, Grocery, Recipe, Meal

logger = get_logger("services.permissions")

# Highest level allowed to create groceries
GROCERY_CREATE_LEVEL = TRUSTED

# Per-kind deletion rule: "owner_or_admin" or "admin"
DELETE_RULES = {
    Grocery: "owner_or_admin",
    Recipe: "owner_or_admin",
    Meal: "admin",
}


def has_level(user, required: int) -> bool:
    return user.permission_level <= required


def is_admin(user) -> bool:
    return has_level(user, ADMIN)


def is_owner(user, entity) -> bool:
    return entity.creator_id == user.id


def require_level(user, required: int, action: str = "perform this action") -> None:
    if not has_level(user, required):
        logger.info("User %s (level %s) denied: %s", user.id, user.permission_level, action)
        raise PermissionDeniedError(f"Permission denied: cannot {action}", required_level=required)


def require_owner_or_admin(user, entity, action: str = "modify this resource") -> None:
    if is_admin(user) or is_owner(user, entity):
        return
    logger.info("User %s denied on %s id=%s: %s", user.id, type(entity).__name__, entity.id, action)
    raise PermissionDeniedError(f"Permission denied: cannot {action}")


def require_self_or_admin(user, target_user_id: int, action: str = "modify this user") -> None:
    if is_admin(user) or user.id == target_user_id:
        return
    raise PermissionDeniedError(f"Permission denied: cannot {action}")


def require_can_delete(user, entity) -> None:
    """Apply the deletion rule configured for the entity's kind."""
    rule = DELETE_RULES[type(entity)]
    action = "delete this %s" % type(entity).__name__.lower()
    if rule == "admin":
        require_level(user, ADMIN, action)
    else:
        require_owner_or_admin(user, entity, action)
