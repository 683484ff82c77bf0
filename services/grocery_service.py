"""Grocery catalogue and per-user wallet / buying list.

Creating a grocery stores its image first and removes it again if the
database write fails. Wallet operations are UserGroceryMap links owned by
the requesting user.
"""

from typing import Optional

from sqlalchemy.orm import Session

from core.exceptions import ConflictError
from core.logger import get_logger
from core.repository import atomic, BaseRepository
from database.models import Grocery, UserGroceryMap
from services.backrefs import USER_GROCERY
from services.cascade import cascade_engine
from services.permissions import GROCERY_CREATE_LEVEL, require_level, require_owner_or_admin
from services.relationships import relationship_manager
from services.storage import storage

logger = get_logger("services.grocery_service")

DUPLICATE_NAME = "Grocery already exists"


class GroceryService:
    def _name_taken(self, session: Session, name: str, exclude_id: Optional[int] = None) -> bool:
        query = session.query(Grocery.id).filter(Grocery.name == name)
        if exclude_id is not None:
            query = query.filter(Grocery.id != exclude_id)
        return query.first() is not None

    def create(self, session: Session, requesting_user, name: str, unit: str, kcal_per_unit: float,
               image_filename: Optional[str] = None, image_data: Optional[bytes] = None) -> Grocery:
        """Create a grocery, storing its image outside the transaction.

        Raises:
            PermissionDeniedError: If the caller is not trusted or admin.
            ConflictError: If the name is already used.
        """
        require_level(requesting_user, GROCERY_CREATE_LEVEL, "create groceries")
        if self._name_taken(session, name):
            raise ConflictError(DUPLICATE_NAME, resource="Grocery")

        image_ref = storage.save(image_filename, image_data) if image_data is not None else ""
        try:
            with atomic(session, operation="create grocery", conflict_message=DUPLICATE_NAME):
                grocery = BaseRepository(Grocery, session).add(Grocery(
                    name=name,
                    unit=unit,
                    kcal_per_unit=kcal_per_unit,
                    image_path=image_ref,
                    creator_id=requesting_user.id,
                ))
        except Exception:
            if image_ref:
                logger.info("Removing image %s after failed grocery create", image_ref)
                storage.delete(image_ref)
            raise
        logger.info("Grocery %s id=%s created by %s", grocery.name, grocery.id, requesting_user.id)
        return grocery

    def update(self, session: Session, grocery_id: int, requesting_user, changes: dict) -> Grocery:
        repo = BaseRepository(Grocery, session)
        grocery = repo.get_or_404(grocery_id)
        require_owner_or_admin(requesting_user, grocery, "update this grocery")
        if changes.get("name") and self._name_taken(session, changes["name"], exclude_id=grocery_id):
            raise ConflictError(DUPLICATE_NAME, resource="Grocery")
        with atomic(session, operation="update grocery", conflict_message=DUPLICATE_NAME):
            grocery = repo.get_or_404(grocery_id, lock=True)
            for key in ("name", "unit", "kcal_per_unit"):
                if changes.get(key) is not None:
                    setattr(grocery, key, changes[key])
            session.flush()
        return grocery

    def delete(self, session: Session, grocery_id: int, requesting_user) -> dict:
        """Cascade-delete the grocery, then drop its image file (best effort)."""
        grocery = BaseRepository(Grocery, session).get_or_404(grocery_id)
        image_ref = grocery.image_path
        removed = cascade_engine.delete_primary(session, "grocery", grocery_id, requesting_user)
        if image_ref:
            storage.delete(image_ref)
        return removed

    # wallet / buying list

    def add_to_wallet(self, session: Session, requesting_user, grocery_id: int, amount: float,
                      expires_date, is_in_buying_list: bool = False) -> UserGroceryMap:
        """Link the grocery to the caller.

        Raises:
            NotFoundError: If the grocery does not exist.
            ConflictError: If `is_in_buying_list` and the grocery is already
                on the caller's buying list.
        """
        with atomic(session, operation="add grocery to wallet", conflict_message=USER_GROCERY.conflict_message):
            link = relationship_manager.link(
                session, USER_GROCERY, requesting_user.id, grocery_id,
                amount=amount, expires_date=expires_date, is_in_buying_list=is_in_buying_list,
            )
        return link

    def update_wallet_entry(self, session: Session, requesting_user, link_id: int, changes: dict) -> UserGroceryMap:
        """Change amount, expiry or buying-list flag of one of the caller's entries."""
        with atomic(session, operation="update wallet entry", conflict_message=USER_GROCERY.conflict_message):
            link = relationship_manager.find_link(session, USER_GROCERY, link_id, owner_id=requesting_user.id)
            if changes.get("is_in_buying_list") and not link.is_in_buying_list:
                other = relationship_manager.find_existing(
                    session, USER_GROCERY, link.user_id, link.grocery_id, {"is_in_buying_list": True},
                )
                if other is not None:
                    raise ConflictError(USER_GROCERY.conflict_message, resource="UserGroceryMap")
            for key in ("amount", "expires_date", "is_in_buying_list"):
                if changes.get(key) is not None:
                    setattr(link, key, changes[key])
            session.flush()
        return link

    def remove_from_wallet(self, session: Session, requesting_user, link_id: int) -> None:
        """Remove one of the caller's wallet entries; someone else's entry is not found."""
        with atomic(session, operation="remove grocery from wallet"):
            link = relationship_manager.find_link(session, USER_GROCERY, link_id, owner_id=requesting_user.id)
            relationship_manager.unlink(session, USER_GROCERY, link)


grocery_service = GroceryService()
__all__ = ["GroceryService", "grocery_service"]
