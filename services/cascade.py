"""Cascade deletion of groceries, recipes and meals.

Deleting a primary entity removes every join row that references it, scrubs
those rows' ids from the back-reference lists on the other side, and then
deletes the entity, all in one transaction.
"""

from typing import Dict

from sqlalchemy.orm import Session

from core.exceptions import ValidationError
from core.logger import get_logger
from core.repository import atomic, BaseRepository
from database.models import Grocery, Recipe, Meal
from services import backrefs
from services.permissions import require_can_delete

logger = get_logger("services.cascade")

PRIMARY_KINDS = {
    "grocery": Grocery,
    "recipe": Recipe,
    "meal": Meal,
}


class CascadeDeletionEngine:
    """Deletes a primary entity together with its join rows."""

    def model_for(self, kind: str) -> type:
        try:
            return PRIMARY_KINDS[kind]
        except KeyError:
            raise ValidationError(f"Unknown entity kind '{kind}'", field="kind")

    def _scrub_and_delete(self, session: Session, model: type, entity) -> Dict[str, int]:
        removed = {}
        for relation in backrefs.relations_for(model):
            own = relation.side_for(model)
            other = relation.other_side(model)
            join = relation.join_model
            rows = session.query(join).filter(getattr(join, own.fk) == entity.id).all()
            if not rows:
                continue

            for row in rows:
                other_id = getattr(row, other.fk)
                other_entity = session.get(other.model, other_id, with_for_update=True)
                if other_entity is None:
                    logger.warning(
                        "Cascade from %s id=%s: %s id=%s references missing %s id=%s, skipping",
                        model.__name__, entity.id, join.__name__, row.id, other.model.__name__, other_id,
                    )
                    continue
                backrefs.remove_links(other_entity, other.backref, [row.id])

            ids = [row.id for row in rows]
            session.query(join).filter(join.id.in_(ids)).delete(synchronize_session="fetch")
            removed[join.__name__] = len(ids)
        session.delete(entity)
        session.flush()
        return removed

    def delete_primary(self, session: Session, kind: str, entity_id: int, requesting_user) -> Dict[str, int]:
        """Delete a grocery, recipe or meal and every join row referencing it.

        Args:
            session: Write session.
            kind: "grocery", "recipe" or "meal".
            entity_id: Primary key of the entity to delete.
            requesting_user: Authenticated caller.

        Returns:
            Number of removed join rows per join table.

        Raises:
            NotFoundError: If the entity does not exist.
            PermissionDeniedError: If the caller may not delete it.
            TransactionAbortedError: If the storage layer failed mid-way
                (everything is rolled back).
        """
        model = self.model_for(kind)
        repo = BaseRepository(model, session)
        entity = repo.get_or_404(entity_id)
        require_can_delete(requesting_user, entity)

        with atomic(session, operation=f"delete {kind}"):
            entity = repo.get_or_404(entity_id, lock=True)
            removed = self._scrub_and_delete(session, model, entity)

        logger.info("Deleted %s id=%s by user %s (join rows removed: %s)", kind, entity_id, requesting_user.id, removed)
        return removed


cascade_engine = CascadeDeletionEngine()
__all__ = ["CascadeDeletionEngine", "cascade_engine", "PRIMARY_KINDS"]
