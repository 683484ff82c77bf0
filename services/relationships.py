"""Relationship manager: creates and removes join rows.

`link` and `unlink` keep the join table and both back-reference lists in
step. They never commit; callers wrap them in `core.repository.atomic` so
the join row and both list updates land or roll back together.
"""

from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from core.exceptions import ConflictError, NotFoundError
from core.logger import get_logger
from services import backrefs
from services.backrefs import Relation

logger = get_logger("services.relationships")


class RelationshipManager:
    """Link/unlink primitives shared by every join kind."""

    def _fetch_side(self, session: Session, model: type, entity_id: int):
        entity = session.get(model, entity_id, with_for_update=True)
        if entity is None:
            raise NotFoundError(model.__name__, entity_id)
        return entity

    def find_existing(self, session: Session, relation: Relation, left_id: int, right_id: int, attributes: dict):
        """Return the row that makes a new link a duplicate, if any.

        Honours `relation.unique_when`: when the new row does not carry the
        restricted value there is never a duplicate.
        """
        join = relation.join_model
        query = session.query(join).filter(
            getattr(join, relation.left.fk) == left_id,
            getattr(join, relation.right.fk) == right_id,
        )
        if relation.unique_when is not None:
            attr, value = relation.unique_when
            if attributes.get(attr) != value:
                return None
            query = query.filter(getattr(join, attr) == value)
        return query.first()

    def link(self, session: Session, relation: Relation, left_id: int, right_id: int, **attributes):
        """Create (or, for upsert relations, reuse) the join row between two entities.

        Args:
            session: Session inside an `atomic` block.
            relation: Relation descriptor from `services.backrefs`.
            left_id: Primary key of the left-side entity.
            right_id: Primary key of the right-side entity.
            **attributes: Columns of the join row (amount, schedules, ...).

        Returns:
            The created or updated join row.

        Raises:
            NotFoundError: If either entity does not exist.
            ConflictError: If the relation rejects duplicates and one exists,
                or the storage unique constraint fires at flush.
        """
        left = self._fetch_side(session, relation.left.model, left_id)
        right = self._fetch_side(session, relation.right.model, right_id)

        row = self.find_existing(session, relation, left_id, right_id, attributes)
        if row is not None:
            if relation.on_duplicate != "upsert":
                raise ConflictError(relation.conflict_message, resource=relation.join_model.__name__)
            for key, value in attributes.items():
                setattr(row, key, value)
            logger.debug("Reusing %s id=%s", relation.join_model.__name__, row.id)
        else:
            row = relation.join_model(**{relation.left.fk: left.id, relation.right.fk: right.id}, **attributes)
            session.add(row)
            try:
                session.flush()
            except IntegrityError as exc:
                # another request won the race past the pre-check
                raise ConflictError(relation.conflict_message, resource=relation.join_model.__name__) from exc

        backrefs.add_link(left, relation.left.backref, row.id)
        backrefs.add_link(right, relation.right.backref, row.id)
        session.flush()
        logger.info(
            "Linked %s %s <-> %s %s via %s id=%s",
            relation.left.model.__name__, left.id, relation.right.model.__name__, right.id,
            relation.join_model.__name__, row.id,
        )
        return row

    def find_link(self, session: Session, relation: Relation, link_id: int, owner_id: Optional[int] = None):
        """Return the join row `link_id`, optionally requiring it to belong to `owner_id`.

        Ownership is checked on the left (subject) side. A row owned by
        someone else is reported as not found.
        """
        row = session.get(relation.join_model, link_id)
        if row is None or (owner_id is not None and getattr(row, relation.left.fk) != owner_id):
            raise NotFoundError(relation.join_model.__name__, link_id)
        return row

    def find_link_by_pair(self, session: Session, relation: Relation, left_id: int, right_id: int,
                          message: Optional[str] = None):
        join = relation.join_model
        row = session.query(join).filter(
            getattr(join, relation.left.fk) == left_id,
            getattr(join, relation.right.fk) == right_id,
        ).order_by(join.id).first()
        if row is None:
            raise NotFoundError(join.__name__, [left_id, right_id], message=message)
        return row

    def unlink(self, session: Session, relation: Relation, row) -> None:
        """Remove a join row and its id from both back-reference lists.

        A side entity that no longer exists is logged and skipped.
        """
        link_id = row.id
        for side in relation.sides():
            entity = session.get(side.model, getattr(row, side.fk), with_for_update=True)
            if entity is None:
                logger.warning(
                    "%s id=%s references missing %s id=%s",
                    relation.join_model.__name__, link_id, side.model.__name__, getattr(row, side.fk),
                )
                continue
            backrefs.remove_links(entity, side.backref, [link_id])
        session.delete(row)
        session.flush()
        logger.info("Unlinked %s id=%s", relation.join_model.__name__, link_id)


relationship_manager = RelationshipManager()
__all__ = ["RelationshipManager", "relationship_manager"]
