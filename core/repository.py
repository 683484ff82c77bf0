"""Repository helpers and the transaction scope for database operations.

`atomic` is the single place where multi-row mutations are committed or
rolled back. `BaseRepository` wraps the lookups every service needs
(get-or-404, locked reads, existence checks) for one model.
"""

from contextlib import contextmanager
from typing import TypeVar, Generic, Type, Optional, List, Any, Iterable

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from core.exceptions import AppException, ConflictError, NotFoundError, TransactionAbortedError
from core.logger import get_logger
from database.models import Base

logger = get_logger("core.repository")

T = TypeVar('T', bound=Base)


@contextmanager
def atomic(session: Session, operation: str = "write", conflict_message: str = "Resource already exists"):
    """Run the enclosed block as one transaction on `session`.

    Commits when the block exits normally. On any exception the session is
    rolled back before the error propagates, so callers never observe a
    partially applied mutation:

    - IntegrityError becomes ConflictError(conflict_message)
    - other SQLAlchemyError becomes TransactionAbortedError (cause logged)
    - AppException and anything else are re-raised unchanged

    Args:
        session: Session the block operates on.
        operation: Short name used in logs and error details.
        conflict_message: Message for uniqueness violations hit at flush/commit.
    """
    try:
        yield session
        session.commit()
    except IntegrityError as exc:
        session.rollback()
        logger.warning("Integrity violation during %s: %s", operation, exc.orig)
        raise ConflictError(conflict_message) from exc
    except AppException:
        session.rollback()
        raise
    except SQLAlchemyError as exc:
        session.rollback()
        logger.error("Transaction aborted during %s: %s", operation, exc, exc_info=True)
        raise TransactionAbortedError(operation) from exc
    except Exception:
        session.rollback()
        logger.exception("Unexpected error during %s, rolled back", operation)
        raise


class BaseRepository(Generic[T]):
    """Generic repository for common lookups on one model.

    Attributes:
        model: SQLAlchemy model class to operate on.
        session: Database session for executing queries.
    """

    def __init__(self, model: Type[T], session: Session):
        self.model = model
        self.session = session

    @property
    def resource(self) -> str:
        return self.model.__name__

    def get_by_id(self, id: Any, lock: bool = False) -> Optional[T]:
        """Retrieve an object by its primary key.

        Args:
            id: Primary key value.
            lock: Load with SELECT ... FOR UPDATE so concurrent writers
                serialize on the row (ignored by SQLite).
        """
        if lock:
            return self.session.get(self.model, id, with_for_update=True)
        return self.session.get(self.model, id)

    def get_or_404(self, id: Any, lock: bool = False, message: Optional[str] = None) -> T:
        obj = self.get_by_id(id, lock=lock)
        if obj is None:
            raise NotFoundError(self.resource, id, message=message)
        return obj

    def get_many(self, ids: Iterable[Any]) -> List[T]:
        ids = list(ids)
        if not ids:
            return []
        return self.session.query(self.model).filter(self.model.id.in_(ids)).order_by(self.model.id).all()

    def get_all_or_404(self, ids: Iterable[Any], message: Optional[str] = None) -> List[T]:
        """Return every object in `ids`, failing if any one is missing."""
        wanted = list(dict.fromkeys(ids))
        found = self.get_many(wanted)
        if len(found) != len(wanted):
            missing = sorted(set(wanted) - {obj.id for obj in found})
            raise NotFoundError(self.resource, missing, message=message or f"Some {self.resource.lower()} items were not found")
        return found

    def add(self, obj: T) -> T:
        """Add an object and flush so its primary key is assigned.

        Does not commit; the enclosing `atomic` block owns the transaction.
        """
        self.session.add(obj)
        self.session.flush()
        return obj
