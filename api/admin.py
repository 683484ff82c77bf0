"""Admin router: audit and rebuild of the back-reference lists."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from core.logger import get_logger
from core.repository import atomic
from core.security import get_current_user
from database.deps import get_db_write
from database.models import ADMIN, User
from schemas.admin_schema import BackrefIssue, ConsistencyReport, RebuildResponse
from services import backrefs
from services.permissions import require_level

logger = get_logger("api.admin")
router = APIRouter(prefix="/api/admin", tags=["admin"])


@router.get("/consistency", response_model=ConsistencyReport)
def consistency_report(db: Session = Depends(get_db_write), current_user: User = Depends(get_current_user)):
    """Compare every back-reference list with the join tables, without changing anything."""
    require_level(current_user, ADMIN, "inspect back-references")
    issues = backrefs.find_inconsistencies(db)
    return ConsistencyReport(consistent=not issues, issues=[BackrefIssue(**i) for i in issues])


@router.post("/backrefs/rebuild", response_model=RebuildResponse)
def rebuild(db: Session = Depends(get_db_write), current_user: User = Depends(get_current_user)):
    """Recompute every back-reference list from the join tables."""
    require_level(current_user, ADMIN, "rebuild back-references")
    with atomic(db, operation="rebuild back-references"):
        changed = backrefs.rebuild_backrefs(db)
    logger.info("Back-reference rebuild by %s changed %s entities", current_user.id, changed)
    return RebuildResponse(changed=changed)
