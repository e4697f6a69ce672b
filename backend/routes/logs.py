# backend/routes/logs.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional, Any
from datetime import datetime, time

from database import get_db
from models.log import Log
from models.users import User, UserRole
from schemas.common import CamelModel, UtcDatetime
from utils.errors import Forbidden, ValidationError
from utils.session import get_current_user

router = APIRouter(prefix="/logs", tags=["Logs"])

# --- SCHEMAS ---
class LogResponse(CamelModel):
    id: int
    user_id: Optional[int] = None
    action: str
    resource: str
    status: str
    ip: Optional[str] = None
    ts: UtcDatetime
    meta: Optional[Any] = None

class LogPage(CamelModel):
    items: List[LogResponse]
    total: int
    page: int
    page_size: int


def _parse_day(value: str, name: str) -> datetime:
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        raise ValidationError(f"{name} must be an ISO date (YYYY-MM-DD).")


# --- ENDPOINT ---
@router.get("", response_model=LogPage)
def get_logs(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100, alias="pageSize"),
    action: Optional[str] = Query(None, description="Filter by action"),
    user_id: Optional[int] = Query(None, alias="userId", description="Filter by user ID"),
    resource: Optional[str] = Query(None, description="Filter by resource"),
    status: Optional[str] = Query(None, description="Filter by status (SUCCESS/FAIL)"),
    date_from: Optional[str] = Query(None, alias="dateFrom", description="From date (YYYY-MM-DD)"),
    date_to: Optional[str] = Query(None, alias="dateTo", description="To date (YYYY-MM-DD)"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    if current_user.role != UserRole.ADMIN:
        raise Forbidden("Only administrators can view the audit log.")

    query = db.query(Log)

    if action:
        query = query.filter(Log.action.ilike(f"%{action}%"))

    if user_id is not None:
        query = query.filter(Log.user_id == user_id)

    if resource:
        query = query.filter(Log.resource.ilike(f"%{resource}%"))

    if status:
        query = query.filter(Log.status == status.upper())

    if date_from:
        query = query.filter(Log.ts >= _parse_day(date_from, "dateFrom"))

    if date_to:
        dt_to = _parse_day(date_to, "dateTo")
        # A bare date covers the whole day
        if len(date_to) == 10:
            dt_to = datetime.combine(dt_to.date(), time.max)
        query = query.filter(Log.ts <= dt_to)

    # Newest first
    query = query.order_by(Log.ts.desc(), Log.id.desc())

    total = query.count()
    logs = query.offset((page - 1) * page_size).limit(page_size).all()

    return {
        "items": logs,
        "total": total,
        "page": page,
        "page_size": page_size,
    }
