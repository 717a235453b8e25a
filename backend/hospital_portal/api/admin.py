"""Admin endpoints: audit log viewer (engineer only)."""
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict
from sqlalchemy.orm import Session

from ..core.permissions import PERM_VIEW_AUDIT_LOGS
from ..core.security import require_permission
from ..models.audit import AuditLog
from ..models.base import get_db

router = APIRouter(prefix="/admin", tags=["admin"])


class AuditLogResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    role: Optional[str]
    action: str
    resource_type: str
    resource_id: str
    ip_address: Optional[str]
    request_method: Optional[str]
    request_path: Optional[str]
    status_code: Optional[str]
    created_at: datetime


@router.get("/audit-logs", response_model=List[AuditLogResponse])
def get_audit_logs(
    user_id: Optional[str] = Query(None, description="Filter by user ID"),
    action: Optional[str] = Query(None, description="Filter by action type"),
    resource_id: Optional[str] = Query(None, description="Filter by patient ID"),
    since: Optional[datetime] = Query(None, description="Filter records after this datetime"),
    until: Optional[datetime] = Query(None, description="Filter records before this datetime"),
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    _engineer=Depends(require_permission(PERM_VIEW_AUDIT_LOGS)),
):
    """Searchable audit log. Filterable by user, patient, date range and action."""
    q = db.query(AuditLog)
    if user_id:
        q = q.filter(AuditLog.user_id == user_id)
    if action:
        q = q.filter(AuditLog.action == action)
    if resource_id:
        q = q.filter(AuditLog.resource_id == resource_id)
    if since:
        q = q.filter(AuditLog.created_at >= since)
    if until:
        q = q.filter(AuditLog.created_at <= until)
    return q.order_by(AuditLog.created_at.desc()).offset(skip).limit(limit).all()
