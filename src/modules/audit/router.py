"""Admin audit log routes."""

from datetime import datetime

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.database import get_db, get_session_factory
from src.core.deps import require_admin
from src.modules.audit.schemas import AuditLogPublic
from src.modules.audit.service import AuditQuery, AuditSink, DatabaseAuditSink, list_audit_logs
from src.modules.users.models import User
from src.shared.enums import AuditTargetType
from src.shared.schemas import ResponseEnvelope, envelope

router = APIRouter(prefix="/api/v1/admin/audits", tags=["admin-audits"])


def get_audit_sink(session_factory=Depends(get_session_factory)) -> AuditSink:
    return DatabaseAuditSink(session_factory)


@router.get("", response_model=ResponseEnvelope[list[AuditLogPublic]])
async def admin_list_audits(
    user_id: str | None = Query(None),
    target_type: AuditTargetType | None = Query(None),
    target_id: str | None = Query(None),
    action: str | None = Query(None),
    created_from: datetime | None = Query(None, alias="from"),
    created_to: datetime | None = Query(None, alias="to"),
    limit: int = Query(20, ge=1, le=100),
    _: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    query = AuditQuery(
        user_id=user_id,
        target_type=target_type,
        target_id=target_id,
        action=action,
        created_from=created_from,
        created_to=created_to,
        limit=limit,
    )
    return envelope(await list_audit_logs(query, db))
