"""Audit trail: fire-and-forget recording of appointment events."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol

from fastapi import Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.modules.audit.models import AuditLog
from src.shared.enums import AuditTargetType

SENSITIVE_SNAPSHOT_KEYS = frozenset({"password", "refresh_token"})
MAX_USER_AGENT_LENGTH = 255


@dataclass(frozen=True)
class AuditContext:
    """Who triggered an event and from where."""

    user_id: str | None = None
    ip_address: str | None = None
    user_agent: str | None = None

    @classmethod
    def from_request(cls, request: Request, user_id: str | None) -> "AuditContext":
        user_agent = request.headers.get("user-agent")
        return cls(
            user_id=user_id,
            ip_address=client_ip(request),
            user_agent=user_agent[:MAX_USER_AGENT_LENGTH] if user_agent else None,
        )


@dataclass
class AuditEvent:
    action: str
    target_type: AuditTargetType
    target_id: str | None
    context: AuditContext
    meta: dict[str, Any] = field(default_factory=dict)


class AuditSink(Protocol):
    async def record(self, event: AuditEvent) -> None: ...


def client_ip(request: Request) -> str | None:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


def sanitize_snapshot(snapshot: dict[str, Any] | None) -> dict[str, Any] | None:
    if snapshot is None:
        return None
    return {key: value for key, value in snapshot.items() if key not in SENSITIVE_SNAPSHOT_KEYS}


def build_meta(
    *,
    patient_id: str | None,
    doctor_id: str | None,
    before: dict[str, Any] | None = None,
    after: dict[str, Any] | None = None,
) -> dict[str, Any]:
    meta: dict[str, Any] = {"patient_id": patient_id, "doctor_id": doctor_id}
    if before is not None:
        meta["before"] = sanitize_snapshot(before)
    if after is not None:
        meta["after"] = sanitize_snapshot(after)
    return meta


class DatabaseAuditSink:
    """Persist events in a session of their own so the caller's transaction is never touched."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def record(self, event: AuditEvent) -> None:
        entry = AuditLog(
            user_id=event.context.user_id,
            action=event.action,
            target_type=event.target_type,
            target_id=event.target_id,
            meta=event.meta,
            ip_address=event.context.ip_address,
            user_agent=event.context.user_agent,
        )
        async with self.session_factory() as session:
            session.add(entry)
            await session.commit()


@dataclass
class AuditQuery:
    user_id: str | None = None
    target_type: AuditTargetType | None = None
    target_id: str | None = None
    action: str | None = None
    created_from: datetime | None = None
    created_to: datetime | None = None
    limit: int = 20


async def list_audit_logs(query: AuditQuery, db: AsyncSession) -> list[AuditLog]:
    stmt = select(AuditLog)
    if query.user_id:
        stmt = stmt.where(AuditLog.user_id == query.user_id)
    if query.target_type:
        stmt = stmt.where(AuditLog.target_type == query.target_type)
    if query.target_id:
        stmt = stmt.where(AuditLog.target_id == query.target_id)
    if query.action:
        stmt = stmt.where(AuditLog.action == query.action)
    if query.created_from:
        stmt = stmt.where(AuditLog.created_at >= query.created_from)
    if query.created_to:
        stmt = stmt.where(AuditLog.created_at <= query.created_to)
    stmt = stmt.order_by(AuditLog.created_at.desc(), AuditLog.audit_id.desc()).limit(query.limit)
    result = await db.execute(stmt)
    return list(result.scalars().all())
