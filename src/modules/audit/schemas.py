"""Audit log schemas."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from src.shared.enums import AuditTargetType


class AuditLogPublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    audit_id: str = Field(serialization_alias="id")
    user_id: str | None = None
    action: str
    target_type: AuditTargetType
    target_id: str | None = None
    meta: dict[str, Any]
    ip_address: str | None = None
    user_agent: str | None = None
    created_at: datetime
