"""Audit log schemas."""

from datetime import datetime
from typing import Any, Optional, Sequence, Union
from uuid import UUID

from pydantic import Field, field_validator

from conservatory.core.auth.context import AuthContext
from conservatory.models.audit_log import AuditAction, AuditSeverity
from conservatory.schemas.common import CamelModel


class RequestMeta(CamelModel):
    """Request metadata captured with an audit entry."""

    request_id: Optional[str] = None
    ip: Optional[str] = None
    user_agent: Optional[str] = None


class AuditEntry(CamelModel):
    """Input for AuditService.log()."""

    action: AuditAction
    severity: AuditSeverity = AuditSeverity.INFO
    performed_by: Optional[UUID] = None
    performer_role: str
    target_model: str
    target_id: Optional[str] = None
    description: str
    previous_state: Optional[dict[str, Any]] = None
    new_state: Optional[dict[str, Any]] = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    request_context: Optional[RequestMeta] = None

    @field_validator("target_id", mode="before")
    @classmethod
    def stringify_target_id(cls, v: Any) -> Optional[str]:
        return None if v is None else str(v)

    @classmethod
    def by(cls, actor: AuthContext, **fields: Any) -> "AuditEntry":
        """Build an entry performed by `actor`."""
        return cls(performed_by=actor.user_id, performer_role=actor.role, **fields)


class AuditLogResponse(CamelModel):
    """Schema for audit log response."""

    id: UUID
    action: str
    severity: str
    performed_by: Optional[UUID]
    performer_role: str
    target_model: str
    target_id: Optional[str]
    description: str
    previous_state: Optional[dict]
    new_state: Optional[dict]
    metadata: dict = Field(default_factory=dict, validation_alias="extra_data")
    request_context: RequestMeta
    created_at: datetime

    @classmethod
    def from_log(cls, log) -> "AuditLogResponse":
        return cls(
            id=log.id,
            action=log.action,
            severity=log.severity,
            performed_by=log.performed_by,
            performer_role=log.performer_role,
            target_model=log.target_model,
            target_id=log.target_id,
            description=log.description,
            previous_state=log.previous_state,
            new_state=log.new_state,
            extra_data=log.extra_data or {},
            request_context=RequestMeta(
                request_id=log.request_id,
                ip=log.ip_address,
                user_agent=log.user_agent,
            ),
            created_at=log.created_at,
        )


class AuditLogFilter(CamelModel):
    """
    Filters for audit queries.

    Every supplied field narrows the result (AND). `action` and `severity`
    accept a single value or a list, matched by membership.
    """

    performed_by: Optional[UUID] = None
    target_model: Optional[str] = None
    target_id: Optional[str] = None
    action: Optional[Union[str, Sequence[str]]] = None
    severity: Optional[Union[str, Sequence[str]]] = None
    from_date: Optional[datetime] = None
    to_date: Optional[datetime] = None


class AuditLogPage(CamelModel):
    """Paginated audit query result."""

    logs: list[AuditLogResponse]
    total: int
    page: int
    limit: int
    total_pages: int


class AuditStats(CamelModel):
    """Aggregated audit counts over a window."""

    total: int
    by_action: dict[str, int]
    by_severity: dict[str, int]
    by_model: dict[str, int]
