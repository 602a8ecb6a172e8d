"""
System administration schemas.
"""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import Field

from conservatory.schemas.common import CamelModel


class SystemHealth(CamelModel):
    status: str
    uptime_seconds: float
    counts: dict[str, int]
    components: dict[str, dict[str, Any]]
    timestamp: datetime


class StatusResponse(CamelModel):
    id: UUID
    name: str


class StatusCreate(CamelModel):
    name: str = Field(min_length=1, max_length=50)


class ArchiveRequest(CamelModel):
    """Archive records created before a cutoff."""
    before_date: datetime


class ArchiveResult(CamelModel):
    archived: int
    model: str
    archived_at: datetime


class BulkStatusRequest(CamelModel):
    user_ids: list[UUID] = Field(min_length=1)
    status_id: UUID


class BulkStatusResult(CamelModel):
    updated: int
    requested: int


class BulkArchiveRequest(CamelModel):
    user_ids: list[UUID] = Field(min_length=1)


class BulkArchiveResult(CamelModel):
    archived: int
    requested: int


class RestoreRequest(CamelModel):
    model: str
    ids: list[UUID] = Field(min_length=1)


class RestoreResult(CamelModel):
    restored: int
    requested: int
    model: str


class ArchivedStats(CamelModel):
    models: dict[str, int]
    total: int


class SyncResult(CamelModel):
    """Outcome of reconciling persisted permissions with the catalog."""
    created: int
    existing: int
