"""Component checks for the admin health report."""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional

import structlog
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

PROCESS_STARTED_AT = time.monotonic()

# Above this the database is reported as degraded
SLOW_QUERY_MS = 100


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


_RANK = {HealthStatus.HEALTHY: 0, HealthStatus.DEGRADED: 1, HealthStatus.UNHEALTHY: 2}


@dataclass
class ComponentHealth:
    """Health of one dependency."""

    name: str
    status: HealthStatus
    latency_ms: Optional[float] = None
    message: Optional[str] = None
    details: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "latencyMs": self.latency_ms,
            "message": self.message,
            **self.details,
        }


def overall_status(components: Iterable[ComponentHealth]) -> HealthStatus:
    """The worst status among `components`."""
    return max((c.status for c in components), key=_RANK.__getitem__, default=HealthStatus.HEALTHY)


async def check_database(db: AsyncSession) -> ComponentHealth:
    """Round-trip a trivial query and time it."""
    start = time.perf_counter()
    try:
        await db.execute(text("SELECT 1"))
    except Exception as e:
        logger.error("Database health check failed", error=str(e))
        return ComponentHealth("database", HealthStatus.UNHEALTHY, message=str(e)[:100])

    latency = round((time.perf_counter() - start) * 1000, 2)
    slow = latency >= SLOW_QUERY_MS
    return ComponentHealth(
        "database",
        HealthStatus.DEGRADED if slow else HealthStatus.HEALTHY,
        latency_ms=latency,
        message="Slow response" if slow else "Connected",
    )


def check_audit_writer(pending: int, failed: int) -> ComponentHealth:
    """Audit writes are best-effort; any recorded failure degrades the report."""
    return ComponentHealth(
        "audit",
        HealthStatus.DEGRADED if failed else HealthStatus.HEALTHY,
        message=f"{failed} audit writes failed" if failed else "Writing",
        details={"pending": pending, "failed": failed},
    )


def uptime_seconds() -> float:
    return round(time.monotonic() - PROCESS_STARTED_AT, 2)
