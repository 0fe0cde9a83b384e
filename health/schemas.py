"""
Health state types and the hysteresis rule.

ServiceHealth is the record cached per dependency. ``next_health`` is the
single transition function used by both the background probe loop and
``force_check``.
"""
import json
from dataclasses import dataclass, asdict, fields
from enum import Enum
from typing import Optional, Dict, Any, List

from pydantic import BaseModel, Field

from .config import HEALTH_FAILURE_THRESHOLD


class Dependency(str, Enum):
    """Remote services the pipeline relies on."""
    AI_SERVER = "ai_server"
    OCR_SERVER = "ocr_server"


@dataclass
class ServiceHealth:
    """Cached liveness verdict for one dependency."""
    is_healthy: bool
    last_checked_at: float = 0.0
    last_healthy_at: float = 0.0
    consecutive_failures: int = 0
    last_error: Optional[str] = None

    @classmethod
    def optimistic(cls, now: float) -> "ServiceHealth":
        """
        Initial state for a dependency that has never been probed.

        Unseen dependencies are assumed healthy so the first request is not
        rejected before the first probe has had a chance to run.
        """
        return cls(is_healthy=True, last_checked_at=0.0, last_healthy_at=now)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ServiceHealth":
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False)

    @classmethod
    def from_json(cls, json_str: str) -> "ServiceHealth":
        return cls.from_dict(json.loads(json_str))


def next_health(
    previous: ServiceHealth,
    success: bool,
    now: float,
    error: Optional[str] = None,
    failure_threshold: int = HEALTH_FAILURE_THRESHOLD,
) -> ServiceHealth:
    """
    Apply one probe outcome to the previous state.

    A success marks the dependency healthy at once and resets the failure
    counter. A failure increments the counter and only flips the verdict to
    unhealthy once the counter reaches ``failure_threshold``.
    """
    if success:
        return ServiceHealth(
            is_healthy=True,
            last_checked_at=now,
            last_healthy_at=now,
            consecutive_failures=0,
            last_error=None,
        )

    failures = previous.consecutive_failures + 1
    return ServiceHealth(
        is_healthy=False if failures >= failure_threshold else previous.is_healthy,
        last_checked_at=now,
        last_healthy_at=previous.last_healthy_at,
        consecutive_failures=failures,
        last_error=error,
    )


# =========================
# API Schemas
# =========================

class ServiceHealthResponse(BaseModel):
    """Health of a single dependency."""
    dependency: str = Field(..., description="Dependency identifier")
    is_healthy: bool = Field(..., description="Current liveness verdict")
    last_checked_at: float = Field(..., description="Epoch seconds of the last probe (0 if never probed)")
    last_healthy_at: float = Field(..., description="Epoch seconds of the last confirmed healthy probe")
    consecutive_failures: int = Field(..., description="Failed probes since the last success")
    last_error: Optional[str] = Field(None, description="Error from the most recent failed probe")

    @classmethod
    def from_health(cls, dependency: Dependency, health: ServiceHealth) -> "ServiceHealthResponse":
        return cls(dependency=dependency.value, **health.to_dict())


class HealthOverviewResponse(BaseModel):
    """Health of every monitored dependency."""
    healthy: bool = Field(..., description="True when every dependency is healthy")
    dependencies: List[ServiceHealthResponse] = Field(..., description="Per-dependency health")
