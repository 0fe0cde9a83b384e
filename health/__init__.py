"""
Health Module

Tracks liveness of the remote services the pipeline depends on:
- Cached zero-latency reads for request gating
- Background probing with a two-tier interval and failure hysteresis
- Redis persistence so verdicts survive restarts
- Transition subscriptions
"""

from .service import router
from .monitor import ServiceHealthMonitor
from .health_store import HealthStore
from .schemas import (
    Dependency,
    ServiceHealth,
    next_health,
    ServiceHealthResponse,
    HealthOverviewResponse,
)

__all__ = [
    # Router
    "router",
    # Monitor
    "ServiceHealthMonitor",
    "HealthStore",
    # Schemas
    "Dependency",
    "ServiceHealth",
    "next_health",
    "ServiceHealthResponse",
    "HealthOverviewResponse",
]
