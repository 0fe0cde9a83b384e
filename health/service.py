"""
FastAPI router for dependency health endpoints.

The monitor instance lives on ``app.state.health_monitor`` (created in
main.py's lifespan) and is injected here through ``get_monitor``.
"""
from fastapi import APIRouter, HTTPException, Request, Depends

from logs.logging_config import get_health_logger
from .monitor import ServiceHealthMonitor
from .schemas import Dependency, ServiceHealthResponse, HealthOverviewResponse

logger = get_health_logger()

router = APIRouter(prefix="/api/docAI/v1/health", tags=["Health"])


def get_monitor(request: Request) -> ServiceHealthMonitor:
    monitor = getattr(request.app.state, "health_monitor", None)
    if monitor is None:
        raise HTTPException(status_code=503, detail="Health monitor is not running")
    return monitor


def _resolve(monitor: ServiceHealthMonitor, dependency: str) -> Dependency:
    try:
        dep = Dependency(dependency)
    except ValueError:
        dep = None
    if dep is None or dep not in monitor.dependencies:
        raise HTTPException(
            status_code=404,
            detail=f"Unknown dependency: {dependency}. Known: {', '.join(d.value for d in monitor.dependencies)}"
        )
    return dep


@router.get("", response_model=HealthOverviewResponse)
async def get_all_health_endpoint(monitor: ServiceHealthMonitor = Depends(get_monitor)):
    """
    Cached health of every monitored dependency.

    **Returns:**
    - `healthy`: True when all dependencies are healthy
    - `dependencies`: Per-dependency state (no probe is issued)
    """
    states = monitor.get_all_health()
    items = [ServiceHealthResponse.from_health(dep, health) for dep, health in states.items()]
    return HealthOverviewResponse(
        healthy=all(item.is_healthy for item in items),
        dependencies=items
    )


@router.get("/{dependency}", response_model=ServiceHealthResponse)
async def get_health_endpoint(dependency: str, monitor: ServiceHealthMonitor = Depends(get_monitor)):
    """Cached health of one dependency (`ai_server` or `ocr_server`)."""
    dep = _resolve(monitor, dependency)
    return ServiceHealthResponse.from_health(dep, monitor.get_health(dep))


@router.post("/{dependency}/check", response_model=ServiceHealthResponse)
async def force_check_endpoint(dependency: str, monitor: ServiceHealthMonitor = Depends(get_monitor)):
    """
    Probe one dependency immediately and return the updated state.

    The same failure threshold applies: a single failed probe does not mark
    a healthy dependency down.
    """
    dep = _resolve(monitor, dependency)
    logger.info(f"[HEALTH_API] Force check requested | dependency={dep.value}")
    health = await monitor.force_check(dep)
    return ServiceHealthResponse.from_health(dep, health)
