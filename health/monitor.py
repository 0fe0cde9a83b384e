"""
Service Health Monitor

Single source of truth for "is dependency X usable right now".

- Reads (get_health / is_healthy) are served from an in-memory map, no I/O
- One background probe task per dependency, 30s interval when healthy,
  10s when down
- Hysteresis: a dependency is marked down only after HEALTH_FAILURE_THRESHOLD
  consecutive failed probes; one success marks it healthy again
- State is persisted to a durable cache and restored on start()
- Subscribers are notified once per confirmed transition

Usage:
    monitor = ServiceHealthMonitor({
        Dependency.AI_SERVER: AI_SERVER_URL,
        Dependency.OCR_SERVER: OCR_SERVER_URL,
    }, store=HealthStore())
    await monitor.start()
    ...
    if monitor.is_healthy(Dependency.OCR_SERVER):
        ...
    await monitor.stop()
"""
import asyncio
import time
import aiohttp
from typing import Awaitable, Callable, Dict, List, Optional, Protocol, Union

from logs.logging_config import get_health_logger
from .config import (
    HEALTH_CHECK_INTERVAL,
    HEALTH_CHECK_INTERVAL_DOWN,
    HEALTH_CHECK_TIMEOUT,
    HEALTH_FAILURE_THRESHOLD,
    HEALTH_CHECK_PATH,
    HEALTH_CACHE_KEY_PREFIX,
)
from .schemas import Dependency, ServiceHealth, next_health

logger = get_health_logger()

HealthListener = Callable[[Dependency, ServiceHealth], Union[None, Awaitable[None]]]


class KeyValueStore(Protocol):
    """Durable cache used to persist health records."""

    async def get(self, key: str) -> Optional[str]:
        ...

    async def set(self, key: str, value: str) -> None:
        ...


class ServiceHealthMonitor:
    """
    Cached, periodically refreshed liveness state for remote dependencies.

    Constructed explicitly and passed to every component that gates on
    health. Nothing runs until ``start()`` is awaited.
    """

    def __init__(
        self,
        endpoints: Dict[Dependency, str],
        store: Optional[KeyValueStore] = None,
        session: Optional[aiohttp.ClientSession] = None,
        health_path: str = HEALTH_CHECK_PATH,
        healthy_interval: float = HEALTH_CHECK_INTERVAL,
        down_interval: float = HEALTH_CHECK_INTERVAL_DOWN,
        probe_timeout: float = HEALTH_CHECK_TIMEOUT,
        failure_threshold: int = HEALTH_FAILURE_THRESHOLD,
        key_prefix: str = HEALTH_CACHE_KEY_PREFIX,
        clock: Callable[[], float] = time.time,
    ):
        """
        Args:
            endpoints: Base URL per dependency
            store: Optional durable cache (get/set of JSON strings)
            session: Optional aiohttp session; one is created on start() otherwise
            health_path: Liveness path appended to each base URL
            healthy_interval: Seconds between probes while healthy
            down_interval: Seconds between probes while down
            probe_timeout: Upper bound for one probe in seconds
            failure_threshold: Consecutive failures before marking down
            key_prefix: Durable cache key prefix
            clock: Returns epoch seconds
        """
        self._endpoints = dict(endpoints)
        self._store = store
        self._session = session
        self._owns_session = session is None
        self._health_path = health_path
        self._healthy_interval = healthy_interval
        self._down_interval = down_interval
        self._probe_timeout = probe_timeout
        self._failure_threshold = failure_threshold
        self._key_prefix = key_prefix
        self._clock = clock

        self._states: Dict[Dependency, ServiceHealth] = {}
        self._locks: Dict[Dependency, asyncio.Lock] = {}
        self._wakeups: Dict[Dependency, asyncio.Event] = {}
        self._tasks: Dict[Dependency, asyncio.Task] = {}
        self._listeners: List[HealthListener] = []

    # =========================
    # Reads
    # =========================

    def get_health(self, dependency: Dependency) -> ServiceHealth:
        """
        Return the cached state for a dependency. Never performs I/O.

        An unseen dependency gets the optimistic default, which is stored
        so later reads return the same record until a probe completes.
        """
        state = self._states.get(dependency)
        if state is None:
            state = ServiceHealth.optimistic(self._clock())
            self._states[dependency] = state
        return state

    def is_healthy(self, dependency: Dependency) -> bool:
        return self.get_health(dependency).is_healthy

    def get_all_health(self) -> Dict[Dependency, ServiceHealth]:
        """Cached state for every configured dependency."""
        return {dep: self.get_health(dep) for dep in self._endpoints}

    @property
    def dependencies(self) -> List[Dependency]:
        return list(self._endpoints)

    @property
    def running(self) -> bool:
        return bool(self._tasks)

    # =========================
    # Subscriptions
    # =========================

    def subscribe(self, listener: HealthListener) -> Callable[[], None]:
        """
        Register a transition listener.

        The listener is called as ``listener(dependency, new_health)`` once per
        healthy/unhealthy transition. Returns a function that unsubscribes it.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def _notify(self, dependency: Dependency, health: ServiceHealth) -> None:
        for listener in list(self._listeners):
            try:
                result = listener(dependency, health)
                if asyncio.iscoroutine(result):
                    await result
            except Exception as e:
                logger.error(
                    f"[HEALTH] Listener failed | dependency={dependency.value} | "
                    f"listener={getattr(listener, '__name__', repr(listener))} | error={e}"
                )

    # =========================
    # Probing
    # =========================

    def _probe_url(self, dependency: Dependency) -> str:
        return f"{self._endpoints[dependency].rstrip('/')}{self._health_path}"

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self._probe_timeout)
            )
            self._owns_session = True
        return self._session

    async def _probe(self, dependency: Dependency) -> Optional[str]:
        """
        Issue one liveness request.

        Returns:
            None on any 2xx response, otherwise a short error description
        """
        url = self._probe_url(dependency)
        try:
            session = await self._get_session()
            return await asyncio.wait_for(self._request(session, url), timeout=self._probe_timeout)
        except asyncio.TimeoutError:
            return f"Health check timed out after {self._probe_timeout:g}s"
        except Exception as e:
            # Probe failures are recorded in state, never raised
            return f"{type(e).__name__}: {e}"

    async def _request(self, session: aiohttp.ClientSession, url: str) -> Optional[str]:
        async with session.get(
            url,
            timeout=aiohttp.ClientTimeout(total=self._probe_timeout)
        ) as r:
            if 200 <= r.status < 300:
                return None
            return f"HTTP {r.status}: {r.reason}"

    async def _check(self, dependency: Dependency) -> ServiceHealth:
        """Probe once, apply hysteresis and persist. Listeners run after the lock is released."""
        error = await self._probe(dependency)

        lock = self._locks.setdefault(dependency, asyncio.Lock())
        async with lock:
            previous = self.get_health(dependency)
            current = next_health(
                previous,
                success=error is None,
                now=self._clock(),
                error=error,
                failure_threshold=self._failure_threshold,
            )
            self._states[dependency] = current
            transitioned = current.is_healthy != previous.is_healthy
            await self._persist(dependency, current)

            if error is None:
                logger.debug(f"[HEALTH] Probe ok | dependency={dependency.value}")
            else:
                logger.warning(
                    f"[HEALTH] Probe failed | dependency={dependency.value} | "
                    f"failures={current.consecutive_failures} | error={error}"
                )

            if transitioned:
                logger.info(
                    f"[HEALTH] Transition | dependency={dependency.value} | "
                    f"healthy={previous.is_healthy}->{current.is_healthy} | "
                    f"failures={current.consecutive_failures}"
                )

        if transitioned:
            await self._notify(dependency, current)
            self._wakeups.setdefault(dependency, asyncio.Event()).set()

        return current

    async def force_check(self, dependency: Dependency) -> ServiceHealth:
        """
        Probe a dependency now and return the updated state.

        Follows the same hysteresis rule as the background loop. A verdict
        change wakes that dependency's loop so it reschedules with the new
        interval.
        """
        if dependency not in self._endpoints:
            raise KeyError(f"Unknown dependency: {dependency}")
        logger.info(f"[HEALTH] Force check | dependency={dependency.value}")
        return await self._check(dependency)

    def _interval_for(self, dependency: Dependency) -> float:
        if self.get_health(dependency).is_healthy:
            return self._healthy_interval
        return self._down_interval

    async def _run_loop(self, dependency: Dependency) -> None:
        wakeup = self._wakeups.setdefault(dependency, asyncio.Event())
        while True:
            await self._check(dependency)
            wakeup.clear()
            try:
                await asyncio.wait_for(wakeup.wait(), timeout=self._interval_for(dependency))
            except asyncio.TimeoutError:
                pass

    # =========================
    # Persistence
    # =========================

    def _cache_key(self, dependency: Dependency) -> str:
        return f"{self._key_prefix}:{dependency.value}"

    async def _persist(self, dependency: Dependency, health: ServiceHealth) -> None:
        if self._store is None:
            return
        try:
            await self._store.set(self._cache_key(dependency), health.to_json())
        except Exception as e:
            logger.warning(f"[HEALTH] Persist failed | dependency={dependency.value} | error={e}")

    async def _restore(self) -> None:
        if self._store is None:
            return
        for dependency in self._endpoints:
            try:
                raw = await self._store.get(self._cache_key(dependency))
                if raw:
                    self._states[dependency] = ServiceHealth.from_json(raw)
                    logger.info(
                        f"[HEALTH] Restored | dependency={dependency.value} | "
                        f"healthy={self._states[dependency].is_healthy}"
                    )
            except Exception as e:
                logger.warning(f"[HEALTH] Restore failed | dependency={dependency.value} | error={e}")

    # =========================
    # Lifecycle
    # =========================

    async def start(self) -> None:
        """Restore cached states and spawn one probe task per dependency."""
        if self._tasks:
            return
        await self._restore()
        for dependency in self._endpoints:
            self._wakeups[dependency] = asyncio.Event()
            self._tasks[dependency] = asyncio.create_task(
                self._run_loop(dependency),
                name=f"health-probe-{dependency.value}"
            )
        logger.info(
            f"[HEALTH] Monitor started | dependencies={[d.value for d in self._endpoints]} | "
            f"interval={self._healthy_interval:g}s | down_interval={self._down_interval:g}s"
        )

    async def stop(self) -> None:
        """Cancel probe tasks and close the session if this monitor created it."""
        tasks = list(self._tasks.values())
        self._tasks.clear()
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()
            self._session = None
        logger.info("[HEALTH] Monitor stopped")
