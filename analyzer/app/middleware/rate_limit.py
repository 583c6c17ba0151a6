"""Admission control for the analyzer routes.

Fixed-window request counting per caller identifier. Four named limiter
configurations (standard, heavy, auth, image) coexist, each with its own
identifier -> window mapping, so a request charged to one class never
consumes another class's budget.

State is in-memory and does not survive a restart.
"""

import asyncio
import hashlib
import math
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Dict, Optional

from fastapi import Request

from analyzer.app.core.config import settings
from analyzer.app.core.logging import get_log_context, get_logger
from analyzer.app.exceptions import AdmissionRejected

logger = get_logger(__name__)

# Interval of the background sweep that drops expired windows.
SWEEP_INTERVAL_SECONDS = 60.0

STANDARD = "standard"
HEAVY = "heavy"
AUTH = "auth"
IMAGE = "image"


@dataclass(frozen=True)
class LimiterConfig:
    """Immutable admission policy for one route class."""
    window_seconds: float
    max_requests: int

    def __post_init__(self) -> None:
        if self.window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        if self.max_requests < 1:
            raise ValueError("max_requests must be at least 1")


@dataclass
class RateWindow:
    """Counting window for a single identifier."""
    count: int
    reset_at: float


@dataclass
class AdmissionDecision:
    """Result of an admission check."""
    allowed: bool
    limit: int
    remaining: int
    reset_at: float
    retry_after: Optional[int] = None

    @property
    def reset_at_iso(self) -> str:
        return datetime.fromtimestamp(self.reset_at, tz=timezone.utc).isoformat()


def default_limiter_configs() -> Dict[str, LimiterConfig]:
    """Build the named limiter configurations from settings."""
    return {
        STANDARD: LimiterConfig(
            window_seconds=settings.rate_limit_standard_window_seconds,
            max_requests=settings.rate_limit_standard_requests,
        ),
        HEAVY: LimiterConfig(
            window_seconds=settings.rate_limit_heavy_window_seconds,
            max_requests=settings.rate_limit_heavy_requests,
        ),
        AUTH: LimiterConfig(
            window_seconds=settings.rate_limit_auth_window_seconds,
            max_requests=settings.rate_limit_auth_requests,
        ),
        IMAGE: LimiterConfig(
            window_seconds=settings.rate_limit_image_window_seconds,
            max_requests=settings.rate_limit_image_requests,
        ),
    }


class RateLimitBackend(ABC):
    """Abstract base class for admission backends.

    A backend owns the identifier -> window mapping for one configuration.
    Any store with atomic increment-with-expiry semantics can implement it.
    """

    @abstractmethod
    def admit(self, identifier: str) -> AdmissionDecision:
        """Charge one request to ``identifier`` and report the decision."""

    @abstractmethod
    def sweep(self) -> int:
        """Drop expired windows, returning how many were removed."""


class InMemoryRateLimiter(RateLimitBackend):
    """Thread-safe in-memory fixed-window limiter.

    The lock only guards a dictionary lookup and a counter update, so
    ``admit`` never blocks on I/O and is safe to call from the event loop
    as well as from worker threads.
    """

    def __init__(
        self,
        config: LimiterConfig,
        clock: Callable[[], float] = time.time,
    ):
        self.config = config
        self._clock = clock
        self._windows: Dict[str, RateWindow] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._windows)

    def admit(self, identifier: str) -> AdmissionDecision:
        limit = self.config.max_requests
        with self._lock:
            now = self._clock()
            window = self._windows.get(identifier)

            if window is None or window.reset_at < now:
                window = RateWindow(count=1, reset_at=now + self.config.window_seconds)
                self._windows[identifier] = window
                return AdmissionDecision(
                    allowed=True,
                    limit=limit,
                    remaining=limit - 1,
                    reset_at=window.reset_at,
                )

            if window.count < limit:
                window.count += 1
                return AdmissionDecision(
                    allowed=True,
                    limit=limit,
                    remaining=limit - window.count,
                    reset_at=window.reset_at,
                )

            return AdmissionDecision(
                allowed=False,
                limit=limit,
                remaining=0,
                reset_at=window.reset_at,
                retry_after=max(1, math.ceil(window.reset_at - now)),
            )

    def sweep(self) -> int:
        with self._lock:
            now = self._clock()
            expired = [
                key for key, window in self._windows.items()
                if window.reset_at < now
            ]
            for key in expired:
                del self._windows[key]
        return len(expired)


class RateLimiterRegistry:
    """Holds one limiter per named configuration and sweeps them.

    Usage:
        registry = RateLimiterRegistry()
        decision = registry.admit("heavy", client_key)

        await registry.start()   # background sweep
        await registry.stop()
    """

    def __init__(
        self,
        configs: Optional[Dict[str, LimiterConfig]] = None,
        clock: Callable[[], float] = time.time,
        sweep_interval: float = SWEEP_INTERVAL_SECONDS,
    ):
        configs = configs if configs is not None else default_limiter_configs()
        self._limiters: Dict[str, InMemoryRateLimiter] = {
            name: InMemoryRateLimiter(config, clock=clock)
            for name, config in configs.items()
        }
        self._sweep_interval = sweep_interval
        self._task: Optional[asyncio.Task] = None
        self._stop_event: Optional[asyncio.Event] = None

    def get(self, name: str) -> InMemoryRateLimiter:
        try:
            return self._limiters[name]
        except KeyError:
            raise KeyError(f"Unknown limiter configuration: {name}") from None

    def admit(self, name: str, identifier: str) -> AdmissionDecision:
        return self.get(name).admit(identifier)

    def sweep_all(self) -> int:
        return sum(limiter.sweep() for limiter in self._limiters.values())

    def window_counts(self) -> Dict[str, int]:
        return {name: len(limiter) for name, limiter in self._limiters.items()}

    async def start(self) -> None:
        """Start the background sweep task."""
        if self._task is not None:
            return
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._run_sweeps())
        logger.info(f"Started rate limit sweeper (interval: {self._sweep_interval}s)")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._stop_event.set()
        try:
            await asyncio.wait_for(self._task, timeout=5.0)
        except asyncio.TimeoutError:
            logger.warning("Rate limit sweeper did not stop gracefully, cancelling")
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        finally:
            self._task = None
            logger.info("Stopped rate limit sweeper")

    async def _run_sweeps(self) -> None:
        while not self._stop_event.is_set():
            try:
                await asyncio.wait_for(
                    self._stop_event.wait(),
                    timeout=self._sweep_interval,
                )
            except asyncio.TimeoutError:
                try:
                    removed = self.sweep_all()
                except Exception:
                    logger.exception("Rate window sweep failed")
                    continue
                if removed:
                    logger.debug(f"Swept {removed} expired rate windows")


_registry: Optional[RateLimiterRegistry] = None


def get_rate_limiters() -> RateLimiterRegistry:
    """Get the process-wide limiter registry, creating it on first use."""
    global _registry
    if _registry is None:
        _registry = RateLimiterRegistry()
    return _registry


def reset_rate_limiters() -> None:
    """Drop the process-wide registry (tests)."""
    global _registry
    _registry = None


def client_identifier(request: Request) -> str:
    """Get the admission key for the request.

    Prefers the first X-Forwarded-For hop, then X-Real-IP, then the socket
    peer. The address is hashed so raw IPs are never kept in memory.
    """
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded and forwarded.split(",")[0].strip():
        client_ip = forwarded.split(",")[0].strip()
    elif request.headers.get("X-Real-IP"):
        client_ip = request.headers["X-Real-IP"].strip()
    elif request.client and request.client.host:
        client_ip = request.client.host
    else:
        client_ip = "anonymous"

    ip_hash = hashlib.sha256(client_ip.encode()).hexdigest()[:32]
    return f"ratelimit:ip:{ip_hash}"


def rate_limit_headers(decision: AdmissionDecision) -> Dict[str, str]:
    headers = {
        "X-RateLimit-Limit": str(decision.limit),
        "X-RateLimit-Remaining": str(decision.remaining),
        "X-RateLimit-Reset": decision.reset_at_iso,
    }
    if not decision.allowed:
        headers["Retry-After"] = str(decision.retry_after)
    return headers


def check_admission(request: Request, rate_class: str, route: str) -> AdmissionDecision:
    """Charge the request to ``rate_class``.

    Raises:
        AdmissionRejected: If the caller's window for the class is full
    """
    client_id = client_identifier(request)
    decision = get_rate_limiters().admit(rate_class, client_id)
    request.state.admission = decision

    if not decision.allowed:
        logger.info(
            "Admission rejected",
            extra=get_log_context(
                request_id=getattr(request.state, "request_id", None),
                client_id=client_id,
                route=route,
                rate_class=rate_class,
                retry_after=decision.retry_after,
            ),
        )
        raise AdmissionRejected(decision)
    return decision
