"""
Periodic driver that keeps tokens fresh and reports their health unattended.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Awaitable, Callable, Optional

from pydantic import BaseModel, Field

from tokenkeeper.core.config import SchedulerSettings
from tokenkeeper.models.token import TokenStatus
from tokenkeeper.schemas.tokens import SchedulerState
from tokenkeeper.services.token_lifecycle import TokenLifecycleService

logger = logging.getLogger(__name__)

SETUP_GUIDANCE = (
    "To set up tokens choose one option:",
    "  Option 1 - OAuth flow: run `tokenkeeper login` and paste the authorization code",
    "  Option 2 - Manual entry: run `tokenkeeper set` with an access and refresh token",
    "The service starts managing tokens automatically once they are stored.",
)


class TokenPresence(str, Enum):
    PRESENT = "present"
    ABSENT = "absent"


class TokenPresenceTracker:
    """Two-state machine that fires a callback once per presence transition."""

    def __init__(
        self,
        *,
        on_detected: Optional[Callable[[], None]] = None,
        on_removed: Optional[Callable[[], None]] = None,
        initial: TokenPresence = TokenPresence.ABSENT,
    ) -> None:
        self._state = initial
        self._on_detected = on_detected
        self._on_removed = on_removed

    @property
    def state(self) -> TokenPresence:
        return self._state

    def observe(self, present: bool) -> Optional[TokenPresence]:
        """Record an observation; return the new state only when it changed."""
        new_state = TokenPresence.PRESENT if present else TokenPresence.ABSENT
        if new_state is self._state:
            return None
        self._state = new_state
        callback = self._on_detected if present else self._on_removed
        if callback is not None:
            callback()
        return new_state


class RefreshCheckOutcome(str, Enum):
    NO_TOKENS = "no_tokens"
    FRESH = "fresh"
    REFRESHED = "refreshed"
    REFRESH_FAILED = "refresh_failed"
    SKIPPED = "skipped"
    ERROR = "error"


class HealthState(str, Enum):
    UNCONFIGURED = "unconfigured"
    HEALTHY = "healthy"
    EXPIRING = "expiring"
    EXPIRED = "expired"


class HealthReport(BaseModel):
    state: HealthState
    status: Optional[TokenStatus] = None
    warnings: list[str] = Field(default_factory=list)


class _PeriodicTask:
    """Runs ``tick`` every ``interval`` seconds until asked to stop.

    Stopping only prevents new ticks; a tick already running completes.
    """

    def __init__(
        self, name: str, interval: float, tick: Callable[[], Awaitable[object]]
    ) -> None:
        self.name = name
        self._interval = interval
        self._tick = tick
        self._task: Optional[asyncio.Task] = None
        self._stop_event: Optional[asyncio.Event] = None
        self._stopping: set[asyncio.Task] = set()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> bool:
        if self.running:
            return False
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._run(self._stop_event), name=self.name)
        return True

    def stop(self) -> bool:
        if not self.running:
            return False
        assert self._stop_event is not None
        self._stop_event.set()
        self._stopping.add(self._task)
        self._task = None
        return True

    async def wait_closed(self) -> None:
        pending = list(self._stopping)
        if self._task is not None:
            pending.append(self._task)
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        self._stopping.difference_update(pending)

    async def _run(self, stop_event: asyncio.Event) -> None:
        while not stop_event.is_set():
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=self._interval)
            except asyncio.TimeoutError:
                await self._tick()


class RefreshScheduler:
    """Drives the refresh check and the health check on independent timers."""

    def __init__(
        self,
        lifecycle: TokenLifecycleService,
        settings: Optional[SchedulerSettings] = None,
        *,
        presence_tracker: Optional[TokenPresenceTracker] = None,
    ) -> None:
        self._lifecycle = lifecycle
        self._settings = settings or SchedulerSettings()
        self._presence = presence_tracker or TokenPresenceTracker(
            on_detected=self._announce_tokens_detected,
            on_removed=self._announce_tokens_removed,
        )
        self._refresh_lock = asyncio.Lock()
        self._health_lock = asyncio.Lock()
        self._refresh_task = _PeriodicTask(
            "token-refresh",
            self._settings.refresh_interval_seconds,
            self._guarded_refresh_check,
        )
        self._health_task = _PeriodicTask(
            "token-health-check",
            self._settings.health_check_interval_seconds,
            self._guarded_health_check,
        )

    @property
    def presence(self) -> TokenPresence:
        return self._presence.state

    def start_refresh_scheduler(self) -> None:
        if not self._refresh_task.start():
            logger.warning("Token refresh scheduler is already running")
            return
        logger.info(
            "Token refresh scheduler started (every %s seconds)",
            self._settings.refresh_interval_seconds,
        )

    def start_health_check_scheduler(self) -> None:
        if not self._health_task.start():
            logger.warning("Health check scheduler is already running")
            return
        logger.info(
            "Health check scheduler started (every %s seconds)",
            self._settings.health_check_interval_seconds,
        )

    def start_all(self) -> None:
        self.start_refresh_scheduler()
        self.start_health_check_scheduler()

    def stop_refresh_scheduler(self) -> None:
        if self._refresh_task.stop():
            logger.info("Token refresh scheduler stopped")

    def stop_health_check_scheduler(self) -> None:
        if self._health_task.stop():
            logger.info("Health check scheduler stopped")

    def stop_all(self) -> None:
        self.stop_refresh_scheduler()
        self.stop_health_check_scheduler()

    async def wait_closed(self) -> None:
        """Wait until stopped loops have finished their in-flight tick."""
        await asyncio.gather(
            self._refresh_task.wait_closed(), self._health_task.wait_closed()
        )

    async def shutdown(self) -> None:
        self.stop_all()
        await self.wait_closed()

    def scheduler_status(self) -> SchedulerState:
        return SchedulerState(
            refresh_scheduler_running=self._refresh_task.running,
            health_check_scheduler_running=self._health_task.running,
        )

    async def run_refresh_check_once(self) -> RefreshCheckOutcome:
        logger.info("Running one-time token refresh check")
        return await self._guarded_refresh_check()

    async def run_health_check_once(self) -> Optional[HealthReport]:
        logger.info("Running one-time health check")
        return await self._guarded_health_check()

    async def _guarded_refresh_check(self) -> RefreshCheckOutcome:
        if self._refresh_lock.locked():
            logger.warning("Previous token refresh check still running; skipping this tick")
            return RefreshCheckOutcome.SKIPPED
        async with self._refresh_lock:
            try:
                return await self._check_and_refresh_tokens()
            except Exception:
                logger.exception("Error during scheduled token refresh")
                return RefreshCheckOutcome.ERROR

    async def _guarded_health_check(self) -> Optional[HealthReport]:
        if self._health_lock.locked():
            logger.warning("Previous health check still running; skipping this tick")
            return None
        async with self._health_lock:
            try:
                return await self._perform_health_check()
            except Exception:
                logger.exception("Error during health check")
                return None

    async def _check_and_refresh_tokens(self) -> RefreshCheckOutcome:
        record = await self._lifecycle.get_latest_tokens()
        self._presence.observe(record is not None)
        if record is None:
            return RefreshCheckOutcome.NO_TOKENS

        if not self._lifecycle.needs_refresh(record):
            logger.debug("Tokens are still valid; no refresh needed")
            return RefreshCheckOutcome.FRESH

        logger.info("Tokens need refresh; attempting automatic refresh")
        refreshed = await self._lifecycle.refresh_current()
        if refreshed is None:
            logger.error("Automatic token refresh failed; manual intervention may be required")
            return RefreshCheckOutcome.REFRESH_FAILED

        status = await self._lifecycle.status()
        if status is not None:
            logger.info(
                "Tokens automatically refreshed; new expiry %s (in %s minutes)",
                status.expires_at.isoformat() if status.expires_at else "unknown",
                status.expires_in_minutes,
            )
        else:
            logger.info("Tokens automatically refreshed")
        return RefreshCheckOutcome.REFRESHED

    async def _perform_health_check(self) -> HealthReport:
        status = await self._lifecycle.status()
        if status is None:
            logger.warning("Health check: no tokens configured; action required")
            for line in SETUP_GUIDANCE:
                logger.info(line)
            return HealthReport(
                state=HealthState.UNCONFIGURED,
                warnings=["No tokens configured"],
            )

        logger.info(
            "Health check: valid=%s expires_at=%s expires_in=%s min needs_refresh=%s last_updated=%s",
            status.is_valid,
            status.expires_at.isoformat() if status.expires_at else "unknown",
            status.expires_in_minutes,
            status.needs_refresh,
            status.last_updated.isoformat(),
        )

        warnings: list[str] = []
        state = HealthState.HEALTHY
        if not status.is_valid:
            state = HealthState.EXPIRED
            warnings.append("Tokens are expired; automatic refresh should handle this")
        elif status.expires_in_minutes <= self._settings.expiry_warning_minutes:
            state = HealthState.EXPIRING
            warnings.append(
                f"Tokens expire in less than {self._settings.expiry_warning_minutes} minutes"
            )
        for warning in warnings:
            logger.warning("Health check: %s", warning)
        return HealthReport(state=state, status=status, warnings=warnings)

    @staticmethod
    def _announce_tokens_detected() -> None:
        logger.info("Tokens detected; automatic token management is now active")

    @staticmethod
    def _announce_tokens_removed() -> None:
        logger.warning("Tokens were removed; waiting for new tokens")
        logger.info("To reconfigure tokens, run `tokenkeeper login`")


__all__ = [
    "HealthReport",
    "HealthState",
    "RefreshCheckOutcome",
    "RefreshScheduler",
    "TokenPresence",
    "TokenPresenceTracker",
]
