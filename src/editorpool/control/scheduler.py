"""PoolScheduler - drives the reconciler on a fixed interval.

One cycle runs at startup, then one per POOL_CHECK_INTERVAL. Cycles never
overlap. Ticks follow a fixed-rate grid: ticks missed while a slow cycle was
running collapse into a single cycle that starts right away, after which the
grid resumes.

A failed cycle is logged and the loop carries on; the next tick retries.
"""

import asyncio
import logging
import time
from collections.abc import Callable

from editorpool.app.config import PoolConfig
from editorpool.app.logging import clear_trace_context, set_trace_id
from editorpool.app.metrics.collector import CYCLE_TOTAL
from editorpool.control.reconciler import PoolReconciler
from editorpool.core.errors import DeployBatchError
from editorpool.core.logging_schema import LogEvent
from editorpool.core.retryable import classify_error, is_transient
from editorpool.core.template import TemplateBundle

logger = logging.getLogger(__name__)


class PoolScheduler:
    """Runs reconcile cycles until stopped."""

    def __init__(
        self,
        reconciler: PoolReconciler,
        template: TemplateBundle,
        config: PoolConfig,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._reconciler = reconciler
        self._template = template
        self._interval = config.check_interval
        self._clock = clock
        self._stop = asyncio.Event()
        self._last_tick = 0.0

    def stop(self) -> None:
        """Request shutdown. The loop exits at its next wait point."""
        self._stop.set()

    def _next_delay(self, now: float) -> float:
        """Seconds until the next tick; 0 if one is already due."""
        due = self._last_tick + self._interval
        if due > now:
            self._last_tick = due
            return due - now
        # Missed ticks collapse into one
        skipped = (now - due) // self._interval
        self._last_tick = due + skipped * self._interval
        return 0.0

    async def run(self) -> None:
        """Main loop.

        Raises:
            TemplateNotFoundError: Template directory missing (before any cycle)
        """
        self._template.ensure_exists()
        # Content hash walks the whole tree; cached for every later cycle
        version = await asyncio.to_thread(lambda: self._template.version)

        logger.info(
            "Starting pool worker",
            extra={
                "event": LogEvent.APP_STARTED,
                "interval": self._interval,
                "version": version,
            },
        )
        self._last_tick = self._clock()

        try:
            await self._execute_tick()
            while not self._stop.is_set():
                if await self._wait(self._next_delay(self._clock())):
                    break
                await self._execute_tick()
        except asyncio.CancelledError:
            logger.info("Pool worker cancelled", extra={"event": LogEvent.APP_STOPPED})
            return
        logger.info("Pool worker stopped", extra={"event": LogEvent.APP_STOPPED})

    async def _wait(self, delay: float) -> bool:
        """Wait for the next tick. Returns True if stop was requested."""
        if delay <= 0:
            return self._stop.is_set()
        try:
            await asyncio.wait_for(self._stop.wait(), timeout=delay)
        except TimeoutError:
            return False
        return True

    async def _execute_tick(self) -> None:
        """Run one cycle, logging any failure."""
        set_trace_id()
        try:
            await self._reconciler.reconcile()
            CYCLE_TOTAL.labels(result="success").inc()
        except DeployBatchError as exc:
            CYCLE_TOTAL.labels(result="deploy_failed").inc()
            logger.error(
                "Failed to add instances to pool: %s",
                exc.error,
                extra={
                    "event": LogEvent.CYCLE_FAILED,
                    "count": exc.requested,
                    "error_class": classify_error(exc),
                    "transient": is_transient(exc),
                },
            )
        except Exception as exc:
            CYCLE_TOTAL.labels(result="fetch_failed").inc()
            logger.error(
                "Failed to observe pool: %s",
                exc,
                exc_info=True,
                extra={
                    "event": LogEvent.CYCLE_FAILED,
                    "error_class": classify_error(exc),
                    "transient": is_transient(exc),
                },
            )
        finally:
            clear_trace_context()
