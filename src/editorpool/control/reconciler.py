"""PoolReconciler - one inspect → plan → act pass over the pool.

Reconcile cycle:
1. Observe: list pool instances, classify by template version
2. Plan: additions and removals, each capped by the batch size
3. Add: deploy the additions concurrently (first failure cancels the batch)
4. Remove: delete outdated instances sequentially, oldest listed first

The removal phase works from the snapshot taken in step 1. Deploys of the
same cycle are not reflected in it; the next cycle corrects any drift.
"""

import asyncio
import logging
import time

from pydantic import BaseModel

from editorpool.app.config import LoggingConfig, PoolConfig
from editorpool.app.metrics.collector import (
    CYCLE_DURATION,
    POOL_INSTANCES,
    POOL_TARGET_SIZE,
)
from editorpool.control.deployer import Deployer
from editorpool.control.pool import PoolSnapshot, ReconcilePlan, classify, plan
from editorpool.control.remover import Remover
from editorpool.core.domain.instance import Instance, InstanceFilter
from editorpool.core.errors import DeployBatchError
from editorpool.core.interfaces.platform import PlatformClient
from editorpool.core.logging_schema import LogEvent
from editorpool.core.template import TemplateBundle

logger = logging.getLogger(__name__)


class CycleResult(BaseModel):
    """Outcome of one successful cycle."""

    plan: ReconcilePlan
    deployed: list[str] = []
    removed: list[str] = []
    failed_removals: list[str] = []


class PoolReconciler:
    """Reconciles the pool toward its target size and template version."""

    def __init__(
        self,
        platform: PlatformClient,
        deployer: Deployer,
        remover: Remover,
        template: TemplateBundle,
        config: PoolConfig,
        logging_config: LoggingConfig | None = None,
    ) -> None:
        self._platform = platform
        self._deployer = deployer
        self._remover = remover
        self._template = template
        self._config = config
        self._slow_threshold_ms = (logging_config or LoggingConfig()).slow_threshold_ms
        self._filter = InstanceFilter(name_prefix=config.app_prefix)

    async def observe(self) -> PoolSnapshot:
        """List and classify the pool. Listing errors propagate."""
        instances = await self._platform.list_instances(self._filter)
        snapshot = classify(instances, self._template.version)

        POOL_INSTANCES.labels(version="current").set(len(snapshot.current))
        POOL_INSTANCES.labels(version="outdated").set(len(snapshot.other))
        POOL_TARGET_SIZE.set(self._config.size)
        logger.debug(
            "Observed pool",
            extra={
                "event": LogEvent.POOL_OBSERVED,
                "current": len(snapshot.current),
                "outdated": len(snapshot.other),
                "total": snapshot.total,
                "version": self._template.version,
            },
        )
        return snapshot

    async def reconcile(self) -> CycleResult:
        """Run one cycle.

        Raises:
            Exception: Listing failed (nothing was changed)
            DeployBatchError: A deploy failed (removal phase skipped)
        """
        start = time.monotonic()

        snapshot = await self.observe()
        cycle_plan = plan(snapshot, self._config.size, self._config.batch_size)

        logger.info(
            "Adding instances to pool",
            extra={"event": LogEvent.DEPLOY_STARTED, "count": cycle_plan.additions},
        )
        try:
            deployed = await self._deployer.deploy_batch(cycle_plan.additions)
        except Exception as exc:
            raise DeployBatchError(cycle_plan.additions, exc) from exc

        victims = snapshot.other[: cycle_plan.removals]
        logger.info(
            "Removing outdated instances from pool",
            extra={"event": LogEvent.REMOVE_STARTED, "count": len(victims)},
        )
        failed = await self._remove_to_completion(victims)

        result = CycleResult(
            plan=cycle_plan,
            deployed=[i.id for i in deployed],
            removed=[i.id for i in victims if i.id not in failed],
            failed_removals=failed,
        )

        duration = time.monotonic() - start
        duration_ms = duration * 1000
        CYCLE_DURATION.observe(duration)
        logger.info(
            "Reconcile completed",
            extra={
                "event": LogEvent.CYCLE_COMPLETE,
                "current": len(snapshot.current),
                "outdated": len(snapshot.other),
                "added": len(result.deployed),
                "removed": len(result.removed),
                "remove_failed": len(result.failed_removals),
                "duration_ms": duration_ms,
            },
        )
        if duration_ms > self._slow_threshold_ms:
            logger.warning(
                "Slow reconcile detected",
                extra={
                    "event": LogEvent.CYCLE_SLOW,
                    "duration_ms": duration_ms,
                    "threshold_ms": self._slow_threshold_ms,
                },
            )
        return result

    async def _remove_to_completion(self, victims: tuple[Instance, ...]) -> list[str]:
        """Run the removal phase; cancels wait for it to finish first.

        Every cancel (a repeated SIGTERM included) is absorbed until the
        removal task is done, then re-raised once.
        """
        removal = asyncio.create_task(self._remover.remove_all(victims))
        cancelled = False
        while not removal.done():
            try:
                await asyncio.shield(removal)
            except asyncio.CancelledError:
                cancelled = True
        if cancelled:
            raise asyncio.CancelledError
        return removal.result()
