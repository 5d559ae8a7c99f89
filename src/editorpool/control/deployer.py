"""Deployer - builds new pool instances and parks them at zero scale.

A batch of deploys runs as one task group: the first deploy to fail cancels
every sibling still in flight, and the batch reports that first error.
Cancellation abandons the remote operation as is. An instance created before
the cancel is left behind and never cleaned up.
"""

import asyncio
import logging
import time
from dataclasses import replace

from editorpool.app.config import DeployConfig
from editorpool.app.metrics.collector import DEPLOY_DURATION, DEPLOY_TOTAL
from editorpool.core.domain.instance import Instance, InstanceState
from editorpool.core.errors import DeployFailedError, DeployTimeoutError
from editorpool.core.interfaces.platform import PlatformClient
from editorpool.core.logging_schema import LogEvent
from editorpool.core.retryable import classify_error
from editorpool.core.template import TemplateBundle

logger = logging.getLogger(__name__)

IDLE_SIZE = 0


class Deployer:
    """Deploys instances from one template bundle."""

    def __init__(
        self,
        platform: PlatformClient,
        template: TemplateBundle,
        config: DeployConfig,
    ) -> None:
        self._platform = platform
        self._template = template
        self._config = config

    async def _wait_built(self, instance: Instance) -> Instance:
        """Poll until the instance leaves BUILDING."""
        while instance.state == InstanceState.BUILDING:
            await asyncio.sleep(self._config.poll_interval)
            instance = await self._platform.get_instance(instance.id)

        if instance.state in (InstanceState.FAILED, InstanceState.DELETED):
            raise DeployFailedError(
                instance.id, f"Instance {instance.name} ended {instance.state.value}"
            )
        return instance

    async def deploy(self, name: str | None = None) -> Instance:
        """Create an instance and wait for its build to succeed.

        Args:
            name: App name (generated if None)

        Returns:
            Built instance (serving, not idled)

        Raises:
            DeployFailedError: The build failed
            DeployTimeoutError: Still building after DEPLOY_TIMEOUT
        """
        instance = await self._platform.create_instance(self._template, name)
        try:
            async with asyncio.timeout(self._config.timeout):
                return await self._wait_built(instance)
        except TimeoutError:
            raise DeployTimeoutError(instance.id, self._config.timeout) from None

    async def deploy_and_idle(self) -> Instance:
        """Deploy one pool instance and scale it to zero."""
        start = time.monotonic()
        try:
            instance = await self.deploy()
            await self._platform.scale_instance(instance.id, IDLE_SIZE)
        except asyncio.CancelledError:
            DEPLOY_TOTAL.labels(result="cancelled").inc()
            logger.info("Deploy cancelled", extra={"event": LogEvent.DEPLOY_CANCELLED})
            raise
        except Exception as exc:
            DEPLOY_TOTAL.labels(result="failure").inc()
            logger.error(
                "Deploy failed: %s",
                exc,
                extra={
                    "event": LogEvent.DEPLOY_FAILED,
                    "error_class": classify_error(exc),
                },
            )
            raise

        duration = time.monotonic() - start
        DEPLOY_TOTAL.labels(result="success").inc()
        DEPLOY_DURATION.observe(duration)
        logger.info(
            "Deployed idle instance",
            extra={
                "event": LogEvent.DEPLOY_SUCCESS,
                "instance_id": instance.id,
                "instance_name": instance.name,
                "version": instance.version,
                "duration_ms": duration * 1000,
            },
        )
        return replace(instance, state=InstanceState.IDLE)

    async def deploy_batch(self, count: int) -> list[Instance]:
        """Run `count` deploy_and_idle calls concurrently.

        The first failure cancels the rest of the batch.

        Returns:
            Idled instances, one per deploy

        Raises:
            Exception: The first error raised by any deploy of the batch
        """
        if count <= 0:
            return []

        try:
            async with asyncio.TaskGroup() as tg:
                tasks = [tg.create_task(self.deploy_and_idle()) for _ in range(count)]
        except BaseExceptionGroup as eg:
            # Errors are collected in failure order; siblings cancelled by the
            # group are not among them.
            first = eg.exceptions[0]
            raise first from first.__cause__

        return [task.result() for task in tasks]
