"""Remover - best-effort deletion of outdated pool instances.

A failed deletion only leaves one extra outdated instance behind; the next
cycle sees it again and retries. Errors are logged, never raised.
"""

import logging
from collections.abc import Iterable

from editorpool.app.metrics.collector import REMOVE_TOTAL
from editorpool.core.domain.instance import Instance
from editorpool.core.interfaces.platform import PlatformClient
from editorpool.core.logging_schema import LogEvent
from editorpool.core.retryable import classify_error

logger = logging.getLogger(__name__)


class Remover:
    """Deletes instances one at a time."""

    def __init__(self, platform: PlatformClient) -> None:
        self._platform = platform

    async def remove(self, instance: Instance) -> bool:
        """Delete one instance.

        Returns:
            True if the platform accepted the deletion
        """
        try:
            await self._platform.delete_instance(instance.id)
        except Exception as exc:
            REMOVE_TOTAL.labels(result="failure").inc()
            logger.error(
                "Failed to remove instance: %s",
                exc,
                extra={
                    "event": LogEvent.REMOVE_FAILED,
                    "instance_id": instance.id,
                    "instance_name": instance.name,
                    "error_class": classify_error(exc),
                },
            )
            return False

        REMOVE_TOTAL.labels(result="success").inc()
        logger.info(
            "Removed instance",
            extra={
                "event": LogEvent.REMOVE_SUCCESS,
                "instance_id": instance.id,
                "instance_name": instance.name,
                "version": instance.version,
            },
        )
        return True

    async def remove_all(self, instances: Iterable[Instance]) -> list[str]:
        """Delete instances sequentially, in order.

        Returns:
            IDs of instances whose deletion failed
        """
        failed = []
        for instance in instances:
            if not await self.remove(instance):
                failed.append(instance.id)
        return failed
