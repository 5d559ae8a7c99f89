"""Control loop - pool reconciliation wiring.

Components:
- pool: classification and capacity planning (pure)
- Deployer / Remover: remote mutations
- PoolReconciler: one cycle
- PoolScheduler: the interval loop
"""

import asyncio
import logging
import signal

from editorpool.adapters.platform import HerokuPlatformClient
from editorpool.app.config import Settings
from editorpool.control.deployer import Deployer
from editorpool.control.reconciler import CycleResult, PoolReconciler
from editorpool.control.remover import Remover
from editorpool.control.scheduler import PoolScheduler
from editorpool.core.interfaces.platform import PlatformClient
from editorpool.core.logging_schema import LogEvent
from editorpool.core.template import TemplateBundle

logger = logging.getLogger(__name__)

__all__ = [
    "CycleResult",
    "Deployer",
    "PoolReconciler",
    "PoolScheduler",
    "Remover",
    "build_scheduler",
    "run_worker",
]


def build_scheduler(settings: Settings, platform: PlatformClient) -> PoolScheduler:
    """Wire the reconcile loop for one platform client."""
    template = TemplateBundle(settings.pool.template_dir, settings.pool.template_version)
    deployer = Deployer(platform, template, settings.deploy)
    remover = Remover(platform)
    reconciler = PoolReconciler(
        platform, deployer, remover, template, settings.pool, settings.logging
    )
    return PoolScheduler(reconciler, template, settings.pool)


async def run_worker(settings: Settings) -> None:
    """Run the pool worker until SIGINT/SIGTERM.

    Args:
        settings: Loaded configuration

    Raises:
        TemplateNotFoundError: Template directory missing
    """
    platform = HerokuPlatformClient(settings.heroku, app_prefix=settings.pool.app_prefix)
    scheduler = build_scheduler(settings, platform)

    # Cancelling the loop task aborts in-flight deploys; a removal phase
    # already under way finishes first.
    task = asyncio.create_task(scheduler.run())
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, task.cancel)

    try:
        await task
    finally:
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.remove_signal_handler(sig)
        await platform.close()
        logger.info("Platform client closed", extra={"event": LogEvent.APP_STOPPED})
