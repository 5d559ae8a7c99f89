"""Command line entry points.

    editorpool worker             run the pool worker until SIGINT/SIGTERM
    editorpool deploy [--name N]  deploy one instance and print its URL
"""

import argparse
import asyncio
import logging
import os
import sys

from pydantic import ValidationError

from editorpool import __version__
from editorpool.adapters.platform import HerokuPlatformClient
from editorpool.app.config import Settings, get_settings
from editorpool.app.logging import setup_logging
from editorpool.app.metrics import setup_metrics
from editorpool.control import Deployer, run_worker
from editorpool.core.errors import EditorPoolError
from editorpool.core.template import TemplateBundle

logger = logging.getLogger(__name__)


async def deploy_one(settings: Settings, name: str | None) -> str:
    """Deploy a single serving instance and return its URL."""
    platform = HerokuPlatformClient(settings.heroku, app_prefix=settings.pool.app_prefix)
    template = TemplateBundle(settings.pool.template_dir, settings.pool.template_version)
    template.ensure_exists()
    try:
        instance = await Deployer(platform, template, settings.deploy).deploy(name)
    finally:
        await platform.close()
    return instance.web_url or instance.name


def _load_settings() -> Settings:
    try:
        return get_settings()
    except ValidationError as exc:
        logger.error("Invalid configuration: %s", exc)
        sys.exit(2)


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Warm pool of pre-provisioned editor instances",
        prog="editorpool",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # worker command
    subparsers.add_parser("worker", help="Run the pool worker")

    # deploy command
    deploy_parser = subparsers.add_parser("deploy", help="Deploy one instance and print its URL")
    deploy_parser.add_argument(
        "--name", "-n",
        default=os.getenv("HEROKU_APP"),
        help="App name (default: $HEROKU_APP, generated if unset)",
    )

    args = parser.parse_args(argv)

    if args.command == "worker":
        setup_logging()
        settings = _load_settings()
        setup_metrics(settings.metrics)
        try:
            asyncio.run(run_worker(settings))
        except EditorPoolError as exc:
            logger.error("Pool worker failed to start: %s", exc, extra={"code": exc.code.value})
            sys.exit(1)

    elif args.command == "deploy":
        # stdout carries only the URL
        setup_logging(stream=sys.stderr)
        settings = _load_settings()
        try:
            url = asyncio.run(deploy_one(settings, args.name))
        except Exception as exc:
            logger.error("Deploy failed: %s", exc)
            sys.exit(1)
        print(f"Visit {url}")


if __name__ == "__main__":
    main()
