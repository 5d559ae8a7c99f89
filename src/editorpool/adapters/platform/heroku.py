"""Heroku Platform API client.

Each pool instance is one Heroku app. The template version is kept in an app
config var, the build status and the web formation give the lifecycle state.
"""

from __future__ import annotations

import asyncio
import logging
import secrets
from datetime import datetime
from typing import TYPE_CHECKING, Any, Literal

import httpx

from editorpool.app.config import HerokuConfig
from editorpool.core.domain.instance import Instance, InstanceFilter, InstanceState
from editorpool.core.interfaces.platform import PlatformClient
from editorpool.core.logging_schema import LogEvent

if TYPE_CHECKING:
    from editorpool.core.template import TemplateBundle

logger = logging.getLogger(__name__)

HEROKU_ACCEPT = "application/vnd.heroku+json; version=3"
VERSION_CONFIG_VAR = "EDITORPOOL_TEMPLATE_VERSION"
PAGE_SIZE = 1000


def derive_state(build_status: str | None, web_quantity: int) -> InstanceState:
    """Map the latest build status and web process count to a state.

    Args:
        build_status: Status of the most recent build (None if no build yet)
        web_quantity: Number of web dynos in the formation
    """
    if build_status is None or build_status == "pending":
        return InstanceState.BUILDING
    if build_status == "failed":
        return InstanceState.FAILED
    if web_quantity > 0:
        return InstanceState.RUNNING
    return InstanceState.IDLE


def _parse_time(value: str | None) -> datetime | None:
    if not value:
        return None
    return datetime.fromisoformat(value)


class HerokuPlatformClient(PlatformClient):
    """HTTP client for the Heroku Platform API (v3)."""

    def __init__(self, config: HerokuConfig, app_prefix: str = "editor-") -> None:
        self._config = config
        self._app_prefix = app_prefix
        self._client: httpx.AsyncClient | None = None

    def _get_headers(self) -> dict[str, str]:
        """Get request headers with the API token."""
        return {
            "Accept": HEROKU_ACCEPT,
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self._config.api_key.get_secret_value()}",
        }

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self._config.api_url,
                headers=self._get_headers(),
                timeout=self._config.timeout,
            )
        return self._client

    async def _request(
        self,
        method: Literal["get", "post", "patch", "delete"],
        path: str,
        *,
        on_404: Literal["raise", "none"] = "raise",
        **kwargs: Any,
    ) -> httpx.Response | None:
        """Make HTTP request with common error handling.

        Args:
            method: HTTP method.
            path: URL path.
            on_404: How to handle 404 responses:
                - "raise": Raise HTTPStatusError (default)
                - "none": Return None
            **kwargs: Additional arguments for httpx request.

        Returns:
            Response object, or None if 404 and on_404="none".
        """
        client = await self._get_client()
        resp = await getattr(client, method)(path, **kwargs)

        if resp.status_code == 404 and on_404 == "none":
            return None

        resp.raise_for_status()
        return resp

    async def close(self) -> None:
        """Close HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    # =========================================================================
    # Listing
    # =========================================================================

    async def _list_apps(self) -> list[dict]:
        """List every app on the account, following Range pagination."""
        apps: list[dict] = []
        range_header = f"id ..; max={PAGE_SIZE}"
        while True:
            resp = await self._request("get", "/apps", headers={"Range": range_header})
            apps.extend(resp.json())

            next_range = resp.headers.get("Next-Range")
            if resp.status_code != 206 or not next_range:
                return apps
            range_header = next_range

    async def _describe(self, app: dict) -> Instance:
        """Build an Instance from an app record plus its config, builds and formation."""
        app_id = app["id"]
        config_resp, builds_resp, formation_resp = await asyncio.gather(
            self._request("get", f"/apps/{app_id}/config-vars", on_404="none"),
            self._request("get", f"/apps/{app_id}/builds", on_404="none"),
            self._request("get", f"/apps/{app_id}/formation", on_404="none"),
        )

        # Deleted between listing and describing
        if config_resp is None or builds_resp is None or formation_resp is None:
            return Instance(
                id=app_id,
                name=app["name"],
                version=None,
                state=InstanceState.DELETED,
            )

        builds = builds_resp.json()
        latest = max(builds, key=lambda b: b.get("created_at") or "", default=None)
        web_quantity = next(
            (p.get("quantity", 0) for p in formation_resp.json() if p.get("type") == "web"),
            0,
        )

        return Instance(
            id=app_id,
            name=app["name"],
            version=config_resp.json().get(VERSION_CONFIG_VAR),
            state=derive_state(latest["status"] if latest else None, web_quantity),
            web_url=app.get("web_url"),
            created_at=_parse_time(app.get("created_at")),
        )

    async def list_instances(self, app_filter: InstanceFilter) -> list[Instance]:
        """List pool instances in platform listing order."""
        apps = [
            app
            for app in await self._list_apps()
            if app["name"].startswith(app_filter.name_prefix)
        ]
        instances = await asyncio.gather(*[self._describe(app) for app in apps])
        return [i for i in instances if app_filter.matches(i)]

    async def get_instance(self, instance_id: str) -> Instance:
        """Fetch one instance. A missing app is reported as DELETED."""
        resp = await self._request("get", f"/apps/{instance_id}", on_404="none")
        if resp is None:
            return Instance(
                id=instance_id,
                name=instance_id,
                version=None,
                state=InstanceState.DELETED,
            )
        return await self._describe(resp.json())

    # =========================================================================
    # Mutation
    # =========================================================================

    def _generate_name(self) -> str:
        # App names: lowercase, start with a letter, at most 30 characters
        return f"{self._app_prefix}{secrets.token_hex(4)}"

    async def _upload_source(self, template: TemplateBundle) -> str:
        """Upload the template tarball, returning the URL builds fetch it from."""
        resp = await self._request("post", "/sources")
        blob = resp.json()["source_blob"]

        data = await asyncio.to_thread(template.archive)
        # Pre-signed URL: must not carry the API token
        async with httpx.AsyncClient(timeout=self._config.timeout) as upload:
            put = await upload.put(blob["put_url"], content=data)
            put.raise_for_status()

        return blob["get_url"]

    async def create_instance(
        self, template: TemplateBundle, name: str | None = None
    ) -> Instance:
        """Create an app, stamp the template version and submit its build."""
        resp = await self._request("post", "/apps", json={"name": name or self._generate_name()})
        app = resp.json()
        app_id = app["id"]

        await self._request(
            "patch",
            f"/apps/{app_id}/config-vars",
            json={VERSION_CONFIG_VAR: template.version},
        )
        source_url = await self._upload_source(template)
        await self._request(
            "post",
            f"/apps/{app_id}/builds",
            json={"source_blob": {"url": source_url, "version": template.version}},
        )

        logger.info(
            "Submitted build",
            extra={
                "event": LogEvent.DEPLOY_STARTED,
                "instance_id": app_id,
                "instance_name": app["name"],
                "version": template.version,
            },
        )
        return Instance(
            id=app_id,
            name=app["name"],
            version=template.version,
            state=InstanceState.BUILDING,
            web_url=app.get("web_url"),
            created_at=_parse_time(app.get("created_at")),
        )

    async def scale_instance(self, instance_id: str, size: int) -> None:
        """Set the web dyno count."""
        await self._request(
            "patch",
            f"/apps/{instance_id}/formation/web",
            json={"quantity": size},
        )

    async def delete_instance(self, instance_id: str) -> None:
        """Delete an app. Already gone counts as deleted."""
        resp = await self._request("delete", f"/apps/{instance_id}", on_404="none")
        if resp is None:
            logger.debug("App already deleted: %s", instance_id)
