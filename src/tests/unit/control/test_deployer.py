"""Tests for Deployer.

Covers single deploys (build polling, failure, timeout) and the batch
semantics: concurrent deploys where the first failure cancels the rest.
"""

import asyncio
from dataclasses import replace
from unittest.mock import AsyncMock

import httpx
import pytest

from editorpool.app.config import DeployConfig
from editorpool.control.deployer import IDLE_SIZE, Deployer
from editorpool.core.domain.instance import Instance, InstanceState
from editorpool.core.errors import DeployFailedError, DeployTimeoutError


@pytest.fixture
def deployer(mock_platform: AsyncMock, template, deploy_config: DeployConfig) -> Deployer:
    return Deployer(mock_platform, template, deploy_config)


@pytest.fixture
def building(make_instance) -> Instance:
    return make_instance("app-1", state=InstanceState.BUILDING)


class TestDeploy:
    """Deployer.deploy() - create and wait for the build."""

    async def test_polls_until_built(
        self, deployer: Deployer, mock_platform: AsyncMock, building: Instance
    ) -> None:
        """BUILDING → BUILDING → RUNNING returns the running instance."""
        mock_platform.create_instance.return_value = building
        mock_platform.get_instance.side_effect = [
            building,
            replace(building, state=InstanceState.RUNNING),
        ]

        result = await deployer.deploy()

        assert result.state == InstanceState.RUNNING
        assert mock_platform.get_instance.await_count == 2
        mock_platform.get_instance.assert_awaited_with("app-1")

    async def test_name_passed_to_platform(
        self, deployer: Deployer, mock_platform: AsyncMock, template, building: Instance
    ) -> None:
        mock_platform.create_instance.return_value = replace(
            building, state=InstanceState.RUNNING
        )

        await deployer.deploy("my-editor")

        mock_platform.create_instance.assert_awaited_once_with(template, "my-editor")

    async def test_failed_build_raises(
        self, deployer: Deployer, mock_platform: AsyncMock, building: Instance
    ) -> None:
        mock_platform.create_instance.return_value = building
        mock_platform.get_instance.return_value = replace(building, state=InstanceState.FAILED)

        with pytest.raises(DeployFailedError) as exc_info:
            await deployer.deploy()

        assert exc_info.value.instance_id == "app-1"

    async def test_deleted_while_building_raises(
        self, deployer: Deployer, mock_platform: AsyncMock, building: Instance
    ) -> None:
        """An app that vanished mid-build is a failed deploy."""
        mock_platform.create_instance.return_value = building
        mock_platform.get_instance.return_value = replace(building, state=InstanceState.DELETED)

        with pytest.raises(DeployFailedError):
            await deployer.deploy()

    async def test_timeout(self, mock_platform: AsyncMock, template, building: Instance) -> None:
        """A build still running after DEPLOY_TIMEOUT fails the deploy."""
        deployer = Deployer(mock_platform, template, DeployConfig(poll_interval=0.01, timeout=0.05))
        mock_platform.create_instance.return_value = building
        mock_platform.get_instance.return_value = building

        with pytest.raises(DeployTimeoutError) as exc_info:
            await deployer.deploy()

        assert exc_info.value.instance_id == "app-1"
        assert exc_info.value.timeout == 0.05

    async def test_create_error_propagates(
        self, deployer: Deployer, mock_platform: AsyncMock
    ) -> None:
        mock_platform.create_instance.side_effect = httpx.ConnectError("refused")

        with pytest.raises(httpx.ConnectError):
            await deployer.deploy()

        mock_platform.get_instance.assert_not_called()


class TestDeployAndIdle:
    """Deployer.deploy_and_idle() - deploy then scale to zero."""

    async def test_scales_to_zero(
        self, deployer: Deployer, mock_platform: AsyncMock, building: Instance
    ) -> None:
        mock_platform.create_instance.return_value = building
        mock_platform.get_instance.return_value = replace(building, state=InstanceState.RUNNING)

        result = await deployer.deploy_and_idle()

        mock_platform.scale_instance.assert_awaited_once_with("app-1", IDLE_SIZE)
        assert IDLE_SIZE == 0
        assert result.id == "app-1"
        assert result.state == InstanceState.IDLE

    async def test_failed_build_not_scaled(
        self, deployer: Deployer, mock_platform: AsyncMock, building: Instance
    ) -> None:
        mock_platform.create_instance.return_value = building
        mock_platform.get_instance.return_value = replace(building, state=InstanceState.FAILED)

        with pytest.raises(DeployFailedError):
            await deployer.deploy_and_idle()

        mock_platform.scale_instance.assert_not_called()

    async def test_scale_error_propagates(
        self, deployer: Deployer, mock_platform: AsyncMock, building: Instance
    ) -> None:
        mock_platform.create_instance.return_value = replace(
            building, state=InstanceState.RUNNING
        )
        mock_platform.scale_instance.side_effect = httpx.ReadError("reset")

        with pytest.raises(httpx.ReadError):
            await deployer.deploy_and_idle()


class TestDeployBatch:
    """Deployer.deploy_batch() - concurrent deploys, fail fast."""

    async def test_zero_count_makes_no_calls(
        self, deployer: Deployer, mock_platform: AsyncMock
    ) -> None:
        assert await deployer.deploy_batch(0) == []
        assert await deployer.deploy_batch(-1) == []

        mock_platform.create_instance.assert_not_called()

    async def test_returns_one_instance_per_deploy(
        self, deployer: Deployer, mock_platform: AsyncMock, make_instance
    ) -> None:
        created = iter(
            [make_instance("app-1", state=InstanceState.RUNNING),
             make_instance("app-2", state=InstanceState.RUNNING)]
        )
        mock_platform.create_instance.side_effect = lambda template, name: next(created)

        result = await deployer.deploy_batch(2)

        assert sorted(i.id for i in result) == ["app-1", "app-2"]
        assert all(i.state == InstanceState.IDLE for i in result)
        assert mock_platform.scale_instance.await_count == 2

    async def test_runs_concurrently(self, deployer: Deployer, make_instance) -> None:
        """Both deploys are in flight at the same time."""
        in_flight = 0
        peak = 0

        async def fake_deploy() -> Instance:
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.01)
            in_flight -= 1
            return make_instance(f"app-{peak}")

        deployer.deploy_and_idle = fake_deploy

        await deployer.deploy_batch(2)

        assert peak == 2

    async def test_first_failure_cancels_siblings(self, deployer: Deployer) -> None:
        """The first error is raised and the other deploy sees a cancel."""
        calls = 0
        cancelled: list[int] = []

        async def fake_deploy() -> Instance:
            nonlocal calls
            calls += 1
            n = calls
            if n == 1:
                await asyncio.sleep(0)
                raise DeployFailedError("app-1")
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                cancelled.append(n)
                raise
            raise AssertionError("sibling was not cancelled")

        deployer.deploy_and_idle = fake_deploy

        with pytest.raises(DeployFailedError) as exc_info:
            await asyncio.wait_for(deployer.deploy_batch(2), timeout=2)

        assert exc_info.value.instance_id == "app-1"
        assert cancelled == [2]

    async def test_platform_failure_cancels_in_flight_create(
        self, deployer: Deployer, mock_platform: AsyncMock
    ) -> None:
        """A create error aborts a sibling create still waiting on the platform."""
        calls = 0
        cancelled: list[int] = []

        async def fake_create(template, name) -> Instance:
            nonlocal calls
            calls += 1
            n = calls
            if n == 1:
                await asyncio.sleep(0)
                raise httpx.ConnectError("refused")
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                cancelled.append(n)
                raise
            raise AssertionError("sibling was not cancelled")

        mock_platform.create_instance.side_effect = fake_create

        with pytest.raises(httpx.ConnectError):
            await asyncio.wait_for(deployer.deploy_batch(2), timeout=2)

        assert cancelled == [2]
        mock_platform.scale_instance.assert_not_called()


class TestDeployMetrics:
    """DEPLOY_TOTAL moves by result."""

    async def test_success_counted(
        self, deployer: Deployer, mock_platform: AsyncMock, building: Instance, metric_sample
    ) -> None:
        before = metric_sample("editorpool_deploy_total", result="success")
        mock_platform.create_instance.return_value = replace(
            building, state=InstanceState.RUNNING
        )

        await deployer.deploy_and_idle()

        assert metric_sample("editorpool_deploy_total", result="success") == before + 1

    async def test_failure_counted(
        self, deployer: Deployer, mock_platform: AsyncMock, building: Instance, metric_sample
    ) -> None:
        before = metric_sample("editorpool_deploy_total", result="failure")
        mock_platform.create_instance.return_value = building
        mock_platform.get_instance.return_value = replace(building, state=InstanceState.FAILED)

        with pytest.raises(DeployFailedError):
            await deployer.deploy_and_idle()

        assert metric_sample("editorpool_deploy_total", result="failure") == before + 1

    async def test_cancelled_sibling_counted(
        self, deployer: Deployer, mock_platform: AsyncMock, metric_sample
    ) -> None:
        failed_before = metric_sample("editorpool_deploy_total", result="failure")
        cancelled_before = metric_sample("editorpool_deploy_total", result="cancelled")
        calls = 0

        async def fake_create(template, name) -> Instance:
            nonlocal calls
            calls += 1
            if calls == 1:
                await asyncio.sleep(0)
                raise httpx.ConnectError("refused")
            await asyncio.sleep(10)
            raise AssertionError("sibling was not cancelled")

        mock_platform.create_instance.side_effect = fake_create

        with pytest.raises(httpx.ConnectError):
            await asyncio.wait_for(deployer.deploy_batch(2), timeout=2)

        assert metric_sample("editorpool_deploy_total", result="failure") == failed_before + 1
        assert metric_sample("editorpool_deploy_total", result="cancelled") == cancelled_before + 1
