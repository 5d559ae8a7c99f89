"""Shared fixtures for unit tests."""

from collections.abc import Callable
from pathlib import Path
from unittest.mock import AsyncMock

import pytest
from prometheus_client import REGISTRY

from editorpool.app.config import DeployConfig, HerokuConfig, PoolConfig
from editorpool.core.domain.instance import Instance, InstanceState
from editorpool.core.interfaces.platform import PlatformClient
from editorpool.core.template import TemplateBundle

CURRENT_VERSION = "v2"
OLD_VERSION = "v1"


@pytest.fixture
def template_dir(tmp_path: Path) -> Path:
    """Minimal editor template on disk."""
    root = tmp_path / "template"
    root.mkdir()
    (root / "Procfile").write_text("web: code-server --bind-addr 0.0.0.0:$PORT\n")
    (root / "app.json").write_text('{"name": "editor"}\n')
    return root


@pytest.fixture
def template(template_dir: Path) -> TemplateBundle:
    return TemplateBundle(template_dir, version=CURRENT_VERSION)


@pytest.fixture
def pool_config(template_dir: Path) -> PoolConfig:
    return PoolConfig(size=5, batch_size=2, check_interval=60.0, template_dir=template_dir)


@pytest.fixture
def deploy_config() -> DeployConfig:
    # Fast polling for tests
    return DeployConfig(poll_interval=0.01, timeout=1.0)


@pytest.fixture
def heroku_config() -> HerokuConfig:
    return HerokuConfig(api_key="test-api-key", api_url="https://api.heroku.test")


@pytest.fixture
def mock_platform() -> AsyncMock:
    """PlatformClient mock."""
    platform = AsyncMock(spec=PlatformClient)
    platform.list_instances = AsyncMock(return_value=[])
    platform.get_instance = AsyncMock()
    platform.create_instance = AsyncMock()
    platform.scale_instance = AsyncMock()
    platform.delete_instance = AsyncMock()
    return platform


@pytest.fixture
def make_instance() -> Callable[..., Instance]:
    """Factory for Instance records."""

    def _make(
        id: str,
        version: str | None = CURRENT_VERSION,
        state: InstanceState = InstanceState.IDLE,
    ) -> Instance:
        return Instance(
            id=id,
            name=f"editor-{id}",
            version=version,
            state=state,
            web_url=f"https://editor-{id}.herokuapp.com/",
        )

    return _make


@pytest.fixture
def metric_sample() -> Callable[..., float]:
    """Read a sample from the default Prometheus registry (0.0 if absent)."""

    def _sample(name: str, **labels: str) -> float:
        return REGISTRY.get_sample_value(name, labels) or 0.0

    return _sample
