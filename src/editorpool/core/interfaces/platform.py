"""Platform client interface for remote instance management."""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from editorpool.core.domain.instance import Instance, InstanceFilter

if TYPE_CHECKING:
    from editorpool.core.template import TemplateBundle


class PlatformClient(ABC):
    """Interface to the hosting platform.

    Implementations: HerokuPlatformClient
    """

    @abstractmethod
    async def list_instances(self, app_filter: InstanceFilter) -> list[Instance]:
        """List instances matching the filter, in platform listing order.

        Args:
            app_filter: Name prefix and states to keep

        Returns:
            List of Instance
        """
        ...

    @abstractmethod
    async def get_instance(self, instance_id: str) -> Instance:
        """Fetch the current state of one instance.

        Args:
            instance_id: Platform app ID
        """
        ...

    @abstractmethod
    async def create_instance(
        self, template: "TemplateBundle", name: str | None = None
    ) -> Instance:
        """Create an instance and start building it from the template.

        Returns as soon as the build is submitted; the instance is
        BUILDING until the platform reports otherwise.

        Args:
            template: Template bundle to build from
            name: App name (generated from the pool prefix if None)
        """
        ...

    @abstractmethod
    async def scale_instance(self, instance_id: str, size: int) -> None:
        """Set the number of serving processes of an instance.

        Args:
            instance_id: Platform app ID
            size: Process count (0 = idle)
        """
        ...

    @abstractmethod
    async def delete_instance(self, instance_id: str) -> None:
        """Delete an instance.

        Args:
            instance_id: Platform app ID
        """
        ...

    async def close(self) -> None:
        """Release client resources."""
        return None
