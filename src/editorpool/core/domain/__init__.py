"""Domain models for the editor pool."""

from editorpool.core.domain.instance import Instance, InstanceFilter, InstanceState

__all__ = [
    "Instance",
    "InstanceFilter",
    "InstanceState",
]
