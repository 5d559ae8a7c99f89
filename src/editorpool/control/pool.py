"""Pool classification and capacity planning - pure functions.

Nothing here remembers anything between cycles: every cycle classifies a
fresh listing and plans from scratch, so a missed or failed cycle is simply
corrected by the next one.
"""

from collections.abc import Iterable
from dataclasses import dataclass

from pydantic import BaseModel, Field

from editorpool.core.domain.instance import Instance


@dataclass(frozen=True)
class PoolSnapshot:
    """One listing split by template version, listing order preserved."""

    current: tuple[Instance, ...]
    other: tuple[Instance, ...]

    @property
    def total(self) -> int:
        return len(self.current) + len(self.other)


class ReconcilePlan(BaseModel):
    """How many instances one cycle adds and removes."""

    additions: int = Field(ge=0)
    removals: int = Field(ge=0)

    model_config = {"frozen": True}


def classify(instances: Iterable[Instance], version: str) -> PoolSnapshot:
    """Partition instances into current and outdated template versions.

    An instance without a version tag counts as outdated.

    Args:
        instances: Pool listing in platform order
        version: Current template version

    Returns:
        PoolSnapshot
    """
    current: list[Instance] = []
    other: list[Instance] = []
    for instance in instances:
        if instance.version == version:
            current.append(instance)
        else:
            other.append(instance)
    return PoolSnapshot(current=tuple(current), other=tuple(other))


def additions_needed(current_count: int, pool_size: int, batch_size: int) -> int:
    """Instances to deploy this cycle: the shortfall, capped by the batch size."""
    return max(0, min(batch_size, pool_size - current_count))


def removals_needed(other_count: int, batch_size: int) -> int:
    """Outdated instances to delete this cycle, capped by the batch size."""
    return max(0, min(batch_size, other_count))


def plan(snapshot: PoolSnapshot, pool_size: int, batch_size: int) -> ReconcilePlan:
    """Plan one cycle from a snapshot.

    Args:
        snapshot: Classified listing
        pool_size: Target number of current-version instances
        batch_size: Max additions and max removals per cycle

    Returns:
        ReconcilePlan
    """
    return ReconcilePlan(
        additions=additions_needed(len(snapshot.current), pool_size, batch_size),
        removals=removals_needed(len(snapshot.other), batch_size),
    )
