"""Instance - one deployed copy of the editor template.

The platform owns every instance. The pool never keeps one across cycles:
each reconcile cycle re-reads the full listing and discards it afterwards.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum


class InstanceState(StrEnum):
    """Lifecycle state of a remote instance."""

    BUILDING = "building"  # created, build not finished
    IDLE = "idle"  # built, scaled to zero, waiting in the pool
    RUNNING = "running"  # serving (claimed by a user)
    DELETED = "deleted"
    FAILED = "failed"  # build rejected by the platform


# States that count as pool members. A claimed (running) instance has left
# the pool, and a failed build is never claimable.
POOL_STATES: frozenset[InstanceState] = frozenset(
    {InstanceState.BUILDING, InstanceState.IDLE}
)


@dataclass(frozen=True)
class Instance:
    """Remote application record as reported by the platform."""

    id: str
    name: str
    version: str | None
    state: InstanceState
    web_url: str | None = None
    created_at: datetime | None = None


@dataclass(frozen=True)
class InstanceFilter:
    """Selects pool-managed instances out of everything on the account.

    Attributes:
        name_prefix: App name prefix reserved for pool instances
        states: States to return (empty = all states)
    """

    name_prefix: str
    states: frozenset[InstanceState] = field(default=POOL_STATES)

    def matches(self, instance: Instance) -> bool:
        if not instance.name.startswith(self.name_prefix):
            return False
        return not self.states or instance.state in self.states
