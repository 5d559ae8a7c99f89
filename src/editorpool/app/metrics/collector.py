"""Prometheus metrics definitions for the pool worker."""

from prometheus_client import Counter, Gauge, Histogram

# =============================================================================
# Histogram Buckets (optimized by latency category)
# =============================================================================

# CYCLE: one reconcile cycle, dominated by deploys (100ms ~ 20min)
# Log scale: ratio ≈ 2.2
_BUCKETS_CYCLE = (
    0.1, 0.25, 0.5, 1, 2.5,
    5, 10, 25, 60, 120,
    300, 600, 1200,
)  # 13 buckets

# DEPLOY: create → build → idle (5s ~ 20min)
_BUCKETS_DEPLOY = (
    5, 10, 20, 40, 60,
    90, 120, 180, 300, 600,
    1200,
)  # 11 buckets

# =============================================================================
# Reconcile Cycle Metrics
# =============================================================================

CYCLE_TOTAL = Counter(
    "editorpool_cycle_total",
    "Total number of reconcile cycles executed",
    ["result"],  # success, fetch_failed, deploy_failed
)

CYCLE_DURATION = Histogram(
    "editorpool_cycle_duration_seconds",
    "Duration of reconcile cycle execution",
    buckets=_BUCKETS_CYCLE,
)

# =============================================================================
# Pool Metrics (last observed snapshot)
# =============================================================================

POOL_INSTANCES = Gauge(
    "editorpool_pool_instances",
    "Number of pool instances observed in the last cycle",
    ["version"],  # current, outdated
)

POOL_TARGET_SIZE = Gauge(
    "editorpool_pool_target_size",
    "Configured pool size",
)

# =============================================================================
# Deploy / Remove Metrics
# =============================================================================

DEPLOY_TOTAL = Counter(
    "editorpool_deploy_total",
    "Total number of instance deploys",
    ["result"],  # success, failure, cancelled
)

DEPLOY_DURATION = Histogram(
    "editorpool_deploy_duration_seconds",
    "Duration of a successful deploy (create, build, idle)",
    buckets=_BUCKETS_DEPLOY,
)

REMOVE_TOTAL = Counter(
    "editorpool_remove_total",
    "Total number of outdated instance removals",
    ["result"],  # success, failure
)


# =============================================================================
# Metric Initialization (ensure labels appear before first use)
# =============================================================================


def _init_metrics() -> None:
    """Initialize labeled metrics with zero values.

    Prometheus metrics with labels don't appear in output until first use.
    """
    for result in ["success", "fetch_failed", "deploy_failed"]:
        CYCLE_TOTAL.labels(result=result)
    for result in ["success", "failure", "cancelled"]:
        DEPLOY_TOTAL.labels(result=result)
    for result in ["success", "failure"]:
        REMOVE_TOTAL.labels(result=result)
    for version in ["current", "outdated"]:
        POOL_INSTANCES.labels(version=version).set(0)


_init_metrics()
