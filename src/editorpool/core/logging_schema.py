"""Logging field schema - v1.0

Standard fields (added to all logs):
- schema_version: Log schema version
- service: Service name (editor-pool)
- event: Event type (cycle_complete, deploy_failed, etc.)
- trace_id: Per-cycle trace ID
- duration_ms: Duration in milliseconds

High cardinality fields (OK in logs, NOT in metric labels):
- instance_id: Platform app ID
- instance_name: Platform app name
"""

from enum import StrEnum


class LogEvent(StrEnum):
    """Standard log event types.

    Use these event types in the 'event' extra field for consistent
    log filtering and analysis.
    """

    # Reconcile cycle events
    CYCLE_COMPLETE = "cycle_complete"
    CYCLE_SLOW = "cycle_slow"
    CYCLE_FAILED = "cycle_failed"
    POOL_OBSERVED = "pool_observed"

    # Addition phase
    DEPLOY_STARTED = "deploy_started"
    DEPLOY_SUCCESS = "deploy_success"
    DEPLOY_FAILED = "deploy_failed"
    DEPLOY_CANCELLED = "deploy_cancelled"

    # Removal phase
    REMOVE_STARTED = "remove_started"
    REMOVE_SUCCESS = "remove_success"
    REMOVE_FAILED = "remove_failed"

    # Lifecycle events
    APP_STARTED = "app_started"
    APP_STOPPED = "app_stopped"


class ErrorClass(StrEnum):
    """Error classification for structured error logging.

    Use these in the 'error_class' extra field to enable
    filtering by error type and setting up alerts.
    """

    TRANSIENT = "transient"  # Next tick may succeed (network, 5xx)
    PERMANENT = "permanent"  # Will keep failing (auth, invalid input)
    TIMEOUT = "timeout"  # Timeout error
    RATE_LIMITED = "rate_limited"  # Rate limit exceeded
    UNKNOWN = "unknown"
