"""Error classification for platform calls.

Nothing is retried inside a reconcile cycle: a failed call ends the cycle and
the next tick starts over. The classification only labels errors so logs and
metrics can tell a flaky network from a revoked credential.

Usage:
    from editorpool.core.retryable import classify_error

    logger.error("...", extra={"error_class": classify_error(exc)})
"""

import asyncio

import httpx

from editorpool.core.errors import (
    DeployBatchError,
    DeployFailedError,
    DeployTimeoutError,
)
from editorpool.core.logging_schema import ErrorClass

# =============================================================================
# httpx error classification
# =============================================================================

HTTPX_TRANSIENT = (
    httpx.ConnectError,
    httpx.ReadError,
    httpx.WriteError,
    httpx.RemoteProtocolError,
)

HTTPX_TIMEOUT = (
    httpx.ConnectTimeout,
    httpx.ReadTimeout,
    httpx.WriteTimeout,
    httpx.PoolTimeout,
)

HTTPX_PERMANENT = (
    httpx.InvalidURL,
    httpx.TooManyRedirects,
    httpx.UnsupportedProtocol,
)


def classify_status(status: int) -> ErrorClass:
    """Classify an HTTP error status returned by the platform."""
    if status == 429:
        return ErrorClass.RATE_LIMITED
    if 400 <= status < 500:
        return ErrorClass.PERMANENT
    if status >= 500:
        return ErrorClass.TRANSIENT
    return ErrorClass.UNKNOWN


# =============================================================================
# Unified classification
# =============================================================================


def classify_error(exc: BaseException) -> ErrorClass:
    """Classify an error for the 'error_class' log field.

    Args:
        exc: Exception to classify

    Returns:
        ErrorClass of the error
    """
    # Unwrap batch errors to the deploy that broke the batch
    if isinstance(exc, DeployBatchError):
        return classify_error(exc.error)

    if isinstance(exc, (asyncio.TimeoutError, DeployTimeoutError)):
        return ErrorClass.TIMEOUT
    if isinstance(exc, DeployFailedError):
        return ErrorClass.PERMANENT

    if isinstance(exc, httpx.HTTPStatusError):
        return classify_status(exc.response.status_code)
    if isinstance(exc, HTTPX_TIMEOUT):
        return ErrorClass.TIMEOUT
    if isinstance(exc, HTTPX_TRANSIENT):
        return ErrorClass.TRANSIENT
    if isinstance(exc, HTTPX_PERMANENT):
        return ErrorClass.PERMANENT

    return ErrorClass.UNKNOWN


def is_transient(exc: BaseException) -> bool:
    """Check whether the next tick is likely to succeed where this one failed."""
    return classify_error(exc) in (
        ErrorClass.TRANSIENT,
        ErrorClass.TIMEOUT,
        ErrorClass.RATE_LIMITED,
    )
