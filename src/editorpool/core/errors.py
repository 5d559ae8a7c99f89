"""Error handling module for editor-pool.

This module defines error codes and exception classes.

Usage:
    from editorpool.core.errors import DeployFailedError, TemplateNotFoundError

    # Raise with default message
    raise DeployFailedError("app-id")

    # Raise with custom message
    raise TemplateNotFoundError("/srv/template", "Template is not a directory")
"""

from enum import Enum


class ErrorCode(str, Enum):
    """Error codes."""

    TEMPLATE_NOT_FOUND = "TEMPLATE_NOT_FOUND"
    DEPLOY_FAILED = "DEPLOY_FAILED"
    DEPLOY_TIMEOUT = "DEPLOY_TIMEOUT"
    DEPLOY_BATCH_FAILED = "DEPLOY_BATCH_FAILED"


class EditorPoolError(Exception):
    """Base exception for editor-pool.

    All editor-pool specific exceptions should inherit from this class.

    Attributes:
        code: The error code from ErrorCode enum
        message: Human-readable error message
    """

    def __init__(self, code: ErrorCode, message: str) -> None:
        self.code = code
        self.message = message
        super().__init__(message)


class TemplateNotFoundError(EditorPoolError):
    """Template directory is missing. Fatal at startup."""

    def __init__(self, path: str, message: str | None = None) -> None:
        self.path = path
        super().__init__(
            ErrorCode.TEMPLATE_NOT_FOUND,
            message or f"Template directory {path} does not exist",
        )


class DeployFailedError(EditorPoolError):
    """The platform rejected the build of a new instance."""

    def __init__(self, instance_id: str, message: str | None = None) -> None:
        self.instance_id = instance_id
        super().__init__(
            ErrorCode.DEPLOY_FAILED,
            message or f"Build failed for instance {instance_id}",
        )


class DeployTimeoutError(EditorPoolError):
    """A new instance did not finish building in time."""

    def __init__(self, instance_id: str, timeout: float) -> None:
        self.instance_id = instance_id
        self.timeout = timeout
        super().__init__(
            ErrorCode.DEPLOY_TIMEOUT,
            f"Instance {instance_id} still building after {timeout:.0f}s",
        )


class DeployBatchError(EditorPoolError):
    """The addition phase of a cycle failed.

    The first error of the batch is chained as __cause__.
    """

    def __init__(self, requested: int, error: BaseException) -> None:
        self.requested = requested
        self.error = error
        super().__init__(
            ErrorCode.DEPLOY_BATCH_FAILED,
            f"Failed to add {requested} instance(s) to pool: {error}",
        )
