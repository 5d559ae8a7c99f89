"""Core interfaces for the pool worker."""

from editorpool.core.interfaces.platform import PlatformClient

__all__ = [
    "PlatformClient",
]
