"""Platform adapters."""

from editorpool.adapters.platform import HerokuPlatformClient

__all__ = ["HerokuPlatformClient"]
