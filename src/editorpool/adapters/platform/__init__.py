"""Platform client implementations."""

from editorpool.adapters.platform.heroku import HerokuPlatformClient

__all__ = ["HerokuPlatformClient"]
