"""editor-pool - warm pool of pre-provisioned editor instances."""

__version__ = "0.1.0"
