"""Application layer: configuration, logging, metrics."""
