"""Models, resource descriptions, retry helpers, logger setup and a batching producer for a hosted log service."""

__version__ = "0.1.0"