"""A small task queue with leases, retries and an in-memory store."""

__version__ = "0.1.0"

__all__ = ["__version__"]