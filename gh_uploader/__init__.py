"""Upload a local file as a GitHub release asset."""

__version__ = "0.1.0"
