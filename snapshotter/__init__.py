"""Building blocks for container snapshotters: model, service messages, conversions and an async request service."""

__version__ = "0.1.0"

__all__ = ["convert", "example", "messages", "server", "types"]