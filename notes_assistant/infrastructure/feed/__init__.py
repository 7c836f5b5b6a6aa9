"""Source feed adapters."""

from .in_memory_source_feed import InMemorySourceFeed

__all__ = ["InMemorySourceFeed"]
