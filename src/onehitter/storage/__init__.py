"""Storage adapters for pending codes."""

from onehitter.storage.base import StorageAdapter, classify
from onehitter.storage.durable import DurableAdapter
from onehitter.storage.embedded import EmbeddedAdapter

__all__ = [
    "DurableAdapter",
    "EmbeddedAdapter",
    "StorageAdapter",
    "classify",
]
