"""
Stores module.

In-memory key/value store and its file-backed counterpart.
"""

from confstore.stores.memory import MemoryStore
from confstore.stores.file import FileStore

__all__ = [
    "MemoryStore",
    "FileStore",
]
