from .memory import MemoryKeyValueStore
from .sqlite import SqliteKeyValueStore

__all__ = ["MemoryKeyValueStore", "SqliteKeyValueStore"]
