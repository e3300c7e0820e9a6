"""
Storage backends for words and study progress.

- `ItemStore` / `ProgressStore`: async protocols the services depend on
- in-memory implementations for tests and the `memory` backend
- SQLAlchemy implementations over an `AsyncSession`
"""

from .base import ItemStore, ProgressStore
from .memory import InMemoryItemStore, InMemoryProgressStore
from .sql import SqlItemStore, SqlProgressStore

__all__ = [
    "ItemStore",
    "ProgressStore",
    "InMemoryItemStore",
    "InMemoryProgressStore",
    "SqlItemStore",
    "SqlProgressStore",
]
