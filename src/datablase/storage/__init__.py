"""Merge store backends."""

from .base import MergeStore
from .memory import InMemoryMergeStore
from .postgres import PostgresMergeStore, create_postgres_store

__all__ = [
    "MergeStore",
    "InMemoryMergeStore",
    "PostgresMergeStore",
    "create_postgres_store",
]
