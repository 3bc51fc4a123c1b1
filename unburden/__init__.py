"""
Unburden: a personal micro-journaling companion.

This package provides a persistent store for short journaled thoughts and
a timed breathing session engine, with a small command-line front end.
"""

__version__ = "0.1.0"
__description__ = "Micro-journaling and guided breathing"

from unburden.breathing import BreathingSession, SessionHistory
from unburden.storage import MemoryStorage, SQLiteStorage, StorageAdapter
from unburden.thoughts import ThoughtEntry, ThoughtStore

__all__ = [
    "BreathingSession",
    "SessionHistory",
    "ThoughtEntry",
    "ThoughtStore",
    "StorageAdapter",
    "MemoryStorage",
    "SQLiteStorage",
]
