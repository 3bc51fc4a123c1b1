"""
Thoughts module for journaling short notes.

Provides the thought entry model, the persisted thought store and the
relative date labels shown next to each thought.
"""

from unburden.thoughts.age import format_today, relative_age
from unburden.thoughts.models import ThoughtEntry
from unburden.thoughts.store import StoreWarning, ThoughtStore

__all__ = [
    "ThoughtEntry",
    "ThoughtStore",
    "StoreWarning",
    "relative_age",
    "format_today",
]
