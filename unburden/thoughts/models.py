"""
Thought entry model and its persisted form.

The collection is stored as a JSON list of records, newest first:
    {"id": "...", "text": "...", "timestamp": "<ISO-8601>", "archived": false}
"""

import json
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Iterable, Optional

from unburden.errors import StorageCorruption
from unburden.utils.timezone import ensure_aware


@dataclass(frozen=True)
class ThoughtEntry:
    """One journaled thought."""

    id: str
    text: str
    created_at: datetime

    def with_text(self, text: str) -> "ThoughtEntry":
        return replace(self, text=text)

    def to_record(self) -> dict[str, Any]:
        # "archived" is kept for files written by older app versions
        return {
            "id": self.id,
            "text": self.text,
            "timestamp": self.created_at.isoformat(),
            "archived": False,
        }

    @classmethod
    def from_record(cls, record: Any) -> "ThoughtEntry":
        """
        Build an entry from a persisted record.

        Raises:
            ValueError: If the record is missing fields or has bad types.
        """
        if not isinstance(record, dict):
            raise ValueError(f"expected an object, got {type(record).__name__}")

        entry_id = record.get("id")
        text = record.get("text")
        timestamp = record.get("timestamp")
        if not isinstance(entry_id, str) or not entry_id:
            raise ValueError("missing id")
        if not isinstance(text, str):
            raise ValueError(f"entry {entry_id} has no text")
        if not isinstance(timestamp, str):
            raise ValueError(f"entry {entry_id} has no timestamp")

        created_at = ensure_aware(datetime.fromisoformat(timestamp))
        return cls(id=entry_id, text=text, created_at=created_at)


def make_entry_id(created_at: datetime, taken: Iterable[str] = ()) -> str:
    """
    Derive an id from the creation time in epoch milliseconds.

    Bumps the value until it is not in `taken`, so two entries created in
    the same millisecond still get distinct ids.
    """
    taken_ids = set(taken)
    millis = int(ensure_aware(created_at).timestamp() * 1000)
    while str(millis) in taken_ids:
        millis += 1
    return str(millis)


def encode_thoughts(entries: Iterable[ThoughtEntry]) -> str:
    return json.dumps([entry.to_record() for entry in entries])


def decode_thoughts(key: str, blob: Optional[str]) -> list[ThoughtEntry]:
    """
    Parse a persisted collection.

    Args:
        key: Storage key the blob came from, for error messages.
        blob: Raw stored string, or None if absent.

    Returns:
        Entries in stored order (empty if absent).

    Raises:
        StorageCorruption: If the blob cannot be parsed.
    """
    if blob is None:
        return []

    try:
        data = json.loads(blob)
    except json.JSONDecodeError as e:
        raise StorageCorruption(key, f"invalid JSON ({e})") from e

    if not isinstance(data, list):
        raise StorageCorruption(key, f"expected a list, got {type(data).__name__}")

    entries: list[ThoughtEntry] = []
    seen: set[str] = set()
    for index, record in enumerate(data):
        try:
            entry = ThoughtEntry.from_record(record)
        except ValueError as e:
            raise StorageCorruption(key, f"record {index}: {e}") from e
        if entry.id in seen:
            raise StorageCorruption(key, f"duplicate id {entry.id}")
        seen.add(entry.id)
        entries.append(entry)
    return entries
