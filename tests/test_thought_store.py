"""
Thought store: add/update/remove, persistence, recovery and locking.
"""

import asyncio
import json
from datetime import datetime, timedelta, timezone

from conftest import FlakyStorage, SlowStorage

from unburden.config import THOUGHT_COUNT_KEY, THOUGHTS_KEY
from unburden.errors import NotFound, Rejected
from unburden.storage import MemoryStorage, SQLiteStorage
from unburden.thoughts import ThoughtStore

NOW = datetime(2026, 2, 15, 12, 0, 0, tzinfo=timezone.utc)


class TickingClock:
    """Each call returns a time one second later than the last."""

    def __init__(self, start: datetime = NOW, step: timedelta = timedelta(seconds=1)):
        self.current = start
        self.step = step

    def __call__(self) -> datetime:
        value = self.current
        self.current += self.step
        return value


def make_store(storage=None, clock=None) -> ThoughtStore:
    return ThoughtStore(storage if storage is not None else MemoryStorage(), clock=clock or TickingClock())


# ===================================================================
#  add
# ===================================================================

class TestAdd:
    def test_add_puts_entry_first_and_counts(self):
        async def scenario():
            store = make_store()
            first = await store.add("first")
            second = await store.add("second")
            entries = await store.load_all()
            return first, second, entries, store.thoughts_released

        first, second, entries, released = asyncio.run(scenario())
        assert [e.id for e in entries] == [second.id, first.id]
        assert released == 2

    def test_add_persists_collection_and_counter(self):
        storage = MemoryStorage()

        async def scenario():
            store = make_store(storage)
            return await store.add("walk the dog")

        entry = asyncio.run(scenario())
        records = json.loads(storage.values[THOUGHTS_KEY])
        assert records == [
            {
                "id": entry.id,
                "text": "walk the dog",
                "timestamp": NOW.isoformat(),
                "archived": False,
            }
        ]
        assert storage.values[THOUGHT_COUNT_KEY] == "1"

    def test_blank_text_is_ignored(self):
        storage = FlakyStorage()

        async def scenario():
            store = make_store(storage)
            results = [await store.add(""), await store.add("   "), await store.add("\n\t")]
            return results, await store.load_all(), store.thoughts_released

        results, entries, released = asyncio.run(scenario())
        assert results == [None, None, None]
        assert entries == ()
        assert released == 0
        assert storage.writes == []

    def test_text_is_kept_as_typed(self):
        entry = asyncio.run(make_store().add("  spaced out  "))
        assert entry.text == "  spaced out  "

    def test_same_millisecond_ids_are_unique(self):
        async def scenario():
            store = make_store(clock=lambda: NOW)
            a = await store.add("a")
            b = await store.add("b")
            return a, b

        a, b = asyncio.run(scenario())
        assert a.id != b.id
        assert a.created_at == b.created_at

    def test_counter_continues_from_stored_value(self):
        storage = MemoryStorage({THOUGHT_COUNT_KEY: "41"})

        async def scenario():
            store = make_store(storage)
            await store.add("one more")
            return store.thoughts_released

        assert asyncio.run(scenario()) == 42
        assert storage.values[THOUGHT_COUNT_KEY] == "42"


# ===================================================================
#  update
# ===================================================================

class TestUpdate:
    def test_update_replaces_text_in_place(self):
        async def scenario():
            store = make_store()
            oldest = await store.add("oldest")
            middle = await store.add("middle")
            await store.add("newest")
            updated = await store.update(middle.id, "middle, revised")
            return oldest, middle, updated, await store.load_all()

        oldest, middle, updated, entries = asyncio.run(scenario())
        assert updated.id == middle.id
        assert updated.created_at == middle.created_at
        assert [e.text for e in entries] == ["newest", "middle, revised", "oldest"]
        assert entries[1].id == middle.id

    def test_update_persists(self):
        storage = MemoryStorage()

        async def scenario():
            store = make_store(storage)
            entry = await store.add("draft")
            await store.update(entry.id, "final")

        asyncio.run(scenario())
        assert json.loads(storage.values[THOUGHTS_KEY])[0]["text"] == "final"

    def test_update_missing_returns_not_found(self):
        result = asyncio.run(make_store().update("nope", "text"))
        assert result == NotFound("nope")

    def test_update_to_blank_is_rejected(self):
        async def scenario():
            store = make_store()
            entry = await store.add("keep me")
            result = await store.update(entry.id, "   ")
            return result, await store.load_all()

        result, entries = asyncio.run(scenario())
        assert isinstance(result, Rejected)
        assert entries[0].text == "keep me"

    def test_update_does_not_change_counter(self):
        async def scenario():
            store = make_store()
            entry = await store.add("x")
            await store.update(entry.id, "y")
            return store.thoughts_released

        assert asyncio.run(scenario()) == 1


# ===================================================================
#  remove
# ===================================================================

class TestRemove:
    def test_remove_twice_is_idempotent(self):
        async def scenario():
            store = make_store()
            keep = await store.add("keep")
            drop = await store.add("drop")
            first = await store.remove(drop.id)
            second = await store.remove(drop.id)
            return keep, drop, first, second, await store.load_all(), store.thoughts_released

        keep, drop, first, second, entries, released = asyncio.run(scenario())
        assert first == drop
        assert second == NotFound(drop.id)
        assert [e.id for e in entries] == [keep.id]
        assert released == 2

    def test_second_remove_does_not_write(self):
        storage = FlakyStorage()

        async def scenario():
            store = make_store(storage)
            entry = await store.add("gone")
            await store.remove(entry.id)
            writes = len(storage.writes)
            await store.remove(entry.id)
            return writes

        writes = asyncio.run(scenario())
        assert len(storage.writes) == writes

    def test_remove_persists(self):
        storage = MemoryStorage()

        async def scenario():
            store = make_store(storage)
            entry = await store.add("temporary")
            await store.remove(entry.id)

        asyncio.run(scenario())
        assert json.loads(storage.values[THOUGHTS_KEY]) == []
        assert storage.values[THOUGHT_COUNT_KEY] == "1"


# ===================================================================
#  Loading and corruption
# ===================================================================

class TestLoad:
    def test_absent_storage_loads_empty(self):
        async def scenario():
            store = make_store()
            return await store.load_all(), store.thoughts_released, store.drain_warnings()

        entries, released, warnings = asyncio.run(scenario())
        assert entries == ()
        assert released == 0
        assert warnings == []

    def test_loads_records_written_by_mobile_app(self):
        blob = json.dumps([
            {"id": "1760000000000", "text": "newer", "timestamp": "2025-10-09T08:53:20.000Z", "archived": False},
            {"id": "1750000000000", "text": "older", "timestamp": "2025-06-15T15:06:40.000Z", "archived": True},
        ])
        storage = MemoryStorage({THOUGHTS_KEY: blob, THOUGHT_COUNT_KEY: "7"})

        async def scenario():
            store = make_store(storage)
            return await store.load_all(), store.thoughts_released

        entries, released = asyncio.run(scenario())
        assert [e.text for e in entries] == ["newer", "older"]
        assert entries[0].created_at == datetime(2025, 10, 9, 8, 53, 20, tzinfo=timezone.utc)
        assert released == 7

    def test_corrupt_collection_loads_empty_with_warning(self):
        storage = MemoryStorage({THOUGHTS_KEY: "{not json", THOUGHT_COUNT_KEY: "3"})

        async def scenario():
            store = make_store(storage)
            entries = await store.load_all()
            return entries, store.thoughts_released, store.drain_warnings()

        entries, released, warnings = asyncio.run(scenario())
        assert entries == ()
        assert released == 3
        assert [(w.kind, w.key) for w in warnings] == [("corruption", THOUGHTS_KEY)]

    def test_record_missing_fields_is_corruption(self):
        storage = MemoryStorage({THOUGHTS_KEY: json.dumps([{"id": "1", "text": "no date"}])})

        async def scenario():
            store = make_store(storage)
            return await store.load_all(), store.drain_warnings()

        entries, warnings = asyncio.run(scenario())
        assert entries == ()
        assert warnings[0].kind == "corruption"

    def test_corrupt_counter_reads_as_zero(self):
        storage = MemoryStorage({THOUGHT_COUNT_KEY: "many"})

        async def scenario():
            store = make_store(storage)
            await store.load()
            return store.thoughts_released, store.drain_warnings()

        released, warnings = asyncio.run(scenario())
        assert released == 0
        assert warnings[0].key == THOUGHT_COUNT_KEY

    def test_store_usable_after_corruption(self):
        storage = MemoryStorage({THOUGHTS_KEY: "[1, 2"})

        async def scenario():
            store = make_store(storage)
            await store.load_all()
            await store.add("fresh start")
            return await store.load_all()

        entries = asyncio.run(scenario())
        assert [e.text for e in entries] == ["fresh start"]

    def test_unreadable_storage_is_not_fatal(self):
        storage = FlakyStorage()
        storage.fail_reads = True

        async def scenario():
            store = make_store(storage)
            return await store.load_all(), store.drain_warnings()

        entries, warnings = asyncio.run(scenario())
        assert entries == ()
        assert {w.kind for w in warnings} == {"read_failure"}

    def test_database_under_a_file_is_not_fatal(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("not a directory")
        storage = SQLiteStorage(blocker / "sub" / "state.db")

        async def scenario():
            store = make_store(storage)
            return await store.load_all(), store.drain_warnings()

        entries, warnings = asyncio.run(scenario())
        assert entries == ()
        assert {w.kind for w in warnings} == {"read_failure"}

    def test_read_is_retried_after_transient_failure(self):
        storage = FlakyStorage()

        async def scenario():
            seeder = make_store(storage)
            for text in ("one", "two", "three"):
                await seeder.add(text)

            store = make_store(storage, clock=TickingClock(NOW + timedelta(minutes=1)))
            storage.fail_reads = True
            await store.load_all()
            storage.fail_reads = False
            await store.add("four")

        asyncio.run(scenario())
        persisted = json.loads(storage.values[THOUGHTS_KEY])
        assert [r["text"] for r in persisted] == ["four", "three", "two", "one"]
        assert storage.values[THOUGHT_COUNT_KEY] == "4"

    def test_unreadable_keys_are_never_overwritten(self):
        storage = FlakyStorage({THOUGHTS_KEY: "[]", THOUGHT_COUNT_KEY: "7"})
        storage.fail_reads = True

        async def scenario():
            store = make_store(storage)
            entry = await store.add("kept in memory")
            return entry, store.entries, store.drain_warnings()

        entry, entries, warnings = asyncio.run(scenario())
        assert entries == (entry,)
        assert storage.writes == []
        assert storage.values[THOUGHT_COUNT_KEY] == "7"
        assert {(w.kind, w.key) for w in warnings if w.kind == "write_failure"} == {
            ("write_failure", THOUGHTS_KEY),
            ("write_failure", THOUGHT_COUNT_KEY),
        }


# ===================================================================
#  Write failures
# ===================================================================

class TestWriteFailure:
    def test_failed_write_keeps_memory_and_warns(self):
        storage = FlakyStorage()
        storage.fail_writes = True

        async def scenario():
            store = make_store(storage)
            entry = await store.add("unsaved")
            return entry, await store.load_all(), store.thoughts_released, store.drain_warnings()

        entry, entries, released, warnings = asyncio.run(scenario())
        assert entry is not None
        assert entries == (entry,)
        assert released == 1
        assert [w.key for w in warnings] == [THOUGHTS_KEY, THOUGHT_COUNT_KEY]
        assert all(w.kind == "write_failure" for w in warnings)

    def test_next_successful_write_catches_up(self):
        storage = FlakyStorage()

        async def scenario():
            store = make_store(storage)
            storage.fail_writes = True
            await store.add("first")
            storage.fail_writes = False
            await store.add("second")
            return store.drain_warnings()

        warnings = asyncio.run(scenario())
        assert len(warnings) == 2
        assert [r["text"] for r in json.loads(storage.values[THOUGHTS_KEY])] == ["second", "first"]
        assert storage.values[THOUGHT_COUNT_KEY] == "2"

    def test_drain_clears_warnings(self):
        storage = FlakyStorage()
        storage.fail_writes = True

        async def scenario():
            store = make_store(storage)
            await store.add("x")
            return store.drain_warnings(), store.drain_warnings()

        first, second = asyncio.run(scenario())
        assert first
        assert second == []


# ===================================================================
#  Serialized mutations
# ===================================================================

class TestConcurrency:
    def test_concurrent_adds_lose_nothing(self):
        storage = SlowStorage()

        async def scenario():
            store = make_store(storage)
            await asyncio.gather(*(store.add(f"thought {i}") for i in range(10)))
            return await store.load_all(), store.thoughts_released

        entries, released = asyncio.run(scenario())
        assert len(entries) == 10
        assert released == 10
        assert len(json.loads(storage.values[THOUGHTS_KEY])) == 10
        assert storage.values[THOUGHT_COUNT_KEY] == "10"

    def test_concurrent_edit_and_delete(self):
        storage = SlowStorage()

        async def scenario():
            store = make_store(storage)
            a = await store.add("a")
            b = await store.add("b")
            await asyncio.gather(store.update(a.id, "a2"), store.remove(b.id), store.add("c"))
            return await store.load_all()

        entries = asyncio.run(scenario())
        assert [e.text for e in entries] == ["c", "a2"]
        assert [r["text"] for r in json.loads(storage.values[THOUGHTS_KEY])] == ["c", "a2"]


class TestAccessors:
    def test_recent_and_get(self):
        async def scenario():
            store = make_store()
            for i in range(5):
                await store.add(f"t{i}")
            return store

        store = asyncio.run(scenario())
        assert [e.text for e in store.recent()] == ["t4", "t3", "t2"]
        newest = store.entries[0]
        assert store.get(newest.id) == newest
        assert store.get("missing") is None

    def test_relative_age_uses_clock(self):
        async def scenario():
            store = make_store(clock=lambda: NOW)
            return store, await store.add("now")

        store, entry = asyncio.run(scenario())
        assert store.relative_age(entry) == "Today"
        assert store.relative_age(entry, NOW + timedelta(days=3)) == "2 days ago"
