"""Identity Store — durable names, blacklist and logged counters.

Tests cover:
    - remember_name keeps one current name and preserves casing
    - name_owners / find_blacklisted are case-insensitive
    - increment_counter append-or-increment on the structured key
    - completed_runs aggregates completed runs in the community only
"""

import pytest

from gatekeeper.core.counter_keys import CounterKey, parse_legacy_counter_key
from gatekeeper.core.domain_types import CounterCategory, CounterOutcome
from gatekeeper.models import BlacklistEntry
from gatekeeper.services.identity_store import IdentityStore


@pytest.fixture
def store(test_db):
    return IdentityStore(test_db)


async def test_remember_name_marks_latest_as_current(store):
    await store.remember_name("42", "Alice")
    await store.remember_name("42", "Bobby")
    assert await store.known_names("42") == ["Bobby", "Alice"]


async def test_remember_existing_name_updates_casing(store):
    await store.remember_name("42", "alice")
    await store.remember_name("42", "Bobby")
    await store.remember_name("42", "Alice")
    names = await store.known_names("42")
    assert names[0] == "Alice"
    assert len(names) == 2


async def test_name_owners_is_case_insensitive(store):
    await store.remember_name("42", "Alice")
    assert await store.name_owners("ALICE") == ["42"]
    assert await store.name_owners("Bob") == []


async def test_find_blacklisted_matches_any_name(store, test_db):
    test_db.add(BlacklistEntry(community_id="guild-1", name_lower="mallory", moderation_id="M1"))
    await test_db.commit()

    hit = await store.find_blacklisted("guild-1", ["Alice", "MALLORY"])
    assert hit is not None and hit.moderation_id == "M1"
    assert await store.find_blacklisted("guild-2", ["Mallory"]) is None
    assert await store.find_blacklisted("guild-1", []) is None


async def test_increment_counter_creates_then_increments(store):
    key = CounterKey("guild-1", CounterCategory.RUN, "ORYX_3", CounterOutcome.COMPLETED)
    assert await store.increment_counter("42", key) == 1
    assert await store.increment_counter("42", key, 4) == 5
    counters = await store.list_counters("42")
    assert len(counters) == 1 and counters[0].value == 5


async def test_completed_runs_ignores_failures_and_other_communities(store):
    await store.increment_counter("42", parse_legacy_counter_key("R:guild-1:ORYX_3:1"), 3)
    await store.increment_counter("42", parse_legacy_counter_key("R:guild-1:ORYX_3:0"), 9)
    await store.increment_counter("42", parse_legacy_counter_key("R:guild-2:ORYX_3:1"), 7)
    await store.increment_counter("42", parse_legacy_counter_key("L:guild-1:VOID:Completed"), 2)
    assert await store.completed_runs("42", "guild-1") == {"ORYX_3": 3}


async def test_remove_manual_entries_requires_a_filter(store):
    with pytest.raises(ValueError):
        await store.remove_manual_entries()
