from datetime import datetime, timedelta, timezone

import pytest

from daily_alchemy.core.errors import CombinationNotFound, InvalidCombination
from daily_alchemy.core.normalizer import combination_key
from daily_alchemy import models
from daily_alchemy.schemas import NewCombination
from daily_alchemy.services import CatalogStore, LeaseService


def _new(a, b, result, emoji="✨", **extra) -> NewCombination:
    return NewCombination(key=combination_key(a, b), element_a=a, element_b=b,
                          result_name=result, result_emoji=emoji, **extra)


def test_insert_then_lookup(db):
    store = CatalogStore(db)
    outcome = store.insert_if_absent(_new("Fire", "Water", "Steam", "💨", oracle_generated=True))

    assert outcome.inserted
    record = store.lookup_by_key(combination_key("water", "FIRE"))
    assert record.result_name == "Steam"
    assert record.use_count == 0
    assert record.oracle_generated


def test_second_insert_returns_existing_record(db):
    store = CatalogStore(db)
    store.insert_if_absent(_new("Fire", "Water", "Steam", "💨"))
    outcome = store.insert_if_absent(_new("Water", "Fire", "Vapor", "☁️"))

    assert not outcome.inserted
    assert outcome.record.result_name == "Steam"
    assert store.count() == 1


def test_insert_rejects_starter_result_and_bad_key(db):
    store = CatalogStore(db)
    with pytest.raises(InvalidCombination):
        store.insert_if_absent(_new("Mud", "Wind", "Earth"))
    with pytest.raises(InvalidCombination):
        store.insert_if_absent(NewCombination(key="fire|water", element_a="Fire", element_b="Earth",
                                              result_name="Lava", result_emoji="🌋"))


def test_lookup_by_result_is_case_insensitive_and_oldest_first(db):
    store = CatalogStore(db)
    store.insert_if_absent(_new("Earth", "Fire", "Lava", "🌋"))
    store.insert_if_absent(_new("Fire", "Stone", "LAVA", "🔥"))

    records = store.lookup_by_result("lava")
    assert [r.key for r in records] == ["earth|fire", "fire|stone"]
    assert store.canonical_emoji("Lava") == "🌋"


def test_increment_use_count(db):
    store = CatalogStore(db)
    store.insert_if_absent(_new("Fire", "Water", "Steam", "💨"))

    assert store.increment_use_count(combination_key("Fire", "Water"))
    assert store.increment_use_count(combination_key("Fire", "Water"))
    assert not store.increment_use_count(combination_key("Mud", "Mud"))

    record = store.lookup_by_key(combination_key("Fire", "Water"))
    assert record.use_count == 2
    assert record.last_used_at is not None


def test_placeholders_are_hidden_from_player_reads(db):
    store = CatalogStore(db)
    store.insert_if_absent(NewCombination(key="_admin_unicorn", element_a="_ADMIN", element_b="_DEFINED",
                                          result_name="Unicorn", result_emoji="🦄", admin_defined=True))
    store.insert_if_absent(_new("Fire", "Water", "Steam", "💨"))

    assert [r.key for r in store.snapshot()] == ["fire|water"]
    assert [r.key for r in store.list_top_by_use_count(10)] == ["fire|water"]
    assert store.lookup_by_result("Unicorn") == []
    assert store.lookup_by_result("Unicorn", include_placeholders=True)[0].key == "_admin_unicorn"
    assert store.count() == 1


def test_top_by_use_count_orders_by_usage(db):
    store = CatalogStore(db)
    store.insert_if_absent(_new("Fire", "Water", "Steam", "💨"))
    store.insert_if_absent(_new("Earth", "Water", "Mud", "🟫"))
    store.increment_use_count(combination_key("Earth", "Water"))

    assert [r.key for r in store.list_top_by_use_count(1)] == ["earth|water"]


def test_admin_delete_writes_audit_event(db):
    store = CatalogStore(db)
    store.insert_if_absent(_new("Fire", "Water", "Steam", "💨"))

    deleted = store.admin_delete("fire|water", actor="admin-1")

    assert deleted.result_name == "Steam"
    assert store.lookup_by_key(combination_key("Fire", "Water")) is None
    event = db.query(models.CatalogAuditEvent).one()
    assert event.action == "delete"
    assert event.actor == "admin-1"
    with pytest.raises(CombinationNotFound):
        store.admin_delete("fire|water")


def test_lease_is_exclusive_until_released(db, session_factory):
    other = session_factory()
    try:
        first, second = LeaseService(db), LeaseService(other)
        assert first.try_acquire("fire|water", "a", ttl_seconds=60)
        assert not second.try_acquire("fire|water", "b", ttl_seconds=60)

        first.release("fire|water", "a")
        assert second.try_acquire("fire|water", "b", ttl_seconds=60)
    finally:
        other.close()


def test_expired_lease_can_be_taken_over(db, session_factory):
    now = datetime(2026, 1, 25, 12, 0, tzinfo=timezone.utc)
    other = session_factory()
    try:
        assert LeaseService(db, clock=lambda: now).try_acquire("fire|water", "crashed", ttl_seconds=60)
        later = LeaseService(other, clock=lambda: now + timedelta(seconds=61))
        assert later.try_acquire("fire|water", "next", ttl_seconds=60)

        # the old holder can no longer release it
        LeaseService(db).release("fire|water", "crashed")
        assert not LeaseService(db, clock=lambda: now + timedelta(seconds=62)).try_acquire(
            "fire|water", "third", ttl_seconds=60)
    finally:
        other.close()
