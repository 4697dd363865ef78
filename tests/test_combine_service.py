import asyncio

import pytest

from daily_alchemy import models
from daily_alchemy.core.errors import BusyTryAgain, InvalidName, OracleUnavailable
from daily_alchemy.core.normalizer import combination_key
from daily_alchemy.llm.errors import OracleTransportError
from daily_alchemy.llm.oracle_adapter import OracleAdapter, RetryPolicy
from daily_alchemy.schemas import Element, NewCombination
from daily_alchemy.services import CatalogStore, CombineService, LeaseService

from conftest import FakeOracleClient, no_sleep

FIRE = Element(name="Fire", emoji="🔥")
WATER = Element(name="Water", emoji="💧")
EARTH = Element(name="Earth", emoji="🌍")


def test_first_combine_asks_oracle_then_serves_from_catalog(db, oracle, oracle_client, settings):
    service = CombineService(db, oracle, settings, sleep=no_sleep)

    first = asyncio.run(service.combine(FIRE, WATER, actor="u1"))
    second = asyncio.run(service.combine(Element(name="water"), Element(name="FIRE"), actor="u2"))

    assert first.result == Element(name="Steam", emoji="💨")
    assert first.first_discovery and not first.from_cache
    assert second.result == first.result
    assert second.from_cache and not second.first_discovery
    assert oracle_client.combination_calls == 1

    record = CatalogStore(db).lookup_by_key(combination_key("Fire", "Water"))
    assert record.use_count == 1
    assert record.discoverer_user_id == "u1"
    assert db.query(models.FirstDiscovery).filter_by(user_id="u1").count() == 1


def test_concurrent_first_combines_admit_once(session_factory, settings):
    client = FakeOracleClient(answers={"fire|water": ("Steam", "💨")}, delay=0.02)
    oracle = OracleAdapter(client, RetryPolicy(timeout_seconds=5.0), sleep=no_sleep)
    sessions = [session_factory() for _ in range(50)]

    async def run_all():
        services = [CombineService(s, oracle, settings) for s in sessions]
        return await asyncio.gather(*(
            service.combine(FIRE, WATER, actor=f"user-{i}") for i, service in enumerate(services)
        ))

    try:
        results = asyncio.run(run_all())
    finally:
        for s in sessions:
            s.close()

    assert client.combination_calls == 1
    assert {r.result.name for r in results} == {"Steam"}
    assert sum(1 for r in results if r.first_discovery) == 1

    db = session_factory()
    try:
        assert db.query(models.ElementCombination).count() == 1
        assert db.query(models.CombinationLease).count() == 0
        record = CatalogStore(db).lookup_by_key(combination_key("Fire", "Water"))
        assert record.use_count == 49
    finally:
        db.close()


def test_conflicting_oracle_answer_keeps_catalog_result(db, settings):
    client = FakeOracleClient(answers={"fire|water": ("Vapor", "☁️")})

    class LateWriterOracle(OracleAdapter):
        """Another worker admits Steam while this one waits on the oracle"""

        async def combine(self, a, b, context):
            CatalogStore(db).insert_if_absent(NewCombination(
                key="fire|water", element_a="Fire", element_b="Water",
                result_name="Steam", result_emoji="💨", oracle_generated=True))
            return await super().combine(a, b, context)

    service = CombineService(db, LateWriterOracle(client, sleep=no_sleep), settings, sleep=no_sleep)
    result = asyncio.run(service.combine(FIRE, WATER))

    assert result.result.name == "Steam"
    assert not result.first_discovery
    assert result.conflict.existing.name == "Steam"
    assert result.conflict.generated.name == "Vapor"
    assert CatalogStore(db).lookup_by_key("fire|water").result_name == "Steam"


def test_same_name_different_emoji_is_not_a_conflict(db, settings):
    client = FakeOracleClient(answers={"fire|water": ("steam", "♨️")})

    class LateWriterOracle(OracleAdapter):
        async def combine(self, a, b, context):
            CatalogStore(db).insert_if_absent(NewCombination(
                key="fire|water", element_a="Fire", element_b="Water",
                result_name="Steam", result_emoji="💨"))
            return await super().combine(a, b, context)

    service = CombineService(db, LateWriterOracle(client, sleep=no_sleep), settings, sleep=no_sleep)
    result = asyncio.run(service.combine(FIRE, WATER))

    assert result.conflict is None
    assert result.result == Element(name="Steam", emoji="💨")


def test_new_result_reuses_canonical_emoji(db, settings):
    CatalogStore(db).insert_if_absent(NewCombination(
        key="earth|fire", element_a="Earth", element_b="Fire", result_name="Lava", result_emoji="🌋"))
    client = FakeOracleClient(answers={"fire|stone": ("lava", "🔥")})
    service = CombineService(db, OracleAdapter(client, sleep=no_sleep), settings, sleep=no_sleep)

    result = asyncio.run(service.combine(FIRE, Element(name="Stone", emoji="🪨")))

    assert result.first_discovery
    assert result.result.emoji == "🌋"


def test_oracle_failure_leaves_catalog_untouched(db, settings):
    client = FakeOracleClient()
    client.script = [OracleTransportError("down")] * 3
    service = CombineService(db, OracleAdapter(client, sleep=no_sleep), settings, sleep=no_sleep)

    with pytest.raises(OracleUnavailable):
        asyncio.run(service.combine(FIRE, WATER))

    assert db.query(models.ElementCombination).count() == 0
    assert db.query(models.CombinationLease).count() == 0


def test_reserved_names_are_rejected(db, oracle, settings):
    service = CombineService(db, oracle, settings, sleep=no_sleep)
    with pytest.raises(InvalidName):
        asyncio.run(service.combine(Element(name="_ADMIN"), FIRE))
    with pytest.raises(InvalidName):
        asyncio.run(service.combine(Element(name="   "), FIRE))


def test_busy_lease_is_retried_once_then_reported(db, session_factory, oracle, oracle_client, settings):
    other = session_factory()
    try:
        assert LeaseService(other).try_acquire("fire|water", "other-worker", 60)

        class RecordingLeases(LeaseService):
            holders = []

            def try_acquire(self, key, holder, ttl_seconds):
                self.holders.append(holder)
                return super().try_acquire(key, holder, ttl_seconds)

        leases = RecordingLeases(db)
        quick = settings.model_copy(update={"LEASE_MAX_WAIT_SECONDS": 0.05})
        service = CombineService(db, oracle, quick, leases=leases, sleep=no_sleep)

        with pytest.raises(BusyTryAgain):
            asyncio.run(service.combine(FIRE, WATER, actor="u1"))
    finally:
        other.close()

    # one holder id per attempt
    assert len(set(leases.holders)) == 2
    assert oracle_client.combination_calls == 0
    assert CatalogStore(db).lookup_by_key(combination_key("Fire", "Water")) is None
    assert db.query(models.CombinationLease).one().holder == "other-worker"


def test_cancelled_combine_releases_its_lease(db, settings):
    client = FakeOracleClient(answers={"fire|water": ("Steam", "💨")}, delay=1.0)
    oracle = OracleAdapter(client, RetryPolicy(timeout_seconds=5.0), sleep=no_sleep)
    service = CombineService(db, oracle, settings, sleep=no_sleep)

    async def cancel_while_oracle_thinks():
        task = asyncio.create_task(service.combine(FIRE, WATER, actor="u1"))
        while not client.calls:
            await asyncio.sleep(0.001)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(cancel_while_oracle_thinks())

    assert client.combination_calls == 1
    assert db.query(models.CombinationLease).count() == 0
    assert db.query(models.ElementCombination).count() == 0
