"""
Combine service.

One request walks LOOKUP -> (HIT | MISS). A miss takes the per-key lease,
asks the oracle, reconciles against whatever landed in the catalog meanwhile
and then inserts:

    LOOKUP -> MISS -> ACQUIRE_LOCK -> ORACLE_CALL -> RECONCILE -> INSERT -> RETURN

The lease is released on every exit path, cancellation included. A caller
that cannot get the lease backs off, looks the key up again, and gives up
with ``BusyTryAgain`` after ``LEASE_MAX_WAIT_SECONDS``; ``combine`` retries
the whole protocol once before letting that escape.
"""
import asyncio
import logging
import time
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from daily_alchemy import models
from daily_alchemy.core.clock import local_today, utcnow
from daily_alchemy.core.config import settings as default_settings
from daily_alchemy.core.errors import BusyTryAgain, InvalidName
from daily_alchemy.core.normalizer import CombinationKey, combination_key, is_reserved, normalize_name
from daily_alchemy.schemas import (
    CombinationRecord,
    CombineResult,
    Conflict,
    Element,
    NewCombination,
    OracleCombination,
)
from daily_alchemy.services.catalog_store import CatalogStore
from daily_alchemy.services.lease_service import LeaseService, new_holder_id

logger = logging.getLogger(__name__)


class CombineService:

    def __init__(self, db, oracle, settings=None, leases: LeaseService = None, sleep=asyncio.sleep):
        self.db = db
        self.oracle = oracle
        self.settings = settings or default_settings
        self.catalog = CatalogStore(db)
        self.leases = leases or LeaseService(db)
        self._sleep = sleep


    async def combine(self, a: Element, b: Element, actor: Optional[str] = None) -> CombineResult:
        """ Combine two elements. Unknown pairs are admitted at most once across all workers."""
        for name in (a.name, b.name):
            if is_reserved(name):
                raise InvalidName(f"'{name}' is a reserved name")
        key = combination_key(a.name, b.name)

        try:
            return await self._attempt(key, a, b, actor)
        except BusyTryAgain:
            logger.warning("Lease busy for %s, retrying once", key)
            return await self._attempt(key, a, b, actor)


    async def _attempt(self, key: CombinationKey, a: Element, b: Element, actor: Optional[str]) -> CombineResult:
        # LOOKUP
        existing = self.catalog.lookup_by_key(key)
        if existing:
            return self._hit(existing)

        # ACQUIRE_LOCK
        holder = new_holder_id()
        existing = await self._acquire_lease(key, holder)
        if existing:
            return self._hit(existing)

        try:
            # someone may have finished between our miss and our lease
            existing = self.catalog.lookup_by_key(key)
            if existing:
                return self._hit(existing)

            # ORACLE_CALL
            context = self.catalog.list_top_by_use_count(self.settings.ORACLE_CONTEXT_SIZE)
            generated = await self.oracle.combine(a, b, context)

            # RECONCILE
            existing = self.catalog.lookup_by_key(key)
            if existing:
                return self._reconcile(existing, generated)

            # INSERT
            canonical = self.catalog.canonical_emoji(generated.result_name)
            outcome = self.catalog.insert_if_absent(NewCombination(
                key=key,
                element_a=a.name,
                element_b=b.name,
                result_name=generated.result_name,
                result_emoji=canonical or generated.result_emoji,
                oracle_generated=True,
                discoverer_user_id=actor,
            ))
            if not outcome.inserted:
                return self._reconcile(outcome.record, generated)

            self._log_first_discovery(outcome.record, actor)
            return CombineResult(result=outcome.record.result, first_discovery=True, from_cache=False)
        finally:
            self.leases.release(key, holder)


    async def _acquire_lease(self, key: CombinationKey, holder: str) -> Optional[CombinationRecord]:
        """Take the lease, or return the record if it shows up while we wait"""
        deadline = time.monotonic() + self.settings.LEASE_MAX_WAIT_SECONDS
        delay = self.settings.LEASE_BACKOFF_INITIAL_SECONDS
        while not self.leases.try_acquire(key, holder, self.settings.LEASE_TTL_SECONDS):
            if time.monotonic() >= deadline:
                raise BusyTryAgain(f"Combination {key} is being discovered, try again")
            await self._sleep(delay)
            delay = min(delay * 2, self.settings.LEASE_BACKOFF_MAX_SECONDS)

            existing = self.catalog.lookup_by_key(key)
            if existing:
                return existing
        return None


    def _hit(self, record: CombinationRecord) -> CombineResult:
        try:
            self.catalog.increment_use_count(CombinationKey(record.key))
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Failed to update use count for %s: %s", record.key, e)
        logger.info("Catalog hit: %s -> %s", record.key, record.result_name)
        return CombineResult(result=record.result, first_discovery=False, from_cache=True)


    def _reconcile(self, existing: CombinationRecord, generated: OracleCombination) -> CombineResult:
        """The catalog wins. Report a conflict only when the oracle named a different element."""
        conflict = None
        if normalize_name(existing.result_name) != normalize_name(generated.result_name):
            logger.warning("Oracle answer for %s discarded: %s (catalog has %s)",
                           existing.key, generated.result_name, existing.result_name)
            conflict = Conflict(
                existing=existing.result,
                generated=Element(name=generated.result_name, emoji=generated.result_emoji),
            )
        return CombineResult(result=existing.result, first_discovery=False, from_cache=True, conflict=conflict)


    def _log_first_discovery(self, record: CombinationRecord, actor: Optional[str]) -> None:
        logger.info("First discovery by %s: %s + %s = %s",
                    actor or "anonymous", record.element_a, record.element_b, record.result_name)
        if not actor:
            return
        self.db.add(models.FirstDiscovery(
            user_id=actor,
            key=record.key,
            element_a=record.element_a,
            element_b=record.element_b,
            result_name=record.result_name,
            result_emoji=record.result_emoji,
            puzzle_date=local_today(self.settings.PUZZLE_TIME_ZONE),
            discovered_at=utcnow(),
        ))
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Failed to log first discovery for %s: %s", record.key, e)
