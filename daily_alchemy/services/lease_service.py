import logging
from datetime import timedelta
from uuid import uuid4

from sqlalchemy import delete, update
from sqlalchemy.exc import IntegrityError

from daily_alchemy import models
from daily_alchemy.core.clock import utcnow
from daily_alchemy.core.normalizer import CombinationKey

logger = logging.getLogger(__name__)


def new_holder_id() -> str:
    return uuid4().hex


class LeaseService:
    """
    Per-key mutual exclusion shared by every worker.

    A lease is a row keyed by the combination key: inserting it is put-if-absent,
    and a row whose ``expires_at`` has passed may be taken over by the next caller,
    so a crashed holder blocks the key for at most one TTL.
    """

    def __init__(self, db, clock=utcnow):
        self.db = db
        self.clock = clock

    def try_acquire(self, key: CombinationKey, holder: str, ttl_seconds: float) -> bool:
        now = self.clock()
        expires_at = now + timedelta(seconds=ttl_seconds)

        self.db.add(models.CombinationLease(key=key, holder=holder, expires_at=expires_at))
        try:
            self.db.commit()
            logger.info("Lease acquired: %s", key)
            return True
        except IntegrityError:
            self.db.rollback()

        # take over an expired lease
        result = self.db.execute(
            update(models.CombinationLease)
            .where(models.CombinationLease.key == key, models.CombinationLease.expires_at <= now)
            .values(holder=holder, expires_at=expires_at)
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        if result.rowcount == 1:
            logger.warning("Lease taken over after expiry: %s", key)
            return True
        return False

    def release(self, key: CombinationKey, holder: str) -> None:
        """Drop the lease if this holder still owns it"""
        self.db.rollback()  # leave any failed transaction before writing
        self.db.execute(
            delete(models.CombinationLease)
            .where(models.CombinationLease.key == key, models.CombinationLease.holder == holder)
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        logger.info("Lease released: %s", key)
