import logging
from typing import List, Optional

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError

from daily_alchemy import models
from daily_alchemy.core.clock import utcnow
from daily_alchemy.core.errors import InvalidCombination, CombinationNotFound
from daily_alchemy.core.normalizer import (
    ADMIN_OPERAND_A,
    ADMIN_KEY_PREFIX,
    CombinationKey,
    combination_key,
    is_admin_key,
    normalize_name,
    STARTER_NAMES,
)
from daily_alchemy.schemas import CombinationRecord, InsertOutcome, NewCombination

logger = logging.getLogger(__name__)


class CatalogStore:
    """ Durable catalog of discovered combinations. One row per combination key."""

    def __init__(self, db):
        self.db = db

    def _visible(self, query):
        """Drop admin placeholder rows from reads that feed players, the planner or the oracle"""
        return query.filter(
            models.ElementCombination.element_a != ADMIN_OPERAND_A,
            ~models.ElementCombination.key.startswith(ADMIN_KEY_PREFIX, autoescape=True),
        )

    # lookup by key
    def lookup_by_key(self, key: CombinationKey) -> Optional[CombinationRecord]:
        """Pure read, safe to retry"""
        row = (self.db.query(models.ElementCombination)
               .filter(models.ElementCombination.key == key)
               .populate_existing()
               .first())
        return CombinationRecord.model_validate(row) if row else None


    # lookup by result
    def lookup_by_result(self, name: str, include_placeholders: bool = False) -> List[CombinationRecord]:
        """Case-insensitive match on result name, oldest first"""
        query = (self.db.query(models.ElementCombination)
                 .filter(models.ElementCombination.result_name_lower == normalize_name(name)))
        if not include_placeholders:
            query = self._visible(query)
        rows = query.order_by(models.ElementCombination.created_at.asc(), models.ElementCombination.id.asc()).all()
        return [CombinationRecord.model_validate(row) for row in rows]


    def canonical_emoji(self, name: str) -> Optional[str]:
        """Emoji of the earliest record producing this element, placeholders included"""
        records = self.lookup_by_result(name, include_placeholders=True)
        return records[0].result_emoji if records else None


    # insert if absent
    def insert_if_absent(self, record: NewCombination) -> InsertOutcome:
        """
        Atomically admit a record. The unique index on key decides races: a
        violation is reported as the existing record, never overwritten.
        """
        self._check_invariants(record)

        row = models.ElementCombination(
            key=record.key,
            element_a=record.element_a.strip(),
            element_b=record.element_b.strip(),
            result_name=record.result_name.strip(),
            result_name_lower=normalize_name(record.result_name),
            result_emoji=record.result_emoji,
            oracle_generated=record.oracle_generated,
            admin_defined=record.admin_defined,
            discoverer_user_id=record.discoverer_user_id,
            use_count=0,
            created_at=utcnow(),
        )
        self.db.add(row)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            existing = self.lookup_by_key(CombinationKey(record.key))
            if existing is None:
                # unique violation on a row that vanished (admin delete in between)
                raise
            logger.info("Combination already admitted: %s", record.key)
            return InsertOutcome(inserted=False, record=existing)

        self.db.refresh(row)
        logger.info("Combination admitted: %s -> %s", record.key, record.result_name)
        return InsertOutcome(inserted=True, record=CombinationRecord.model_validate(row))


    def _check_invariants(self, record: NewCombination):
        result_lower = normalize_name(record.result_name)
        if result_lower in STARTER_NAMES:
            raise InvalidCombination(f"Starter element '{record.result_name}' cannot be a combination result")
        if not record.result_emoji:
            raise InvalidCombination("Result emoji must not be empty")
        if is_admin_key(record.key):
            return
        if combination_key(record.element_a, record.element_b) != record.key:
            raise InvalidCombination(
                f"Key '{record.key}' does not match operands '{record.element_a}', '{record.element_b}'"
            )


    # increment use count
    def increment_use_count(self, key: CombinationKey) -> bool:
        """Best-effort monotonic increment. A missing key is a no-op."""
        result = self.db.execute(
            update(models.ElementCombination)
            .where(models.ElementCombination.key == key)
            .values(use_count=models.ElementCombination.use_count + 1, last_used_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        return result.rowcount == 1


    def list_top_by_use_count(self, n: int) -> List[CombinationRecord]:
        """Most used combinations, used as oracle context. May be slightly stale."""
        rows = (self._visible(self.db.query(models.ElementCombination))
                .order_by(models.ElementCombination.use_count.desc(), models.ElementCombination.key.asc())
                .limit(n)
                .all())
        return [CombinationRecord.model_validate(row) for row in rows]


    def snapshot(self) -> List[CombinationRecord]:
        """Every visible combination in creation order; what the planner searches"""
        rows = (self._visible(self.db.query(models.ElementCombination))
                .order_by(models.ElementCombination.created_at.asc(), models.ElementCombination.key.asc())
                .all())
        return [CombinationRecord.model_validate(row) for row in rows]


    def count(self) -> int:
        return self._visible(self.db.query(func.count(models.ElementCombination.id))).scalar()


    # admin delete
    def admin_delete(self, key: str, actor: Optional[str] = None) -> CombinationRecord:
        """Remove a combination and write an audit event"""
        row = self.db.query(models.ElementCombination).filter(models.ElementCombination.key == key).first()
        if not row:
            raise CombinationNotFound(f"No combination with key '{key}'")

        record = CombinationRecord.model_validate(row)
        self.db.delete(row)
        self.db.add(models.CatalogAuditEvent(
            action="delete",
            key=key,
            actor=actor,
            payload=record.model_dump(mode="json", by_alias=True),
            created_at=utcnow(),
        ))
        self.db.commit()
        logger.info("Combination deleted by %s: %s -> %s", actor, key, record.result_name)
        return record
