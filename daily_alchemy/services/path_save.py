import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from daily_alchemy.core.errors import EngineError, InvalidCombination
from daily_alchemy.core.normalizer import (
    ADMIN_OPERAND_A,
    ADMIN_OPERAND_B,
    STARTER_NAMES,
    admin_placeholder_key,
    combination_key,
    normalize_name,
)
from daily_alchemy.schemas import (
    Element,
    NewCombination,
    Path,
    PathConflict,
    SavePathResult,
)
from daily_alchemy.services.catalog_store import CatalogStore

logger = logging.getLogger(__name__)


class PathSaveService:
    """ Persists an admin-chosen path into the catalog without overwriting anything"""

    def __init__(self, db):
        self.db = db
        self.catalog = CatalogStore(db)


    def save_path(self, target: Element, path: Path, actor: Optional[str] = None) -> SavePathResult:
        """
        Insert every step the catalog does not know yet. Steps that already
        exist are skipped; if the catalog disagrees about the result, the step
        is reported as a conflict and the catalog keeps its answer. Saving the
        same path again creates nothing.
        """
        target_norm = normalize_name(target.name)
        if target_norm in STARTER_NAMES:
            raise InvalidCombination(f"Starter element '{target.name}' cannot be a target")
        target_emoji = self.catalog.canonical_emoji(target.name) or target.emoji
        result = SavePathResult()

        logger.info("Saving path to %s (%s steps) for %s", target.name, len(path.steps), actor or "admin")

        for step in path.steps:
            try:
                key = combination_key(step.a, step.b)
                if normalize_name(step.result_name) == target_norm:
                    emoji = target_emoji
                else:
                    emoji = self.catalog.canonical_emoji(step.result_name) or step.result_emoji

                existing = self.catalog.lookup_by_key(key)
                if existing is None:
                    outcome = self.catalog.insert_if_absent(NewCombination(
                        key=key,
                        element_a=step.a,
                        element_b=step.b,
                        result_name=step.result_name,
                        result_emoji=emoji,
                        admin_defined=True,
                        oracle_generated=True,
                        discoverer_user_id=None,
                    ))
                    if outcome.inserted:
                        result.created += 1
                        continue
                    existing = outcome.record  # created by another request meanwhile

                if normalize_name(existing.result_name) != normalize_name(step.result_name):
                    logger.warning("Path step conflicts with catalog: %s makes %s, path says %s",
                                   key, existing.result_name, step.result_name)
                    result.conflicts.append(PathConflict(
                        a=step.a,
                        b=step.b,
                        existing=existing.result,
                        generated=Element(name=step.result_name, emoji=step.result_emoji),
                    ))
                result.skipped += 1
            except (EngineError, SQLAlchemyError) as e:
                self.db.rollback()
                logger.error("Failed to save step %s + %s: %s", step.a, step.b, e)
                result.errors.append(f"Failed to save {step.a} + {step.b}: {e}")

        self._ensure_target_exists(target, target_emoji)

        logger.info("Path saved for %s: created=%s skipped=%s conflicts=%s errors=%s",
                    target.name, result.created, result.skipped, len(result.conflicts), len(result.errors))
        return result


    def _ensure_target_exists(self, target: Element, emoji: str) -> None:
        """Make sure the target is the result of something, via an admin placeholder if needed"""
        if self.catalog.lookup_by_result(target.name, include_placeholders=True):
            return
        outcome = self.catalog.insert_if_absent(NewCombination(
            key=admin_placeholder_key(target.name),
            element_a=ADMIN_OPERAND_A,
            element_b=ADMIN_OPERAND_B,
            result_name=target.name,
            result_emoji=emoji,
            admin_defined=True,
        ))
        if outcome.inserted:
            logger.info("Admin placeholder created for %s", target.name)
