import logging
from datetime import timedelta
from typing import List, Optional, Tuple

from sqlalchemy.exc import IntegrityError

from daily_alchemy import models
from daily_alchemy.core.clock import as_utc

logger = logging.getLogger(__name__)


class StatsService:
    """ Writes one stats event per first attempt and keeps the per-user aggregate"""

    def __init__(self, db):
        self.db = db


    def record(self, state: models.PlayerPuzzleState,
               puzzle: Optional[models.DailyPuzzle] = None) -> Optional[models.GameStats]:
        """
        Emit the stats event of a finished first attempt.
        Replays, unfinished states and states already recorded emit nothing.
        """
        if not state.first_attempt or state.outcome == "unfinished" or state.stats_recorded:
            return None

        completed = state.outcome == "won"
        time_taken = None
        if state.started_at and state.completed_at:
            time_taken = int((as_utc(state.completed_at) - as_utc(state.started_at)).total_seconds())

        event = models.GameStats(
            user_id=state.user_id,
            puzzle_date=state.date,
            puzzle_number=puzzle.puzzle_number if puzzle else None,
            completed=completed,
            outcome=state.outcome,
            time_taken=time_taken,
            moves_count=state.moves,
            par_moves=puzzle.par_moves if puzzle else None,
            hints_used=state.hints_used,
            first_discoveries=state.first_discoveries,
            final_element_bank=list(state.bank),
            combination_path=list(state.combination_path),
        )
        self.db.add(event)
        state.stats_recorded = True
        self._fold(event)

        try:
            self.db.commit()
        except IntegrityError:
            # event for this (user, date) already written
            self.db.rollback()
            logger.warning("Stats already recorded for %s on %s", state.user_id, state.date)
            return None

        logger.info("Stats recorded for %s on %s: %s in %s moves", state.user_id, state.date,
                    state.outcome, state.moves)
        return event


    def get_user_stats(self, user_id: str) -> models.UserStats:
        stats = self.db.get(models.UserStats, user_id)
        if stats is None:
            return models.UserStats(user_id=user_id, total_played=0, total_completed=0, total_moves=0,
                                    current_streak=0, longest_streak=0, first_discoveries=0,
                                    under_par_count=0, at_par_count=0, over_par_count=0)
        return stats


    def list_first_discoveries(self, user_id: str, page: int = 1, limit: int = 100) -> Tuple[List[models.FirstDiscovery], int]:
        """Combinations this user was first to make, newest first, with the total count"""
        query = self.db.query(models.FirstDiscovery).filter(models.FirstDiscovery.user_id == user_id)
        total = query.count()
        rows = (query.order_by(models.FirstDiscovery.discovered_at.desc(), models.FirstDiscovery.id.desc())
                .offset((page - 1) * limit)
                .limit(limit)
                .all())
        return rows, total


    def _fold(self, event: models.GameStats) -> None:
        stats = self.db.get(models.UserStats, event.user_id)
        if stats is None:
            stats = self.get_user_stats(event.user_id)
            self.db.add(stats)

        stats.total_played += 1
        stats.first_discoveries += event.first_discoveries
        if stats.last_played_date is None or event.puzzle_date > stats.last_played_date:
            stats.last_played_date = event.puzzle_date

        if not event.completed:
            stats.current_streak = 0
            return

        stats.total_completed += 1
        stats.total_moves += event.moves_count

        if event.time_taken is not None:
            if stats.best_time is None or event.time_taken < stats.best_time:
                stats.best_time = event.time_taken
            if stats.average_time is None:
                stats.average_time = event.time_taken
            else:
                n = stats.total_completed
                stats.average_time = (stats.average_time * (n - 1) + event.time_taken) // n

        # streak counts consecutive daily wins
        if stats.last_won_date is not None and event.puzzle_date - stats.last_won_date == timedelta(days=1):
            stats.current_streak += 1
        elif stats.last_won_date != event.puzzle_date:
            stats.current_streak = 1
        stats.longest_streak = max(stats.longest_streak, stats.current_streak)
        if stats.last_won_date is None or event.puzzle_date > stats.last_won_date:
            stats.last_won_date = event.puzzle_date

        if event.par_moves:
            if event.moves_count < event.par_moves:
                stats.under_par_count += 1
            elif event.moves_count == event.par_moves:
                stats.at_par_count += 1
            else:
                stats.over_par_count += 1
