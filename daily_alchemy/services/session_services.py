import logging
from datetime import date
from typing import List, Optional, Tuple

from sqlalchemy.exc import IntegrityError

from daily_alchemy import models
from daily_alchemy.core.clock import as_utc, utcnow
from daily_alchemy.core.config import settings as default_settings
from daily_alchemy.core.errors import ElementNotInBank, InvalidOutcome, PuzzleNotFound
from daily_alchemy.core.normalizer import STARTER_ELEMENTS, normalize_name
from daily_alchemy.schemas import CombineResult, Element, Step
from daily_alchemy.services.puzzle_services import PuzzleServices
from daily_alchemy.services.stats_services import StatsService

logger = logging.getLogger(__name__)


def starter_bank() -> List[dict]:
    return [{"name": name, "emoji": emoji} for name, emoji in STARTER_ELEMENTS]


class PlayerSessionService:
    """
    Per-(user, date) play state. The first state for a date is the first
    attempt; only it produces a stats event. Replays reset the board and never
    touch stats. The server clock decides when a daily game runs out of time.
    """

    def __init__(self, db, combine_service=None, settings=None, clock=utcnow):
        self.db = db
        self.combine_service = combine_service
        self.settings = settings or default_settings
        self.clock = clock
        self.puzzles = PuzzleServices(db, self.settings, clock)
        self.stats = StatsService(db)


    def get_state(self, user_id: str, puzzle_date: date) -> Optional[models.PlayerPuzzleState]:
        return (self.db.query(models.PlayerPuzzleState)
                .filter(models.PlayerPuzzleState.user_id == user_id,
                        models.PlayerPuzzleState.date == puzzle_date)
                .first())


    def start(self, user_id: str, puzzle_date: date, mode: str = "daily",
              entitled: bool = False) -> models.PlayerPuzzleState:
        """Create the state on first call, return the existing one afterwards"""
        puzzle = self.puzzles.ensure_readable(
            self.puzzles.get_puzzle_for_date(puzzle_date, published_only=True), entitled)

        state = self.get_state(user_id, puzzle_date)
        if state is not None:
            self._expire_if_needed(state)
            return state

        state = models.PlayerPuzzleState(user_id=user_id, date=puzzle_date, puzzle_id=puzzle.id)
        self._reset(state, mode, first_attempt=True)
        self.db.add(state)
        try:
            self.db.commit()
        except IntegrityError:
            # a concurrent start won
            self.db.rollback()
            return self.get_state(user_id, puzzle_date)

        self.db.refresh(state)
        logger.info("%s started puzzle #%s (%s)", user_id, puzzle.puzzle_number, mode)
        return state


    def replay(self, user_id: str, puzzle_date: date, mode: Optional[str] = None,
               entitled: bool = False) -> models.PlayerPuzzleState:
        """Start over on a finished puzzle. The result of the first attempt stays in stats."""
        state = self._load(user_id, puzzle_date, entitled)
        if state.outcome == "unfinished":
            return state
        self._reset(state, mode or state.mode, first_attempt=False)
        self.db.commit()
        logger.info("%s replays %s", user_id, puzzle_date)
        return state


    async def apply_combine(self, user_id: str, puzzle_date: date, a: Element, b: Element,
                            entitled: bool = False) -> Tuple[models.PlayerPuzzleState, Optional[CombineResult], bool, bool]:
        """Returns (state, result, target_reached, expired)"""
        state = self._load(user_id, puzzle_date, entitled)
        if self._expire_if_needed(state):
            return state, None, False, True
        if state.outcome != "unfinished":
            raise InvalidOutcome("This puzzle is already finished")

        bank_a = self._bank_element(state, a.name)
        bank_b = self._bank_element(state, b.name)
        puzzle = self._puzzle_for(state)

        result = await self.combine_service.combine(bank_a, bank_b, actor=user_id)
        # the clock kept running while the oracle answered
        if self._expire_if_needed(state):
            return state, result, False, True

        made = result.result
        bank = list(state.bank)
        if not any(normalize_name(item["name"]) == normalize_name(made.name) for item in bank):
            bank.append({"name": made.name, "emoji": made.emoji})
        step = Step(a=bank_a.name, b=bank_b.name, result_name=made.name, result_emoji=made.emoji)

        # reassign JSON columns so the change is flushed
        state.bank = bank
        state.combination_path = list(state.combination_path) + [step.model_dump(by_alias=True)]
        state.moves += 1
        if result.first_discovery:
            state.first_discoveries += 1
        self.db.commit()

        target_reached = normalize_name(made.name) == normalize_name(puzzle.target_name)
        if target_reached:
            logger.info("%s reached %s in %s moves", user_id, puzzle.target_name, state.moves)
        return state, result, target_reached, False


    def use_hint(self, user_id: str, puzzle_date: date,
                 entitled: bool = False) -> Tuple[Optional[str], models.PlayerPuzzleState]:
        """Name the next element of the solution the player does not have yet"""
        state = self._load(user_id, puzzle_date, entitled)
        if self._expire_if_needed(state):
            return None, state
        if state.outcome != "unfinished":
            raise InvalidOutcome("This puzzle is already finished")

        owned = {normalize_name(item["name"]) for item in state.bank}
        hint = None
        for step in self._puzzle_for(state).solution_path:
            if normalize_name(step["resultName"]) not in owned:
                hint = step["resultName"]
                break

        if hint is not None:
            state.hints_used += 1
            self.db.commit()
        return hint, state


    def finalize(self, user_id: str, puzzle_date: date, outcome: str,
                 entitled: bool = False) -> models.PlayerPuzzleState:
        """Idempotent; a finished state is returned as is"""
        state = self._load(user_id, puzzle_date, entitled)
        if state.outcome != "unfinished":
            return state
        if self._expire_if_needed(state):
            return state

        if outcome == "won":
            target = normalize_name(self._puzzle_for(state).target_name)
            if not any(normalize_name(item["name"]) == target for item in state.bank):
                raise InvalidOutcome("Target has not been made yet")
        elif outcome == "unfinished":
            state.completed_at = self.clock()
            self.db.commit()
            return state

        self._finish(state, outcome)
        return state


    def tick(self, user_id: str, puzzle_date: date, entitled: bool = False) -> models.PlayerPuzzleState:
        """Let the server clock expire a daily game even if the player stops combining"""
        state = self._load(user_id, puzzle_date, entitled)
        self._expire_if_needed(state)
        return state


    def _load(self, user_id: str, puzzle_date: date, entitled: bool) -> models.PlayerPuzzleState:
        state = self.get_state(user_id, puzzle_date)
        if state is None:
            state = self.start(user_id, puzzle_date, entitled=entitled)
        return state


    def _puzzle_for(self, state: models.PlayerPuzzleState) -> models.DailyPuzzle:
        puzzle = state.puzzle or self.puzzles.get_puzzle_for_date(state.date)
        if puzzle is None:
            raise PuzzleNotFound(f"No puzzle for {state.date.isoformat()}")
        return puzzle


    def _bank_element(self, state: models.PlayerPuzzleState, name: str) -> Element:
        wanted = normalize_name(name)
        for item in state.bank:
            if normalize_name(item["name"]) == wanted:
                return Element(name=item["name"], emoji=item["emoji"])
        raise ElementNotInBank(f"'{name}' is not in your element bank")


    def _reset(self, state: models.PlayerPuzzleState, mode: str, first_attempt: bool) -> None:
        state.mode = mode
        state.bank = starter_bank()
        state.combination_path = []
        state.moves = 0
        state.hints_used = 0
        state.first_discoveries = 0
        state.started_at = self.clock()
        state.completed_at = None
        state.time_limit_seconds = self.settings.DAILY_TIME_LIMIT_SECONDS if mode == "daily" else None
        state.first_attempt = first_attempt
        state.outcome = "unfinished"
        if first_attempt:
            state.stats_recorded = False


    def _expire_if_needed(self, state: models.PlayerPuzzleState) -> bool:
        if state.outcome != "unfinished" or not state.time_limit_seconds or state.started_at is None:
            return False
        elapsed = (self.clock() - as_utc(state.started_at)).total_seconds()
        if elapsed <= state.time_limit_seconds:
            return False
        logger.info("Time is up for %s on %s after %ss", state.user_id, state.date, int(elapsed))
        self._finish(state, "time_expired")
        return True


    def _finish(self, state: models.PlayerPuzzleState, outcome: str) -> None:
        state.outcome = outcome
        state.completed_at = self.clock()
        self.db.commit()
        self.stats.record(state, state.puzzle)
