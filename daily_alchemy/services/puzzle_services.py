import hashlib
import json
import logging
from datetime import date, datetime, timedelta, timezone
from typing import List, Optional, Sequence

from sqlalchemy.exc import IntegrityError

from daily_alchemy import models
from daily_alchemy.core.clock import local_today, utcnow
from daily_alchemy.core.config import settings as default_settings
from daily_alchemy.core.errors import (
    DuplicateDate,
    InvalidPuzzle,
    InvalidSolutionPath,
    PermissionDenied,
    PuzzleNotFound,
)
from daily_alchemy.core.normalizer import combination_key, normalize_name
from daily_alchemy.schemas import PuzzleCreate, PuzzlePublic, PuzzleUpdate, Step
from daily_alchemy.services.catalog_store import CatalogStore
from daily_alchemy.services.path_planner import check_path

logger = logging.getLogger(__name__)

ONE_DAY = timedelta(days=1)


def puzzle_number_for(puzzle_date: date, epoch: date) -> int:
    """Days since the epoch plus one, counted between UTC midnights so DST never shifts it"""
    start = datetime(epoch.year, epoch.month, epoch.day, tzinfo=timezone.utc)
    current = datetime(puzzle_date.year, puzzle_date.month, puzzle_date.day, tzinfo=timezone.utc)
    return (current - start) // ONE_DAY + 1


def solution_path_hash(steps: Sequence[dict]) -> str:
    """Opaque fingerprint of a solution; clients can compare but not read it"""
    canonical = [
        [combination_key(step["a"], step["b"]), normalize_name(step["resultName"])]
        for step in steps
    ]
    return hashlib.sha256(json.dumps(canonical).encode("utf-8")).hexdigest()


def _serialize_steps(steps: Sequence[Step]) -> List[dict]:
    return [step.model_dump(by_alias=True) for step in steps]


class PuzzleServices:
    """ Handles all daily puzzle related DB operation"""

    def __init__(self, db, settings=None, clock=utcnow):
        self.db = db
        self.settings = settings or default_settings
        self.clock = clock
        self.catalog = CatalogStore(db)


    def today(self) -> date:
        return local_today(self.settings.PUZZLE_TIME_ZONE, now=self.clock())


    def puzzle_number(self, puzzle_date: date) -> int:
        return puzzle_number_for(puzzle_date, self.settings.PUZZLE_EPOCH)


    # create puzzle
    def create_puzzle(self, puzzle_data: PuzzleCreate, created_by: Optional[str] = None) -> models.DailyPuzzle:
        """Insert new puzzle to DB table daily_puzzles after checking its solution against the catalog"""
        if puzzle_data.date < self.settings.PUZZLE_EPOCH:
            raise InvalidPuzzle(f"Puzzles start on {self.settings.PUZZLE_EPOCH.isoformat()}")
        if self.get_puzzle_for_date(puzzle_data.date):
            raise DuplicateDate(f"A puzzle already exists for {puzzle_data.date.isoformat()}")

        normalize_name(puzzle_data.target.name)
        self.validate_solution_path(puzzle_data.solution_path, puzzle_data.target.name)

        puzzle = models.DailyPuzzle(
            date=puzzle_data.date,
            puzzle_number=self.puzzle_number(puzzle_data.date),
            target_name=puzzle_data.target.name.strip(),
            target_emoji=puzzle_data.target.emoji,
            par_moves=puzzle_data.par_moves,
            solution_path=_serialize_steps(puzzle_data.solution_path),
            difficulty=puzzle_data.difficulty,
            published=puzzle_data.published,
            created_by=created_by,
            created_at=self.clock(),
        )
        self.db.add(puzzle)
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise DuplicateDate(f"A puzzle already exists for {puzzle_data.date.isoformat()}") from e

        self.db.refresh(puzzle)
        logger.info("Puzzle #%s created for %s: %s", puzzle.puzzle_number, puzzle.date, puzzle.target_name)
        return puzzle


    def validate_solution_path(self, steps: Sequence[Step], target_name: str) -> None:
        """Every step must be playable in order and already be in the catalog with the same result"""
        problem = check_path(steps, target_name)
        if problem:
            raise InvalidSolutionPath(problem)

        for index, step in enumerate(steps, start=1):
            record = self.catalog.lookup_by_key(combination_key(step.a, step.b))
            if record is None:
                raise InvalidSolutionPath(
                    f"Step {index}: {step.a} + {step.b} is not in the catalog, save the path first"
                )
            if normalize_name(record.result_name) != normalize_name(step.result_name):
                raise InvalidSolutionPath(
                    f"Step {index}: {step.a} + {step.b} makes {record.result_name}, not {step.result_name}"
                )


    # get one puzzle by id
    def get_puzzle_by_id(self, puzzle_id: int) -> models.DailyPuzzle:
        """Fetch puzzle by id"""
        puzzle = self.db.query(models.DailyPuzzle).filter(models.DailyPuzzle.id == puzzle_id).first()
        if not puzzle:
            raise PuzzleNotFound(f"Puzzle {puzzle_id} not found")
        return puzzle


    def get_puzzle_for_date(self, puzzle_date: date, published_only: bool = False) -> Optional[models.DailyPuzzle]:
        query = self.db.query(models.DailyPuzzle).filter(models.DailyPuzzle.date == puzzle_date)
        if published_only:
            query = query.filter(models.DailyPuzzle.published.is_(True))
        return query.first()


    def get_puzzles_in_range(self, date_from: date, date_to: date, published_only: bool = False) -> List[models.DailyPuzzle]:
        """Puzzles between two dates (inclusive), newest first"""
        query = (self.db.query(models.DailyPuzzle)
                 .filter(models.DailyPuzzle.date >= date_from, models.DailyPuzzle.date <= date_to))
        if published_only:
            query = query.filter(models.DailyPuzzle.published.is_(True))
        return query.order_by(models.DailyPuzzle.date.desc()).all()


    def update_puzzle(self, puzzle_id: int, puzzle_data: PuzzleUpdate) -> models.DailyPuzzle:
        """Apply a partial update; the puzzle number follows the date"""
        puzzle = self.get_puzzle_by_id(puzzle_id)
        changes = puzzle_data.model_dump(exclude_unset=True)

        new_date = changes.get("date")
        if new_date is not None and new_date != puzzle.date:
            if new_date < self.settings.PUZZLE_EPOCH:
                raise InvalidPuzzle(f"Puzzles start on {self.settings.PUZZLE_EPOCH.isoformat()}")
            if self.get_puzzle_for_date(new_date):
                raise DuplicateDate(f"A puzzle already exists for {new_date.isoformat()}")
            puzzle.date = new_date
            puzzle.puzzle_number = self.puzzle_number(new_date)

        if puzzle_data.target is not None:
            normalize_name(puzzle_data.target.name)
            puzzle.target_name = puzzle_data.target.name.strip()
            puzzle.target_emoji = puzzle_data.target.emoji

        if puzzle_data.solution_path is not None or puzzle_data.target is not None:
            steps = puzzle_data.solution_path
            if steps is None:
                steps = [Step.model_validate(step) for step in puzzle.solution_path]
            self.validate_solution_path(steps, puzzle.target_name)
            puzzle.solution_path = _serialize_steps(steps)

        for field in ("par_moves", "difficulty", "published"):
            if changes.get(field) is not None:
                setattr(puzzle, field, changes[field])

        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise DuplicateDate(f"A puzzle already exists for {puzzle.date.isoformat()}") from e

        self.db.refresh(puzzle)
        logger.info("Puzzle #%s updated (%s)", puzzle.puzzle_number, ", ".join(sorted(changes)) or "no changes")
        return puzzle


    # delete one puzzle
    def delete_puzzle(self, puzzle_id: int) -> None:
        """Fetch puzzle by id and delete"""
        puzzle = self.get_puzzle_by_id(puzzle_id)
        self.db.delete(puzzle)
        self.db.commit()
        logger.info("Puzzle %s deleted", puzzle_id)


    def ensure_readable(self, puzzle: Optional[models.DailyPuzzle], entitled: bool = False) -> models.DailyPuzzle:
        """
        Today's puzzle is open to everyone, the last FREE_ARCHIVE_DAYS days too;
        older ones need the archive entitlement. Unpublished and future puzzles do not exist for players.
        """
        today = self.today()
        if puzzle is None or not puzzle.published or puzzle.date > today:
            raise PuzzleNotFound("It looks like our Puzzlemaster is still sleeping. Come back shortly!")
        if (today - puzzle.date).days > self.settings.FREE_ARCHIVE_DAYS and not entitled:
            raise PermissionDenied("Archive puzzles older than "
                                   f"{self.settings.FREE_ARCHIVE_DAYS} days need a membership")
        return puzzle


    def to_public(self, puzzle: models.DailyPuzzle) -> PuzzlePublic:
        return PuzzlePublic(
            puzzle_number=puzzle.puzzle_number,
            date=puzzle.date,
            target=puzzle.target_name,
            target_emoji=puzzle.target_emoji,
            par_moves=puzzle.par_moves,
            difficulty=puzzle.difficulty,
            solution_path_hash=solution_path_hash(puzzle.solution_path),
        )
