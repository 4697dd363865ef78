# import moduls/libraries
from datetime import date
from typing import Optional, Union

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

# import form project
from daily_alchemy.core.database import get_db
from daily_alchemy.core.errors import EngineError, InvalidPuzzle, PuzzleNotFound
from daily_alchemy.routers.dependencies import get_actor, get_settings, has_archive_entitlement, is_admin, require_admin
from daily_alchemy.schemas import PuzzleCreate, PuzzleEnvelope, PuzzleList, PuzzleRead, PuzzleUpdate
from daily_alchemy.services import PuzzleServices

router = APIRouter()


# get the puzzle of a date (today by default), or a range of puzzles
@router.get("", response_model=Union[PuzzleEnvelope, PuzzleList])
async def get_puzzles(
    db: Session = Depends(get_db),
    app_settings=Depends(get_settings),
    admin: bool = Depends(is_admin),
    entitled: bool = Depends(has_archive_entitlement),
    puzzle_date: Optional[date] = Query(None, alias="date", description="Puzzle date, defaults to today"),
    date_from: Optional[date] = Query(None, alias="from", description="Range start"),
    date_to: Optional[date] = Query(None, alias="to", description="Range end"),
):
    """Players only ever see published puzzles up to today"""
    services = PuzzleServices(db, app_settings)

    if date_from is not None or date_to is not None:
        date_to = date_to or services.today()
        date_from = date_from or app_settings.PUZZLE_EPOCH
        if date_from > date_to:
            raise InvalidPuzzle("'from' must not be after 'to'")
        puzzles = services.get_puzzles_in_range(date_from, date_to, published_only=not admin)
        if not admin:
            readable = []
            for puzzle in puzzles:
                try:
                    readable.append(services.ensure_readable(puzzle, entitled))
                except EngineError:
                    continue
            puzzles = readable
        return PuzzleList(puzzles=[services.to_public(puzzle) for puzzle in puzzles])

    puzzle = services.get_puzzle_for_date(puzzle_date or services.today(), published_only=not admin)
    if not admin:
        puzzle = services.ensure_readable(puzzle, entitled)
    elif puzzle is None:
        raise PuzzleNotFound(f"No puzzle for {(puzzle_date or services.today()).isoformat()}")
    return PuzzleEnvelope(puzzle=services.to_public(puzzle))


# Create puzzle
@router.post("", response_model=PuzzleRead, status_code=201)
async def create_puzzle(puzzle: PuzzleCreate,
                        db: Session = Depends(get_db),
                        app_settings=Depends(get_settings),
                        _: bool = Depends(require_admin),
                        actor: Optional[str] = Depends(get_actor)):
    """Create a new puzzle"""
    services = PuzzleServices(db, app_settings)
    return services.create_puzzle(puzzle, created_by=actor)


# Get puzzle by id (admin view, solution included)
@router.get("/{puzzle_id}", response_model=PuzzleRead)
async def get_puzzle(puzzle_id: int, db: Session = Depends(get_db), _: bool = Depends(require_admin)):
    """Fetch one puzzle by ID"""
    services = PuzzleServices(db)
    return services.get_puzzle_by_id(puzzle_id)


@router.patch("/{puzzle_id}", response_model=PuzzleRead)
async def update_puzzle(puzzle_id: int, puzzle: PuzzleUpdate,
                        db: Session = Depends(get_db),
                        app_settings=Depends(get_settings),
                        _: bool = Depends(require_admin)):
    """Update a puzzle"""
    services = PuzzleServices(db, app_settings)
    return services.update_puzzle(puzzle_id, puzzle)


# API Delete Request
@router.delete("/{puzzle_id}", status_code=204)
async def delete_puzzle(puzzle_id: int, db: Session = Depends(get_db), _: bool = Depends(require_admin)):
    """Delete a puzzle"""
    services = PuzzleServices(db)
    services.delete_puzzle(puzzle_id)
    return Response(status_code=204)
