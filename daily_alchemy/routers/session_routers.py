from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from daily_alchemy.core.database import get_db
from daily_alchemy.core.errors import PuzzleNotFound
from daily_alchemy.routers.dependencies import get_oracle, get_settings, has_archive_entitlement, require_user
from daily_alchemy.schemas import (
    FinalizeRequest,
    FirstDiscoveryList,
    FirstDiscoveryRead,
    HintResponse,
    PlayerStateRead,
    SessionCombineRequest,
    SessionCombineResponse,
    SessionStart,
    UserStatsRead,
)
from daily_alchemy.services import CombineService, PlayerSessionService, StatsService

router = APIRouter()


def _sessions(db, app_settings, oracle=None) -> PlayerSessionService:
    combine_service = CombineService(db, oracle, app_settings) if oracle is not None else None
    return PlayerSessionService(db, combine_service, app_settings)


# Start (or resume) the puzzle of a date
@router.post("/sessions/{puzzle_date}/start", response_model=PlayerStateRead)
async def start_session(puzzle_date: date, request: SessionStart = SessionStart(),
                        db: Session = Depends(get_db),
                        app_settings=Depends(get_settings),
                        user_id: str = Depends(require_user),
                        entitled: bool = Depends(has_archive_entitlement)):
    return _sessions(db, app_settings).start(user_id, puzzle_date, request.mode, entitled)


@router.get("/sessions/{puzzle_date}", response_model=PlayerStateRead)
async def get_session(puzzle_date: date,
                      db: Session = Depends(get_db),
                      app_settings=Depends(get_settings),
                      user_id: str = Depends(require_user)):
    state = _sessions(db, app_settings).get_state(user_id, puzzle_date)
    if state is None:
        raise PuzzleNotFound(f"No game started for {puzzle_date.isoformat()}")
    return state


@router.post("/sessions/{puzzle_date}/replay", response_model=PlayerStateRead)
async def replay_session(puzzle_date: date, request: SessionStart = SessionStart(),
                         db: Session = Depends(get_db),
                         app_settings=Depends(get_settings),
                         user_id: str = Depends(require_user),
                         entitled: bool = Depends(has_archive_entitlement)):
    return _sessions(db, app_settings).replay(user_id, puzzle_date, request.mode, entitled)


@router.post("/sessions/{puzzle_date}/combine", response_model=SessionCombineResponse,
             response_model_exclude_none=True)
async def session_combine(puzzle_date: date, request: SessionCombineRequest,
                          db: Session = Depends(get_db),
                          oracle=Depends(get_oracle),
                          app_settings=Depends(get_settings),
                          user_id: str = Depends(require_user),
                          entitled: bool = Depends(has_archive_entitlement)):
    """Combine two elements from the bank; the result joins the bank"""
    sessions = _sessions(db, app_settings, oracle)
    state, result, target_reached, expired = await sessions.apply_combine(
        user_id, puzzle_date, request.a, request.b, entitled)
    return SessionCombineResponse(state=PlayerStateRead.model_validate(state), result=result,
                                  target_reached=target_reached, expired=expired)


@router.post("/sessions/{puzzle_date}/hint", response_model=HintResponse)
async def session_hint(puzzle_date: date,
                       db: Session = Depends(get_db),
                       app_settings=Depends(get_settings),
                       user_id: str = Depends(require_user),
                       entitled: bool = Depends(has_archive_entitlement)):
    hint, state = _sessions(db, app_settings).use_hint(user_id, puzzle_date, entitled)
    return HintResponse(hint=hint, state=PlayerStateRead.model_validate(state))


@router.post("/sessions/{puzzle_date}/finalize", response_model=PlayerStateRead)
async def finalize_session(puzzle_date: date, request: FinalizeRequest,
                           db: Session = Depends(get_db),
                           app_settings=Depends(get_settings),
                           user_id: str = Depends(require_user),
                           entitled: bool = Depends(has_archive_entitlement)):
    return _sessions(db, app_settings).finalize(user_id, puzzle_date, request.outcome, entitled)


@router.post("/sessions/{puzzle_date}/tick", response_model=PlayerStateRead)
async def tick_session(puzzle_date: date,
                       db: Session = Depends(get_db),
                       app_settings=Depends(get_settings),
                       user_id: str = Depends(require_user),
                       entitled: bool = Depends(has_archive_entitlement)):
    """Expire the game on the server clock when time is up"""
    return _sessions(db, app_settings).tick(user_id, puzzle_date, entitled)


@router.get("/stats", response_model=UserStatsRead)
async def get_stats(db: Session = Depends(get_db), user_id: str = Depends(require_user)):
    return StatsService(db).get_user_stats(user_id)


# First discoveries of the caller
@router.get("/discoveries", response_model=FirstDiscoveryList)
async def get_discoveries(
    db: Session = Depends(get_db),
    user_id: str = Depends(require_user),
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(100, ge=1, le=200, description="Items per page"),
):
    discoveries, total = StatsService(db).list_first_discoveries(user_id, page, limit)
    return FirstDiscoveryList(
        discoveries=[FirstDiscoveryRead.model_validate(row) for row in discoveries],
        total=total, page=page, limit=limit,
    )
