from datetime import date as DateType, datetime
from typing import List, Literal, Optional

from pydantic import ConfigDict

from daily_alchemy.schemas.base_schema import CamelModel
from daily_alchemy.schemas.element_schema import CombineResult, Element
from daily_alchemy.schemas.path_schema import Step

Outcome = Literal["unfinished", "won", "time_expired"]
Mode = Literal["daily", "free_play"]


class SessionStart(CamelModel):
    mode: Mode = "daily"


class SessionCombineRequest(CamelModel):
    a: Element
    b: Element


class FinalizeRequest(CamelModel):
    outcome: Outcome


class PlayerStateRead(CamelModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: str
    date: DateType
    mode: Mode
    bank: List[Element]
    combination_path: List[Step]
    moves: int
    hints_used: int
    first_discoveries: int
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    time_limit_seconds: Optional[int] = None
    first_attempt: bool
    outcome: Outcome


class SessionCombineResponse(CamelModel):
    state: PlayerStateRead
    result: Optional[CombineResult] = None
    target_reached: bool = False
    expired: bool = False


class HintResponse(CamelModel):
    hint: Optional[str] = None
    state: PlayerStateRead
