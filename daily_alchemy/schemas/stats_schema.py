from datetime import date, datetime
from typing import List, Optional

from pydantic import ConfigDict

from daily_alchemy.schemas.base_schema import CamelModel


class UserStatsRead(CamelModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: str
    total_played: int = 0
    total_completed: int = 0
    total_moves: int = 0
    best_time: Optional[int] = None
    average_time: Optional[int] = None
    current_streak: int = 0
    longest_streak: int = 0
    last_played_date: Optional[date] = None
    first_discoveries: int = 0
    under_par_count: int = 0
    at_par_count: int = 0
    over_par_count: int = 0


class FirstDiscoveryRead(CamelModel):
    model_config = ConfigDict(from_attributes=True)

    element_a: str
    element_b: str
    result_name: str
    result_emoji: str
    puzzle_date: date
    discovered_at: datetime


class FirstDiscoveryList(CamelModel):
    discoveries: List[FirstDiscoveryRead]
    total: int
    page: int
    limit: int
