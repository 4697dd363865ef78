from datetime import date as DateType
from typing import List, Literal, Optional

from pydantic import ConfigDict, Field

from daily_alchemy.schemas.base_schema import CamelModel
from daily_alchemy.schemas.element_schema import Element
from daily_alchemy.schemas.path_schema import Step

Difficulty = Literal["easy", "medium", "hard"]


# Data sent by admin
class PuzzleCreate(CamelModel):
    date: DateType
    target: Element
    par_moves: int = Field(ge=1)
    solution_path: List[Step]
    difficulty: Difficulty = "medium"
    published: bool = False


class PuzzleUpdate(CamelModel):
    date: Optional[DateType] = None
    target: Optional[Element] = None
    par_moves: Optional[int] = Field(default=None, ge=1)
    solution_path: Optional[List[Step]] = None
    difficulty: Optional[Difficulty] = None
    published: Optional[bool] = None


# Full puzzle, admin view
class PuzzleRead(CamelModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    puzzle_number: int
    date: DateType
    target_name: str
    target_emoji: str
    par_moves: int
    solution_path: List[Step]
    difficulty: Difficulty
    published: bool


# What game clients see; the solution is only a fingerprint
class PuzzlePublic(CamelModel):
    puzzle_number: int
    date: DateType
    target: str
    target_emoji: str
    par_moves: int
    difficulty: Difficulty
    solution_path_hash: str


class PuzzleEnvelope(CamelModel):
    puzzle: PuzzlePublic


class PuzzleList(CamelModel):
    puzzles: List[PuzzlePublic]
