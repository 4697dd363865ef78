from typing import List

from pydantic import ConfigDict, Field

from daily_alchemy.schemas.base_schema import CamelModel
from daily_alchemy.schemas.element_schema import DEFAULT_EMOJI, Element


class Step(CamelModel):
    """(a, b) -> result. Provisional steps were proposed by the oracle and are not in the catalog yet"""
    model_config = ConfigDict(frozen=True)

    a: str
    b: str
    result_name: str
    result_emoji: str = DEFAULT_EMOJI
    provisional: bool = False


class Path(CamelModel):
    steps: List[Step]

    @property
    def provisional(self) -> bool:
        return any(step.provisional for step in self.steps)


# Data sent by admin
class GeneratePathsRequest(CamelModel):
    target_name: str
    limit: int = Field(default=3, ge=1, le=10)


class GeneratePathsResponse(CamelModel):
    paths: List[Path]
    existing_combinations_count: int


class SavePathRequest(CamelModel):
    target: Element
    path: Path


class PathConflict(CamelModel):
    a: str
    b: str
    existing: Element
    generated: Element


class SavePathResult(CamelModel):
    created: int = 0
    skipped: int = 0
    conflicts: List[PathConflict] = Field(default_factory=list)
    errors: List[str] = Field(default_factory=list)
