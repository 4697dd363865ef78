from typing import Optional

from pydantic import ConfigDict, Field

from daily_alchemy.schemas.base_schema import CamelModel

DEFAULT_EMOJI = "✨"


class Element(CamelModel):
    model_config = ConfigDict(frozen=True)

    name: str
    emoji: str = Field(default=DEFAULT_EMOJI, min_length=1)


# Data sent by client
class CombineRequest(CamelModel):
    a: Element
    b: Element


class Conflict(CamelModel):
    existing: Element
    generated: Element


class CombineResult(CamelModel):
    model_config = ConfigDict(frozen=True)

    result: Element
    first_discovery: bool
    from_cache: bool
    conflict: Optional[Conflict] = None
