from typing import List, Optional

from pydantic import Field, field_validator

from daily_alchemy.schemas.base_schema import CamelModel


class OracleCombination(CamelModel):
    """Shape the oracle must answer a combination request with"""
    result_name: str = Field(min_length=1, max_length=100)
    result_emoji: str = Field(min_length=1)
    rationale: Optional[str] = None

    @field_validator("result_name", "result_emoji", mode="before") # runs before length checks
    @classmethod
    def strip_whitespace(cls, value):
        if isinstance(value, str):
            return value.strip()
        return value


class OraclePathStep(CamelModel):
    a: str
    b: str
    result_name: str = Field(min_length=1, max_length=100)
    result_emoji: str = Field(min_length=1)


class OraclePath(CamelModel):
    steps: List[OraclePathStep]


class OraclePathsResponse(CamelModel):
    paths: List[OraclePath]
