from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from pydantic import ConfigDict

from daily_alchemy.schemas.base_schema import CamelModel
from daily_alchemy.schemas.element_schema import Element


class CombinationRecord(CamelModel):
    """Immutable snapshot of one catalog row"""
    model_config = ConfigDict(frozen=True, from_attributes=True)

    key: str
    element_a: str
    element_b: str
    result_name: str
    result_emoji: str
    oracle_generated: bool = False
    admin_defined: bool = False
    discoverer_user_id: Optional[str] = None
    use_count: int = 0
    created_at: datetime
    last_used_at: Optional[datetime] = None

    @property
    def result(self) -> Element:
        return Element(name=self.result_name, emoji=self.result_emoji)


class NewCombination(CamelModel):
    """A record about to be admitted; the store stamps counters and timestamps"""
    model_config = ConfigDict(frozen=True)

    key: str
    element_a: str
    element_b: str
    result_name: str
    result_emoji: str
    oracle_generated: bool = False
    admin_defined: bool = False
    discoverer_user_id: Optional[str] = None


@dataclass(frozen=True)
class InsertOutcome:
    inserted: bool
    record: CombinationRecord
