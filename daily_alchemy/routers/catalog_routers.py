from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from daily_alchemy.core.database import get_db
from daily_alchemy.core.errors import CombinationNotFound
from daily_alchemy.routers.dependencies import get_actor, require_admin
from daily_alchemy.schemas import CombinationRecord
from daily_alchemy.services import CatalogStore

router = APIRouter(dependencies=[Depends(require_admin)])


@router.get("", response_model=List[CombinationRecord])
async def list_combinations(
    db: Session = Depends(get_db),
    result: Optional[str] = Query(None, description="Only combinations making this element"),
    placeholders: bool = Query(False, description="Include admin placeholders"),
):
    """Browse the catalog, optionally by result"""
    catalog = CatalogStore(db)
    if result:
        return catalog.lookup_by_result(result, include_placeholders=placeholders)
    return catalog.snapshot()


@router.get("/{key}", response_model=CombinationRecord)
async def get_combination(key: str, db: Session = Depends(get_db)):
    record = CatalogStore(db).lookup_by_key(key)
    if record is None:
        raise CombinationNotFound(f"No combination with key '{key}'")
    return record


# Deleting is audited
@router.delete("/{key}", response_model=CombinationRecord)
async def delete_combination(key: str, db: Session = Depends(get_db), actor: Optional[str] = Depends(get_actor)):
    return CatalogStore(db).admin_delete(key, actor or "admin")
