from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from daily_alchemy.core.database import get_db
from daily_alchemy.routers.dependencies import get_actor, get_oracle, get_settings
from daily_alchemy.schemas import CombineRequest, CombineResult
from daily_alchemy.services import CombineService

router = APIRouter()


# Combine two elements
@router.post("/combine", response_model=CombineResult, response_model_exclude_none=True)
async def combine(request: CombineRequest,
                  db: Session = Depends(get_db),
                  oracle=Depends(get_oracle),
                  app_settings=Depends(get_settings),
                  actor: Optional[str] = Depends(get_actor)):
    """Combine two elements; unknown pairs are asked of the oracle once and remembered"""
    services = CombineService(db, oracle, app_settings)
    return await services.combine(request.a, request.b, actor)
