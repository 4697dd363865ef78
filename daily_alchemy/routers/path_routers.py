from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from daily_alchemy.core.database import get_db
from daily_alchemy.routers.dependencies import get_actor, get_oracle, get_settings, require_admin
from daily_alchemy.schemas import GeneratePathsRequest, GeneratePathsResponse, SavePathRequest, SavePathResult
from daily_alchemy.services import CatalogStore, PathPlanner, PathSaveService

router = APIRouter()


# Propose paths to a target (planner, oracle as fallback)
@router.post("/generate", response_model=GeneratePathsResponse)
async def generate_paths(request: GeneratePathsRequest,
                         db: Session = Depends(get_db),
                         oracle=Depends(get_oracle),
                         app_settings=Depends(get_settings)):
    """Up to `limit` distinct paths from the starters to the target"""
    catalog = CatalogStore(db).snapshot()
    planner = PathPlanner(oracle, app_settings.MAX_PATH_LENGTH, app_settings.ORACLE_CONTEXT_SIZE)
    paths = await planner.generate_paths(request.target_name, catalog, request.limit)
    return GeneratePathsResponse(paths=paths, existing_combinations_count=len(catalog))


# Save a chosen path into the catalog
@router.put("", response_model=SavePathResult)
async def save_path(request: SavePathRequest,
                    db: Session = Depends(get_db),
                    _: bool = Depends(require_admin),
                    actor: Optional[str] = Depends(get_actor)):
    """Insert missing steps; existing ones are skipped or reported as conflicts"""
    services = PathSaveService(db)
    return services.save_path(request.target, request.path, actor)
