import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from daily_alchemy import models  # noqa: F401  registers tables
from daily_alchemy.core.database import Base, engine
from daily_alchemy.core.errors import EngineError
from daily_alchemy.routers import catalog_routers, combine_routers, path_routers, puzzle_routers, session_routers
from utils.logger_config import configure_logging

configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Create database tables
    Base.metadata.create_all(bind=engine)
    logger.info("Daily Alchemy started")
    yield


# create FastAPI
app = FastAPI(title="Daily Alchemy API", version="1.0", lifespan=lifespan)


@app.exception_handler(EngineError)
async def engine_error_handler(request: Request, exc: EngineError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# get routers
app.include_router(combine_routers.router, tags=["Combine"])
app.include_router(path_routers.router, prefix="/paths", tags=["Paths"])
app.include_router(puzzle_routers.router, prefix="/puzzles", tags=["Puzzles"])
app.include_router(session_routers.router, tags=["Sessions"])
app.include_router(catalog_routers.router, prefix="/combinations", tags=["Catalog"])
