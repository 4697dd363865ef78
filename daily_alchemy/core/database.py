from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from daily_alchemy.core.config import settings


def build_engine(database_url: str):
    """Create an engine. SQLite connections are shared with the threadpool FastAPI runs sync code in."""
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    return create_engine(database_url, connect_args=connect_args)


engine = build_engine(settings.DATABASE_URL)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)

Base = declarative_base()


def get_db():
    """Request scoped database session"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
