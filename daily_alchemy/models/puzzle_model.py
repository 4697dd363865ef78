from sqlalchemy import Column, Integer, String, Date, func, DateTime, Boolean, JSON
from sqlalchemy.orm import relationship

from daily_alchemy.core.database import Base


class DailyPuzzle(Base):
    __tablename__ = "daily_puzzles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    date = Column(Date, nullable=False, unique=True, index=True)
    puzzle_number = Column(Integer, nullable=False, index=True)
    target_name = Column(String(100), nullable=False)
    target_emoji = Column(String(30), nullable=False)
    par_moves = Column(Integer, nullable=False)
    # [{"a", "b", "resultName", "resultEmoji"}, ...]
    solution_path = Column(JSON, nullable=False, default=list)
    difficulty = Column(String(10), nullable=False, default="medium") # easy | medium | hard
    published = Column(Boolean, nullable=False, default=False)
    created_by = Column(String(64))
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # relationship
    player_states = relationship("PlayerPuzzleState", back_populates="puzzle")
