from sqlalchemy import Column, ForeignKey, Integer, String, Date, DateTime, Boolean, JSON, UniqueConstraint
from sqlalchemy.orm import relationship

from daily_alchemy.core.database import Base


class PlayerPuzzleState(Base):
    __tablename__ = "player_puzzle_state"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), nullable=False)
    date = Column(Date, nullable=False)
    puzzle_id = Column(Integer, ForeignKey("daily_puzzles.id", ondelete="SET NULL"))
    mode = Column(String(16), nullable=False, default="daily") # daily | free_play

    bank = Column(JSON, nullable=False, default=list) # [{"name", "emoji"}], starters first
    combination_path = Column(JSON, nullable=False, default=list) # steps taken, in order
    moves = Column(Integer, nullable=False, default=0)
    hints_used = Column(Integer, nullable=False, default=0)
    first_discoveries = Column(Integer, nullable=False, default=0)

    started_at = Column(DateTime(timezone=True))
    completed_at = Column(DateTime(timezone=True))
    time_limit_seconds = Column(Integer) # None for free play
    first_attempt = Column(Boolean, nullable=False, default=True)
    outcome = Column(String(16), nullable=False, default="unfinished") # unfinished | won | time_expired
    stats_recorded = Column(Boolean, nullable=False, default=False)

    __table_args__ = (
        UniqueConstraint("user_id", "date", name="uq_player_puzzle_state_user_date"),
    )

    puzzle = relationship("DailyPuzzle", back_populates="player_states")
