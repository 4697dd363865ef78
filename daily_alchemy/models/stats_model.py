from sqlalchemy import Column, Integer, String, Date, DateTime, Boolean, JSON, UniqueConstraint, func

from daily_alchemy.core.database import Base


class GameStats(Base):
    """One row per (user, date): the stats event of a first attempt"""
    __tablename__ = "game_stats"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), nullable=False, index=True)
    puzzle_date = Column(Date, nullable=False)
    puzzle_number = Column(Integer)
    completed = Column(Boolean, nullable=False, default=False)
    outcome = Column(String(16), nullable=False)
    time_taken = Column(Integer) # seconds
    moves_count = Column(Integer, nullable=False, default=0)
    par_moves = Column(Integer)
    hints_used = Column(Integer, nullable=False, default=0)
    first_discoveries = Column(Integer, nullable=False, default=0)
    final_element_bank = Column(JSON, nullable=False, default=list)
    combination_path = Column(JSON, nullable=False, default=list)
    recorded_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        UniqueConstraint("user_id", "puzzle_date", name="uq_game_stats_user_date"),
    )


class UserStats(Base):
    __tablename__ = "user_stats"

    user_id = Column(String(64), primary_key=True)
    total_played = Column(Integer, nullable=False, default=0)
    total_completed = Column(Integer, nullable=False, default=0)
    total_moves = Column(Integer, nullable=False, default=0)
    best_time = Column(Integer)
    average_time = Column(Integer)
    current_streak = Column(Integer, nullable=False, default=0)
    longest_streak = Column(Integer, nullable=False, default=0)
    last_played_date = Column(Date)
    last_won_date = Column(Date)
    first_discoveries = Column(Integer, nullable=False, default=0)
    under_par_count = Column(Integer, nullable=False, default=0)
    at_par_count = Column(Integer, nullable=False, default=0)
    over_par_count = Column(Integer, nullable=False, default=0)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
