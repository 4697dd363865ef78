from sqlalchemy import Column, Integer, String, Date, DateTime, func

from daily_alchemy.core.database import Base


class FirstDiscovery(Base):
    __tablename__ = "first_discoveries"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), nullable=False, index=True)
    key = Column(String(255), nullable=False, unique=True)
    element_a = Column(String(100), nullable=False)
    element_b = Column(String(100), nullable=False)
    result_name = Column(String(100), nullable=False)
    result_emoji = Column(String(30), nullable=False)
    puzzle_date = Column(Date, nullable=False)
    discovered_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
