from sqlalchemy import Column, String, DateTime

from daily_alchemy.core.database import Base


class CombinationLease(Base):
    """Put-if-absent lease over a combination key while it is being admitted"""
    __tablename__ = "combination_leases"

    key = Column(String(255), primary_key=True)
    holder = Column(String(64), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
