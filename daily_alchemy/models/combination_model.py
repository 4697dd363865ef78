from sqlalchemy import Column, Integer, String, Boolean, DateTime, func, CheckConstraint

from daily_alchemy.core.database import Base


class ElementCombination(Base):
    __tablename__ = "element_combinations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    # normalized "a|b" (sorted, lowercase); unique constraint enforces at-most-once admission
    key = Column(String(255), nullable=False, unique=True, index=True)

    # display names as submitted, order not significant
    element_a = Column(String(100), nullable=False)
    element_b = Column(String(100), nullable=False)

    result_name = Column(String(100), nullable=False)
    result_name_lower = Column(String(100), nullable=False, index=True) # case-insensitive lookups
    result_emoji = Column(String(30), nullable=False)

    oracle_generated = Column(Boolean, nullable=False, default=False)
    admin_defined = Column(Boolean, nullable=False, default=False)
    discoverer_user_id = Column(String(64), nullable=True, index=True)

    use_count = Column(Integer, nullable=False, default=0)
    last_used_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        CheckConstraint("use_count >= 0", name="ck_element_combinations_use_count"),
    )
