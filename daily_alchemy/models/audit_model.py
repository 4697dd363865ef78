from sqlalchemy import Column, Integer, String, DateTime, JSON, func

from daily_alchemy.core.database import Base


class CatalogAuditEvent(Base):
    __tablename__ = "catalog_audit_events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    action = Column(String(32), nullable=False) # "delete"
    key = Column(String(255), nullable=False, index=True)
    actor = Column(String(64))
    payload = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
