"""Audit log model"""

from sqlalchemy import Column, String, DateTime, JSON

from app.database import Base, new_id, utcnow


class AuditLog(Base):
    """Audit trail of writes made through the API"""
    __tablename__ = "audit_logs"

    id = Column(String(36), primary_key=True, default=new_id)
    tenant_id = Column(String(255))

    # Actor information
    actor_id = Column(String(36))  # User ID or null for system

    # Action details
    action = Column(String(100), nullable=False)  # create, update, delete
    resource_type = Column(String(50))  # menu, order, reservation, ...
    resource_id = Column(String(36))

    # Change data
    data_json = Column(JSON)

    created_at = Column(DateTime, default=utcnow)
