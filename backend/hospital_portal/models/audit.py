from sqlalchemy import Column, String, JSON
from .base import Base, TimestampMixin, generate_uuid


class AuditLog(Base, TimestampMixin):
    """Audit trail for every request that touches patient records."""
    __tablename__ = "audit_logs"

    id = Column(String, primary_key=True, default=generate_uuid)
    user_id = Column(String(100), nullable=False)
    role = Column(String(20), nullable=True)
    action = Column(String(50), nullable=False)  # create, view, update, delete
    resource_type = Column(String(50), nullable=False)
    resource_id = Column(String, nullable=False)
    ip_address = Column(String(45), nullable=True)
    request_method = Column(String(10), nullable=True)
    request_path = Column(String(500), nullable=True)
    status_code = Column(String(3), nullable=True)
    changes = Column(JSON, nullable=True)
