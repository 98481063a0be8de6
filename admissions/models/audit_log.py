"""
Audit log model
Append-only record of state-changing actions
"""

from sqlalchemy import Column, String, Text, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship
import uuid

from admissions.database import Base
from admissions.utils.dates import utc_now


class AuditLog(Base):
    """
    One row per mutating action.

    Rows are only ever inserted; nothing in the codebase updates or deletes them.
    """

    __tablename__ = "audit_logs"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), index=True)

    action = Column(String(50), nullable=False, index=True)
    resource_type = Column(String(50), nullable=False, index=True)
    resource_id = Column(String(255), index=True)
    description = Column(Text)

    # Request metadata
    ip_address = Column(String(64))
    user_agent = Column(String(500))

    previous_values = Column(JSON)
    new_values = Column(JSON)

    created_at = Column(DateTime, default=utc_now, nullable=False, index=True)

    user = relationship("User")

    def __repr__(self):
        return f"<AuditLog(action='{self.action}', resource='{self.resource_type}:{self.resource_id}')>"
