"""
Notification model
"""

from sqlalchemy import Column, String, Text, DateTime, Boolean, ForeignKey
from sqlalchemy.orm import relationship
import enum
import uuid

from admissions.database import Base
from admissions.utils.dates import utc_now


class NotificationChannel(str, enum.Enum):
    email = "email"
    sms = "sms"
    in_app = "in_app"


class NotificationStatus(str, enum.Enum):
    pending = "pending"
    sent = "sent"
    delivered = "delivered"
    failed = "failed"


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    type = Column(String(20), nullable=False)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    related_to = Column(String(255), index=True)

    status = Column(String(20), default=NotificationStatus.pending.value, nullable=False)
    error = Column(Text)
    sent_at = Column(DateTime)

    is_read = Column(Boolean, default=False, nullable=False)
    read_at = Column(DateTime)

    created_at = Column(DateTime, default=utc_now, nullable=False, index=True)

    user = relationship("User", back_populates="notifications")

    def __repr__(self):
        return f"<Notification(type='{self.type}', status='{self.status}')>"
