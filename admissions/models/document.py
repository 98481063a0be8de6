"""
Uploaded document attached to an application

file_path is internal: downloads are streamed through the API.
"""

from sqlalchemy import Column, Integer, String, DateTime, Boolean, ForeignKey, Text
from sqlalchemy.orm import relationship
import enum
import uuid

from admissions.database import Base
from admissions.utils.dates import utc_now


class DocumentType(str, enum.Enum):
    transcript = "transcript"
    certificate = "certificate"
    identification = "identification"
    recommendation = "recommendation"
    other = "other"


class Document(Base):
    __tablename__ = "documents"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    application_id = Column(
        String(36), ForeignKey("applications.id", ondelete="CASCADE"), nullable=False, index=True
    )

    name = Column(String(200), nullable=False)
    type = Column(String(30), nullable=False)
    institution = Column(String(200))
    upload_date = Column(DateTime, default=utc_now, nullable=False)

    # Storage
    file_path = Column(String(500), nullable=False)
    original_filename = Column(String(255))
    file_size = Column(Integer)
    mime_type = Column(String(100))

    # Verification (reviewers only)
    verified = Column(Boolean, default=False, nullable=False)
    verified_by = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"))
    verified_at = Column(DateTime)
    comments = Column(Text)

    created_at = Column(DateTime, default=utc_now, nullable=False)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now)

    application = relationship("Application", back_populates="documents")

    @property
    def download_name(self) -> str:
        return self.original_filename or self.name

    def __repr__(self):
        return f"<Document(name='{self.name}', type='{self.type}')>"
