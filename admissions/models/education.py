"""
Education record attached to an application
"""

from sqlalchemy import Column, String, DateTime, Date, Boolean, ForeignKey, Text
from sqlalchemy.orm import relationship
import enum
import uuid

from admissions.database import Base
from admissions.utils.dates import utc_now


class InstitutionType(str, enum.Enum):
    high_school = "high_school"
    college = "college"
    university = "university"
    vocational = "vocational"
    other = "other"


class Education(Base):
    __tablename__ = "educations"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    application_id = Column(
        String(36), ForeignKey("applications.id", ondelete="CASCADE"), nullable=False, index=True
    )

    institution_name = Column(String(200), nullable=False)
    institution_type = Column(String(30), nullable=False)
    country = Column(String(100))
    city = Column(String(100))
    degree = Column(String(200))
    field_of_study = Column(String(200))
    start_date = Column(Date)
    end_date = Column(Date)
    is_currently_studying = Column(Boolean, default=False, nullable=False)
    grade = Column(String(50))
    description = Column(Text)

    created_at = Column(DateTime, default=utc_now, nullable=False)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now)

    application = relationship("Application", back_populates="educations")

    def __repr__(self):
        return f"<Education(institution='{self.institution_name}')>"
