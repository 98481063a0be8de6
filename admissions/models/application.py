"""
Application model
One admission application owned by one applicant
"""

from sqlalchemy import Column, Integer, String, DateTime, Boolean, ForeignKey, Text, JSON
from sqlalchemy.orm import relationship
import enum
import uuid

from admissions.database import Base
from admissions.utils.dates import utc_now


class ApplicationStatus(str, enum.Enum):
    draft = "draft"
    submitted = "submitted"
    under_review = "under_review"
    approved = "approved"
    rejected = "rejected"
    waitlisted = "waitlisted"


# Wizard steps
STEP_PROGRAM = 1
STEP_EDUCATION = 2
STEP_DOCUMENTS = 3
STEP_REVIEW = 4
ALL_STEPS = [STEP_PROGRAM, STEP_EDUCATION, STEP_DOCUMENTS, STEP_REVIEW]

REVIEWABLE_STATUSES = {ApplicationStatus.submitted.value, ApplicationStatus.under_review.value}
REVIEW_DECISIONS = {
    ApplicationStatus.under_review.value,
    ApplicationStatus.approved.value,
    ApplicationStatus.rejected.value,
    ApplicationStatus.waitlisted.value,
}


class Application(Base):
    """
    Application model

    Content fields can only change while the status is draft; after submission
    only reviewer-authored fields move.
    """

    __tablename__ = "applications"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    application_number = Column(String(30), unique=True, nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    status = Column(String(20), default=ApplicationStatus.draft.value, nullable=False, index=True)
    current_step = Column(Integer, default=STEP_PROGRAM, nullable=False)
    completed_steps = Column(JSON, default=list, nullable=False)

    # Program
    program = Column(String(200), index=True)
    department = Column(String(200))
    academic_year = Column(String(20))
    semester = Column(String(20))

    # Disability and emergency contact
    disability_status = Column(Boolean, default=False, nullable=False)
    disability_type = Column(String(200))
    emergency_contact_name = Column(String(200))
    emergency_contact_phone = Column(String(20))
    emergency_contact_relationship = Column(String(100))

    # Review
    submitted_at = Column(DateTime)
    reviewed_at = Column(DateTime)
    reviewed_by = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"))
    comments = Column(Text)
    rejection_reason = Column(Text)

    created_at = Column(DateTime, default=utc_now, nullable=False, index=True)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now)

    # Relationships
    user = relationship("User", back_populates="applications", foreign_keys=[user_id])
    reviewer = relationship("User", foreign_keys=[reviewed_by])
    educations = relationship(
        "Education",
        back_populates="application",
        cascade="all, delete-orphan",
        order_by="Education.created_at",
    )
    documents = relationship(
        "Document",
        back_populates="application",
        cascade="all, delete-orphan",
        order_by="Document.upload_date",
    )

    @property
    def is_draft(self) -> bool:
        return self.status == ApplicationStatus.draft.value

    def mark_step_completed(self, step: int, next_step: int):
        """Adds a completed step and moves forward; the wizard never goes back"""
        steps = list(self.completed_steps or [])
        if step not in steps:
            steps.append(step)
        self.completed_steps = sorted(steps)
        self.current_step = max(self.current_step or STEP_PROGRAM, next_step)

    def __repr__(self):
        return f"<Application(number='{self.application_number}', status='{self.status}')>"
