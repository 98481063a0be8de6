"""
Admissions Portal - Review Workflow
admissions/services/review.py

Staff-side operations: listing applications, reviewing decisions and
verifying uploaded documents.

State machine:
    draft -> submitted                              (applicant submits)
    submitted | under_review -> under_review |
        approved | rejected | waitlisted            (review)
    approved, rejected and waitlisted are terminal
"""

from typing import List, Optional, Tuple
import logging

from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload, selectinload

from admissions.config import settings
from admissions.core.exceptions import InvalidState, NotFound, ValidationError
from admissions.database import unit_of_work
from admissions.models import Application, ApplicationStatus, Document, User
from admissions.models.application import REVIEW_DECISIONS, REVIEWABLE_STATUSES
from admissions.services.audit import AuditLogger, RequestMeta
from admissions.services.notifications import NotificationDispatcher
from admissions.utils.dates import utc_now

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


def status_message(status: str, application_number: str, rejection_reason: Optional[str] = None) -> Tuple[str, str]:
    """
    Title and body of the notification sent when a review changes the status.

    Returns:
        tuple: (title, message)
    """
    if status == ApplicationStatus.approved.value:
        return (
            "Application Approved",
            f"Congratulations! Your application {application_number} has been approved. "
            f"You will receive further instructions soon.",
        )

    if status == ApplicationStatus.rejected.value:
        message = (
            f"We regret to inform you that your application {application_number} "
            f"has not been approved."
        )
        if rejection_reason:
            message += f" Reason: {rejection_reason}"
        return "Application Rejected", message

    if status == ApplicationStatus.waitlisted.value:
        return (
            "Application Waitlisted",
            f"Your application {application_number} has been placed on the waitlist. "
            f"We will notify you if a place becomes available.",
        )

    return (
        "Application Under Review",
        f"Your application {application_number} is now under review.",
    )


class ReviewService:
    """Reviewer and admin operations on submitted applications"""

    def __init__(
        self,
        db: Session,
        meta: Optional[RequestMeta] = None,
        dispatcher: Optional[NotificationDispatcher] = None,
    ):
        self.db = db
        self.meta = meta or RequestMeta()
        self.audit = AuditLogger(db)
        self.dispatcher = dispatcher or NotificationDispatcher(db)

    def list_applications(
        self,
        status: Optional[str] = None,
        program: Optional[str] = None,
        settlement_site: Optional[str] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> Tuple[List[Application], int]:
        """
        Filtered, paginated listing, newest first.

        Returns:
            tuple: (applications on the page, total matching count)
        """
        page = max(page, 1)
        limit = min(max(limit, 1), MAX_PAGE_SIZE)

        query = self.db.query(Application).join(User, Application.user_id == User.id)

        if status:
            query = query.filter(Application.status == status)
        if program:
            query = query.filter(Application.program == program)
        if settlement_site:
            query = query.filter(User.settlement_site == settlement_site)
        if search:
            pattern = f"%{search.strip()}%"
            query = query.filter(or_(
                User.first_name.ilike(pattern),
                User.last_name.ilike(pattern),
                User.email.ilike(pattern),
            ))

        total = query.count()
        applications = (
            query.options(joinedload(Application.user))
            .order_by(Application.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return applications, total

    def application_details(self, application_id: str) -> Application:
        application = (
            self.db.query(Application)
            .options(
                joinedload(Application.user),
                selectinload(Application.educations),
                selectinload(Application.documents),
            )
            .filter(Application.id == application_id)
            .first()
        )
        if not application:
            raise NotFound("Application not found")
        return application

    def review(
        self,
        application_id: str,
        reviewer_id: str,
        status: str,
        comments: Optional[str] = None,
        rejection_reason: Optional[str] = None,
    ) -> Application:
        """
        Records a review decision.

        The status change, its audit entry and the applicant notification are
        written in one unit of work.

        Raises:
            NotFound: unknown application
            InvalidState: the application is not awaiting review
            ValidationError: status is not a review decision
        """
        application = self.db.get(Application, application_id)
        if not application:
            raise NotFound("Application not found")

        if application.status not in REVIEWABLE_STATUSES:
            raise InvalidState("Application cannot be reviewed in its current status")

        if status not in REVIEW_DECISIONS:
            raise ValidationError(
                "Invalid review status",
                details={"allowed": sorted(REVIEW_DECISIONS)},
            )

        previous_status = application.status

        with unit_of_work(self.db):
            application.status = status
            application.reviewed_at = utc_now()
            application.reviewed_by = reviewer_id
            if comments is not None:
                application.comments = comments
            if rejection_reason is not None:
                application.rejection_reason = rejection_reason

            self.audit.record(
                actor_id=reviewer_id,
                action="REVIEW_APPLICATION",
                resource_type="Application",
                resource_id=application.id,
                description=f"Reviewed application - Status: {status}",
                meta=self.meta,
                previous_values={"status": previous_status},
                new_values={"status": status},
            )

            title, message = status_message(
                status, application.application_number, application.rejection_reason
            )
            self.dispatcher.send(
                user_id=application.user_id,
                channel=settings.status_notification_channel,
                title=title,
                message=message,
                related_to=application.id,
            )

        logger.info(
            f"✅ Application {application.application_number}: {previous_status} -> {status}"
        )
        return application

    def verify_document(
        self,
        application_id: str,
        document_id: str,
        reviewer_id: str,
        verified: bool,
        comments: Optional[str] = None,
    ) -> Document:
        document = self.db.query(Document).filter(
            Document.id == document_id,
            Document.application_id == application_id,
        ).first()
        if not document:
            raise NotFound("Document not found")

        with unit_of_work(self.db):
            document.verified = verified
            document.verified_by = reviewer_id
            document.verified_at = utc_now()
            if comments is not None:
                document.comments = comments

            self.audit.record(
                actor_id=reviewer_id,
                action="VERIFY_DOCUMENT",
                resource_type="Document",
                resource_id=document.id,
                description=f"Document {'verified' if verified else 'unverified'}: {document.name}",
                meta=self.meta,
                new_values={"verified": verified},
            )

        return document
