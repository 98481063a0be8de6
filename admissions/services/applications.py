"""
Admissions Portal - Application Aggregate
admissions/services/applications.py

An Application owns its education records and documents. Every content
change goes through this service, which enforces:
- ownership (only the applicant who created it may change it)
- the draft-only edit window
- wizard step bookkeeping
"""

from typing import List, Optional
import logging

from sqlalchemy.orm import Session, selectinload

from admissions.config import settings
from admissions.core.exceptions import (
    Conflict,
    Forbidden,
    IncompleteApplication,
    InvalidState,
    NotFound,
    ValidationError,
)
from admissions.database import unit_of_work
from admissions.models import Application, ApplicationStatus, Education, NotificationChannel
from admissions.models.application import (
    ALL_STEPS,
    STEP_DOCUMENTS,
    STEP_EDUCATION,
    STEP_PROGRAM,
)
from admissions.schemas.application import (
    ApplicationCreate,
    ApplicationUpdate,
    EducationCreate,
    EducationUpdate,
)
from admissions.services.audit import AuditLogger, RequestMeta
from admissions.services.notifications import NotificationDispatcher
from admissions.utils import generate_application_number, remove_file, remove_application_dir, utc_now

logger = logging.getLogger(__name__)

MAX_NUMBER_ATTEMPTS = 10

# Columns that reject NULL; an explicit null in a patch leaves them unchanged
NON_NULLABLE_FIELDS = {"disability_status", "current_step", "completed_steps"}


def load_application(db: Session, application_id: str, with_children: bool = False) -> Application:
    query = db.query(Application)
    if with_children:
        query = query.options(
            selectinload(Application.educations),
            selectinload(Application.documents),
        )
    application = query.filter(Application.id == application_id).first()
    if not application:
        raise NotFound("Application not found")
    return application


def load_editable(db: Session, application_id: str, caller_id: str) -> Application:
    """
    Loads an application the caller is about to change.

    Raises:
        NotFound: unknown id
        Forbidden: caller is not the owner
        InvalidState: the application is no longer a draft
    """
    application = load_application(db, application_id)

    if application.user_id != caller_id:
        raise Forbidden("Not authorized to update this application")

    if not application.is_draft:
        raise InvalidState("Cannot update application after submission")

    return application


def _plain_values(values: dict) -> dict:
    """Unwraps enum members into their stored string values"""
    return {key: getattr(value, "value", value) for key, value in values.items()}


def _snapshot(application: Application, fields) -> dict:
    return {name: getattr(application, name) for name in fields}


class ApplicationService:
    """Owner-facing operations on the application aggregate"""

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

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_for_owner(self, caller_id: str) -> List[Application]:
        return (
            self.db.query(Application)
            .filter(Application.user_id == caller_id)
            .order_by(Application.created_at.desc())
            .all()
        )

    def get(self, application_id: str, caller_id: str) -> Application:
        application = load_application(self.db, application_id, with_children=True)
        # Other users' applications are reported as missing
        if application.user_id != caller_id:
            raise NotFound("Application not found")
        return application

    def status(self, application_id: str, caller_id: str) -> Application:
        return self.get(application_id, caller_id)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def _unique_number(self) -> str:
        for _ in range(MAX_NUMBER_ATTEMPTS):
            number = generate_application_number(settings.application_number_prefix)
            exists = self.db.query(Application.id).filter(
                Application.application_number == number
            ).first()
            if not exists:
                return number
        raise Conflict("Could not allocate a unique application number")

    def create(self, owner_id: str, data: Optional[ApplicationCreate] = None) -> Application:
        fields = data.model_dump(exclude_none=True) if data else {}

        with unit_of_work(self.db):
            application = Application(
                application_number=self._unique_number(),
                user_id=owner_id,
                status=ApplicationStatus.draft.value,
                current_step=STEP_PROGRAM,
                completed_steps=[],
                **fields,
            )
            self.db.add(application)
            self.db.flush()

            self.audit.record(
                actor_id=owner_id,
                action="CREATE_APPLICATION",
                resource_type="Application",
                resource_id=application.id,
                description=f"Created application {application.application_number}",
                meta=self.meta,
            )

        logger.info(f"📝 Application {application.application_number} created")
        return application

    def update(self, application_id: str, caller_id: str, patch: ApplicationUpdate) -> Application:
        application = load_editable(self.db, application_id, caller_id)

        changes = patch.model_dump(exclude_unset=True)
        changes = {
            key: value for key, value in changes.items()
            if not (value is None and key in NON_NULLABLE_FIELDS)
        }
        previous = _snapshot(application, changes)

        with unit_of_work(self.db):
            for key, value in changes.items():
                setattr(application, key, value)

            self.audit.record(
                actor_id=caller_id,
                action="UPDATE_APPLICATION",
                resource_type="Application",
                resource_id=application.id,
                description="Updated application",
                meta=self.meta,
                previous_values=previous,
                new_values=_snapshot(application, changes),
            )

        return application

    def add_education(self, application_id: str, caller_id: str, data: EducationCreate) -> Education:
        application = load_editable(self.db, application_id, caller_id)

        with unit_of_work(self.db):
            education = Education(
                application_id=application.id,
                **_plain_values(data.model_dump(exclude_none=True)),
            )
            self.db.add(education)
            application.mark_step_completed(STEP_EDUCATION, STEP_DOCUMENTS)
            self.db.flush()

            self.audit.record(
                actor_id=caller_id,
                action="ADD_EDUCATION",
                resource_type="Education",
                resource_id=education.id,
                description=f"Added education {education.institution_name}",
                meta=self.meta,
            )

        return education

    def _load_education(self, application: Application, education_id: str) -> Education:
        education = self.db.query(Education).filter(
            Education.id == education_id,
            Education.application_id == application.id,
        ).first()
        if not education:
            raise NotFound("Education record not found")
        return education

    def update_education(
        self, application_id: str, education_id: str, caller_id: str, patch: EducationUpdate
    ) -> Education:
        application = load_editable(self.db, application_id, caller_id)
        education = self._load_education(application, education_id)

        changes = _plain_values(patch.model_dump(exclude_unset=True))
        # Required columns are never cleared
        for required in ("institution_name", "institution_type", "is_currently_studying"):
            if required in changes and changes[required] is None:
                changes.pop(required)

        start = changes.get("start_date", education.start_date)
        end = changes.get("end_date", education.end_date)
        if start and end and end < start:
            raise ValidationError("End date cannot be before start date")

        previous = {key: getattr(education, key) for key in changes}

        with unit_of_work(self.db):
            for key, value in changes.items():
                setattr(education, key, value)
            self.audit.record(
                actor_id=caller_id,
                action="UPDATE_EDUCATION",
                resource_type="Education",
                resource_id=education.id,
                description="Updated education record",
                meta=self.meta,
                previous_values=previous,
                new_values={key: getattr(education, key) for key in changes},
            )

        return education

    def remove_education(self, application_id: str, education_id: str, caller_id: str):
        application = load_editable(self.db, application_id, caller_id)
        education = self._load_education(application, education_id)

        with unit_of_work(self.db):
            self.db.delete(education)
            self.audit.record(
                actor_id=caller_id,
                action="DELETE_EDUCATION",
                resource_type="Education",
                resource_id=education_id,
                description=f"Removed education {education.institution_name}",
                meta=self.meta,
            )

    def submit(self, application_id: str, caller_id: str) -> Application:
        application = load_editable(self.db, application_id, caller_id)

        missing = [
            label for label, value in (
                ("program", application.program),
                ("department", application.department),
                ("academic_year", application.academic_year),
            )
            if not (value or "").strip()
        ]
        if missing:
            raise IncompleteApplication(
                "Please complete all required fields", details={"missing": missing}
            )
        if not application.educations:
            raise IncompleteApplication("Please add at least one education record")
        if not application.documents:
            raise IncompleteApplication("Please upload required documents")

        with unit_of_work(self.db):
            application.status = ApplicationStatus.submitted.value
            application.submitted_at = utc_now()
            application.completed_steps = list(ALL_STEPS)

            self.audit.record(
                actor_id=caller_id,
                action="SUBMIT_APPLICATION",
                resource_type="Application",
                resource_id=application.id,
                description=f"Submitted application {application.application_number}",
                meta=self.meta,
                previous_values={"status": ApplicationStatus.draft.value},
                new_values={"status": application.status},
            )

            self.dispatcher.send(
                user_id=application.user_id,
                channel=NotificationChannel.email.value,
                title="Application Submitted",
                message=(
                    f"Your application {application.application_number} has been "
                    f"submitted successfully. We will review it and get back to you soon."
                ),
                related_to=application.id,
            )

        logger.info(f"📨 Application {application.application_number} submitted")
        return application

    def delete(self, application_id: str, caller_id: str):
        application = load_editable(self.db, application_id, caller_id)
        stored_files = [document.file_path for document in application.documents]
        number = application.application_number

        with unit_of_work(self.db):
            self.db.delete(application)
            self.audit.record(
                actor_id=caller_id,
                action="DELETE_APPLICATION",
                resource_type="Application",
                resource_id=application_id,
                description=f"Deleted application {number}",
                meta=self.meta,
            )

        # Files go only once the rows are gone
        for path in stored_files:
            remove_file(path)
        remove_application_dir(application_id)
