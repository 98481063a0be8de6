"""
Review workflow: decisions, notifications and document verification
"""

import pytest

from admissions.core.exceptions import InvalidState, NotFound, ValidationError
from admissions.models import Application, ApplicationStatus, AuditLog, Document, Notification
from admissions.services.applications import ApplicationService
from admissions.services.review import ReviewService, status_message

from tests.conftest import complete_draft, create_user, upload_pdf


def _audit_count(db, application_id):
    return db.query(AuditLog).filter(AuditLog.resource_id == application_id).count()


def _notification_count(db, user_id):
    return db.query(Notification).filter(Notification.user_id == user_id).count()


@pytest.mark.parametrize("decision", ["under_review", "approved", "rejected", "waitlisted"])
def test_review_writes_one_audit_entry_and_one_notification(
    db, applicant, reviewer, submitted_application, decision
):
    audits_before = _audit_count(db, submitted_application.id)
    notifications_before = _notification_count(db, applicant.id)

    application = ReviewService(db).review(submitted_application.id, reviewer.id, decision)

    assert application.status == decision
    assert application.reviewed_by == reviewer.id
    assert application.reviewed_at is not None
    assert _audit_count(db, submitted_application.id) == audits_before + 1
    assert _notification_count(db, applicant.id) == notifications_before + 1

    entry = (
        db.query(AuditLog)
        .filter(AuditLog.action == "REVIEW_APPLICATION")
        .one()
    )
    assert entry.previous_values == {"status": "submitted"}
    assert entry.new_values == {"status": decision}


def test_under_review_can_be_decided(db, reviewer, submitted_application):
    service = ReviewService(db)
    service.review(submitted_application.id, reviewer.id, "under_review")

    application = service.review(submitted_application.id, reviewer.id, "approved")

    assert application.status == "approved"


def test_rejection_reason_is_stored_and_sent(db, applicant, reviewer, submitted_application, outbox):
    application = ReviewService(db).review(
        submitted_application.id,
        reviewer.id,
        "rejected",
        rejection_reason="Missing transcript",
    )

    assert application.rejection_reason == "Missing transcript"

    notification = (
        db.query(Notification)
        .filter(Notification.title == "Application Rejected")
        .one()
    )
    assert "Missing transcript" in notification.message
    assert "Missing transcript" in outbox.sent[-1]["body"]


def test_review_keeps_previous_comments_when_not_supplied(db, reviewer, submitted_application):
    service = ReviewService(db)
    service.review(submitted_application.id, reviewer.id, "under_review", comments="Checking grades")

    application = service.review(submitted_application.id, reviewer.id, "waitlisted")

    assert application.comments == "Checking grades"


def test_review_of_draft_is_invalid_state(db, applicant, reviewer):
    draft = ApplicationService(db).create(applicant.id)

    with pytest.raises(InvalidState):
        ReviewService(db).review(draft.id, reviewer.id, "approved")

    assert _notification_count(db, applicant.id) == 0


@pytest.mark.parametrize("terminal", ["approved", "rejected", "waitlisted"])
def test_terminal_statuses_cannot_be_reviewed_again(db, reviewer, submitted_application, terminal):
    service = ReviewService(db)
    service.review(submitted_application.id, reviewer.id, terminal)

    with pytest.raises(InvalidState):
        service.review(submitted_application.id, reviewer.id, "under_review")


@pytest.mark.parametrize("status", ["draft", "submitted", "archived"])
def test_review_rejects_statuses_that_are_not_decisions(db, reviewer, submitted_application, status):
    with pytest.raises(ValidationError):
        ReviewService(db).review(submitted_application.id, reviewer.id, status)

    db.expire_all()
    assert db.get(Application, submitted_application.id).status == "submitted"


def test_review_unknown_application(db, reviewer):
    with pytest.raises(NotFound):
        ReviewService(db).review("missing", reviewer.id, "approved")


def test_failed_delivery_does_not_abort_review(db, applicant, reviewer, submitted_application, monkeypatch):
    class BrokenProvider:
        def send_email(self, to, subject, body):
            raise ConnectionError("smtp down")

    monkeypatch.setattr(
        "admissions.services.notifications.get_email_provider", lambda: BrokenProvider()
    )

    application = ReviewService(db).review(submitted_application.id, reviewer.id, "approved")

    db.expire_all()
    assert db.get(Application, application.id).status == "approved"
    notification = db.query(Notification).filter(Notification.title == "Application Approved").one()
    assert notification.status == "failed"
    assert "smtp down" in notification.error


def test_status_messages():
    assert status_message("approved", "BSU-1")[0] == "Application Approved"
    assert status_message("under_review", "BSU-1")[0] == "Application Under Review"
    assert status_message("waitlisted", "BSU-1")[0] == "Application Waitlisted"

    title, message = status_message("rejected", "BSU-1")
    assert title == "Application Rejected"
    assert "Reason" not in message


def test_verify_document_is_independent_of_status(db, reviewer, submitted_application):
    document = db.query(Document).filter(Document.application_id == submitted_application.id).one()

    verified = ReviewService(db).verify_document(
        submitted_application.id, document.id, reviewer.id, verified=True, comments="Looks valid"
    )

    assert verified.verified is True
    assert verified.verified_by == reviewer.id
    assert verified.verified_at is not None
    assert verified.comments == "Looks valid"
    assert db.query(AuditLog).filter(AuditLog.action == "VERIFY_DOCUMENT").count() == 1


def test_verify_document_keeps_comments_and_sends_nothing(db, applicant, reviewer, submitted_application):
    document = db.query(Document).filter(Document.application_id == submitted_application.id).one()
    service = ReviewService(db)
    service.verify_document(submitted_application.id, document.id, reviewer.id, True, "First pass")
    notifications_before = _notification_count(db, applicant.id)

    updated = service.verify_document(submitted_application.id, document.id, reviewer.id, False)

    assert updated.verified is False
    assert updated.comments == "First pass"
    assert _notification_count(db, applicant.id) == notifications_before


def test_verify_document_of_another_application(db, applicant, reviewer, submitted_application):
    other = ApplicationService(db).create(applicant.id)
    document = db.query(Document).filter(Document.application_id == submitted_application.id).one()

    with pytest.raises(NotFound):
        ReviewService(db).verify_document(other.id, document.id, reviewer.id, True)


def test_list_applications_filters_and_paginates(db, applicant, reviewer):
    kyangwali = create_user(
        db, "joseph@bsu.ac.ug", first_name="Joseph", last_name="Mugisha", settlement_site="Kyangwali"
    )
    service = ApplicationService(db)
    for _ in range(3):
        service.create(applicant.id)
    submitted = service.create(kyangwali.id)
    complete_draft(db, submitted)
    upload_pdf(db, submitted, kyangwali.id)
    service.submit(submitted.id, kyangwali.id)

    review = ReviewService(db)

    page, total = review.list_applications(page=1, limit=2)
    assert total == 4
    assert len(page) == 2

    by_status, total = review.list_applications(status=ApplicationStatus.submitted.value)
    assert total == 1
    assert by_status[0].id == submitted.id

    by_site, total = review.list_applications(settlement_site="Kyangwali")
    assert [app.user_id for app in by_site] == [kyangwali.id]

    by_search, total = review.list_applications(search="mugisha")
    assert total == 1

    by_email, total = review.list_applications(search="amani@")
    assert total == 3


def test_application_details_include_owner_and_children(db, reviewer, submitted_application):
    application = ReviewService(db).application_details(submitted_application.id)

    assert application.user.email == "amani@bsu.ac.ug"
    assert len(application.educations) == 1
    assert len(application.documents) == 1
