"""
Notification dispatcher and audit logger
"""

import pytest

from admissions.core.exceptions import NotFound
from admissions.models import AuditLog, Notification
from admissions.services.audit import AuditLogger, RequestMeta
from admissions.services.notifications import NotificationDispatcher

from tests.conftest import RecordingEmailProvider, RecordingSmsProvider


def test_email_notification_is_sent(db, applicant):
    email = RecordingEmailProvider()
    result = NotificationDispatcher(db, email_provider=email).send(
        applicant.id, "email", "Welcome", "Your account is ready"
    )
    db.commit()

    assert result.success
    assert result.notification.status == "sent"
    assert result.notification.sent_at is not None
    assert email.sent == [{"to": applicant.email, "subject": "Welcome", "body": "Your account is ready"}]


def test_sms_notification_uses_phone(db, applicant):
    sms = RecordingSmsProvider()
    result = NotificationDispatcher(db, sms_provider=sms).send(
        applicant.id, "sms", "Reminder", "Upload your documents"
    )

    assert result.success
    assert sms.sent == [{"to": "+256700000001", "body": "Upload your documents"}]


def test_sms_without_provider_fails_once(db, applicant):
    dispatcher = NotificationDispatcher(db)
    dispatcher.sms_provider = None

    result = dispatcher.send(applicant.id, "sms", "Reminder", "Upload your documents")
    db.commit()

    assert not result.success
    stored = db.query(Notification).one()
    assert stored.status == "failed"
    assert stored.sent_at is None
    assert "not configured" in stored.error


def test_sms_without_phone_fails(db, other_applicant):
    result = NotificationDispatcher(db, sms_provider=RecordingSmsProvider()).send(
        other_applicant.id, "sms", "Reminder", "Upload your documents"
    )

    assert not result.success
    assert result.notification.status == "failed"


def test_gateway_error_marks_failed_without_raising(db, applicant):
    result = NotificationDispatcher(db, sms_provider=RecordingSmsProvider(fail=True)).send(
        applicant.id, "sms", "Reminder", "Upload your documents"
    )

    assert not result.success
    assert "gateway unavailable" in result.error


def test_in_app_notifications_are_always_sent(db, applicant):
    result = NotificationDispatcher(db).send(applicant.id, "in_app", "Hello", "Inbox message")

    assert result.notification.status == "sent"


def test_unknown_channel_is_rejected(db, applicant):
    with pytest.raises(ValueError):
        NotificationDispatcher(db).send(applicant.id, "pigeon", "Hello", "Coo")


def test_unread_listing_and_mark_as_read(db, applicant, other_applicant):
    dispatcher = NotificationDispatcher(db, email_provider=RecordingEmailProvider())
    sent = dispatcher.send(applicant.id, "in_app", "One", "First").notification
    dispatcher.send(applicant.id, "in_app", "Two", "Second")
    db.commit()

    assert len(dispatcher.list_for_user(applicant.id, unread_only=True)) == 2

    dispatcher.mark_as_read(sent.id, applicant.id)

    unread = dispatcher.list_for_user(applicant.id, unread_only=True)
    assert [n.title for n in unread] == ["Two"]
    assert len(dispatcher.list_for_user(applicant.id)) == 2

    with pytest.raises(NotFound):
        dispatcher.mark_as_read(sent.id, other_applicant.id)


def test_audit_record_stores_request_metadata(db, applicant):
    entry = AuditLogger(db).record(
        actor_id=applicant.id,
        action="UPDATE_APPLICATION",
        resource_type="Application",
        resource_id="abc",
        description="Updated application",
        meta=RequestMeta(ip_address="10.0.0.8", user_agent="pytest", path="/api/applications/abc"),
        previous_values={"program": None},
        new_values={"program": "BEd"},
    )
    db.commit()

    stored = db.get(AuditLog, entry.id)
    assert stored.ip_address == "10.0.0.8"
    assert stored.user_agent == "pytest"
    assert stored.new_values == {"program": "BEd"}


def test_audit_failure_is_swallowed(db, applicant):
    from admissions.models import Application

    application = Application(application_number="BSU-1", user_id=applicant.id, completed_steps=[])
    db.add(application)
    db.flush()

    # Unknown actor violates the users foreign key inside the savepoint
    entry = AuditLogger(db).record("no-such-user", "CREATE_APPLICATION", "Application", application.id)
    db.commit()

    assert entry is None
    assert db.query(Application).filter(Application.application_number == "BSU-1").count() == 1
    assert db.query(AuditLog).count() == 0
