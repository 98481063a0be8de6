"""
Shared fixtures

Settings are read at import time, so the environment is pointed at a
throwaway SQLite database and upload directory before admissions is imported.
"""

import os
import tempfile

_TMP = tempfile.mkdtemp(prefix="admissions-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TMP, 'test.db')}"
os.environ["UPLOAD_DIR"] = os.path.join(_TMP, "uploads")
os.environ["DEBUG"] = "true"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["ADMIN_PASSWORD"] = ""
os.environ["SMTP_HOST"] = ""
os.environ["TWILIO_ACCOUNT_SID"] = ""

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from admissions import models  # noqa: E402,F401
from admissions.core.security import hash_password  # noqa: E402
from admissions.database import SessionLocal, drop_all_tables, init_db  # noqa: E402
from admissions.models import Application, Education, RoleName, User  # noqa: E402
from admissions.services import notifications as notifications_module  # noqa: E402
from admissions.services.accounts import create_session, get_role, seed_roles  # noqa: E402

PASSWORD = "secret123"


class RecordingEmailProvider(notifications_module.BaseEmailProvider):
    def __init__(self):
        self.sent = []

    def send_email(self, to, subject, body):
        self.sent.append({"to": to, "subject": subject, "body": body})


class RecordingSmsProvider(notifications_module.BaseSmsProvider):
    def __init__(self, fail=False):
        self.sent = []
        self.fail = fail

    def send_sms(self, to, body):
        if self.fail:
            raise RuntimeError("gateway unavailable")
        self.sent.append({"to": to, "body": body})


@pytest.fixture(autouse=True)
def fresh_database():
    drop_all_tables()
    init_db()
    session = SessionLocal()
    try:
        seed_roles(session)
    finally:
        session.close()
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def outbox(monkeypatch):
    """Captures every email instead of logging it"""
    provider = RecordingEmailProvider()
    monkeypatch.setattr(notifications_module, "get_email_provider", lambda: provider)
    return provider


@pytest.fixture
def client(outbox):
    from admissions.main import app

    with TestClient(app) as test_client:
        yield test_client


def create_user(db, email, role=RoleName.applicant.value, **fields):
    user = User(
        first_name=fields.pop("first_name", "Amani"),
        last_name=fields.pop("last_name", "Baraka"),
        email=email,
        password_hash=hash_password(PASSWORD),
        **fields,
    )
    user.roles.append(get_role(db, role))
    db.add(user)
    db.commit()
    return user


def login_as(db, user) -> dict:
    """Bearer header for a fresh session of the user"""
    token = create_session(db, user)
    db.commit()
    return {"Authorization": f"Bearer {token}"}


def complete_draft(db, application: Application):
    """Fills the required fields and adds one education record"""
    application.program = "Bachelor of Education"
    application.department = "Education"
    application.academic_year = "2025/2026"
    application.educations.append(Education(
        institution_name="Nakivale Secondary School",
        institution_type="high_school",
    ))
    db.commit()
    return application


@pytest.fixture
def applicant(db):
    return create_user(db, "amani@bsu.ac.ug", phone="+256700000001", settlement_site="Nakivale")


@pytest.fixture
def other_applicant(db):
    return create_user(db, "grace@bsu.ac.ug", first_name="Grace", last_name="Uwase")


@pytest.fixture
def reviewer(db):
    return create_user(db, "reviewer@bsu.ac.ug", role=RoleName.reviewer.value, first_name="Ruth")


@pytest.fixture
def admin(db):
    return create_user(db, "admin@bsu.ac.ug", role=RoleName.admin.value, first_name="Admin")


PDF_BYTES = b"%PDF-1.4\n1 0 obj\n<<>>\nendobj\ntrailer\n<<>>\n%%EOF\n"


def upload_pdf(db, application, caller_id, name="Transcript"):
    from io import BytesIO

    from admissions.schemas.application import DocumentMetadata
    from admissions.services.documents import DocumentStore

    return DocumentStore(db).upload(
        application.id,
        caller_id,
        BytesIO(PDF_BYTES),
        "transcript.pdf",
        "application/pdf",
        DocumentMetadata(name=name, type="transcript"),
    )


@pytest.fixture
def submitted_application(db, applicant):
    """An application that went through the whole wizard and was submitted"""
    from admissions.services.applications import ApplicationService

    service = ApplicationService(db)
    application = service.create(applicant.id)
    complete_draft(db, application)
    upload_pdf(db, application, applicant.id)
    return service.submit(application.id, applicant.id)
