"""
Accounts and access control
"""

from datetime import timedelta

import pytest

from admissions.core.exceptions import Conflict, Forbidden, NotFound, Unauthenticated, ValidationError
from admissions.core.security import hash_password, hash_token, verify_password
from admissions.models import AuditLog, User, UserSession
from admissions.schemas.auth import ProfileUpdate, RegisterRequest
from admissions.services.access import (
    POLICY,
    Operation,
    Principal,
    allowed,
    authenticate,
    authorize,
)
from admissions.services.accounts import AccountService, ensure_admin
from admissions.services.audit import RequestMeta
from admissions.utils.dates import utc_now

from tests.conftest import PASSWORD, login_as


def _register(db, email="new@bsu.ac.ug"):
    return AccountService(db).register(RegisterRequest(
        first_name="Espoir",
        last_name="Ndayisaba",
        email=email,
        password="pass1234",
        phone="+256772000111",
        settlement_site="Rwamwanja",
    ))


def _token(headers):
    return headers["Authorization"].split(" ", 1)[1]


def test_password_hashing():
    stored = hash_password("pass1234")
    assert stored.startswith("$2b$")
    assert stored != hash_password("pass1234")
    assert verify_password("pass1234", stored)
    assert not verify_password("wrong", stored)


@pytest.mark.parametrize("stored", ["", "not-a-hash", "pbkdf2_sha256$x$salt$abc", "$2b$12$short"])
def test_verify_password_rejects_malformed_hashes(stored):
    assert verify_password("pass1234", stored) is False


def test_login_with_malformed_stored_hash_is_unauthenticated(db, applicant):
    applicant.password_hash = "pbkdf2_sha256$notanumber$salt$abc"
    db.commit()

    with pytest.raises(Unauthenticated):
        AccountService(db).login("amani@bsu.ac.ug", PASSWORD)


def test_register_assigns_applicant_and_returns_token(db):
    user, token = _register(db)

    assert user.role_names == ["applicant"]
    assert user.settlement_site == "Rwamwanja"
    assert authenticate(db, token).user_id == user.id
    assert db.query(AuditLog).filter(AuditLog.action == "REGISTER").count() == 1


def test_register_duplicate_email_conflicts(db):
    _register(db)

    with pytest.raises(Conflict):
        _register(db, email="NEW@bsu.ac.ug")


def test_register_race_on_unique_email_conflicts(db, monkeypatch):
    first, _ = _register(db)
    # The other request already passed the lookup before this row was committed
    monkeypatch.setattr(AccountService, "_email_taken", lambda self, email: False)

    with pytest.raises(Conflict):
        _register(db)

    assert db.query(User).filter(User.email == "new@bsu.ac.ug").count() == 1
    assert db.query(AuditLog).filter(AuditLog.action == "REGISTER").count() == 1
    assert db.get(User, first.id).first_name == "Espoir"


def test_login_updates_last_login(db, applicant):
    user, token = AccountService(db).login("amani@bsu.ac.ug", PASSWORD)

    assert user.last_login_at is not None
    assert authenticate(db, token).email == "amani@bsu.ac.ug"


@pytest.mark.parametrize("email,password", [
    ("amani@bsu.ac.ug", "wrong-password"),
    ("nobody@bsu.ac.ug", PASSWORD),
])
def test_login_with_bad_credentials(db, applicant, email, password):
    with pytest.raises(Unauthenticated):
        AccountService(db).login(email, password)


def test_login_to_deactivated_account(db, applicant, admin):
    AccountService(db).deactivate(applicant.id, admin.id)

    with pytest.raises(Unauthenticated):
        AccountService(db).login("amani@bsu.ac.ug", PASSWORD)


def test_logout_revokes_session(db, applicant):
    headers = login_as(db, applicant)
    principal = authenticate(db, _token(headers))

    AccountService(db).logout(principal.token_hash)

    with pytest.raises(Unauthenticated):
        authenticate(db, _token(headers))


@pytest.mark.parametrize("token", [None, "", "short", "has spaces in it but is long enough"])
def test_authenticate_rejects_missing_or_malformed_tokens(db, token):
    with pytest.raises(Unauthenticated):
        authenticate(db, token)


def test_authenticate_rejects_unknown_token(db):
    with pytest.raises(Unauthenticated):
        authenticate(db, "x" * 43)


def test_authenticate_rejects_expired_session(db, applicant):
    headers = login_as(db, applicant)
    session = db.query(UserSession).filter(UserSession.token_hash == hash_token(_token(headers))).one()
    session.expires_at = utc_now() - timedelta(minutes=1)
    db.commit()

    with pytest.raises(Unauthenticated):
        authenticate(db, _token(headers))


def test_authenticate_rejects_deactivated_account(db, applicant):
    headers = login_as(db, applicant)
    applicant.is_active = False
    db.commit()

    with pytest.raises(Unauthenticated):
        authenticate(db, _token(headers))


def test_policy_table():
    applicant = Principal(user_id="1", email="a@bsu.ac.ug", first_name="A", roles=frozenset({"applicant"}))
    reviewer = Principal(user_id="2", email="r@bsu.ac.ug", first_name="R", roles=frozenset({"reviewer"}))
    admin = Principal(user_id="3", email="d@bsu.ac.ug", first_name="D", roles=frozenset({"admin"}))

    assert all(allowed(admin, operation) for operation in Operation)
    assert set(POLICY) == set(Operation)

    for principal in (applicant, reviewer, admin):
        assert allowed(principal, Operation.manage_own_applications)

    assert allowed(reviewer, Operation.review_application)
    assert allowed(reviewer, Operation.verify_document)
    assert not allowed(applicant, Operation.review_application)

    for operation in (
        Operation.view_stats,
        Operation.view_audit_logs,
        Operation.export_applications,
        Operation.view_settings,
        Operation.manage_users,
    ):
        assert not allowed(reviewer, operation)


def test_denied_authorization_is_audited(db, applicant):
    principal = Principal(
        user_id=applicant.id, email=applicant.email, first_name="Amani", roles=frozenset({"applicant"})
    )

    with pytest.raises(Forbidden):
        authorize(db, principal, {"admin"}, RequestMeta(path="/api/admin/stats"))

    entry = db.query(AuditLog).filter(AuditLog.action == "UNAUTHORIZED_ACCESS").one()
    assert entry.resource_type == "Route"
    assert entry.resource_id == "/api/admin/stats"
    assert entry.user_id == applicant.id


def test_forgot_and_reset_password(db, applicant, outbox):
    service = AccountService(db)
    old_headers = login_as(db, applicant)

    token = service.forgot_password("amani@bsu.ac.ug")

    db.expire_all()
    stored = db.get(User, applicant.id)
    assert stored.reset_password_token == hash_token(token)
    assert stored.reset_password_expire > utc_now()
    assert token in outbox.sent[-1]["body"]

    service.reset_password(token, "brand-new-pass")

    db.expire_all()
    stored = db.get(User, applicant.id)
    assert verify_password("brand-new-pass", stored.password_hash)
    assert stored.reset_password_token is None
    with pytest.raises(Unauthenticated):
        authenticate(db, _token(old_headers))
    assert db.query(AuditLog).filter(AuditLog.action == "RESET_PASSWORD").count() == 1


def test_forgot_password_unknown_email(db):
    with pytest.raises(NotFound):
        AccountService(db).forgot_password("ghost@bsu.ac.ug")


def test_reset_password_with_expired_token(db, applicant):
    service = AccountService(db)
    token = service.forgot_password("amani@bsu.ac.ug")
    user = db.get(User, applicant.id)
    user.reset_password_expire = utc_now() - timedelta(seconds=1)
    db.commit()

    with pytest.raises(ValidationError):
        service.reset_password(token, "brand-new-pass")


def test_reset_password_with_unknown_token(db):
    with pytest.raises(ValidationError):
        AccountService(db).reset_password("not-a-real-token", "brand-new-pass")


def test_update_profile_audits_changes(db, applicant):
    user = AccountService(db).update_profile(
        applicant.id, ProfileUpdate(nationality="Congolese", gender="female")
    )

    assert user.nationality == "Congolese"
    assert user.gender == "female"
    entry = db.query(AuditLog).filter(AuditLog.action == "UPDATE_PROFILE").one()
    assert entry.new_values == {"nationality": "Congolese", "gender": "female"}


def test_deactivate_is_a_soft_delete(db, applicant, admin):
    headers = login_as(db, applicant)

    AccountService(db).deactivate(applicant.id, admin.id)

    db.expire_all()
    stored = db.get(User, applicant.id)
    assert stored is not None
    assert stored.is_active is False
    assert stored.deleted_at is not None
    assert db.query(UserSession).filter(UserSession.user_id == applicant.id).count() == 0
    with pytest.raises(Unauthenticated):
        authenticate(db, _token(headers))

    entry = db.query(AuditLog).filter(AuditLog.action == "DEACTIVATE_USER").one()
    assert entry.user_id == admin.id


def test_ensure_admin_is_idempotent(db):
    first = ensure_admin(db, "Boot@bsu.ac.ug", "bootstrap-pass")
    second = ensure_admin(db, "boot@bsu.ac.ug", "other-pass")

    assert first.id == second.id
    assert first.role_names == ["admin"]
    assert verify_password("bootstrap-pass", second.password_hash)
