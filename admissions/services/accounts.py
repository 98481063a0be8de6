"""
Admissions Portal - Accounts
admissions/services/accounts.py

Registration, sessions, profile and password reset.
"""

from datetime import timedelta
from typing import Optional, Tuple
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from admissions.config import settings
from admissions.core.exceptions import Conflict, NotFound, Unauthenticated, ValidationError
from admissions.core.security import generate_token, hash_password, hash_token, verify_password
from admissions.database import unit_of_work
from admissions.models import Role, RoleName, User, UserSession
from admissions.schemas.auth import ProfileUpdate, RegisterRequest
from admissions.services.audit import AuditLogger, RequestMeta
from admissions.services.notifications import NotificationDispatcher
from admissions.utils.dates import utc_now

logger = logging.getLogger(__name__)

ROLE_DESCRIPTIONS = {
    RoleName.admin.value: "Administrator with full access",
    RoleName.reviewer.value: "Application reviewer with limited admin access",
    RoleName.applicant.value: "Student applicant",
}


def create_session(db: Session, user: User, user_agent: Optional[str] = None) -> str:
    """
    Creates a bearer session for a user.

    Returns:
        The raw token; only its hash is stored
    """
    token = generate_token()
    db.add(UserSession(
        token_hash=hash_token(token),
        user_id=user.id,
        user_agent=user_agent,
        expires_at=utc_now() + timedelta(hours=settings.session_expire_hours),
    ))
    return token


def revoke_sessions(db: Session, user_id: str):
    db.query(UserSession).filter(UserSession.user_id == user_id).delete(synchronize_session=False)


def get_role(db: Session, name: str) -> Optional[Role]:
    return db.query(Role).filter(Role.name == name).first()


class AccountService:
    """Account lifecycle for applicants and staff"""

    def __init__(self, db: Session, meta: Optional[RequestMeta] = None):
        self.db = db
        self.meta = meta or RequestMeta()
        self.audit = AuditLogger(db)

    def _email_taken(self, email: str) -> bool:
        return self.db.query(User.id).filter(User.email == email).first() is not None

    def register(self, data: RegisterRequest) -> Tuple[User, str]:
        email = data.email.lower()

        if self._email_taken(email):
            raise Conflict("User with this email already exists")

        with unit_of_work(self.db):
            user = User(
                first_name=data.first_name.strip(),
                last_name=data.last_name.strip(),
                email=email,
                password_hash=hash_password(data.password),
                phone=data.phone,
                settlement_site=data.settlement_site.value,
                preferred_language=data.preferred_language.value,
            )

            applicant_role = get_role(self.db, RoleName.applicant.value)
            if applicant_role:
                user.roles.append(applicant_role)
            else:
                logger.warning("⚠️ Applicant role missing - run the seed step")

            self.db.add(user)
            try:
                self.db.flush()
            except IntegrityError:
                # A concurrent registration took the email after the check above
                raise Conflict("User with this email already exists")

            token = create_session(self.db, user, self.meta.user_agent)

            self.audit.record(
                actor_id=user.id,
                action="REGISTER",
                resource_type="User",
                resource_id=user.id,
                description="User registration",
                meta=self.meta,
            )

        logger.info(f"🆕 Registered user {user.email}")
        return user, token

    def login(self, email: str, password: str) -> Tuple[User, str]:
        user = self.db.query(User).filter(User.email == email.lower()).first()

        if not user or not verify_password(password, user.password_hash):
            raise Unauthenticated("Invalid credentials")

        if not user.is_active:
            raise Unauthenticated("User account is deactivated")

        with unit_of_work(self.db):
            user.last_login_at = utc_now()
            token = create_session(self.db, user, self.meta.user_agent)
            self.audit.record(
                actor_id=user.id,
                action="LOGIN",
                resource_type="User",
                resource_id=user.id,
                description="User login",
                meta=self.meta,
            )

        return user, token

    def logout(self, token_hash: str):
        with unit_of_work(self.db):
            self.db.query(UserSession).filter(
                UserSession.token_hash == token_hash
            ).delete(synchronize_session=False)

    def get_user(self, user_id: str) -> User:
        user = self.db.get(User, user_id)
        if not user:
            raise NotFound("User not found")
        return user

    def forgot_password(self, email: str) -> str:
        """
        Issues a password reset token and emails it to the user.

        Returns:
            The raw token (only echoed back to the client in debug mode)
        """
        user = self.db.query(User).filter(User.email == email.lower()).first()
        if not user or not user.is_active:
            raise NotFound("User not found")

        token = generate_token()
        with unit_of_work(self.db):
            user.reset_password_token = hash_token(token)
            user.reset_password_expire = utc_now() + timedelta(
                minutes=settings.password_reset_expire_minutes
            )
            self.audit.record(
                actor_id=user.id,
                action="FORGOT_PASSWORD",
                resource_type="User",
                resource_id=user.id,
                description="Password reset requested",
                meta=self.meta,
            )

        # Sent straight through the provider so the token never lands in the notifications table
        dispatcher = NotificationDispatcher(self.db)
        try:
            dispatcher.email_provider.send_email(
                to=user.email,
                subject="Password Reset",
                body=(
                    f"Dear {user.first_name}, use this token to reset your password: {token}. "
                    f"It expires in {settings.password_reset_expire_minutes} minutes."
                ),
            )
        except Exception as e:
            logger.warning(f"⚠️ Could not send password reset email to {user.email}: {e}")

        return token

    def reset_password(self, token: str, password: str):
        user = self.db.query(User).filter(
            User.reset_password_token == hash_token(token),
            User.reset_password_expire > utc_now(),
        ).first()

        if not user:
            raise ValidationError("Invalid or expired token")

        with unit_of_work(self.db):
            user.password_hash = hash_password(password)
            user.reset_password_token = None
            user.reset_password_expire = None
            revoke_sessions(self.db, user.id)
            self.audit.record(
                actor_id=user.id,
                action="RESET_PASSWORD",
                resource_type="User",
                resource_id=user.id,
                description="User reset password",
                meta=self.meta,
            )

    def update_profile(self, user_id: str, patch: ProfileUpdate) -> User:
        user = self.get_user(user_id)
        changes = patch.model_dump(exclude_unset=True)

        # first/last name cannot be blanked
        for required in ("first_name", "last_name"):
            if required in changes and not changes[required]:
                changes.pop(required)

        previous = {key: getattr(user, key) for key in changes}

        with unit_of_work(self.db):
            for key, value in changes.items():
                setattr(user, key, getattr(value, "value", value))
            self.audit.record(
                actor_id=user.id,
                action="UPDATE_PROFILE",
                resource_type="User",
                resource_id=user.id,
                description="User updated profile",
                meta=self.meta,
                previous_values=previous,
                new_values={key: getattr(user, key) for key in changes},
            )

        return user

    def deactivate(self, user_id: str, actor_id: str) -> User:
        """Soft delete: the account is kept but can no longer sign in"""
        user = self.get_user(user_id)

        with unit_of_work(self.db):
            user.is_active = False
            user.deleted_at = utc_now()
            revoke_sessions(self.db, user.id)
            self.audit.record(
                actor_id=actor_id,
                action="DEACTIVATE_USER",
                resource_type="User",
                resource_id=user.id,
                description=f"Deactivated account {user.email}",
                meta=self.meta,
                previous_values={"is_active": True},
                new_values={"is_active": False},
            )

        logger.info(f"🔒 Deactivated user {user.email}")
        return user


def seed_roles(db: Session) -> int:
    """Creates the fixed roles if they do not exist yet"""
    created = 0
    for name, description in ROLE_DESCRIPTIONS.items():
        if not get_role(db, name):
            db.add(Role(name=name, description=description))
            created += 1
    db.commit()
    return created


def ensure_admin(db: Session, email: str, password: str) -> User:
    """Creates the bootstrap admin account unless it already exists"""
    user = db.query(User).filter(User.email == email.lower()).first()
    if user:
        return user

    user = User(
        first_name="Admin",
        last_name="User",
        email=email.lower(),
        password_hash=hash_password(password),
        is_active=True,
        is_verified=True,
    )
    admin_role = get_role(db, RoleName.admin.value)
    if admin_role:
        user.roles.append(admin_role)
    db.add(user)
    db.commit()

    logger.info(f"✅ Admin user {user.email} created")
    return user
