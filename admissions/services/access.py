"""
Admissions Portal - Access Control
admissions/services/access.py

- Authenticating bearer tokens into a Principal
- One explicit operation -> roles policy table
- Recording denied attempts in the audit log
"""

from dataclasses import dataclass, field
from typing import FrozenSet, Iterable, Optional
import enum
import logging
import re

from sqlalchemy.orm import Session

from admissions.core.exceptions import Forbidden, Unauthenticated
from admissions.core.security import hash_token
from admissions.models import RoleName, UserSession
from admissions.services.audit import AuditLogger, RequestMeta
from admissions.utils.dates import utc_now

logger = logging.getLogger(__name__)

TOKEN_PATTERN = re.compile(r"^[A-Za-z0-9_\-]{20,128}$")

APPLICANT = RoleName.applicant.value
ADMIN = RoleName.admin.value
REVIEWER = RoleName.reviewer.value


@dataclass(frozen=True)
class Principal:
    """The authenticated caller of a request"""
    user_id: str
    email: str
    first_name: str
    roles: FrozenSet[str] = field(default_factory=frozenset)
    token_hash: Optional[str] = None

    def has_any_role(self, roles: Iterable[str]) -> bool:
        return bool(self.roles & set(roles))

    @property
    def is_staff(self) -> bool:
        return self.has_any_role({ADMIN, REVIEWER})


class Operation(str, enum.Enum):
    manage_own_applications = "applications.manage_own"
    list_applications = "applications.list_all"
    view_any_application = "applications.view_any"
    review_application = "applications.review"
    verify_document = "documents.verify"
    download_any_document = "documents.download_any"
    view_stats = "reports.stats"
    view_audit_logs = "reports.audit_logs"
    export_applications = "reports.export"
    view_settings = "settings.view"
    manage_users = "users.manage"


STAFF_ROLES = frozenset({ADMIN, REVIEWER})
ADMIN_ONLY = frozenset({ADMIN})

POLICY = {
    Operation.manage_own_applications: frozenset({APPLICANT, ADMIN, REVIEWER}),
    Operation.list_applications: STAFF_ROLES,
    Operation.view_any_application: STAFF_ROLES,
    Operation.review_application: STAFF_ROLES,
    Operation.verify_document: STAFF_ROLES,
    Operation.download_any_document: STAFF_ROLES,
    Operation.view_stats: ADMIN_ONLY,
    Operation.view_audit_logs: ADMIN_ONLY,
    Operation.export_applications: ADMIN_ONLY,
    Operation.view_settings: ADMIN_ONLY,
    Operation.manage_users: ADMIN_ONLY,
}


def allowed(principal: Principal, operation: Operation) -> bool:
    """True when the principal holds one of the roles the operation needs"""
    return principal.has_any_role(POLICY[Operation(operation)])


def authenticate(db: Session, token: Optional[str]) -> Principal:
    """
    Resolves a bearer token into a Principal.

    Raises:
        Unauthenticated: token missing, malformed, unknown, expired, or the
            account is deactivated
    """
    if not token:
        raise Unauthenticated("Not authorized to access this route")

    if not TOKEN_PATTERN.match(token):
        raise Unauthenticated("Malformed credential")

    session = db.query(UserSession).filter(UserSession.token_hash == hash_token(token)).first()

    if not session:
        raise Unauthenticated("Not authorized to access this route")

    if session.expires_at <= utc_now():
        raise Unauthenticated("Session expired")

    user = session.user
    if user is None or not user.is_active:
        raise Unauthenticated("User account is deactivated")

    return Principal(
        user_id=user.id,
        email=user.email,
        first_name=user.first_name,
        roles=frozenset(user.role_names),
        token_hash=session.token_hash,
    )


def authorize(
    db: Session,
    principal: Principal,
    allowed_roles: Iterable[str],
    meta: Optional[RequestMeta] = None,
) -> None:
    """
    Checks role membership.

    A denial is written to the audit log and committed before Forbidden is raised.
    """
    if principal.has_any_role(allowed_roles):
        return

    meta = meta or RequestMeta()
    logger.warning(f"🚫 User {principal.user_id} denied access to {meta.path}")

    AuditLogger(db).record(
        actor_id=principal.user_id,
        action="UNAUTHORIZED_ACCESS",
        resource_type="Route",
        resource_id=meta.path,
        description="Attempted to access restricted route",
        meta=meta,
    )
    db.commit()

    raise Forbidden("Not authorized to access this route")


def authorize_operation(
    db: Session,
    principal: Principal,
    operation: Operation,
    meta: Optional[RequestMeta] = None,
) -> None:
    authorize(db, principal, POLICY[Operation(operation)], meta)
