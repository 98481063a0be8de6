from admissions.models.user import User, Role, UserSession, user_roles, RoleName, SettlementSite, PreferredLanguage, Gender
from admissions.models.application import Application, ApplicationStatus
from admissions.models.education import Education, InstitutionType
from admissions.models.document import Document, DocumentType
from admissions.models.audit_log import AuditLog
from admissions.models.notification import Notification, NotificationChannel, NotificationStatus

__all__ = [
    "User",
    "Role",
    "UserSession",
    "user_roles",
    "RoleName",
    "SettlementSite",
    "PreferredLanguage",
    "Gender",
    "Application",
    "ApplicationStatus",
    "Education",
    "InstitutionType",
    "Document",
    "DocumentType",
    "AuditLog",
    "Notification",
    "NotificationChannel",
    "NotificationStatus",
]
