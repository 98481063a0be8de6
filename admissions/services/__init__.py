"""
Business services

Each service receives the request's Session and, where it writes, the
caller's RequestMeta for the audit trail.
"""

from admissions.services.access import Principal, Operation, allowed, authenticate, authorize, authorize_operation
from admissions.services.accounts import AccountService, seed_roles, ensure_admin
from admissions.services.applications import ApplicationService
from admissions.services.audit import AuditLogger, RequestMeta
from admissions.services.documents import DocumentStore
from admissions.services.notifications import NotificationDispatcher
from admissions.services.reports import ReportService, portal_settings
from admissions.services.review import ReviewService

__all__ = [
    "Principal",
    "Operation",
    "allowed",
    "authenticate",
    "authorize",
    "authorize_operation",
    "AccountService",
    "seed_roles",
    "ensure_admin",
    "ApplicationService",
    "AuditLogger",
    "RequestMeta",
    "DocumentStore",
    "NotificationDispatcher",
    "ReportService",
    "portal_settings",
    "ReviewService",
]
