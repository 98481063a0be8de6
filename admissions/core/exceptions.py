"""
Admissions Portal - Error taxonomy
admissions/core/exceptions.py

Every business error carries the HTTP status it maps to, so the API layer
only needs one handler for the whole family.
"""

from typing import Any, Optional


class AdmissionsError(Exception):
    """Base class for every expected business error"""

    status_code = 500
    default_message = "Server error"

    def __init__(self, message: Optional[str] = None, details: Any = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class Unauthenticated(AdmissionsError):
    status_code = 401
    default_message = "Not authorized to access this route"


class Forbidden(AdmissionsError):
    status_code = 403
    default_message = "Not authorized to access this route"


class NotFound(AdmissionsError):
    status_code = 404
    default_message = "Resource not found"


class InvalidState(AdmissionsError):
    status_code = 400
    default_message = "Operation not allowed in the current status"


class IncompleteApplication(AdmissionsError):
    status_code = 400
    default_message = "Application is incomplete"


class ValidationError(AdmissionsError):
    status_code = 422
    default_message = "Validation failed"


class Conflict(AdmissionsError):
    status_code = 409
    default_message = "Resource already exists"


class StorageError(AdmissionsError):
    status_code = 500
    default_message = "File storage failed"
