"""
Admissions Portal - Audit Logger
admissions/services/audit.py

Records one immutable row per mutating action. Recording never raises: a
failed insert is rolled back to its savepoint and only logged, so an audit
outage cannot block the business operation around it.
"""

from dataclasses import dataclass
from typing import Any, Optional
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from admissions.models import AuditLog

logger = logging.getLogger(__name__)


@dataclass
class RequestMeta:
    """Caller metadata copied into audit rows"""
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    path: Optional[str] = None


SYSTEM = RequestMeta()


class AuditLogger:
    """Writes audit rows inside the caller's unit of work"""

    def __init__(self, db: Session):
        self.db = db

    def record(
        self,
        actor_id: Optional[str],
        action: str,
        resource_type: str,
        resource_id: Optional[str] = None,
        description: Optional[str] = None,
        meta: Optional[RequestMeta] = None,
        previous_values: Optional[dict] = None,
        new_values: Optional[dict] = None,
    ) -> Optional[AuditLog]:
        """
        Records an audit entry.

        Args:
            actor_id: Acting user, None for system actions
            action: Action name, e.g. REVIEW_APPLICATION
            resource_type: Affected entity type
            resource_id: Affected entity id
            description: Free text
            meta: Request IP and user agent
            previous_values: Snapshot before the change
            new_values: Snapshot after the change

        Returns:
            The stored entry, or None if it could not be written
        """
        meta = meta or SYSTEM
        entry = AuditLog(
            user_id=actor_id,
            action=action,
            resource_type=resource_type,
            resource_id=str(resource_id) if resource_id is not None else None,
            description=description,
            ip_address=meta.ip_address,
            user_agent=(meta.user_agent or "")[:500] or None,
            previous_values=_jsonable(previous_values),
            new_values=_jsonable(new_values),
        )

        try:
            with self.db.begin_nested():
                self.db.add(entry)
                self.db.flush()
        except SQLAlchemyError as e:
            logger.error(f"❌ Error creating audit log {action} for {resource_type}:{resource_id}: {e}")
            return None

        return entry


def _jsonable(values: Optional[dict]) -> Optional[dict]:
    if values is None:
        return None
    return {key: _plain(value) for key, value in values.items()}


def _plain(value: Any) -> Any:
    if hasattr(value, "isoformat"):
        return value.isoformat()
    if isinstance(value, (list, tuple)):
        return [_plain(item) for item in value]
    return value
