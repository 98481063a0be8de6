from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from admissions.api.deps import get_current_principal
from admissions.database import get_db
from admissions.schemas.common import success_response
from admissions.schemas.notification import NotificationResponse
from admissions.services.access import Principal
from admissions.services.notifications import NotificationDispatcher

router = APIRouter(prefix="/notifications")


@router.get("")
async def list_notifications(
    unread: bool = False,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    """Notifications of the current user, newest first"""
    notifications = NotificationDispatcher(db).list_for_user(principal.user_id, unread_only=unread)
    data = [NotificationResponse.model_validate(n).model_dump(mode="json") for n in notifications]
    return success_response(data, count=len(data))


@router.put("/{notification_id}/read")
async def mark_as_read(
    notification_id: str,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    notification = NotificationDispatcher(db).mark_as_read(notification_id, principal.user_id)
    return success_response(NotificationResponse.model_validate(notification).model_dump(mode="json"))
