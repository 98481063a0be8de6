"""
Admissions Portal - Notification Dispatcher
admissions/services/notifications.py

Handles:
- Persisting one notification row per message
- Delivery by channel (email, SMS, in-app)
- Unread listing and read receipts

Delivery is attempted once, inline. A failed delivery marks the row as failed
and never aborts the business transaction that triggered it.
"""

from dataclasses import dataclass
from email.message import EmailMessage
from typing import List, Optional
import logging
import smtplib

import httpx
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from admissions.config import settings
from admissions.core.exceptions import NotFound
from admissions.models import Notification, NotificationChannel, NotificationStatus, User
from admissions.utils.dates import utc_now

logger = logging.getLogger(__name__)


class DeliveryError(Exception):
    """A channel could not deliver a message"""


# ============================================================================
# PROVIDERS
# ============================================================================

class BaseEmailProvider:
    def send_email(self, to: str, subject: str, body: str) -> None:
        raise NotImplementedError


class LoggingEmailProvider(BaseEmailProvider):
    """Used when no SMTP server is configured; the message only goes to the log"""

    def send_email(self, to: str, subject: str, body: str) -> None:
        logger.info(f"📧 [EMAIL to {to}] {subject}: {body}")


class SmtpEmailProvider(BaseEmailProvider):
    def __init__(self, host: str, port: int, user: Optional[str], password: Optional[str], sender: str):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.sender = sender

    def send_email(self, to: str, subject: str, body: str) -> None:
        msg = EmailMessage()
        msg["From"] = self.sender
        msg["To"] = to
        msg["Subject"] = subject
        msg.set_content(body)

        with smtplib.SMTP(self.host, self.port, timeout=30) as smtp:
            smtp.starttls()
            if self.user and self.password:
                smtp.login(self.user, self.password)
            smtp.send_message(msg)


class BaseSmsProvider:
    def send_sms(self, to: str, body: str) -> None:
        raise NotImplementedError


class TwilioSmsProvider(BaseSmsProvider):
    """Sends SMS through Twilio's REST API"""

    API_URL = "https://api.twilio.com/2010-04-01/Accounts/{sid}/Messages.json"

    def __init__(self, account_sid: str, auth_token: str, from_number: str, timeout: float = 10.0):
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.from_number = from_number
        self.timeout = timeout

    def send_sms(self, to: str, body: str) -> None:
        response = httpx.post(
            self.API_URL.format(sid=self.account_sid),
            data={"To": to, "From": self.from_number, "Body": body},
            auth=(self.account_sid, self.auth_token),
            timeout=self.timeout,
        )
        response.raise_for_status()


def get_email_provider() -> BaseEmailProvider:
    if settings.smtp_host:
        return SmtpEmailProvider(
            host=settings.smtp_host,
            port=settings.smtp_port,
            user=settings.smtp_user,
            password=settings.smtp_password,
            sender=settings.smtp_from or settings.smtp_user or settings.admin_email,
        )
    return LoggingEmailProvider()


def get_sms_provider() -> Optional[BaseSmsProvider]:
    if not settings.twilio_configured:
        return None
    return TwilioSmsProvider(
        account_sid=settings.twilio_account_sid,
        auth_token=settings.twilio_auth_token,
        from_number=settings.twilio_phone_number,
        timeout=settings.twilio_timeout,
    )


# ============================================================================
# DISPATCHER
# ============================================================================

@dataclass
class DeliveryResult:
    success: bool
    notification: Optional[Notification] = None
    error: Optional[str] = None


class NotificationDispatcher:
    """Creates notification rows and delivers them"""

    def __init__(
        self,
        db: Session,
        email_provider: Optional[BaseEmailProvider] = None,
        sms_provider: Optional[BaseSmsProvider] = None,
    ):
        self.db = db
        self.email_provider = email_provider or get_email_provider()
        self.sms_provider = sms_provider if sms_provider is not None else get_sms_provider()

    def send(
        self,
        user_id: str,
        channel: str,
        title: str,
        message: str,
        related_to: Optional[str] = None,
    ) -> DeliveryResult:
        """
        Sends a notification to a user.

        The row is created as pending, delivery is attempted once and the row
        moves to sent or failed.

        Returns:
            DeliveryResult with the stored notification
        """
        channel = NotificationChannel(channel).value
        notification = Notification(
            user_id=user_id,
            type=channel,
            title=title,
            message=message,
            related_to=related_to,
            status=NotificationStatus.pending.value,
        )

        try:
            with self.db.begin_nested():
                self.db.add(notification)
                self.db.flush()
        except SQLAlchemyError as e:
            logger.error(f"❌ Could not store notification for user {user_id}: {e}")
            return DeliveryResult(success=False, error=str(e))

        error = None
        try:
            self._deliver(channel, user_id, title, message)
        except Exception as e:
            error = str(e)
            logger.warning(f"⚠️ {channel} notification to user {user_id} failed: {e}")

        notification.status = NotificationStatus.failed.value if error else NotificationStatus.sent.value
        notification.sent_at = None if error else utc_now()
        notification.error = error

        try:
            with self.db.begin_nested():
                self.db.flush()
        except SQLAlchemyError as e:
            logger.error(f"❌ Could not update notification {notification.id}: {e}")

        return DeliveryResult(success=error is None, notification=notification, error=error)

    def _deliver(self, channel: str, user_id: str, title: str, message: str):
        if channel == NotificationChannel.in_app.value:
            # Delivered when the user reads their inbox
            return

        user = self.db.get(User, user_id)
        if user is None:
            raise DeliveryError(f"User {user_id} not found")

        if channel == NotificationChannel.email.value:
            if not user.email:
                raise DeliveryError("User has no email address")
            self.email_provider.send_email(to=user.email, subject=title, body=message)
        elif channel == NotificationChannel.sms.value:
            if self.sms_provider is None:
                raise DeliveryError("SMS provider not configured")
            if not user.phone:
                raise DeliveryError("User has no phone number")
            self.sms_provider.send_sms(to=user.phone, body=message)

    def list_for_user(self, user_id: str, unread_only: bool = False) -> List[Notification]:
        query = self.db.query(Notification).filter(Notification.user_id == user_id)
        if unread_only:
            query = query.filter(
                Notification.is_read == False,  # noqa: E712
                Notification.status == NotificationStatus.sent.value,
            )
        return query.order_by(Notification.created_at.desc()).all()

    def mark_as_read(self, notification_id: str, user_id: str) -> Notification:
        notification = self.db.query(Notification).filter(
            Notification.id == notification_id,
            Notification.user_id == user_id,
        ).first()

        if not notification:
            raise NotFound("Notification not found")

        if not notification.is_read:
            notification.is_read = True
            notification.read_at = utc_now()
            self.db.commit()

        return notification
