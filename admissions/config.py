import logging
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    """
    Admissions portal configuration
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # ==============================================
    # APPLICATION
    # ==============================================
    app_name: str = "Admissions Portal"
    environment: str = "development"
    debug: bool = False
    port: int = 5000
    log_level: str = "INFO"

    # ==============================================
    # DATABASE
    # ==============================================
    database_url: str = "sqlite:///./admissions.db"

    # ==============================================
    # SESSIONS / SECURITY
    # ==============================================
    session_expire_hours: int = 24
    bcrypt_rounds: int = 12
    password_reset_expire_minutes: int = 10

    # Bootstrap admin account created by the seed step
    admin_email: str = "admin@bishopstuart.ac.ug"
    admin_password: Optional[str] = None

    # ==============================================
    # FILES
    # ==============================================
    upload_dir: str = "./uploads"
    max_upload_size_mb: int = 5
    allowed_extensions: list = [".jpeg", ".jpg", ".png", ".gif", ".pdf", ".doc", ".docx"]
    allowed_mime_types: list = [
        "image/jpeg",
        "image/jpg",
        "image/png",
        "image/gif",
        "application/pdf",
        "application/msword",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ]

    # ==============================================
    # APPLICATIONS
    # ==============================================
    application_number_prefix: str = "BSU"
    timezone: str = "Africa/Kampala"
    status_notification_channel: str = "email"

    # ==============================================
    # EMAIL (SMTP)
    # ==============================================
    smtp_host: Optional[str] = None
    smtp_port: int = 587
    smtp_user: Optional[str] = None
    smtp_password: Optional[str] = None
    smtp_from: Optional[str] = None

    # ==============================================
    # SMS (Twilio)
    # ==============================================
    twilio_account_sid: Optional[str] = None
    twilio_auth_token: Optional[str] = None
    twilio_phone_number: Optional[str] = None
    twilio_timeout: int = 10

    # ==============================================
    # CORS
    # ==============================================
    allowed_origins: list = ["http://localhost:3000", "http://localhost:5173"]

    @property
    def max_upload_size_bytes(self) -> int:
        return self.max_upload_size_mb * 1024 * 1024

    @property
    def sqlalchemy_database_url(self) -> str:
        # Heroku/Railway style URLs still use the old scheme
        url = self.database_url
        if url.startswith("postgres://"):
            url = url.replace("postgres://", "postgresql://", 1)
        return url

    @property
    def twilio_configured(self) -> bool:
        return bool(
            self.twilio_account_sid
            and self.twilio_auth_token
            and self.twilio_phone_number
            and self.twilio_account_sid.startswith("AC")
        )


@lru_cache()
def get_settings() -> Settings:
    """
    Cached settings singleton
    """
    return Settings()


def print_settings_summary():
    """
    Logs a summary of the active configuration at startup
    """
    logger = logging.getLogger(__name__)
    settings = get_settings()

    db_url = settings.sqlalchemy_database_url
    masked_url = db_url.split('@')[1] if '@' in db_url else db_url

    logger.info(f"⚙️  {settings.app_name} ({settings.environment}, debug={settings.debug})")
    logger.info(f"💾 Database: {masked_url}")
    logger.info(f"📁 Upload dir: {settings.upload_dir} (max {settings.max_upload_size_mb}MB)")

    if not settings.smtp_host:
        logger.warning("⚠️ SMTP_HOST not configured - emails will only be logged")
    if not settings.twilio_configured:
        logger.warning("⚠️ Invalid or missing Twilio credentials - SMS notifications disabled")


# Global instance
settings = get_settings()
