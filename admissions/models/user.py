"""
User, Role and session models
Applicants, reviewers and administrators share one users table
"""

from sqlalchemy import Column, String, DateTime, Boolean, Date, ForeignKey, Table, Text
from sqlalchemy.orm import relationship
import enum
import uuid

from admissions.database import Base
from admissions.utils.dates import utc_now


class RoleName(str, enum.Enum):
    applicant = "applicant"
    admin = "admin"
    reviewer = "reviewer"


class SettlementSite(str, enum.Enum):
    rwamwanja = "Rwamwanja"
    kyangwali = "Kyangwali"
    nakivale = "Nakivale"
    other = "Other"
    none = "None"


class PreferredLanguage(str, enum.Enum):
    english = "english"
    swahili = "swahili"
    french = "french"
    arabic = "arabic"
    runyankole = "runyankole"


class Gender(str, enum.Enum):
    male = "male"
    female = "female"
    other = "other"
    prefer_not_to_say = "prefer not to say"


user_roles = Table(
    "user_roles",
    Base.metadata,
    Column("user_id", String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("role_id", String(36), ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
)


class Role(Base):
    __tablename__ = "roles"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(50), unique=True, nullable=False)
    description = Column(String(255))

    def __repr__(self):
        return f"<Role(name='{self.name}')>"


class User(Base):
    """
    A portal account

    Accounts are never purged: deactivation clears is_active and stamps deleted_at.
    """

    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(200), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)

    # Contact and personal information
    phone = Column(String(20))
    gender = Column(String(30))
    date_of_birth = Column(Date)
    nationality = Column(String(100))
    settlement_site = Column(String(30), default=SettlementSite.none.value, nullable=False, index=True)
    refugee_id = Column(String(100))
    address = Column(String(255))
    city = Column(String(100))
    state = Column(String(100))
    country = Column(String(100))
    postal_code = Column(String(20))
    preferred_language = Column(String(20), default=PreferredLanguage.english.value, nullable=False)

    # Status
    is_active = Column(Boolean, default=True, nullable=False)
    is_verified = Column(Boolean, default=False, nullable=False)

    # Password reset
    reset_password_token = Column(String(64), index=True)
    reset_password_expire = Column(DateTime)

    last_login_at = Column(DateTime)
    created_at = Column(DateTime, default=utc_now, nullable=False)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now)
    deleted_at = Column(DateTime)

    # Relationships
    roles = relationship("Role", secondary=user_roles, lazy="selectin")
    applications = relationship(
        "Application",
        back_populates="user",
        foreign_keys="[Application.user_id]",
        cascade="all, delete-orphan",
    )
    sessions = relationship("UserSession", back_populates="user", cascade="all, delete-orphan")
    notifications = relationship("Notification", back_populates="user", cascade="all, delete-orphan")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @property
    def role_names(self) -> list:
        return sorted(role.name for role in self.roles)

    def __repr__(self):
        return f"<User(email='{self.email}')>"


class UserSession(Base):
    """Bearer session; only the SHA-256 digest of the token is stored"""

    __tablename__ = "user_sessions"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    token_hash = Column(String(64), unique=True, nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    user_agent = Column(Text)
    expires_at = Column(DateTime, nullable=False)
    created_at = Column(DateTime, default=utc_now, nullable=False)

    user = relationship("User", back_populates="sessions")
