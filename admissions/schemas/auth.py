"""
Pydantic schemas for accounts and sessions
"""

from pydantic import BaseModel, Field, EmailStr, validator
from typing import Optional, List
from datetime import date, datetime
import re

from admissions.models.user import SettlementSite, PreferredLanguage, Gender

PHONE_PATTERN = re.compile(r"^\+\d{10,15}$")


def _validate_phone(v):
    if v and not PHONE_PATTERN.match(v):
        raise ValueError('Phone must start with + followed by 10 to 15 digits')
    return v


class RegisterRequest(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)
    phone: Optional[str] = Field(None, max_length=20)
    settlement_site: SettlementSite = SettlementSite.none
    preferred_language: PreferredLanguage = PreferredLanguage.english

    @validator('phone')
    def validate_phone(cls, v):
        return _validate_phone(v)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    token: str = Field(..., min_length=1)
    password: str = Field(..., min_length=6, max_length=128)


class ProfileUpdate(BaseModel):
    """Partial profile update; email, roles and flags are not editable here"""
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    phone: Optional[str] = Field(None, max_length=20)
    gender: Optional[Gender] = None
    date_of_birth: Optional[date] = None
    nationality: Optional[str] = Field(None, max_length=100)
    address: Optional[str] = Field(None, max_length=255)
    city: Optional[str] = Field(None, max_length=100)
    state: Optional[str] = Field(None, max_length=100)
    country: Optional[str] = Field(None, max_length=100)
    postal_code: Optional[str] = Field(None, max_length=20)
    preferred_language: Optional[PreferredLanguage] = None

    @validator('phone')
    def validate_phone(cls, v):
        return _validate_phone(v)


class UserResponse(BaseModel):
    """Public view of a user; never includes password or reset token"""
    id: str
    first_name: str
    last_name: str
    email: str
    phone: Optional[str] = None
    gender: Optional[str] = None
    date_of_birth: Optional[date] = None
    nationality: Optional[str] = None
    settlement_site: str
    refugee_id: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    postal_code: Optional[str] = None
    preferred_language: str
    roles: List[str] = Field(default_factory=list, validation_alias="role_names")
    is_active: bool
    is_verified: bool
    last_login_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True
        populate_by_name = True


class OwnerSummary(BaseModel):
    """Owner fields joined into admin listings"""
    id: str
    first_name: str
    last_name: str
    email: str
    phone: Optional[str] = None
    settlement_site: str

    class Config:
        from_attributes = True
