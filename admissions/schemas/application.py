"""
Pydantic schemas for applications, education records and documents
"""

from pydantic import BaseModel, Field, validator
from typing import Optional, List
from datetime import date, datetime

from admissions.models.application import ALL_STEPS
from admissions.models.education import InstitutionType
from admissions.models.document import DocumentType
from admissions.schemas.auth import OwnerSummary, UserResponse


class ApplicationBase(BaseModel):
    program: Optional[str] = Field(None, max_length=200)
    department: Optional[str] = Field(None, max_length=200)
    academic_year: Optional[str] = Field(None, max_length=20)
    semester: Optional[str] = Field(None, max_length=20)
    disability_status: Optional[bool] = None
    disability_type: Optional[str] = Field(None, max_length=200)
    emergency_contact_name: Optional[str] = Field(None, max_length=200)
    emergency_contact_phone: Optional[str] = Field(None, max_length=20)
    emergency_contact_relationship: Optional[str] = Field(None, max_length=100)


class ApplicationCreate(ApplicationBase):
    """Initial fields of a new draft"""
    pass


class ApplicationUpdate(ApplicationBase):
    """
    Partial update of a draft.

    Only the keys present in the request body are applied.
    """
    current_step: Optional[int] = Field(None, ge=1, le=len(ALL_STEPS))
    completed_steps: Optional[List[int]] = None

    @validator('completed_steps')
    def validate_completed_steps(cls, v):
        if v is None:
            return v
        invalid = [step for step in v if step not in ALL_STEPS]
        if invalid:
            raise ValueError(f'Unknown steps: {invalid}')
        return sorted(set(v))


class EducationBase(BaseModel):
    institution_name: Optional[str] = Field(None, min_length=1, max_length=200)
    institution_type: Optional[InstitutionType] = None
    country: Optional[str] = Field(None, max_length=100)
    city: Optional[str] = Field(None, max_length=100)
    degree: Optional[str] = Field(None, max_length=200)
    field_of_study: Optional[str] = Field(None, max_length=200)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    is_currently_studying: Optional[bool] = None
    grade: Optional[str] = Field(None, max_length=50)
    description: Optional[str] = None


class EducationCreate(EducationBase):
    institution_name: str = Field(..., min_length=1, max_length=200)
    institution_type: InstitutionType

    @validator('end_date')
    def validate_date_range(cls, v, values):
        start = values.get('start_date')
        if v and start and v < start:
            raise ValueError('End date cannot be before start date')
        return v


class EducationUpdate(EducationBase):
    pass


class EducationResponse(BaseModel):
    id: str
    application_id: str
    institution_name: str
    institution_type: str
    country: Optional[str] = None
    city: Optional[str] = None
    degree: Optional[str] = None
    field_of_study: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    is_currently_studying: bool
    grade: Optional[str] = None
    description: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class DocumentMetadata(BaseModel):
    """Form fields sent alongside an uploaded file"""
    name: str = Field(..., min_length=1, max_length=200)
    type: DocumentType
    institution: Optional[str] = Field(None, max_length=200)


class DocumentResponse(BaseModel):
    """Document view; the stored file path is never exposed"""
    id: str
    application_id: str
    name: str
    type: str
    institution: Optional[str] = None
    upload_date: datetime
    file_size: Optional[int] = None
    mime_type: Optional[str] = None
    verified: bool
    verified_by: Optional[str] = None
    verified_at: Optional[datetime] = None
    comments: Optional[str] = None

    class Config:
        from_attributes = True


class ApplicationResponse(BaseModel):
    id: str
    application_number: str
    user_id: str
    status: str
    current_step: int
    completed_steps: List[int]
    program: Optional[str] = None
    department: Optional[str] = None
    academic_year: Optional[str] = None
    semester: Optional[str] = None
    disability_status: bool
    disability_type: Optional[str] = None
    emergency_contact_name: Optional[str] = None
    emergency_contact_phone: Optional[str] = None
    emergency_contact_relationship: Optional[str] = None
    submitted_at: Optional[datetime] = None
    reviewed_at: Optional[datetime] = None
    reviewed_by: Optional[str] = None
    comments: Optional[str] = None
    rejection_reason: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ApplicationDetail(ApplicationResponse):
    educations: List[EducationResponse] = []
    documents: List[DocumentResponse] = []


class ApplicationStatusResponse(BaseModel):
    id: str
    application_number: str
    status: str
    submitted_at: Optional[datetime] = None
    reviewed_at: Optional[datetime] = None
    comments: Optional[str] = None
    rejection_reason: Optional[str] = None

    class Config:
        from_attributes = True


class AdminApplicationListItem(ApplicationResponse):
    user: OwnerSummary


class AdminApplicationDetail(ApplicationDetail):
    user: UserResponse
