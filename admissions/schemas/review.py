"""
Schemas for reviewer actions
"""

from pydantic import BaseModel, Field
from typing import Optional


class ReviewRequest(BaseModel):
    status: str = Field(..., description="under_review, approved, rejected or waitlisted")
    comments: Optional[str] = None
    rejection_reason: Optional[str] = None


class VerifyDocumentRequest(BaseModel):
    verified: bool
    comments: Optional[str] = None
