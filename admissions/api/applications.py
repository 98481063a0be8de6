"""
Admissions Portal - Applications API
admissions/api/applications.py

Applicant-facing endpoints for the application wizard.
"""

from typing import Optional

from fastapi import APIRouter, Body, Depends, status
from sqlalchemy.orm import Session

from admissions.api.deps import request_meta, require
from admissions.database import get_db
from admissions.schemas.application import (
    ApplicationCreate,
    ApplicationDetail,
    ApplicationResponse,
    ApplicationStatusResponse,
    ApplicationUpdate,
    EducationCreate,
    EducationResponse,
    EducationUpdate,
)
from admissions.schemas.common import success_response
from admissions.services.access import Operation, Principal
from admissions.services.applications import ApplicationService
from admissions.services.audit import RequestMeta

router = APIRouter(prefix="/applications")

owner = require(Operation.manage_own_applications)


def _dump(schema, obj) -> dict:
    return schema.model_validate(obj).model_dump(mode="json")


@router.get("")
async def list_applications(
    principal: Principal = Depends(owner),
    db: Session = Depends(get_db),
):
    applications = ApplicationService(db).list_for_owner(principal.user_id)
    data = [_dump(ApplicationResponse, app) for app in applications]
    return success_response(data, count=len(data))


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_application(
    data: Optional[ApplicationCreate] = Body(None),
    principal: Principal = Depends(owner),
    db: Session = Depends(get_db),
    meta: RequestMeta = Depends(request_meta),
):
    application = ApplicationService(db, meta).create(principal.user_id, data)
    return success_response(_dump(ApplicationResponse, application))


@router.get("/{application_id}")
async def get_application(
    application_id: str,
    principal: Principal = Depends(owner),
    db: Session = Depends(get_db),
):
    application = ApplicationService(db).get(application_id, principal.user_id)
    return success_response(_dump(ApplicationDetail, application))


@router.put("/{application_id}")
async def update_application(
    application_id: str,
    data: ApplicationUpdate,
    principal: Principal = Depends(owner),
    db: Session = Depends(get_db),
    meta: RequestMeta = Depends(request_meta),
):
    application = ApplicationService(db, meta).update(application_id, principal.user_id, data)
    return success_response(_dump(ApplicationResponse, application))


@router.delete("/{application_id}")
async def delete_application(
    application_id: str,
    principal: Principal = Depends(owner),
    db: Session = Depends(get_db),
    meta: RequestMeta = Depends(request_meta),
):
    ApplicationService(db, meta).delete(application_id, principal.user_id)
    return success_response(message="Application deleted successfully")


@router.get("/{application_id}/status")
async def application_status(
    application_id: str,
    principal: Principal = Depends(owner),
    db: Session = Depends(get_db),
):
    application = ApplicationService(db).status(application_id, principal.user_id)
    return success_response(_dump(ApplicationStatusResponse, application))


@router.post("/{application_id}/submit")
def submit_application(
    application_id: str,
    principal: Principal = Depends(owner),
    db: Session = Depends(get_db),
    meta: RequestMeta = Depends(request_meta),
):
    # Sync handler: the confirmation email blocks on SMTP
    application = ApplicationService(db, meta).submit(application_id, principal.user_id)
    return success_response(
        _dump(ApplicationResponse, application),
        message="Application submitted successfully",
    )


# ============================================================================
# EDUCATION
# ============================================================================

@router.post("/{application_id}/education", status_code=status.HTTP_201_CREATED)
async def add_education(
    application_id: str,
    data: EducationCreate,
    principal: Principal = Depends(owner),
    db: Session = Depends(get_db),
    meta: RequestMeta = Depends(request_meta),
):
    education = ApplicationService(db, meta).add_education(application_id, principal.user_id, data)
    return success_response(_dump(EducationResponse, education))


@router.put("/{application_id}/education/{education_id}")
async def update_education(
    application_id: str,
    education_id: str,
    data: EducationUpdate,
    principal: Principal = Depends(owner),
    db: Session = Depends(get_db),
    meta: RequestMeta = Depends(request_meta),
):
    education = ApplicationService(db, meta).update_education(
        application_id, education_id, principal.user_id, data
    )
    return success_response(_dump(EducationResponse, education))


@router.delete("/{application_id}/education/{education_id}")
async def delete_education(
    application_id: str,
    education_id: str,
    principal: Principal = Depends(owner),
    db: Session = Depends(get_db),
    meta: RequestMeta = Depends(request_meta),
):
    ApplicationService(db, meta).remove_education(application_id, education_id, principal.user_id)
    return success_response(message="Education record removed")
