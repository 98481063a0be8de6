"""
Admissions Portal - Admin API
admissions/api/admin.py

Staff endpoints: application review, document verification, statistics,
audit logs, exports, settings and account deactivation.
"""

from io import BytesIO
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from admissions.api.deps import request_meta, require
from admissions.api.documents import download_response
from admissions.database import get_db
from admissions.schemas.application import (
    AdminApplicationDetail,
    AdminApplicationListItem,
    ApplicationResponse,
    DocumentResponse,
)
from admissions.schemas.auth import OwnerSummary, UserResponse
from admissions.schemas.common import Pagination, success_response
from admissions.schemas.notification import AuditLogResponse
from admissions.schemas.review import ReviewRequest, VerifyDocumentRequest
from admissions.services.access import Operation, Principal
from admissions.services.accounts import AccountService
from admissions.services.audit import RequestMeta
from admissions.services.documents import DocumentStore
from admissions.services.reports import ReportService, portal_settings
from admissions.services.review import ReviewService

router = APIRouter(prefix="/admin")


# ============================================================================
# APPLICATIONS
# ============================================================================

@router.get("/applications")
async def list_applications(
    status: Optional[str] = None,
    program: Optional[str] = None,
    settlement_site: Optional[str] = None,
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    principal: Principal = Depends(require(Operation.list_applications)),
    db: Session = Depends(get_db),
):
    applications, total = ReviewService(db).list_applications(
        status=status,
        program=program,
        settlement_site=settlement_site,
        search=search,
        page=page,
        limit=limit,
    )
    data = [
        AdminApplicationListItem.model_validate(app).model_dump(mode="json")
        for app in applications
    ]
    return success_response(
        data,
        count=len(data),
        pagination=Pagination.build(page, limit, total).model_dump(),
    )


@router.get("/applications/{application_id}")
async def application_details(
    application_id: str,
    principal: Principal = Depends(require(Operation.view_any_application)),
    db: Session = Depends(get_db),
):
    application = ReviewService(db).application_details(application_id)
    return success_response(AdminApplicationDetail.model_validate(application).model_dump(mode="json"))


@router.put("/applications/{application_id}/review")
def review_application(
    application_id: str,
    data: ReviewRequest,
    principal: Principal = Depends(require(Operation.review_application)),
    db: Session = Depends(get_db),
    meta: RequestMeta = Depends(request_meta),
):
    # Sync handler: the applicant notification blocks on SMTP or Twilio
    application = ReviewService(db, meta).review(
        application_id,
        principal.user_id,
        status=data.status,
        comments=data.comments,
        rejection_reason=data.rejection_reason,
    )
    return success_response(
        ApplicationResponse.model_validate(application).model_dump(mode="json"),
        message=f"Application {application.status}",
    )


@router.put("/applications/{application_id}/documents/{document_id}/verify")
async def verify_document(
    application_id: str,
    document_id: str,
    data: VerifyDocumentRequest,
    principal: Principal = Depends(require(Operation.verify_document)),
    db: Session = Depends(get_db),
    meta: RequestMeta = Depends(request_meta),
):
    document = ReviewService(db, meta).verify_document(
        application_id,
        document_id,
        principal.user_id,
        verified=data.verified,
        comments=data.comments,
    )
    return success_response(DocumentResponse.model_validate(document).model_dump(mode="json"))


@router.get("/applications/{application_id}/documents/{document_id}/download")
async def download_document(
    application_id: str,
    document_id: str,
    principal: Principal = Depends(require(Operation.download_any_document)),
    db: Session = Depends(get_db),
):
    document = DocumentStore(db).open_for_download(application_id, document_id, principal)
    return download_response(document)


# ============================================================================
# REPORTS
# ============================================================================

@router.get("/stats")
async def stats(
    principal: Principal = Depends(require(Operation.view_stats)),
    db: Session = Depends(get_db),
):
    data = ReportService(db).stats()
    data["recent_applications"] = [
        {
            **ApplicationResponse.model_validate(app).model_dump(mode="json"),
            "user": OwnerSummary.model_validate(app.user).model_dump(mode="json"),
        }
        for app in data["recent_applications"]
    ]
    return success_response(data)


@router.get("/audit-logs")
async def audit_logs(
    action: Optional[str] = None,
    resource_type: Optional[str] = None,
    user_id: Optional[str] = None,
    resource_id: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    principal: Principal = Depends(require(Operation.view_audit_logs)),
    db: Session = Depends(get_db),
):
    entries, total = ReportService(db).audit_logs(
        action=action,
        resource_type=resource_type,
        user_id=user_id,
        resource_id=resource_id,
        page=page,
        limit=limit,
    )
    data = [AuditLogResponse.model_validate(entry).model_dump(mode="json") for entry in entries]
    return success_response(
        data,
        count=len(data),
        pagination=Pagination.build(page, limit, total).model_dump(),
    )


@router.get("/export")
async def export_applications(
    export_format: str = Query("csv", alias="format"),
    status: Optional[str] = None,
    program: Optional[str] = None,
    settlement_site: Optional[str] = None,
    principal: Principal = Depends(require(Operation.export_applications)),
    db: Session = Depends(get_db),
    meta: RequestMeta = Depends(request_meta),
):
    export = ReportService(db, meta).export(
        principal.user_id,
        export_format=export_format,
        status=status,
        program=program,
        settlement_site=settlement_site,
    )
    return StreamingResponse(
        BytesIO(export.content),
        media_type=export.media_type,
        headers={"Content-Disposition": f"attachment; filename={export.filename}"},
    )


@router.get("/settings")
async def read_settings(
    principal: Principal = Depends(require(Operation.view_settings)),
):
    return success_response(portal_settings())


# ============================================================================
# USERS
# ============================================================================

@router.put("/users/{user_id}/deactivate")
async def deactivate_user(
    user_id: str,
    principal: Principal = Depends(require(Operation.manage_users)),
    db: Session = Depends(get_db),
    meta: RequestMeta = Depends(request_meta),
):
    user = AccountService(db, meta).deactivate(user_id, principal.user_id)
    return success_response(
        UserResponse.model_validate(user).model_dump(mode="json"),
        message="User deactivated",
    )
