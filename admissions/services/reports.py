"""
Admissions Portal - Reports
admissions/services/reports.py

Dashboard statistics, audit log browsing and application exports.
Exports are built with pandas and written as CSV or, through openpyxl, XLSX.
"""

from dataclasses import dataclass
from datetime import timedelta
from io import BytesIO
from typing import List, Optional, Tuple
import logging

import pandas as pd
from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from admissions.config import settings
from admissions.core.exceptions import ValidationError
from admissions.models import Application, ApplicationStatus, AuditLog, SettlementSite, User
from admissions.services.audit import AuditLogger, RequestMeta
from admissions.utils.dates import format_local, utc_now

logger = logging.getLogger(__name__)

REPORTED_SITES = [SettlementSite.rwamwanja.value, SettlementSite.kyangwali.value, SettlementSite.nakivale.value]

EXPORT_COLUMNS = [
    "Application Number",
    "Status",
    "First Name",
    "Last Name",
    "Email",
    "Phone",
    "Gender",
    "Date of Birth",
    "Nationality",
    "Settlement Site",
    "Refugee ID",
    "Program",
    "Department",
    "Academic Year",
    "Semester",
    "Disability Status",
    "Disability Type",
    "Submitted At",
    "Reviewed At",
]

EXPORT_FORMATS = {
    "csv": "text/csv",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
}


@dataclass
class ExportFile:
    content: bytes
    media_type: str
    filename: str
    row_count: int


def export_row(application: Application) -> dict:
    user = application.user
    return {
        "Application Number": application.application_number,
        "Status": application.status,
        "First Name": user.first_name,
        "Last Name": user.last_name,
        "Email": user.email,
        "Phone": user.phone or "",
        "Gender": user.gender or "",
        "Date of Birth": user.date_of_birth.isoformat() if user.date_of_birth else "",
        "Nationality": user.nationality or "",
        "Settlement Site": user.settlement_site or "",
        "Refugee ID": user.refugee_id or "",
        "Program": application.program or "",
        "Department": application.department or "",
        "Academic Year": application.academic_year or "",
        "Semester": application.semester or "",
        "Disability Status": "Yes" if application.disability_status else "No",
        "Disability Type": application.disability_type or "",
        "Submitted At": format_local(application.submitted_at),
        "Reviewed At": format_local(application.reviewed_at),
    }


class ReportService:

    def __init__(self, db: Session, meta: Optional[RequestMeta] = None):
        self.db = db
        self.meta = meta or RequestMeta()

    def stats(self) -> dict:
        total = self.db.query(func.count(Application.id)).scalar() or 0

        by_status = {status.value: 0 for status in ApplicationStatus}
        for status, count in (
            self.db.query(Application.status, func.count(Application.id))
            .group_by(Application.status)
            .all()
        ):
            by_status[status] = count

        by_site = {site: 0 for site in REPORTED_SITES}
        for site, count in (
            self.db.query(User.settlement_site, func.count(Application.id))
            .join(Application, Application.user_id == User.id)
            .filter(User.settlement_site.in_(REPORTED_SITES))
            .group_by(User.settlement_site)
            .all()
        ):
            by_site[site] = count

        recent_count = (
            self.db.query(func.count(Application.id))
            .filter(Application.created_at >= utc_now() - timedelta(days=30))
            .scalar()
        ) or 0

        recent = (
            self.db.query(Application)
            .options(joinedload(Application.user))
            .order_by(Application.created_at.desc())
            .limit(5)
            .all()
        )

        return {
            "total_applications": total,
            "by_status": by_status,
            "by_settlement_site": by_site,
            "last_30_days": recent_count,
            "recent_applications": recent,
        }

    def audit_logs(
        self,
        action: Optional[str] = None,
        resource_type: Optional[str] = None,
        user_id: Optional[str] = None,
        resource_id: Optional[str] = None,
        page: int = 1,
        limit: int = 20,
    ) -> Tuple[List[AuditLog], int]:
        page = max(page, 1)
        limit = min(max(limit, 1), 100)

        query = self.db.query(AuditLog)
        if action:
            query = query.filter(AuditLog.action == action)
        if resource_type:
            query = query.filter(AuditLog.resource_type == resource_type)
        if user_id:
            query = query.filter(AuditLog.user_id == user_id)
        if resource_id:
            query = query.filter(AuditLog.resource_id == resource_id)

        total = query.count()
        entries = (
            query.order_by(AuditLog.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return entries, total

    def export(
        self,
        actor_id: str,
        export_format: str = "csv",
        status: Optional[str] = None,
        program: Optional[str] = None,
        settlement_site: Optional[str] = None,
    ) -> ExportFile:
        export_format = (export_format or "csv").lower()
        if export_format not in EXPORT_FORMATS:
            raise ValidationError(
                "Unsupported export format",
                details={"allowed": sorted(EXPORT_FORMATS)},
            )

        query = (
            self.db.query(Application)
            .join(User, Application.user_id == User.id)
            .options(joinedload(Application.user))
        )
        if status:
            query = query.filter(Application.status == status)
        if program:
            query = query.filter(Application.program == program)
        if settlement_site:
            query = query.filter(User.settlement_site == settlement_site)

        applications = query.order_by(Application.created_at.desc()).all()
        df = pd.DataFrame([export_row(app) for app in applications], columns=EXPORT_COLUMNS)

        if export_format == "xlsx":
            output = BytesIO()
            with pd.ExcelWriter(output, engine="openpyxl") as writer:
                df.to_excel(writer, index=False, sheet_name="Applications")
            content = output.getvalue()
        else:
            content = df.to_csv(index=False).encode("utf-8")

        timestamp = format_local(utc_now(), "%Y%m%d_%H%M%S")
        AuditLogger(self.db).record(
            actor_id=actor_id,
            action="EXPORT_APPLICATIONS",
            resource_type="Application",
            description=f"Exported {len(applications)} applications as {export_format}",
            meta=self.meta,
            new_values={"status": status, "program": program, "settlement_site": settlement_site},
        )
        self.db.commit()

        logger.info(f"📊 Exported {len(applications)} applications ({export_format})")
        return ExportFile(
            content=content,
            media_type=EXPORT_FORMATS[export_format],
            filename=f"applications_{timestamp}.{export_format}",
            row_count=len(applications),
        )


def portal_settings() -> dict:
    """Read-only view of the configuration applicants and staff depend on"""
    return {
        "app_name": settings.app_name,
        "max_upload_size_mb": settings.max_upload_size_mb,
        "allowed_extensions": list(settings.allowed_extensions),
        "allowed_mime_types": list(settings.allowed_mime_types),
        "timezone": settings.timezone,
        "status_notification_channel": settings.status_notification_channel,
        "application_number_prefix": settings.application_number_prefix,
        "session_expire_hours": settings.session_expire_hours,
        "sms_enabled": settings.twilio_configured,
    }
