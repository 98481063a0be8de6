"""
Admissions Portal - Document Store
admissions/services/documents.py

Stores uploaded files on local disk next to a Document row.
Both the extension and the declared MIME type must be allowed before
anything is written, and the size ceiling is enforced while streaming.
"""

from pathlib import Path
from typing import BinaryIO, List, Optional
import logging

from sqlalchemy.orm import Session

from admissions.config import settings
from admissions.core.exceptions import NotFound, StorageError, ValidationError
from admissions.database import unit_of_work
from admissions.models import Application, Document
from admissions.models.application import STEP_DOCUMENTS, STEP_REVIEW
from admissions.schemas.application import DocumentMetadata
from admissions.services.access import Principal
from admissions.services.applications import load_application, load_editable
from admissions.services.audit import AuditLogger, RequestMeta
from admissions.utils.file_utils import remove_empty_dir, remove_file, save_upload

logger = logging.getLogger(__name__)


def validate_file_type(filename: Optional[str], content_type: Optional[str]) -> str:
    """
    Checks an upload against the allowed types.

    Returns:
        The lower-case extension including the dot
    """
    extension = Path(filename or "").suffix.lower()
    mime_type = (content_type or "").split(";")[0].strip().lower()

    if extension not in settings.allowed_extensions or mime_type not in settings.allowed_mime_types:
        raise ValidationError(
            "File type not supported. Allowed types: "
            + ", ".join(ext.lstrip(".") for ext in settings.allowed_extensions)
        )
    return extension


class DocumentStore:
    """Upload, listing, download and removal of application documents"""

    def __init__(self, db: Session, meta: Optional[RequestMeta] = None):
        self.db = db
        self.meta = meta or RequestMeta()
        self.audit = AuditLogger(db)

    def _readable(self, application_id: str, principal: Principal) -> Application:
        application = load_application(self.db, application_id)
        if application.user_id != principal.user_id and not principal.is_staff:
            raise NotFound("Application not found")
        return application

    def upload(
        self,
        application_id: str,
        caller_id: str,
        source: BinaryIO,
        filename: Optional[str],
        content_type: Optional[str],
        metadata: DocumentMetadata,
    ) -> Document:
        application = load_editable(self.db, application_id, caller_id)
        extension = validate_file_type(filename, content_type)

        try:
            file_path, size = save_upload(
                source, application.id, extension, settings.max_upload_size_bytes
            )
        except ValidationError:
            raise
        except OSError as e:
            logger.error(f"❌ Could not store upload for application {application.id}: {e}")
            raise StorageError("Could not store the uploaded file")

        try:
            with unit_of_work(self.db):
                document = Document(
                    application_id=application.id,
                    name=metadata.name,
                    type=metadata.type.value,
                    institution=metadata.institution,
                    file_path=file_path,
                    original_filename=Path(filename).name,
                    file_size=size,
                    mime_type=content_type.split(";")[0].strip().lower(),
                )
                self.db.add(document)
                application.mark_step_completed(STEP_DOCUMENTS, STEP_REVIEW)
                self.db.flush()

                self.audit.record(
                    actor_id=caller_id,
                    action="UPLOAD_DOCUMENT",
                    resource_type="Document",
                    resource_id=document.id,
                    description=f"Uploaded document: {document.name}",
                    meta=self.meta,
                )
        except Exception:
            remove_file(file_path)
            remove_empty_dir(Path(file_path).parent)
            raise

        logger.info(f"📎 Document {document.name} ({size} bytes) added to application {application.id}")
        return document

    def list(self, application_id: str, principal: Principal) -> List[Document]:
        application = self._readable(application_id, principal)
        return (
            self.db.query(Document)
            .filter(Document.application_id == application.id)
            .order_by(Document.upload_date.desc())
            .all()
        )

    def get(self, application_id: str, document_id: str, principal: Principal) -> Document:
        application = self._readable(application_id, principal)
        document = self.db.query(Document).filter(
            Document.id == document_id,
            Document.application_id == application.id,
        ).first()
        if not document:
            raise NotFound("Document not found")
        return document

    def open_for_download(self, application_id: str, document_id: str, principal: Principal) -> Document:
        """Resolves a document whose stored file still exists"""
        document = self.get(application_id, document_id, principal)
        if not Path(document.file_path).is_file():
            logger.error(f"❌ Stored file missing for document {document.id}: {document.file_path}")
            raise NotFound("Document file not found")
        return document

    def delete(self, application_id: str, document_id: str, caller_id: str):
        application = load_editable(self.db, application_id, caller_id)
        document = self.db.query(Document).filter(
            Document.id == document_id,
            Document.application_id == application.id,
        ).first()
        if not document:
            raise NotFound("Document not found")

        file_path = document.file_path

        with unit_of_work(self.db):
            self.db.delete(document)
            self.audit.record(
                actor_id=caller_id,
                action="DELETE_DOCUMENT",
                resource_type="Document",
                resource_id=document_id,
                description=f"Deleted document: {document.name}",
                meta=self.meta,
            )

        remove_file(file_path)
