"""
Admissions Portal - Documents API
admissions/api/documents.py

Multipart uploads and streamed downloads for application documents.
"""

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session

from admissions.api.deps import request_meta, require
from admissions.database import get_db
from admissions.models import DocumentType
from admissions.schemas.application import DocumentMetadata, DocumentResponse
from admissions.schemas.common import success_response
from admissions.services.access import Operation, Principal
from admissions.services.audit import RequestMeta
from admissions.services.documents import DocumentStore

router = APIRouter(prefix="/documents")

owner = require(Operation.manage_own_applications)


def download_response(document) -> FileResponse:
    return FileResponse(
        document.file_path,
        media_type=document.mime_type or "application/octet-stream",
        filename=document.download_name,
    )


@router.get("/{application_id}")
async def list_documents(
    application_id: str,
    principal: Principal = Depends(owner),
    db: Session = Depends(get_db),
):
    documents = DocumentStore(db).list(application_id, principal)
    data = [DocumentResponse.model_validate(doc).model_dump(mode="json") for doc in documents]
    return success_response(data, count=len(data))


@router.post("/{application_id}", status_code=status.HTTP_201_CREATED)
def upload_document(
    application_id: str,
    file: UploadFile = File(...),
    name: str = Form(...),
    document_type: DocumentType = Form(..., alias="type"),
    institution: Optional[str] = Form(None),
    principal: Principal = Depends(owner),
    db: Session = Depends(get_db),
    meta: RequestMeta = Depends(request_meta),
):
    # Sync handler: the upload is streamed to disk with blocking reads
    metadata = DocumentMetadata(name=name, type=document_type, institution=institution)
    document = DocumentStore(db, meta).upload(
        application_id,
        principal.user_id,
        file.file,
        file.filename,
        file.content_type,
        metadata,
    )
    return success_response(
        DocumentResponse.model_validate(document).model_dump(mode="json"),
        message="Document uploaded successfully",
    )


@router.get("/{application_id}/{document_id}")
async def get_document(
    application_id: str,
    document_id: str,
    principal: Principal = Depends(owner),
    db: Session = Depends(get_db),
):
    document = DocumentStore(db).get(application_id, document_id, principal)
    return success_response(DocumentResponse.model_validate(document).model_dump(mode="json"))


@router.get("/{application_id}/{document_id}/download")
async def download_document(
    application_id: str,
    document_id: str,
    principal: Principal = Depends(owner),
    db: Session = Depends(get_db),
):
    document = DocumentStore(db).open_for_download(application_id, document_id, principal)
    return download_response(document)


@router.delete("/{application_id}/{document_id}")
async def delete_document(
    application_id: str,
    document_id: str,
    principal: Principal = Depends(owner),
    db: Session = Depends(get_db),
    meta: RequestMeta = Depends(request_meta),
):
    DocumentStore(db, meta).delete(application_id, document_id, principal.user_id)
    return success_response(message="Document deleted successfully")
