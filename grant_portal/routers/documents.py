"""
Supporting document uploads for grant applications.

Files go to AWS S3 when configured, otherwise to the local upload directory.
Uploading a land declaration or supporting document completes that section.
"""
import asyncio
import logging
from typing import Annotated
from fastapi import APIRouter, Depends, HTTPException, UploadFile, File, Form
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from grant_portal.core.config import settings
from grant_portal.core.db import get_db
from grant_portal.deps import CurrentUser, get_owned_application
from grant_portal.models.domain import Document
from grant_portal.models.enums import ApplicationStatus, DocumentType
from grant_portal.schemas.common import DataResponse
from grant_portal.schemas.document import DocumentRead
from grant_portal.services.file_upload import FileStorage, get_file_storage, validate_upload, FileUploadError
from grant_portal.services.progress import refresh_progress

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/documents", tags=["Documents"])

SECTION_FOR_DOCUMENT = {
    DocumentType.LAND_DECLARATION.value: "land_declaration_completed",
    DocumentType.SUPPORTING_DOC.value: "supporting_docs_completed",
}


@router.post("", response_model=DataResponse[DocumentRead], status_code=201)
async def upload_document(
    user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
    storage: Annotated[FileStorage, Depends(get_file_storage)],
    file: UploadFile = File(..., description="Document file (image, PDF, CSV or Office document)"),
    application_id: int = Form(..., alias="applicationId"),
    document_type: str = Form(..., alias="documentType"),
):
    """
    Upload a document and attach it to an application.

    Supported file types: PNG, JPG, JPEG, PDF, DOC, DOCX, XLS, XLSX, CSV.
    Maximum size: MAX_UPLOAD_MB (10MB by default).
    """
    application = await get_owned_application(db, application_id, user)

    content = await file.read()
    filename = file.filename or "upload"
    try:
        validate_upload(filename, len(content), settings.MAX_UPLOAD_MB * 1024 * 1024)
        file_path = await asyncio.to_thread(
            storage.save,
            content,
            filename,
            file.content_type,
            f"applications/{application.id}",
        )
    except FileUploadError as e:
        raise HTTPException(status_code=400, detail=str(e))

    document = Document(
        application_id=application.id,
        file_name=filename,
        file_type=file.content_type or "application/octet-stream",
        file_size=len(content),
        file_path=file_path,
        document_type=document_type,
    )
    db.add(document)

    section = SECTION_FOR_DOCUMENT.get(document_type)
    if section:
        setattr(application, section, True)
        refresh_progress(application)
    if application.status == ApplicationStatus.DRAFT:
        application.status = ApplicationStatus.IN_PROGRESS

    try:
        await db.commit()
        await db.refresh(document)
    except Exception as e:
        await db.rollback()
        await asyncio.to_thread(storage.delete, file_path)
        logger.error(f"Failed to save document record for application {application.id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to save document")

    logger.info(f"Stored {document_type} document {document.id} for application {application.public_id}")
    return DataResponse(data=DocumentRead.model_validate(document), message="File uploaded successfully")


@router.get("/{application_id}", response_model=DataResponse[list[DocumentRead]])
async def get_documents(
    application_id: int,
    user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    await get_owned_application(db, application_id, user)

    result = await db.execute(
        select(Document)
        .where(Document.application_id == application_id)
        .order_by(Document.uploaded_at.desc(), Document.id.desc())
    )
    documents = result.scalars().all()
    return DataResponse(data=[DocumentRead.model_validate(d) for d in documents])


@router.delete("/{document_id}", response_model=DataResponse[None])
async def delete_document(
    document_id: int,
    user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
    storage: Annotated[FileStorage, Depends(get_file_storage)],
):
    document = await db.get(Document, document_id)
    if document is None:
        raise HTTPException(status_code=404, detail="Document not found")
    await get_owned_application(db, document.application_id, user)

    file_path = document.file_path
    await db.delete(document)
    await db.commit()

    if not await asyncio.to_thread(storage.delete, file_path):
        logger.warning(f"Stored file for document {document_id} was not removed: {file_path}")

    return DataResponse(data=None, message="Document deleted")
