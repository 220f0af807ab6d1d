"""
Consent form workflow for grant applications.

Endpoints:
- GET /api/download-template/{template_id} - Download a blank template
- POST /api/fill-consent-pdf - Fill the consent template for preview or download
- POST /api/digital-signature/{application_id} - Persist the signed consent form
"""
import asyncio
import logging
from typing import Annotated
from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.ext.asyncio import AsyncSession
from grant_portal.core.config import settings
from grant_portal.core.db import get_db
from grant_portal.deps import CurrentUser, get_owned_application
from grant_portal.models.enums import ApplicationStatus
from grant_portal.schemas.application import GrantApplicationRead
from grant_portal.schemas.common import DataResponse
from grant_portal.schemas.consent import FillConsentRequest, DigitalSignatureSubmit
from grant_portal.services.pdf_service import pdf_service, PDFServiceError, SignatureDecodeError
from grant_portal.services.progress import refresh_progress
from grant_portal.services.templates import template_service, TemplateNotFoundError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Consent"])


@router.get("/download-template/{template_id}")
async def download_template(template_id: str, user: CurrentUser):
    """Download a blank template as an attachment."""
    try:
        asset = await asyncio.to_thread(template_service.get, template_id)
    except TemplateNotFoundError:
        raise HTTPException(status_code=404, detail="Template not found")
    except OSError as e:
        logger.error(f"Failed to load template {template_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to load template")

    return Response(
        content=asset.content,
        media_type=asset.media_type,
        headers={"Content-Disposition": f'attachment; filename="{asset.filename}"'},
    )


@router.post("/fill-consent-pdf")
async def fill_consent_pdf(data: FillConsentRequest, user: CurrentUser):
    """
    Fill the consent template with the applicant's details.

    Used both for the preview (signature may be absent) and for the final
    download after completion. Nothing is stored.
    """
    try:
        template = await asyncio.to_thread(template_service.get, settings.CONSENT_TEMPLATE_ID)
        filled = await asyncio.to_thread(
            pdf_service.fill_consent_form,
            template.content,
            data,
            data.signature,
        )
    except SignatureDecodeError as e:
        raise HTTPException(status_code=400, detail=f"Invalid signature: {e}")
    except (PDFServiceError, OSError) as e:
        logger.error(f"Consent PDF fill failed for user {user.id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to fill consent form")

    return Response(
        content=filled,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{settings.FILLED_PDF_FILENAME}"'},
    )


@router.post("/digital-signature/{application_id}", response_model=DataResponse[GrantApplicationRead])
async def submit_digital_signature(
    application_id: int,
    data: DigitalSignatureSubmit,
    user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """
    Store the consent form signature and mark the consent section complete.

    Workflow:
    1. Check the application exists and belongs to the caller
    2. Decode the signature to make sure it is a real image
    3. Save signature and consent details (a later completion overwrites them)
    4. Mark consent complete, recalculate progress, leave draft status
    """
    application = await get_owned_application(db, application_id, user)

    try:
        pdf_service.decode_signature(data.signature)
    except SignatureDecodeError as e:
        raise HTTPException(status_code=422, detail=f"Invalid signature: {e}")

    try:
        application.digital_signature = data.signature
        application.consent_name = data.name
        application.consent_address = data.address
        application.consent_farm_code = data.farm_code
        application.consent_email = data.email
        application.consent_form_completed = True
        refresh_progress(application)
        if application.status == ApplicationStatus.DRAFT:
            application.status = ApplicationStatus.IN_PROGRESS

        await db.commit()
        await db.refresh(application)
    except Exception as e:
        await db.rollback()
        logger.error(f"Failed to save consent form for application {application_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to save digital signature")

    logger.info(f"Consent form completed for application {application.public_id}")
    return DataResponse(data=GrantApplicationRead.model_validate(application), message="Consent form completed")
