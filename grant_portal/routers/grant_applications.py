import logging
from datetime import datetime
from typing import Annotated
import pytz
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from grant_portal.core.config import settings
from grant_portal.core.db import get_db
from grant_portal.deps import CurrentUser, get_owned_application
from grant_portal.models.base import utcnow
from grant_portal.models.domain import GrantApplication
from grant_portal.models.enums import ApplicationStatus
from grant_portal.schemas.application import GrantApplicationCreate, GrantApplicationUpdate, GrantApplicationRead
from grant_portal.schemas.common import DataResponse
from grant_portal.services.progress import refresh_progress, is_complete

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/grant-applications", tags=["Grant Applications"])


@router.get("", response_model=DataResponse[list[GrantApplicationRead]])
async def get_applications(
    user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    result = await db.execute(
        select(GrantApplication)
        .where(GrantApplication.user_id == user.id)
        .order_by(GrantApplication.created_at.desc(), GrantApplication.id.desc())
    )
    applications = result.scalars().all()
    return DataResponse(data=[GrantApplicationRead.model_validate(a) for a in applications])


@router.post("", response_model=DataResponse[GrantApplicationRead], status_code=status.HTTP_201_CREATED)
async def create_application(
    data: GrantApplicationCreate,
    user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    year = data.year or datetime.now(pytz.timezone(settings.TIMEZONE)).year
    application = GrantApplication(user_id=user.id, year=year)
    db.add(application)
    await db.commit()
    await db.refresh(application)

    logger.info(f"User {user.id} created grant application {application.public_id} for {year}")
    return DataResponse(data=GrantApplicationRead.model_validate(application))


@router.get("/{application_id}", response_model=DataResponse[GrantApplicationRead])
async def get_application(
    application_id: int,
    user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    application = await get_owned_application(db, application_id, user)
    return DataResponse(data=GrantApplicationRead.model_validate(application))


@router.patch("/{application_id}", response_model=DataResponse[GrantApplicationRead])
async def update_application(
    application_id: int,
    data: GrantApplicationUpdate,
    user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    application = await get_owned_application(db, application_id, user)

    update_data = data.model_dump(exclude_unset=True)
    new_status = update_data.pop("status", None)
    if new_status in (ApplicationStatus.APPROVED, ApplicationStatus.REJECTED):
        raise HTTPException(status_code=403, detail="Only administrators can approve or reject applications")

    for field, value in update_data.items():
        if value is not None:
            setattr(application, field, value)
    refresh_progress(application)

    if new_status is not None:
        application.status = new_status
        if new_status == ApplicationStatus.SUBMITTED:
            application.submitted_at = utcnow()

    await db.commit()
    await db.refresh(application)
    return DataResponse(data=GrantApplicationRead.model_validate(application))


@router.post("/{application_id}/submit", response_model=DataResponse[GrantApplicationRead])
async def submit_application(
    application_id: int,
    user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Submit an application for review once every section is complete."""
    application = await get_owned_application(db, application_id, user)

    if not is_complete(application):
        raise HTTPException(status_code=400, detail="All sections must be completed before submission")

    if application.status not in (ApplicationStatus.DRAFT, ApplicationStatus.IN_PROGRESS, ApplicationStatus.REJECTED):
        raise HTTPException(
            status_code=400,
            detail=f"Application cannot be submitted. Current status: {application.status.value}",
        )

    application.status = ApplicationStatus.SUBMITTED
    application.submitted_at = utcnow()
    await db.commit()
    await db.refresh(application)

    logger.info(f"Grant application {application.public_id} submitted")
    return DataResponse(data=GrantApplicationRead.model_validate(application), message="Application submitted")
