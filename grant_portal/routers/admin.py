import logging
from typing import Annotated, Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from grant_portal.core.db import get_db
from grant_portal.deps import AdminUser
from grant_portal.models.auth import User
from grant_portal.models.domain import GrantApplication
from grant_portal.models.enums import ApplicationStatus
from grant_portal.schemas.application import (
    AdminGrantApplicationRead,
    ApplicationStatusUpdate,
    GrantApplicationRead,
)
from grant_portal.schemas.common import DataResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["Admin"])


@router.get("/grant-applications", response_model=DataResponse[list[AdminGrantApplicationRead]])
async def get_all_applications(
    admin: AdminUser,
    db: Annotated[AsyncSession, Depends(get_db)],
    status: Optional[ApplicationStatus] = Query(None, description="Filter by application status"),
):
    """List every application with its applicant, newest first."""
    query = (
        select(GrantApplication, User)
        .join(User, GrantApplication.user_id == User.id)
        .order_by(GrantApplication.created_at.desc(), GrantApplication.id.desc())
    )
    if status is not None:
        query = query.where(GrantApplication.status == status)

    result = await db.execute(query)
    applications = []
    for application, applicant in result.all():
        item = AdminGrantApplicationRead.model_validate(application)
        item.user_email = applicant.email
        item.user_first_name = applicant.first_name
        item.user_last_name = applicant.last_name
        applications.append(item)

    return DataResponse(data=applications)


@router.patch("/grant-applications/{application_id}/status", response_model=DataResponse[GrantApplicationRead])
async def update_application_status(
    application_id: int,
    data: ApplicationStatusUpdate,
    admin: AdminUser,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    application = await db.get(GrantApplication, application_id)
    if application is None:
        raise HTTPException(status_code=404, detail="Application not found")

    old_status = application.status
    application.status = data.status
    if data.status == ApplicationStatus.REJECTED:
        application.resubmission_reason = data.resubmission_reason
    elif data.status == ApplicationStatus.APPROVED:
        application.resubmission_reason = None

    await db.commit()
    await db.refresh(application)

    logger.info(
        f"Admin {admin.id} changed application {application.public_id} "
        f"status {old_status.value} -> {data.status.value}"
    )
    return DataResponse(data=GrantApplicationRead.model_validate(application))
