import logging
from typing import Annotated
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from grant_portal.core.db import get_db
from grant_portal.deps import CurrentUser, get_owned_application
from grant_portal.models.domain import AgriculturalReturn
from grant_portal.models.enums import ApplicationStatus
from grant_portal.schemas.application import AgriculturalReturnUpsert, AgriculturalReturnRead
from grant_portal.schemas.common import DataResponse
from grant_portal.services.progress import refresh_progress

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/agricultural-returns", tags=["Agricultural Returns"])


@router.post("", response_model=DataResponse[AgriculturalReturnRead])
async def save_agricultural_return(
    data: AgriculturalReturnUpsert,
    user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """
    Create or update the agricultural return of an application.

    Only the sections present in the request are written. Marking the
    return complete also completes the application section.
    """
    application = await get_owned_application(db, data.application_id, user)

    result = await db.execute(
        select(AgriculturalReturn).where(AgriculturalReturn.application_id == application.id)
    )
    agricultural_return = result.scalar_one_or_none()
    if agricultural_return is None:
        agricultural_return = AgriculturalReturn(application_id=application.id)
        db.add(agricultural_return)

    for field, value in data.model_dump(exclude_unset=True, exclude={"application_id"}).items():
        setattr(agricultural_return, field, value)

    if agricultural_return.is_complete:
        application.agricultural_return_completed = True
        refresh_progress(application)
    if application.status == ApplicationStatus.DRAFT:
        application.status = ApplicationStatus.IN_PROGRESS

    try:
        await db.commit()
        await db.refresh(agricultural_return)
    except Exception as e:
        await db.rollback()
        logger.error(f"Failed to save agricultural return for application {application.id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to save agricultural return")

    return DataResponse(data=AgriculturalReturnRead.model_validate(agricultural_return))


@router.get("/{application_id}", response_model=DataResponse[AgriculturalReturnRead])
async def get_agricultural_return(
    application_id: int,
    user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    await get_owned_application(db, application_id, user)

    result = await db.execute(
        select(AgriculturalReturn).where(AgriculturalReturn.application_id == application_id)
    )
    agricultural_return = result.scalar_one_or_none()
    if agricultural_return is None:
        raise HTTPException(status_code=404, detail="Agricultural return not found")

    return DataResponse(data=AgriculturalReturnRead.model_validate(agricultural_return))
