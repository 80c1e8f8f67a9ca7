import logging

from fastapi import APIRouter, Depends
from sqlalchemy.exc import ProgrammingError
from sqlalchemy.orm import Session

from dailybag.core.errors import RaiseHttpError, RaiseStorageError
from dailybag.core.migrations import EnsureStorageReady
from dailybag.db import GetDb
from dailybag.modules.auth.deps import RequireSiteAdmin, UserContext
from dailybag.modules.maintenance.schemas import ScheduledJobsRequest, ScheduledJobsResponse
from dailybag.modules.maintenance.services import RunScheduledJobs

router = APIRouter(prefix="/api/maintenance", tags=["maintenance"], dependencies=[Depends(EnsureStorageReady)])
logger = logging.getLogger("dailybag.maintenance")


@router.post("/run", response_model=ScheduledJobsResponse)
def RunJobs(
    payload: ScheduledJobsRequest | None = None,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireSiteAdmin()),
) -> ScheduledJobsResponse:
    try:
        result = RunScheduledJobs(db, jobs=payload.Jobs if payload else None)
        logger.info("scheduled jobs triggered by user_id=%s", user.Id)
        return ScheduledJobsResponse(**result)
    except ValueError as exc:
        RaiseHttpError(exc)
    except ProgrammingError as exc:
        RaiseStorageError(logger, exc)
