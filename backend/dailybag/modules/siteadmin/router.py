import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.exc import ProgrammingError
from sqlalchemy.orm import Session

from dailybag.core.errors import RaiseHttpError, RaiseStorageError
from dailybag.core.migrations import EnsureStorageReady
from dailybag.db import GetDb
from dailybag.modules.auth.deps import RequireAuthenticated, UserContext
from dailybag.modules.siteadmin.schemas import (
    AdminStatusOut,
    GlobalStatsOut,
    SiteAdminToggle,
    SiteHouseholdListResponse,
    SiteHouseholdOut,
    SiteUserListResponse,
    SiteUserOut,
)
from dailybag.modules.siteadmin.services import (
    DeleteHouseholdAsAdmin,
    DeleteUserAccount,
    GetAdminStatus,
    GetGlobalStats,
    ListAllHouseholds,
    ListAllUsers,
    ToggleSiteAdmin,
)

router = APIRouter(prefix="/api/site-admin", tags=["site-admin"], dependencies=[Depends(EnsureStorageReady)])
logger = logging.getLogger("dailybag.siteadmin")


@router.get("/status", response_model=AdminStatusOut)
def GetStatus(
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireAuthenticated),
) -> AdminStatusOut:
    try:
        return AdminStatusOut(**GetAdminStatus(db, user))
    except ValueError as exc:
        RaiseHttpError(exc)
    except ProgrammingError as exc:
        RaiseStorageError(logger, exc)


@router.get("/users", response_model=SiteUserListResponse)
def ListUsers(
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireAuthenticated),
) -> SiteUserListResponse:
    try:
        return SiteUserListResponse(Users=[SiteUserOut.model_validate(entry) for entry in ListAllUsers(db, user)])
    except ValueError as exc:
        RaiseHttpError(exc)
    except ProgrammingError as exc:
        RaiseStorageError(logger, exc)


@router.get("/households", response_model=SiteHouseholdListResponse)
def ListHouseholds(
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireAuthenticated),
) -> SiteHouseholdListResponse:
    try:
        entries = ListAllHouseholds(db, user)
        return SiteHouseholdListResponse(Households=[SiteHouseholdOut.model_validate(entry) for entry in entries])
    except ValueError as exc:
        RaiseHttpError(exc)
    except ProgrammingError as exc:
        RaiseStorageError(logger, exc)


@router.get("/stats", response_model=GlobalStatsOut)
def GetStats(
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireAuthenticated),
) -> GlobalStatsOut:
    try:
        return GlobalStatsOut(**GetGlobalStats(db, user))
    except ValueError as exc:
        RaiseHttpError(exc)
    except ProgrammingError as exc:
        RaiseStorageError(logger, exc)


@router.put("/users/{user_id}/site-admin", response_model=AdminStatusOut)
def SetSiteAdmin(
    user_id: int,
    payload: SiteAdminToggle,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireAuthenticated),
) -> AdminStatusOut:
    try:
        target = ToggleSiteAdmin(db, user, user_id, payload.MakeAdmin)
        return AdminStatusOut(Id=target.Id, Email=target.Email, Name=target.Name, IsSiteAdmin=target.IsSiteAdmin)
    except ValueError as exc:
        RaiseHttpError(exc)
    except ProgrammingError as exc:
        RaiseStorageError(logger, exc)


@router.delete("/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def DeleteUser(
    user_id: int,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireAuthenticated),
) -> None:
    try:
        DeleteUserAccount(db, user, user_id)
    except ValueError as exc:
        RaiseHttpError(exc)
    except ProgrammingError as exc:
        RaiseStorageError(logger, exc)


@router.delete("/households/{household_id}", status_code=status.HTTP_204_NO_CONTENT)
def DeleteHousehold(
    household_id: int,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireAuthenticated),
) -> None:
    try:
        DeleteHouseholdAsAdmin(db, user, household_id)
    except ValueError as exc:
        RaiseHttpError(exc)
    except ProgrammingError as exc:
        RaiseStorageError(logger, exc)
