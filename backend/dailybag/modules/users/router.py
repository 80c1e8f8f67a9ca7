import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.exc import ProgrammingError
from sqlalchemy.orm import Session

from dailybag.core.errors import RaiseHttpError, RaiseStorageError
from dailybag.core.migrations import EnsureStorageReady
from dailybag.db import GetDb
from dailybag.modules.auth.deps import RequireAuthenticated, UserContext
from dailybag.modules.stats.schemas import UserStatsOut
from dailybag.modules.users.schemas import (
    LevelPersistenceSet,
    LevelUpdateResponse,
    OnboardingComplete,
    PointsUpdate,
    PointsUpdateResponse,
    ProfileSave,
    ProfileUpdate,
    UserListResponse,
    UserOut,
)
from dailybag.modules.users.services import (
    ClearUserLevelPersistence,
    CompleteOnboarding,
    CreateOrUpdateProfile,
    GetCurrentUser,
    GetUser,
    ListHouseholdUsers,
    SetUserLevelPersistence,
    UpdateProfile,
    UpdateUserLevel,
    UpdateUserPoints,
)

router = APIRouter(prefix="/api/users", tags=["users"], dependencies=[Depends(EnsureStorageReady)])
logger = logging.getLogger("dailybag.users")


@router.get("/me", response_model=UserOut)
def GetMe(
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireAuthenticated),
) -> UserOut:
    try:
        return UserOut.model_validate(GetCurrentUser(db, user))
    except ValueError as exc:
        RaiseHttpError(exc)
    except ProgrammingError as exc:
        RaiseStorageError(logger, exc)


@router.put("/me", response_model=UserOut)
def SaveProfile(
    payload: ProfileSave,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireAuthenticated),
) -> UserOut:
    try:
        record = CreateOrUpdateProfile(db, user, payload.Name, payload.AvatarUrl, payload.Role)
        return UserOut.model_validate(record)
    except ValueError as exc:
        RaiseHttpError(exc)
    except ProgrammingError as exc:
        RaiseStorageError(logger, exc)


@router.patch("/me", response_model=UserOut)
def UpdateMe(
    payload: ProfileUpdate,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireAuthenticated),
) -> UserOut:
    try:
        record = UpdateProfile(db, user, payload.Name, payload.AvatarUrl)
        return UserOut.model_validate(record)
    except ValueError as exc:
        RaiseHttpError(exc)
    except ProgrammingError as exc:
        RaiseStorageError(logger, exc)


@router.post("/me/onboarding", response_model=UserOut)
def FinishOnboarding(
    payload: OnboardingComplete,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireAuthenticated),
) -> UserOut:
    try:
        return UserOut.model_validate(CompleteOnboarding(db, user, payload.DontShowAgain))
    except ValueError as exc:
        RaiseHttpError(exc)
    except ProgrammingError as exc:
        RaiseStorageError(logger, exc)


@router.get("/household/{household_id}", response_model=UserListResponse)
def ListUsersInHousehold(
    household_id: int,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireAuthenticated),
) -> UserListResponse:
    try:
        records = ListHouseholdUsers(db, user, household_id)
        return UserListResponse(Users=[UserOut.model_validate(record) for record in records])
    except ValueError as exc:
        RaiseHttpError(exc)
    except ProgrammingError as exc:
        RaiseStorageError(logger, exc)


@router.get("/{user_id}", response_model=UserOut)
def GetUserItem(
    user_id: int,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireAuthenticated),
) -> UserOut:
    try:
        return UserOut.model_validate(GetUser(db, user, user_id))
    except ValueError as exc:
        RaiseHttpError(exc)
    except ProgrammingError as exc:
        RaiseStorageError(logger, exc)


@router.post("/{user_id}/points", response_model=PointsUpdateResponse)
def UpdatePoints(
    user_id: int,
    payload: PointsUpdate,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireAuthenticated),
) -> PointsUpdateResponse:
    try:
        return PointsUpdateResponse(**UpdateUserPoints(db, user, user_id, payload.PointsChange))
    except ValueError as exc:
        RaiseHttpError(exc)
    except ProgrammingError as exc:
        RaiseStorageError(logger, exc)


@router.post("/{user_id}/level", response_model=LevelUpdateResponse)
def UpdateLevel(
    user_id: int,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireAuthenticated),
) -> LevelUpdateResponse:
    try:
        return LevelUpdateResponse(**UpdateUserLevel(db, user, user_id))
    except ValueError as exc:
        RaiseHttpError(exc)
    except ProgrammingError as exc:
        RaiseStorageError(logger, exc)


@router.put("/{user_id}/households/{household_id}/level-lock", response_model=UserStatsOut)
def SetLevelLock(
    user_id: int,
    household_id: int,
    payload: LevelPersistenceSet,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireAuthenticated),
) -> UserStatsOut:
    try:
        stats = SetUserLevelPersistence(
            db,
            user,
            household_id,
            user_id,
            payload.Level,
            payload.PointsAtRedemption,
            payload.GracePeriodDays,
        )
        return UserStatsOut.model_validate(stats)
    except ValueError as exc:
        RaiseHttpError(exc)
    except ProgrammingError as exc:
        RaiseStorageError(logger, exc)


@router.delete(
    "/{user_id}/households/{household_id}/level-lock",
    response_model=UserStatsOut,
    status_code=status.HTTP_200_OK,
)
def ClearLevelLock(
    user_id: int,
    household_id: int,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireAuthenticated),
) -> UserStatsOut:
    try:
        return UserStatsOut.model_validate(ClearUserLevelPersistence(db, user, household_id, user_id))
    except ValueError as exc:
        RaiseHttpError(exc)
    except ProgrammingError as exc:
        RaiseStorageError(logger, exc)
