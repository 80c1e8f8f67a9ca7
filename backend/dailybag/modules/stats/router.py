import logging

from fastapi import APIRouter, Depends
from sqlalchemy.exc import ProgrammingError
from sqlalchemy.orm import Session

from dailybag.core.errors import RaiseHttpError, RaiseStorageError
from dailybag.core.levels import LEVELS
from dailybag.core.migrations import EnsureStorageReady
from dailybag.db import GetDb
from dailybag.modules.auth.deps import RequireAuthenticated, UserContext
from dailybag.modules.households.utils.rbac import RequireAdmin
from dailybag.modules.stats.schemas import (
    ActivityListResponse,
    ActivityOut,
    LeaderboardEntryOut,
    LeaderboardResponse,
    LevelListResponse,
    LevelOut,
    LevelProgressOut,
    RecalculateResponse,
    UserStatsOut,
)
from dailybag.modules.stats.services import (
    RECENT_ACTIVITY_LIMIT,
    GetLeaderboard,
    GetRecentActivity,
    GetUserProgress,
    GetUserStats,
    RecalculateHouseholdStats,
)

router = APIRouter(prefix="/api/stats", tags=["stats"], dependencies=[Depends(EnsureStorageReady)])
logger = logging.getLogger("dailybag.stats")


def _BuildLeaderboardResponse(board) -> LeaderboardResponse:
    return LeaderboardResponse(
        Mode=board.Mode,
        Entries=[
            LeaderboardEntryOut(
                Rank=index,
                UserId=entry.UserId,
                Name=entry.Name,
                AvatarUrl=entry.AvatarUrl,
                Role=entry.Role,
                Stats=UserStatsOut.model_validate(entry.Stats),
                Level=entry.Level,
                LevelName=entry.LevelName,
                LevelIcon=entry.LevelIcon,
                LevelProgress=entry.LevelProgress,
                CompletionRate=entry.CompletionRate,
                EfficiencyBadge=entry.EfficiencyBadge,
                IsCurrentUser=entry.IsCurrentUser,
            )
            for index, entry in enumerate(board.Entries, start=1)
        ],
        TotalHouseholdPoints=board.TotalHouseholdPoints,
        AverageEfficiency=board.AverageEfficiency,
    )


@router.get("/levels", response_model=LevelListResponse)
def ListLevels() -> LevelListResponse:
    return LevelListResponse(Levels=[LevelOut.model_validate(level) for level in LEVELS])


@router.get("/household/{household_id}/me", response_model=UserStatsOut)
def GetMyStats(
    household_id: int,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireAuthenticated),
) -> UserStatsOut:
    try:
        return UserStatsOut.model_validate(GetUserStats(db, user, household_id))
    except ValueError as exc:
        RaiseHttpError(exc)
    except ProgrammingError as exc:
        RaiseStorageError(logger, exc)


@router.get("/household/{household_id}/users/{user_id}", response_model=UserStatsOut)
def GetMemberStats(
    household_id: int,
    user_id: int,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireAuthenticated),
) -> UserStatsOut:
    try:
        return UserStatsOut.model_validate(GetUserStats(db, user, household_id, user_id))
    except ValueError as exc:
        RaiseHttpError(exc)
    except ProgrammingError as exc:
        RaiseStorageError(logger, exc)


@router.get("/household/{household_id}/progress", response_model=LevelProgressOut)
def GetProgress(
    household_id: int,
    user_id: int | None = None,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireAuthenticated),
) -> LevelProgressOut:
    try:
        return LevelProgressOut.model_validate(GetUserProgress(db, user, household_id, user_id))
    except ValueError as exc:
        RaiseHttpError(exc)
    except ProgrammingError as exc:
        RaiseStorageError(logger, exc)


@router.get("/household/{household_id}/leaderboard", response_model=LeaderboardResponse)
def GetLeaderboardItem(
    household_id: int,
    mode: str = "points",
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireAuthenticated),
) -> LeaderboardResponse:
    try:
        return _BuildLeaderboardResponse(GetLeaderboard(db, user, household_id, mode))
    except ValueError as exc:
        RaiseHttpError(exc)
    except ProgrammingError as exc:
        RaiseStorageError(logger, exc)


@router.get("/household/{household_id}/efficiency", response_model=LeaderboardResponse)
def GetEfficiencyLeaderboard(
    household_id: int,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireAuthenticated),
) -> LeaderboardResponse:
    try:
        return _BuildLeaderboardResponse(GetLeaderboard(db, user, household_id, "efficiency"))
    except ValueError as exc:
        RaiseHttpError(exc)
    except ProgrammingError as exc:
        RaiseStorageError(logger, exc)


@router.get("/household/{household_id}/activity", response_model=ActivityListResponse)
def GetActivity(
    household_id: int,
    limit: int = RECENT_ACTIVITY_LIMIT,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireAuthenticated),
) -> ActivityListResponse:
    try:
        items = GetRecentActivity(db, user, household_id, max(1, min(limit, 100)))
        return ActivityListResponse(Activity=[ActivityOut.model_validate(item) for item in items])
    except ValueError as exc:
        RaiseHttpError(exc)
    except ProgrammingError as exc:
        RaiseStorageError(logger, exc)


@router.post("/household/{household_id}/recalculate", response_model=RecalculateResponse)
def RecalculateHousehold(
    household_id: int,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireAuthenticated),
) -> RecalculateResponse:
    try:
        RequireAdmin(db, household_id, user.Id)
        members = RecalculateHouseholdStats(db, household_id)
        db.commit()
        return RecalculateResponse(HouseholdId=household_id, Members=members)
    except ValueError as exc:
        RaiseHttpError(exc)
    except ProgrammingError as exc:
        RaiseStorageError(logger, exc)
