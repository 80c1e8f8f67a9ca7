from datetime import datetime

from pydantic import BaseModel


class UserStatsOut(BaseModel):
    Id: int
    UserId: int
    HouseholdId: int
    TotalChores: int
    CompletedChores: int
    TotalPoints: int
    EarnedPoints: int
    LifetimePoints: int
    PointsRedeemed: int
    CurrentStreak: int
    LongestStreak: int
    CurrentLevel: int
    CurrentLevelPoints: int
    PointsToNextLevel: int
    EfficiencyScore: float
    PersistedLevel: int | None
    PersistedLevelExpiresAt: datetime | None
    PointsAtRedemption: int | None
    LastActive: datetime | None
    UpdatedAt: datetime

    class Config:
        from_attributes = True


class LevelOut(BaseModel):
    Level: int
    Name: str
    PointsRequired: int
    Icon: str

    class Config:
        from_attributes = True


class LevelListResponse(BaseModel):
    Levels: list[LevelOut]


class LevelProgressOut(BaseModel):
    CurrentLevel: LevelOut
    NextLevel: LevelOut | None
    ProgressToNextLevel: float
    PointsToNextLevel: int
    IsMaxLevel: bool

    class Config:
        from_attributes = True


class LeaderboardEntryOut(BaseModel):
    Rank: int
    UserId: int
    Name: str
    AvatarUrl: str | None
    Role: str
    Stats: UserStatsOut
    Level: int
    LevelName: str
    LevelIcon: str
    LevelProgress: float
    CompletionRate: float
    EfficiencyBadge: str
    IsCurrentUser: bool


class LeaderboardResponse(BaseModel):
    Mode: str
    Entries: list[LeaderboardEntryOut]
    TotalHouseholdPoints: int
    AverageEfficiency: float


class ActivityOut(BaseModel):
    CompletionId: int
    ChoreId: int
    ChoreTitle: str | None
    UserId: int
    UserName: str | None
    CompletedAt: datetime
    PointsEarned: int
    BonusMessage: str | None
    IsEarly: bool
    IsLate: bool

    class Config:
        from_attributes = True


class ActivityListResponse(BaseModel):
    Activity: list[ActivityOut]


class RecalculateResponse(BaseModel):
    HouseholdId: int
    Members: int
