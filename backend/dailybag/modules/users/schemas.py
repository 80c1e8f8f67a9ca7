from datetime import datetime

from pydantic import BaseModel, Field

from dailybag.core.levels import MAX_LEVEL


class UserOut(BaseModel):
    Id: int
    Email: str
    Name: str
    AvatarUrl: str | None
    Points: int
    Level: int
    Role: str | None
    IsSiteAdmin: bool
    HasCompletedOnboarding: bool
    OnboardingDismissedPermanently: bool
    LastActive: datetime | None
    CreatedAt: datetime
    UpdatedAt: datetime

    class Config:
        from_attributes = True


class UserListResponse(BaseModel):
    Users: list[UserOut]


class ProfileSave(BaseModel):
    Name: str = Field(..., max_length=50)
    AvatarUrl: str | None = Field(default=None, max_length=500)
    Role: str | None = None


class OnboardingComplete(BaseModel):
    DontShowAgain: bool = False


class ProfileUpdate(BaseModel):
    Name: str | None = Field(default=None, max_length=50)
    AvatarUrl: str | None = Field(default=None, max_length=500)


class PointsUpdate(BaseModel):
    PointsChange: int


class PointsUpdateResponse(BaseModel):
    UserId: int
    OldPoints: int
    NewPoints: int
    PointsChange: int


class LevelUpdateResponse(BaseModel):
    UserId: int
    OldLevel: int
    NewLevel: int
    LeveledUp: bool


class LevelPersistenceSet(BaseModel):
    Level: int = Field(..., ge=1, le=MAX_LEVEL)
    PointsAtRedemption: int = Field(..., ge=0)
    GracePeriodDays: int | None = Field(default=None, ge=1)
