from datetime import datetime

from pydantic import BaseModel


class AdminStatusOut(BaseModel):
    Id: int
    Email: str
    Name: str
    IsSiteAdmin: bool


class HouseholdRoleOut(BaseModel):
    Id: int
    Name: str
    Role: str

    class Config:
        from_attributes = True


class SiteUserOut(BaseModel):
    Id: int
    Email: str
    Name: str
    Points: int
    Level: int
    IsSiteAdmin: bool
    CreatedAt: datetime | None
    LastActive: datetime | None
    Households: list[HouseholdRoleOut]

    class Config:
        from_attributes = True


class SiteUserListResponse(BaseModel):
    Users: list[SiteUserOut]


class SiteHouseholdOut(BaseModel):
    Id: int
    Name: str
    Description: str | None
    JoinCode: str
    MemberCount: int
    ChoreCount: int
    CompletedChores: int
    CreatedByUserId: int | None
    CreatedByName: str | None
    CreatedByEmail: str | None
    CreatedAt: datetime | None
    UpdatedAt: datetime | None

    class Config:
        from_attributes = True


class SiteHouseholdListResponse(BaseModel):
    Households: list[SiteHouseholdOut]


class GlobalStatsOut(BaseModel):
    TotalUsers: int
    TotalHouseholds: int
    TotalChores: int
    CompletedChores: int
    TotalCompletions: int
    TotalPoints: int
    RecentUsers: int
    RecentHouseholds: int
    CompletionRate: int


class SiteAdminToggle(BaseModel):
    MakeAdmin: bool
