from datetime import datetime

from pydantic import BaseModel, Field


class HouseholdOut(BaseModel):
    Id: int
    Name: str
    Description: str | None
    CreatedByUserId: int
    JoinCode: str
    AllowInvites: bool
    RequireApproval: bool
    MaxMembers: int
    ConversionRate: int
    CreatedAt: datetime
    UpdatedAt: datetime

    class Config:
        from_attributes = True


class HouseholdWithRoleOut(BaseModel):
    Household: HouseholdOut
    Role: str
    MemberCount: int


class HouseholdListResponse(BaseModel):
    Households: list[HouseholdWithRoleOut]


class HouseholdCreate(BaseModel):
    Name: str = Field(..., max_length=50)
    Description: str | None = Field(default=None, max_length=500)


class HouseholdUpdate(BaseModel):
    Name: str | None = Field(default=None, max_length=50)
    Description: str | None = Field(default=None, max_length=500)
    AllowInvites: bool | None = None
    RequireApproval: bool | None = None
    MaxMembers: int | None = None


class MemberOut(BaseModel):
    Id: int
    HouseholdId: int
    UserId: int
    Role: str
    ParentUserId: int | None
    JoinedAt: datetime
    Name: str | None = None
    Email: str | None = None
    AvatarUrl: str | None = None


class MemberListResponse(BaseModel):
    Members: list[MemberOut]


class MemberAdd(BaseModel):
    UserId: int
    Role: str = "member"
    ParentUserId: int | None = None


class MemberRoleUpdate(BaseModel):
    Role: str
    ParentUserId: int | None = None


class JoinRequest(BaseModel):
    JoinCode: str = Field(..., max_length=12)
