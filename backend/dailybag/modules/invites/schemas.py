from datetime import datetime

from pydantic import BaseModel, Field


class InviteOut(BaseModel):
    Id: int
    Email: str
    HouseholdId: int
    InvitedByUserId: int
    Role: str
    Status: str
    Token: str
    ExpiresAt: datetime
    CreatedAt: datetime
    HouseholdName: str | None = None

    class Config:
        from_attributes = True


class InviteListResponse(BaseModel):
    Invites: list[InviteOut]


class InviteCreate(BaseModel):
    Email: str = Field(..., max_length=100)
    Role: str = "member"


class InviteTokenAccept(BaseModel):
    Token: str = Field(..., max_length=64)
