from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class ChoreDifficulty(str, Enum):
    Easy = "easy"
    Medium = "medium"
    Hard = "hard"


class ChoreCategory(str, Enum):
    Daily = "daily"
    Weekly = "weekly"
    Monthly = "monthly"
    Seasonal = "seasonal"


class ChorePriority(str, Enum):
    Low = "low"
    Medium = "medium"
    High = "high"


class ChoreStatus(str, Enum):
    Pending = "pending"
    InProgress = "in_progress"
    Completed = "completed"


class ChoreOut(BaseModel):
    Id: int
    HouseholdId: int
    Title: str
    Description: str | None
    Points: int
    Difficulty: str
    Category: str
    Priority: str
    AssignedToUserId: int | None
    Status: str
    DueDate: datetime | None
    CompletedAt: datetime | None
    CompletedByUserId: int | None
    FinalPoints: int | None
    BonusMessage: str | None
    CreatedAt: datetime
    UpdatedAt: datetime

    class Config:
        from_attributes = True


class ChoreListResponse(BaseModel):
    Chores: list[ChoreOut]


class ChoreCreate(BaseModel):
    Title: str = Field(..., max_length=100)
    Description: str | None = Field(default=None, max_length=500)
    Points: int | None = Field(default=None, ge=1, le=1000)
    Difficulty: ChoreDifficulty = ChoreDifficulty.Medium
    Category: ChoreCategory = ChoreCategory.Daily
    Priority: ChorePriority = ChorePriority.Medium
    AssignedToUserId: int | None = None
    DueDate: datetime | None = None


class ChoreUpdate(BaseModel):
    Title: str | None = Field(default=None, max_length=100)
    Description: str | None = Field(default=None, max_length=500)
    Points: int | None = Field(default=None, ge=1, le=1000)
    Difficulty: ChoreDifficulty | None = None
    Category: ChoreCategory | None = None
    Priority: ChorePriority | None = None
    AssignedToUserId: int | None = None
    DueDate: datetime | None = None


class ChoreComplete(BaseModel):
    CompletedByUserId: int | None = None


class CompletionOut(BaseModel):
    Id: int
    ChoreId: int
    UserId: int
    HouseholdId: int
    CompletedAt: datetime
    PointsEarned: int
    BasePoints: int
    BonusPoints: int
    PenaltyPoints: int
    BonusMessage: str | None
    IsEarly: bool
    IsLate: bool
    DaysEarly: int | None
    DaysLate: int | None

    class Config:
        from_attributes = True


class ChoreCompleteResponse(BaseModel):
    Chore: ChoreOut
    Completion: CompletionOut


class ChoreResetResponse(BaseModel):
    Created: int
