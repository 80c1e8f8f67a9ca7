from datetime import datetime
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, Field


class RedemptionDecision(str, Enum):
    Approved = "approved"
    Rejected = "rejected"


class RedemptionRequestOut(BaseModel):
    Id: int
    UserId: int
    HouseholdId: int
    PointsRequested: int
    CashAmount: Decimal
    Status: str
    RequestedAt: datetime
    ProcessedAt: datetime | None
    ProcessedByUserId: int | None
    AdminNotes: str | None

    class Config:
        from_attributes = True


class RedemptionRequestListResponse(BaseModel):
    Requests: list[RedemptionRequestOut]


class RedemptionCreate(BaseModel):
    PointsRequested: int = Field(..., gt=0)
    CashAmount: Decimal = Field(..., gt=0)
    UserId: int | None = None


class RedemptionProcess(BaseModel):
    Status: RedemptionDecision
    AdminNotes: str | None = Field(default=None, max_length=500)


class PointDeductionOut(BaseModel):
    Id: int
    UserId: int
    HouseholdId: int
    PointsDeducted: int
    Reason: str | None
    RedemptionRequestId: int | None
    DeductedAt: datetime
    DeductedByUserId: int | None

    class Config:
        from_attributes = True


class PointDeductionListResponse(BaseModel):
    Deductions: list[PointDeductionOut]


class DeductionTotalResponse(BaseModel):
    UserId: int
    HouseholdId: int
    TotalPointsDeducted: int


class DeductionTotalOut(BaseModel):
    UserId: int
    UserName: str | None
    TotalPointsDeducted: int
    DeductionCount: int

    class Config:
        from_attributes = True


class HouseholdDeductionsResponse(BaseModel):
    Totals: list[DeductionTotalOut]


class ConversionRateUpdate(BaseModel):
    ConversionRate: int = Field(..., ge=1, le=10000)


class ConversionRateResponse(BaseModel):
    HouseholdId: int
    ConversionRate: int


class RedemptionSummaryOut(BaseModel):
    UserId: int
    HouseholdId: int
    EarnedPoints: int
    PendingPoints: int
    AvailablePoints: int
    RedeemedPoints: int
    RedeemedValue: Decimal
    PendingCount: int
    ApprovedCount: int
    RejectedCount: int
    ConversionRate: int

    class Config:
        from_attributes = True
