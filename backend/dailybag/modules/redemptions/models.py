from datetime import datetime

from sqlalchemy import Column, DateTime, Index, Integer, Numeric, String, Text

from dailybag.db import Base


class RedemptionRequest(Base):
    __tablename__ = "redemption_requests"
    __table_args__ = (
        Index("ix_redemption_requests_household_status", "HouseholdId", "Status"),
    )

    Id = Column(Integer, primary_key=True, index=True)
    UserId = Column(Integer, nullable=False, index=True)
    HouseholdId = Column(Integer, nullable=False, index=True)
    PointsRequested = Column(Integer, nullable=False)
    CashAmount = Column(Numeric(12, 2), nullable=False)
    Status = Column(String(20), nullable=False, default="pending")
    RequestedAt = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    ProcessedAt = Column(DateTime(timezone=True))
    ProcessedByUserId = Column(Integer)
    AdminNotes = Column(Text)


class PointDeduction(Base):
    __tablename__ = "point_deductions"
    __table_args__ = (
        Index("ix_point_deductions_user_household", "UserId", "HouseholdId"),
    )

    Id = Column(Integer, primary_key=True, index=True)
    UserId = Column(Integer, nullable=False, index=True)
    HouseholdId = Column(Integer, nullable=False, index=True)
    PointsDeducted = Column(Integer, nullable=False)
    Reason = Column(String(200), nullable=False)
    RedemptionRequestId = Column(Integer)
    DeductedAt = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    DeductedByUserId = Column(Integer, nullable=False)
