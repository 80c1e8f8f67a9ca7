from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Index, Integer, String, Text

from dailybag.db import Base


class Chore(Base):
    __tablename__ = "chores"
    __table_args__ = (
        Index("ix_chores_household_status", "HouseholdId", "Status"),
        Index("ix_chores_household_category", "HouseholdId", "Category"),
    )

    Id = Column(Integer, primary_key=True, index=True)
    HouseholdId = Column(Integer, nullable=False, index=True)
    Title = Column(String(100), nullable=False)
    Description = Column(Text)
    Points = Column(Integer, nullable=False)
    Difficulty = Column(String(10), nullable=False, default="medium")
    Category = Column(String(10), nullable=False, default="daily")
    Priority = Column(String(10), nullable=False, default="medium")
    AssignedToUserId = Column(Integer, index=True)
    Status = Column(String(20), nullable=False, default="pending")
    DueDate = Column(DateTime(timezone=True))
    CompletedAt = Column(DateTime(timezone=True))
    CompletedByUserId = Column(Integer)
    FinalPoints = Column(Integer)
    BonusMessage = Column(String(200))
    CreatedAt = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    UpdatedAt = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)


class ChoreCompletion(Base):
    __tablename__ = "chore_completions"
    __table_args__ = (
        Index("ix_chore_completions_user_household", "UserId", "HouseholdId"),
    )

    Id = Column(Integer, primary_key=True, index=True)
    ChoreId = Column(Integer, nullable=False, index=True)
    UserId = Column(Integer, nullable=False, index=True)
    HouseholdId = Column(Integer, nullable=False, index=True)
    CompletedAt = Column(DateTime(timezone=True), nullable=False, index=True)
    PointsEarned = Column(Integer, nullable=False)
    BasePoints = Column(Integer, nullable=False)
    Difficulty = Column(String(10), nullable=False, default="medium")
    DueDate = Column(DateTime(timezone=True))
    BonusPoints = Column(Integer, nullable=False, default=0)
    PenaltyPoints = Column(Integer, nullable=False, default=0)
    BonusMessage = Column(String(200))
    IsEarly = Column(Boolean, nullable=False, default=False)
    IsLate = Column(Boolean, nullable=False, default=False)
    DaysEarly = Column(Integer)
    DaysLate = Column(Integer)
