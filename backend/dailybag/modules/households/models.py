from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text, UniqueConstraint

from dailybag.db import Base


class Household(Base):
    __tablename__ = "households"

    Id = Column(Integer, primary_key=True, index=True)
    Name = Column(String(50), nullable=False)
    Description = Column(Text)
    CreatedByUserId = Column(Integer, nullable=False, index=True)
    JoinCode = Column(String(12), nullable=False, unique=True, index=True)
    AllowInvites = Column(Boolean, nullable=False, default=True)
    RequireApproval = Column(Boolean, nullable=False, default=False)
    MaxMembers = Column(Integer, nullable=False, default=10)
    ConversionRate = Column(Integer, nullable=False, default=100)
    CreatedAt = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    UpdatedAt = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)


class HouseholdMember(Base):
    __tablename__ = "household_members"
    __table_args__ = (
        UniqueConstraint("HouseholdId", "UserId", name="uq_household_members_household_user"),
    )

    Id = Column(Integer, primary_key=True, index=True)
    HouseholdId = Column(Integer, nullable=False, index=True)
    UserId = Column(Integer, nullable=False, index=True)
    Role = Column(String(20), nullable=False, default="member")
    ParentUserId = Column(Integer, index=True)
    JoinedAt = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
