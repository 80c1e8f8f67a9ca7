from datetime import datetime

from sqlalchemy import Column, DateTime, Index, Integer, String

from dailybag.db import Base


class UserInvite(Base):
    __tablename__ = "user_invites"
    __table_args__ = (
        Index("ix_user_invites_household_status", "HouseholdId", "Status"),
    )

    Id = Column(Integer, primary_key=True, index=True)
    Email = Column(String(100), nullable=False, index=True)
    HouseholdId = Column(Integer, nullable=False, index=True)
    InvitedByUserId = Column(Integer, nullable=False)
    Role = Column(String(20), nullable=False, default="member")
    Status = Column(String(20), nullable=False, default="pending")
    Token = Column(String(64), nullable=False, unique=True, index=True)
    ExpiresAt = Column(DateTime(timezone=True), nullable=False)
    CreatedAt = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
