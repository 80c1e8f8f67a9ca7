from datetime import datetime

from sqlalchemy import Column, DateTime, Float, Integer, UniqueConstraint

from dailybag.db import Base


class UserStats(Base):
    __tablename__ = "user_stats"
    __table_args__ = (
        UniqueConstraint("UserId", "HouseholdId", name="uq_user_stats_user_household"),
    )

    Id = Column(Integer, primary_key=True, index=True)
    UserId = Column(Integer, nullable=False, index=True)
    HouseholdId = Column(Integer, nullable=False, index=True)
    TotalChores = Column(Integer, nullable=False, default=0)
    CompletedChores = Column(Integer, nullable=False, default=0)
    TotalPoints = Column(Integer, nullable=False, default=0)
    EarnedPoints = Column(Integer, nullable=False, default=0)
    LifetimePoints = Column(Integer, nullable=False, default=0)
    PointsRedeemed = Column(Integer, nullable=False, default=0)
    CarriedPoints = Column(Integer, nullable=False, default=0)
    CurrentStreak = Column(Integer, nullable=False, default=0)
    LongestStreak = Column(Integer, nullable=False, default=0)
    CurrentLevel = Column(Integer, nullable=False, default=1)
    CurrentLevelPoints = Column(Integer, nullable=False, default=0)
    PointsToNextLevel = Column(Integer, nullable=False, default=0)
    EfficiencyScore = Column(Float, nullable=False, default=0)
    PersistedLevel = Column(Integer)
    PersistedLevelExpiresAt = Column(DateTime(timezone=True))
    PointsAtRedemption = Column(Integer)
    LastActive = Column(DateTime(timezone=True))
    UpdatedAt = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
