from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from dailybag.db import Base

DEFAULT_AVATAR = "👤"


class User(Base):
    __tablename__ = "users"

    Id = Column(Integer, primary_key=True, index=True)
    Email = Column(String(100), nullable=False, unique=True, index=True)
    Name = Column(String(50), nullable=False)
    AvatarUrl = Column(String(500), nullable=False, default=DEFAULT_AVATAR)
    PasswordHash = Column(String(255), nullable=False)
    Points = Column(Integer, nullable=False, default=0)
    Level = Column(Integer, nullable=False, default=1)
    Role = Column(String(20))
    IsSiteAdmin = Column(Boolean, nullable=False, default=False)
    HasCompletedOnboarding = Column(Boolean, nullable=False, default=False)
    OnboardingDismissedPermanently = Column(Boolean, nullable=False, default=False)
    FailedLoginCount = Column(Integer, default=0, nullable=False)
    LockedUntil = Column(DateTime(timezone=True))
    LastActive = Column(DateTime(timezone=True))
    CreatedAt = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    UpdatedAt = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    RefreshTokens = relationship("RefreshToken", back_populates="User")


class RefreshToken(Base):
    __tablename__ = "refresh_tokens"

    Id = Column(Integer, primary_key=True, index=True)
    UserId = Column(Integer, ForeignKey("users.Id"), nullable=False, index=True)
    TokenHash = Column(String(255), nullable=False)
    CreatedAt = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    ExpiresAt = Column(DateTime(timezone=True), nullable=False)
    RevokedAt = Column(DateTime(timezone=True))

    User = relationship("User", back_populates="RefreshTokens")
