from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from dailybag.core.errors import AccessError, NotFoundError
from dailybag.core.levels import MAX_LEVEL, CalculateLevel
from dailybag.core.validation import CleanText, NAME_MAX_LENGTH
from dailybag.modules.auth.deps import NowUtc, UserContext
from dailybag.modules.auth.models import DEFAULT_AVATAR, User
from dailybag.modules.households.models import HouseholdMember
from dailybag.modules.households.utils.rbac import HOUSEHOLD_ROLES, IsAdmin, GetMembership, RequireMember
from dailybag.modules.stats.services import (
    LEVEL_PERSISTENCE_DAYS,
    ApplyLevel,
    ClearLevelPersistence,
    RecalculateUserStats,
    SetLevelPersistence,
    GetStatsRecord,
)
from dailybag.modules.stats.models import UserStats

logger = logging.getLogger("dailybag.users")

AVATAR_MAX_LENGTH = 500


def _GetUserOrRaise(db: Session, user_id: int) -> User:
    record = db.query(User).filter(User.Id == user_id).first()
    if not record:
        raise NotFoundError("User not found")
    return record


def _SharesHousehold(db: Session, user_id: int, other_user_id: int) -> bool:
    mine = {row[0] for row in db.query(HouseholdMember.HouseholdId).filter(HouseholdMember.UserId == user_id).all()}
    if not mine:
        return False
    return (
        db.query(HouseholdMember.Id)
        .filter(HouseholdMember.UserId == other_user_id, HouseholdMember.HouseholdId.in_(mine))
        .first()
        is not None
    )


def _CleanAvatar(value: str | None) -> str | None:
    if value is None:
        return None
    cleaned = value.strip()
    if not cleaned:
        return None
    if len(cleaned) > AVATAR_MAX_LENGTH:
        raise ValueError(f"AvatarUrl must be at most {AVATAR_MAX_LENGTH} characters")
    return cleaned


def GetCurrentUser(db: Session, user: UserContext) -> User:
    return _GetUserOrRaise(db, user.Id)


def GetUser(db: Session, user: UserContext, user_id: int) -> User:
    record = _GetUserOrRaise(db, user_id)
    if user_id != user.Id and not user.IsSiteAdmin and not _SharesHousehold(db, user.Id, user_id):
        raise AccessError("You can only view members of your households")
    return record


def ListHouseholdUsers(db: Session, user: UserContext, household_id: int) -> list[User]:
    RequireMember(db, household_id, user.Id)
    user_ids = [
        row[0]
        for row in db.query(HouseholdMember.UserId).filter(HouseholdMember.HouseholdId == household_id).all()
    ]
    if not user_ids:
        return []
    return db.query(User).filter(User.Id.in_(user_ids)).order_by(User.Name.asc()).all()


def CreateOrUpdateProfile(
    db: Session,
    user: UserContext,
    name: str,
    avatar_url: str | None = None,
    role: str | None = None,
) -> User:
    """Save the signed-in user's profile.

    A user saving a profile without picking a role becomes the global admin
    when nobody has a role yet, otherwise a plain member.
    """
    record = _GetUserOrRaise(db, user.Id)
    now = NowUtc()
    record.Name = CleanText(name, "Name", max_length=NAME_MAX_LENGTH)
    record.AvatarUrl = _CleanAvatar(avatar_url) or record.AvatarUrl or DEFAULT_AVATAR
    if record.Points is None:
        record.Points = 0
    if record.Level is None:
        record.Level = 1

    if role is not None:
        normalized = role.strip().lower()
        if normalized not in HOUSEHOLD_ROLES:
            raise ValueError(f"Invalid role: {role}")
        record.Role = normalized
    elif not record.Role:
        has_roles = db.query(User.Id).filter(User.Role.isnot(None), User.Id != record.Id).first()
        record.Role = "member" if has_roles else "admin"

    record.LastActive = now
    record.UpdatedAt = now
    db.commit()
    db.refresh(record)
    return record


def UpdateProfile(
    db: Session,
    user: UserContext,
    name: str | None = None,
    avatar_url: str | None = None,
) -> User:
    record = _GetUserOrRaise(db, user.Id)
    if name is not None:
        record.Name = CleanText(name, "Name", max_length=NAME_MAX_LENGTH)
    if avatar_url is not None:
        record.AvatarUrl = _CleanAvatar(avatar_url) or DEFAULT_AVATAR
    now = NowUtc()
    record.LastActive = now
    record.UpdatedAt = now
    db.commit()
    db.refresh(record)
    return record


def CompleteOnboarding(db: Session, user: UserContext, dont_show_again: bool = False) -> User:
    record = _GetUserOrRaise(db, user.Id)
    record.HasCompletedOnboarding = True
    record.OnboardingDismissedPermanently = dont_show_again
    record.UpdatedAt = NowUtc()
    db.commit()
    db.refresh(record)
    return record


def UpdateUserPoints(db: Session, user: UserContext, user_id: int, points_change: int) -> dict:
    if user_id != user.Id and not user.IsSiteAdmin:
        raise AccessError("You can only adjust your own points")
    record = _GetUserOrRaise(db, user_id)
    old_points = record.Points or 0
    new_points = max(0, old_points + points_change)
    now = NowUtc()
    record.Points = new_points
    record.LastActive = now
    record.UpdatedAt = now
    db.commit()
    return {
        "UserId": user_id,
        "OldPoints": old_points,
        "NewPoints": new_points,
        "PointsChange": points_change,
    }


def UpdateUserLevel(db: Session, user: UserContext, user_id: int) -> dict:
    if user_id != user.Id and not user.IsSiteAdmin:
        raise AccessError("You can only update your own level")
    record = _GetUserOrRaise(db, user_id)
    old_level = record.Level or 1
    new_level = CalculateLevel(record.Points or 0)
    if new_level != old_level:
        record.Level = new_level
        record.UpdatedAt = NowUtc()
        db.commit()
        logger.info("user level changed user_id=%s from=%s to=%s", user_id, old_level, new_level)
    return {
        "UserId": user_id,
        "OldLevel": old_level,
        "NewLevel": new_level,
        "LeveledUp": new_level > old_level,
    }


def _StatsForPersistence(db: Session, user: UserContext, household_id: int, user_id: int) -> UserStats:
    actor = RequireMember(db, household_id, user.Id)
    if user_id != user.Id and not IsAdmin(actor):
        raise AccessError("Only household admins can change another member's level lock")
    if not GetMembership(db, household_id, user_id):
        raise NotFoundError("Member not found")
    stats = GetStatsRecord(db, user_id, household_id)
    if not stats:
        stats = RecalculateUserStats(db, user_id, household_id)
    return stats


def SetUserLevelPersistence(
    db: Session,
    user: UserContext,
    household_id: int,
    user_id: int,
    level: int,
    points_at_redemption: int,
    grace_period_days: int | None = None,
) -> UserStats:
    if level < 1 or level > MAX_LEVEL:
        raise ValueError(f"Level must be between 1 and {MAX_LEVEL}")
    days = grace_period_days or LEVEL_PERSISTENCE_DAYS
    if days < 1:
        raise ValueError("Grace period must be at least one day")
    stats = _StatsForPersistence(db, user, household_id, user_id)
    now = NowUtc()
    SetLevelPersistence(stats, level, points_at_redemption, now, days)
    ApplyLevel(stats, now)
    stats.UpdatedAt = now
    db.commit()
    db.refresh(stats)
    return stats


def ClearUserLevelPersistence(db: Session, user: UserContext, household_id: int, user_id: int) -> UserStats:
    stats = _StatsForPersistence(db, user, household_id, user_id)
    now = NowUtc()
    ClearLevelPersistence(stats)
    ApplyLevel(stats, now)
    stats.UpdatedAt = now
    db.commit()
    db.refresh(stats)
    return stats
