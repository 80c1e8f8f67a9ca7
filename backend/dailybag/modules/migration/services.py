from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
import logging
from typing import Any

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from dailybag.core.levels import CalculateLevel
from dailybag.modules.auth.deps import NowUtc, UserContext
from dailybag.modules.auth.models import DEFAULT_AVATAR, User
from dailybag.modules.chores.defaults import DIFFICULTY_POINTS
from dailybag.modules.chores.models import Chore, ChoreCompletion
from dailybag.modules.chores.services.chore_service import CATEGORIES, DIFFICULTIES, PRIORITIES
from dailybag.modules.households.models import Household, HouseholdMember
from dailybag.modules.households.services import GenerateJoinCode
from dailybag.modules.households.utils.rbac import ADMIN_ROLE, HOUSEHOLD_ROLES
from dailybag.modules.redemptions.models import PointDeduction, RedemptionRequest
from dailybag.modules.stats.models import UserStats
from dailybag.modules.stats.services import RecalculateUserStats

logger = logging.getLogger("dailybag.migration")

MIGRATED_USER_NAME = "Migrated User"
MIGRATED_HOUSEHOLD_NAME = "My Household"
MIGRATED_DEDUCTION_REASON = "Migrated from localStorage"
LEGACY_KEYS = ("chores", "choreAppUsers", "userStats")
REDEMPTION_STATUSES = ("pending", "approved", "rejected")


def ParseLegacyTimestamp(value: Any) -> datetime | None:
    """Legacy dates are either epoch milliseconds or ISO strings."""
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            logger.warning("unparseable legacy timestamp value=%r", value)
            return None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed.astimezone(timezone.utc)
    return None


def _Pick(value: Any, allowed: tuple[str, ...], default: str) -> str:
    if isinstance(value, str) and value.strip().lower() in allowed:
        return value.strip().lower()
    return default


def _Int(value: Any, default: int = 0) -> int:
    if isinstance(value, bool) or value is None:
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def CheckMigrationStatus(db: Session, user: UserContext | None) -> dict:
    if user is None:
        return {"NeedsMigration": False, "Reason": "Not authenticated"}
    record = db.query(User).filter(User.Id == user.Id).first()
    if not record:
        return {"NeedsMigration": True, "Reason": "User not found"}

    household_ids = [
        row[0] for row in db.query(HouseholdMember.HouseholdId).filter(HouseholdMember.UserId == user.Id).all()
    ]
    if not household_ids:
        return {"NeedsMigration": True, "Reason": "No households found"}

    has_chores = db.query(Chore.Id).filter(Chore.HouseholdId.in_(household_ids)).first()
    if not has_chores:
        return {"NeedsMigration": True, "Reason": "No chores found"}
    return {"NeedsMigration": False, "Reason": "Data already exists"}


def GetMigrationInstructions() -> dict:
    return {
        "Instructions": [
            "1. Open your browser's developer tools (F12)",
            "2. Go to the Application/Storage tab",
            "3. Find localStorage and copy the following keys:",
            "   - 'chores' (array of chore objects)",
            "   - 'choreAppUsers' (array of user objects)",
            "   - 'userStats' (object with user statistics)",
            "4. Send them to the migration endpoint, or run scripts/legacy_export.py on a saved dump",
        ],
        "LegacyKeys": list(LEGACY_KEYS),
    }


def _Text(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _MergeProfile(record: User, legacy: dict, now: datetime) -> None:
    record.Name = (_Text(legacy.get("name")) or record.Name or MIGRATED_USER_NAME)[:50]
    record.AvatarUrl = (_Text(legacy.get("avatarUrl")) or record.AvatarUrl or DEFAULT_AVATAR)[:500]
    record.Points = _Int(legacy.get("points")) or record.Points or 0
    record.Level = _Int(legacy.get("level")) or record.Level or 1
    record.Role = _Pick(legacy.get("role"), HOUSEHOLD_ROLES, record.Role or ADMIN_ROLE)
    record.LastActive = now
    record.UpdatedAt = now
    if record.CreatedAt is None:
        record.CreatedAt = now


def _InsertChore(db: Session, legacy: dict, user_id: int, household_id: int, now: datetime) -> None:
    title = legacy.get("title")
    if not isinstance(title, str) or not title.strip():
        raise ValueError("Chore title is required")
    difficulty = _Pick(legacy.get("difficulty"), DIFFICULTIES, "medium")
    points = _Int(legacy.get("points"), DIFFICULTY_POINTS[difficulty])
    final_points = _Int(legacy.get("finalPoints")) or points
    completed = bool(legacy.get("completed"))
    completed_at = ParseLegacyTimestamp(legacy.get("completedAt"))
    due_date = ParseLegacyTimestamp(legacy.get("dueDate"))

    chore = Chore(
        HouseholdId=household_id,
        Title=title.strip()[:100],
        Description=legacy.get("description"),
        Points=points,
        Difficulty=difficulty,
        Category=_Pick(legacy.get("category"), CATEGORIES, "daily"),
        Priority=_Pick(legacy.get("priority"), PRIORITIES, "medium"),
        AssignedToUserId=user_id,
        Status="completed" if completed else "pending",
        DueDate=due_date,
        CompletedAt=completed_at,
        CompletedByUserId=user_id if legacy.get("completedBy") else None,
        FinalPoints=final_points,
        BonusMessage=legacy.get("bonusMessage"),
        CreatedAt=ParseLegacyTimestamp(legacy.get("createdAt")) or now,
        UpdatedAt=now,
    )
    db.add(chore)
    db.flush()

    if completed and completed_at:
        db.add(
            ChoreCompletion(
                ChoreId=chore.Id,
                UserId=user_id,
                HouseholdId=household_id,
                CompletedAt=completed_at,
                PointsEarned=final_points,
                BasePoints=points,
                Difficulty=difficulty,
                DueDate=due_date,
                BonusPoints=max(0, final_points - points),
                PenaltyPoints=max(0, points - final_points),
                BonusMessage=legacy.get("bonusMessage"),
                IsEarly=False,
                IsLate=False,
            )
        )
        db.flush()


def _InsertStats(
    db: Session,
    legacy_stats: dict,
    level_persistence: dict | None,
    user_id: int,
    household_id: int,
    now: datetime,
) -> None:
    persisted = legacy_stats.get("levelPersistenceInfo")
    if isinstance(level_persistence, dict) and level_persistence:
        values = list(level_persistence.values())
        if values and isinstance(values[0], dict):
            persisted = values[0]
    persisted = persisted if isinstance(persisted, dict) else {}

    earned = _Int(legacy_stats.get("earnedPoints"))
    lifetime = _Int(legacy_stats.get("lifetimePoints"), earned)
    imported = (
        db.query(func.coalesce(func.sum(ChoreCompletion.PointsEarned), 0))
        .filter(ChoreCompletion.UserId == user_id, ChoreCompletion.HouseholdId == household_id)
        .scalar()
    )
    db.add(
        UserStats(
            UserId=user_id,
            HouseholdId=household_id,
            TotalChores=_Int(legacy_stats.get("totalChores")),
            CompletedChores=_Int(legacy_stats.get("completedChores")),
            TotalPoints=_Int(legacy_stats.get("totalPoints")),
            EarnedPoints=earned,
            LifetimePoints=lifetime,
            PointsRedeemed=0,
            CarriedPoints=max(0, lifetime - int(imported or 0)),
            CurrentStreak=_Int(legacy_stats.get("currentStreak")),
            LongestStreak=_Int(legacy_stats.get("longestStreak")),
            CurrentLevel=_Int(legacy_stats.get("currentLevel")) or CalculateLevel(earned),
            CurrentLevelPoints=_Int(legacy_stats.get("currentLevelPoints")),
            PointsToNextLevel=_Int(legacy_stats.get("pointsToNextLevel"), 100),
            PersistedLevel=_Int(persisted.get("level")) or None,
            PersistedLevelExpiresAt=ParseLegacyTimestamp(persisted.get("expiresAt")),
            PointsAtRedemption=_Int(persisted.get("pointsAtRedemption")) if persisted else None,
            LastActive=ParseLegacyTimestamp(legacy_stats.get("lastActive")) or now,
            UpdatedAt=now,
        )
    )
    db.flush()


def _InsertDeductions(db: Session, deductions: dict, user_id: int, household_id: int, now: datetime) -> int:
    total = 0
    for points in deductions.values():
        points = _Int(points)
        if points <= 0:
            continue
        db.add(
            PointDeduction(
                UserId=user_id,
                HouseholdId=household_id,
                PointsDeducted=points,
                Reason=MIGRATED_DEDUCTION_REASON,
                DeductedAt=now,
                DeductedByUserId=user_id,
            )
        )
        total += points
    return total


def _InsertRedemption(db: Session, legacy: dict, user_id: int, household_id: int, now: datetime) -> None:
    try:
        cash = Decimal(str(legacy.get("cashAmount") or 0)).quantize(Decimal("0.01"))
    except InvalidOperation as exc:
        raise ValueError("Invalid cash amount") from exc
    db.add(
        RedemptionRequest(
            UserId=user_id,
            HouseholdId=household_id,
            PointsRequested=_Int(legacy.get("pointsRequested")),
            CashAmount=cash,
            Status=_Pick(legacy.get("status"), REDEMPTION_STATUSES, "pending"),
            RequestedAt=ParseLegacyTimestamp(legacy.get("requestedAt")) or now,
            ProcessedAt=ParseLegacyTimestamp(legacy.get("processedAt")),
            AdminNotes=legacy.get("adminNotes"),
        )
    )
    db.flush()


def MigrateLocalStorageData(db: Session, user: UserContext, payload: dict) -> dict:
    """Import a browser's legacy localStorage data into a new household.

    Items that fail to import are logged and skipped; anything else rolls
    the whole import back.
    """
    status = CheckMigrationStatus(db, user)
    if not status["NeedsMigration"]:
        return {"Success": False, "Error": "Migration not needed: " + status["Reason"], "MigratedCount": 0}

    now = NowUtc()
    migrated_count = 0
    try:
        record = db.query(User).filter(User.Id == user.Id).first()
        if not record:
            raise ValueError("User not found")
        users = payload.get("Users")
        if isinstance(users, list) and users and isinstance(users[0], dict):
            _MergeProfile(record, users[0], now)
            migrated_count += 1

        household = Household(
            Name=MIGRATED_HOUSEHOLD_NAME,
            CreatedByUserId=user.Id,
            JoinCode=GenerateJoinCode(db),
            CreatedAt=now,
            UpdatedAt=now,
        )
        db.add(household)
        db.flush()
        db.add(HouseholdMember(HouseholdId=household.Id, UserId=user.Id, Role=ADMIN_ROLE, JoinedAt=now))

        for legacy in payload.get("Chores") or []:
            savepoint = db.begin_nested()
            try:
                _InsertChore(db, legacy, user.Id, household.Id, now)
                savepoint.commit()
                migrated_count += 1
            except (SQLAlchemyError, ValueError, TypeError, AttributeError) as exc:
                savepoint.rollback()
                logger.warning("skipped legacy chore household_id=%s error=%s", household.Id, exc)

        user_stats = payload.get("UserStats")
        if isinstance(user_stats, dict) and user_stats:
            first = next(iter(user_stats.values()))
            if isinstance(first, dict):
                _InsertStats(db, first, payload.get("LevelPersistence"), user.Id, household.Id, now)

        deductions = payload.get("PointDeductions")
        if isinstance(deductions, dict):
            _InsertDeductions(db, deductions, user.Id, household.Id, now)
            db.flush()

        for legacy in payload.get("RedemptionRequests") or []:
            savepoint = db.begin_nested()
            try:
                _InsertRedemption(db, legacy, user.Id, household.Id, now)
                savepoint.commit()
            except (SQLAlchemyError, ValueError, TypeError, AttributeError) as exc:
                savepoint.rollback()
                logger.warning("skipped legacy redemption household_id=%s error=%s", household.Id, exc)

        RecalculateUserStats(db, user.Id, household.Id, now=now)
        db.commit()
    except (SQLAlchemyError, ValueError, TypeError, AttributeError) as exc:
        db.rollback()
        logger.exception("legacy migration failed user_id=%s", user.Id)
        return {"Success": False, "Error": str(exc), "MigratedCount": migrated_count}

    logger.info(
        "legacy migration complete user_id=%s household_id=%s items=%s",
        user.Id,
        household.Id,
        migrated_count,
    )
    return {
        "Success": True,
        "MigratedCount": migrated_count,
        "HouseholdId": household.Id,
        "Message": f"Successfully migrated {migrated_count} items",
    }
