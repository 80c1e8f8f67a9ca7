from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
import logging
from typing import Iterable

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from dailybag.core.levels import CalculateLevel, ComputeProgress, EfficiencyBadge, GetLevel, LevelProgress
from dailybag.modules.auth.deps import AsUtc, NowUtc, UserContext
from dailybag.modules.auth.models import User
from dailybag.modules.chores.models import Chore, ChoreCompletion
from dailybag.modules.households.models import HouseholdMember
from dailybag.modules.households.utils.rbac import RequireMember
from dailybag.modules.redemptions.models import PointDeduction
from dailybag.modules.stats.models import UserStats

logger = logging.getLogger("dailybag.stats")

LEVEL_PERSISTENCE_DAYS = 30
RECENT_ACTIVITY_LIMIT = 20
OPEN_STATUSES = ("pending", "in_progress")
RANKING_MODES = ("points", "efficiency", "lifetime")
DIFFICULTY_WEIGHTS = {"hard": 1.5, "medium": 1.0, "easy": 0.5}


@dataclass
class LeaderboardEntry:
    UserId: int
    Name: str
    AvatarUrl: str | None
    Role: str
    Stats: UserStats
    Level: int
    LevelName: str
    LevelIcon: str
    LevelProgress: float
    CompletionRate: float
    EfficiencyBadge: str
    IsCurrentUser: bool


@dataclass
class Leaderboard:
    Mode: str
    Entries: list[LeaderboardEntry]
    TotalHouseholdPoints: int
    AverageEfficiency: float


@dataclass
class ActivityItem:
    CompletionId: int
    ChoreId: int
    ChoreTitle: str | None
    UserId: int
    UserName: str | None
    CompletedAt: datetime
    PointsEarned: int
    BonusMessage: str | None
    IsEarly: bool
    IsLate: bool


def CalculateStreaks(completed_days: Iterable[date], today: date) -> tuple[int, int]:
    """Return (current, longest) runs of consecutive completion days.

    The current streak is still alive when the latest completion was
    yesterday, so a streak does not break before the day is over.
    """
    days = sorted(set(completed_days), reverse=True)
    if not days:
        return 0, 0

    current = 0
    if days[0] >= today - timedelta(days=1):
        expected = days[0]
        for day in days:
            if day != expected:
                break
            current += 1
            expected = day - timedelta(days=1)

    longest = 1
    run = 1
    for previous, day in zip(days, days[1:]):
        if previous - day == timedelta(days=1):
            run += 1
            longest = max(longest, run)
        else:
            run = 1
    return current, longest


def CalculateEfficiencyScore(
    completions: list[ChoreCompletion],
    open_chores: list[Chore],
    longest_streak: int,
) -> float:
    total = len(completions) + len(open_chores)
    if total == 0:
        return 0.0

    completed = len(completions)
    completion_rate = completed / total

    timeliness_values = []
    for completion in completions:
        due = AsUtc(completion.DueDate)
        done = AsUtc(completion.CompletedAt)
        if not due or not done:
            continue
        days = (due - done).total_seconds() / 86400
        timeliness_values.append(max(-1.0, min(1.0, days / 7)))
    timeliness = sum(timeliness_values) / len(timeliness_values) if timeliness_values else 0.0

    difficulty_balance = 0.0
    streak_consistency = 0.0
    if completed:
        difficulty_balance = sum(
            DIFFICULTY_WEIGHTS.get(completion.Difficulty or "medium", 1.0) for completion in completions
        ) / completed
        streak_consistency = min(1.0, longest_streak / completed)

    earned = sum(completion.PointsEarned or 0 for completion in completions)
    potential = sum(completion.BasePoints or 0 for completion in completions) + sum(
        chore.Points or 0 for chore in open_chores
    )
    points_efficiency = earned / potential if potential > 0 else 0.0

    score = (
        completion_rate * 30
        + (timeliness + 1) * 12.5
        + difficulty_balance * 20
        + streak_consistency * 15
        + points_efficiency * 10
    )
    return round(score, 2)


def ResolveDisplayedLevel(stats: UserStats, earned_points: int, now: datetime) -> int:
    """Apply level persistence on top of the level earned points give.

    Expired records, and records the user has caught up with, are cleared.
    """
    computed = CalculateLevel(earned_points)
    persisted = stats.PersistedLevel
    expires_at = AsUtc(stats.PersistedLevelExpiresAt)
    if not persisted:
        return computed
    if not expires_at or expires_at <= now or computed >= persisted:
        ClearLevelPersistence(stats)
        return computed
    return persisted


def ClearLevelPersistence(stats: UserStats) -> None:
    stats.PersistedLevel = None
    stats.PersistedLevelExpiresAt = None
    stats.PointsAtRedemption = None


def SetLevelPersistence(
    stats: UserStats,
    level: int,
    points_at_redemption: int,
    now: datetime,
    days: int = LEVEL_PERSISTENCE_DAYS,
) -> None:
    stats.PersistedLevel = level
    stats.PersistedLevelExpiresAt = now + timedelta(days=days)
    stats.PointsAtRedemption = points_at_redemption


def ApplyLevel(stats: UserStats, now: datetime) -> None:
    level = ResolveDisplayedLevel(stats, stats.EarnedPoints, now)
    progress = ComputeProgress(level, stats.EarnedPoints)
    stats.CurrentLevel = level
    stats.CurrentLevelPoints = max(0, stats.EarnedPoints - progress.CurrentLevel.PointsRequired)
    stats.PointsToNextLevel = progress.PointsToNextLevel


def GetStatsRecord(db: Session, user_id: int, household_id: int) -> UserStats | None:
    return (
        db.query(UserStats)
        .filter(UserStats.UserId == user_id, UserStats.HouseholdId == household_id)
        .first()
    )


def RecalculateUserStats(
    db: Session,
    user_id: int,
    household_id: int,
    *,
    now: datetime | None = None,
    lock_level: int | None = None,
) -> UserStats:
    """Rebuild the rollup for one member from completions and deductions.

    ``CarriedPoints`` holds lifetime points imported without completion
    records and is added on top of the completion ledger.

    ``lock_level`` is the level the user displayed before a redemption; when
    the rebuilt level falls below it, that level is kept for the grace period.
    The caller owns the transaction.
    """
    now = now or NowUtc()
    stats = GetStatsRecord(db, user_id, household_id)
    if not stats:
        stats = UserStats(UserId=user_id, HouseholdId=household_id)
        db.add(stats)

    completions = (
        db.query(ChoreCompletion)
        .filter(ChoreCompletion.UserId == user_id, ChoreCompletion.HouseholdId == household_id)
        .all()
    )
    open_chores = (
        db.query(Chore)
        .filter(
            Chore.HouseholdId == household_id,
            Chore.AssignedToUserId == user_id,
            Chore.Status.in_(OPEN_STATUSES),
        )
        .all()
    )
    redeemed = (
        db.query(func.coalesce(func.sum(PointDeduction.PointsDeducted), 0))
        .filter(PointDeduction.UserId == user_id, PointDeduction.HouseholdId == household_id)
        .scalar()
    )

    lifetime = (stats.CarriedPoints or 0) + sum(completion.PointsEarned or 0 for completion in completions)
    stats.LifetimePoints = lifetime
    stats.PointsRedeemed = int(redeemed or 0)
    stats.EarnedPoints = max(0, lifetime - stats.PointsRedeemed)
    stats.CompletedChores = len(completions)
    stats.TotalChores = len(completions) + len(open_chores)
    stats.TotalPoints = lifetime + sum(chore.Points or 0 for chore in open_chores)

    completed_times = [AsUtc(completion.CompletedAt) for completion in completions if completion.CompletedAt]
    current_streak, longest_streak = CalculateStreaks(
        (value.date() for value in completed_times),
        now.date(),
    )
    stats.CurrentStreak = current_streak
    stats.LongestStreak = max(longest_streak, stats.LongestStreak or 0)
    stats.EfficiencyScore = CalculateEfficiencyScore(completions, open_chores, longest_streak)
    if completed_times:
        stats.LastActive = max(completed_times)

    if lock_level is not None and CalculateLevel(stats.EarnedPoints) < lock_level:
        SetLevelPersistence(stats, lock_level, stats.EarnedPoints, now)
    ApplyLevel(stats, now)
    stats.UpdatedAt = now
    db.flush()
    return stats


def GetUserStats(
    db: Session,
    user: UserContext,
    household_id: int,
    target_user_id: int | None = None,
) -> UserStats:
    RequireMember(db, household_id, user.Id)
    user_id = target_user_id or user.Id
    if user_id != user.Id:
        RequireMember(db, household_id, user_id)
    stats = GetStatsRecord(db, user_id, household_id)
    if stats:
        return stats
    stats = RecalculateUserStats(db, user_id, household_id)
    db.commit()
    db.refresh(stats)
    return stats


def GetUserProgress(
    db: Session,
    user: UserContext,
    household_id: int,
    target_user_id: int | None = None,
) -> LevelProgress:
    stats = GetUserStats(db, user, household_id, target_user_id)
    return ComputeProgress(stats.CurrentLevel, stats.EarnedPoints)


def BuildLeaderboard(
    rows: list[tuple[UserStats, User | None, HouseholdMember]],
    mode: str,
    current_user_id: int,
) -> Leaderboard:
    entries = []
    for stats, profile, member in rows:
        level = GetLevel(stats.CurrentLevel) or GetLevel(1)
        progress = ComputeProgress(stats.CurrentLevel, stats.EarnedPoints)
        completion_rate = (
            stats.CompletedChores / stats.TotalChores * 100 if stats.TotalChores else 0.0
        )
        entries.append(
            LeaderboardEntry(
                UserId=stats.UserId,
                Name=profile.Name if profile else "Unknown",
                AvatarUrl=profile.AvatarUrl if profile else None,
                Role=member.Role,
                Stats=stats,
                Level=level.Level,
                LevelName=level.Name,
                LevelIcon=level.Icon,
                LevelProgress=round(progress.ProgressToNextLevel, 2),
                CompletionRate=round(completion_rate, 2),
                EfficiencyBadge=EfficiencyBadge(stats.EfficiencyScore or 0),
                IsCurrentUser=stats.UserId == current_user_id,
            )
        )

    if mode == "points":
        key = lambda entry: entry.Stats.EarnedPoints
    elif mode == "efficiency":
        key = lambda entry: entry.Stats.EfficiencyScore or 0
    elif mode == "lifetime":
        key = lambda entry: entry.Stats.LifetimePoints
    else:
        key = lambda entry: entry.Stats.CompletedChores
    entries.sort(key=key, reverse=True)

    total_points = sum(entry.Stats.EarnedPoints for entry in entries)
    average_efficiency = (
        round(sum(entry.Stats.EfficiencyScore or 0 for entry in entries) / len(entries), 2) if entries else 0.0
    )
    return Leaderboard(
        Mode=mode,
        Entries=entries,
        TotalHouseholdPoints=total_points,
        AverageEfficiency=average_efficiency,
    )


def GetLeaderboard(db: Session, user: UserContext, household_id: int, mode: str = "points") -> Leaderboard:
    RequireMember(db, household_id, user.Id)
    members = db.query(HouseholdMember).filter(HouseholdMember.HouseholdId == household_id).all()
    stats_by_user = {
        stats.UserId: stats
        for stats in db.query(UserStats).filter(UserStats.HouseholdId == household_id).all()
    }
    missing = [member.UserId for member in members if member.UserId not in stats_by_user]
    if missing:
        for user_id in missing:
            stats_by_user[user_id] = RecalculateUserStats(db, user_id, household_id)
        db.commit()

    user_ids = [member.UserId for member in members]
    profiles = {row.Id: row for row in db.query(User).filter(User.Id.in_(user_ids)).all()} if user_ids else {}
    rows = [(stats_by_user[member.UserId], profiles.get(member.UserId), member) for member in members]
    return BuildLeaderboard(rows, mode, user.Id)


def GetRecentActivity(
    db: Session,
    user: UserContext,
    household_id: int,
    limit: int = RECENT_ACTIVITY_LIMIT,
) -> list[ActivityItem]:
    RequireMember(db, household_id, user.Id)
    completions = (
        db.query(ChoreCompletion)
        .filter(ChoreCompletion.HouseholdId == household_id)
        .order_by(ChoreCompletion.CompletedAt.desc(), ChoreCompletion.Id.desc())
        .limit(limit)
        .all()
    )
    chore_ids = {completion.ChoreId for completion in completions}
    user_ids = {completion.UserId for completion in completions}
    chores = {row.Id: row for row in db.query(Chore).filter(Chore.Id.in_(chore_ids)).all()} if chore_ids else {}
    users = {row.Id: row for row in db.query(User).filter(User.Id.in_(user_ids)).all()} if user_ids else {}
    return [
        ActivityItem(
            CompletionId=completion.Id,
            ChoreId=completion.ChoreId,
            ChoreTitle=chores[completion.ChoreId].Title if completion.ChoreId in chores else None,
            UserId=completion.UserId,
            UserName=users[completion.UserId].Name if completion.UserId in users else None,
            CompletedAt=completion.CompletedAt,
            PointsEarned=completion.PointsEarned,
            BonusMessage=completion.BonusMessage,
            IsEarly=completion.IsEarly,
            IsLate=completion.IsLate,
        )
        for completion in completions
    ]


def RecalculateHouseholdStats(db: Session, household_id: int, *, now: datetime | None = None) -> int:
    members = db.query(HouseholdMember).filter(HouseholdMember.HouseholdId == household_id).all()
    for member in members:
        RecalculateUserStats(db, member.UserId, household_id, now=now)
    return len(members)


def CleanupExpiredLevelPersistence(db: Session, now: datetime | None = None) -> int:
    now = now or NowUtc()
    records = (
        db.query(UserStats)
        .filter(UserStats.PersistedLevel.isnot(None), UserStats.PersistedLevelExpiresAt <= now)
        .all()
    )
    for stats in records:
        ClearLevelPersistence(stats)
        ApplyLevel(stats, now)
        stats.UpdatedAt = now
    return len(records)


def RecalculateActiveHouseholdStats(db: Session, now: datetime | None = None) -> dict:
    now = now or NowUtc()
    since = now - timedelta(hours=24)
    household_ids = [
        row[0]
        for row in db.query(ChoreCompletion.HouseholdId)
        .filter(ChoreCompletion.CompletedAt >= since)
        .distinct()
        .all()
    ]
    households = 0
    members = 0
    for household_id in household_ids:
        try:
            with db.begin_nested():
                members += RecalculateHouseholdStats(db, household_id, now=now)
            households += 1
        except (SQLAlchemyError, ValueError):
            logger.exception("stats recalculation failed household_id=%s", household_id)
    return {"Households": households, "Members": members}
