from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
import calendar
import logging

from sqlalchemy.orm import Session

from dailybag.modules.auth.deps import NowUtc
from dailybag.modules.chores.models import Chore
from dailybag.modules.stats.services import RecalculateUserStats

logger = logging.getLogger("dailybag.chores.schedule")

DUE_HOUR = 18
SEASONAL_RESET_MONTHS = {1, 4, 7, 10}
SEASON_STARTS = [(3, 21), (6, 21), (9, 23), (12, 21)]


def _DaysInMonth(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def AddMonths(value: date, months: int) -> date:
    index = value.month - 1 + months
    year = value.year + index // 12
    month = index % 12 + 1
    return date(year, month, min(value.day, _DaysInMonth(year, month)))


def EndOfDay(value: date) -> datetime:
    return datetime.combine(value, time(23, 59, 59, 999000), tzinfo=timezone.utc)


def _AtDueHour(value: date) -> datetime:
    return datetime.combine(value, time(DUE_HOUR, 0), tzinfo=timezone.utc)


def NormalizeDueDate(value: datetime | None) -> datetime | None:
    """Dates picked without a time land at midnight; move them to the evening."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    if value.hour == 0 and value.minute == 0 and value.second == 0:
        return value.replace(hour=DUE_HOUR, microsecond=0)
    return value


def DefaultDueDate(category: str, now: datetime) -> datetime:
    today = now.date()
    if category == "weekly":
        days_until_sunday = (6 - today.weekday()) % 7 or 7
        return _AtDueHour(today + timedelta(days=days_until_sunday))
    if category == "monthly":
        return _AtDueHour(AddMonths(today.replace(day=1), 1))
    if category == "seasonal":
        for month, day in SEASON_STARTS:
            candidate = date(today.year, month, day)
            if candidate > today:
                return _AtDueHour(candidate)
        month, day = SEASON_STARTS[0]
        return _AtDueHour(date(today.year + 1, month, day))
    return _AtDueHour(today + timedelta(days=1))


def NextResetDueDate(category: str, now: datetime) -> datetime:
    today = now.date()
    if category == "weekly":
        return EndOfDay(today + timedelta(days=7))
    if category == "monthly":
        return EndOfDay(AddMonths(today, 1))
    if category == "seasonal":
        return EndOfDay(AddMonths(today, 3))
    return EndOfDay(today + timedelta(days=1))


def DueCategories(now: datetime) -> list[str]:
    categories = ["daily"]
    if now.weekday() == 0:
        categories.append("weekly")
    if now.day == 1:
        categories.append("monthly")
        if now.month in SEASONAL_RESET_MONTHS:
            categories.append("seasonal")
    return categories


def ResetCompletedChores(db: Session, category: str, now: datetime | None = None) -> int:
    """Reopen completed chores of one category and refresh their assignees' stats."""
    now = now or NowUtc()
    chores = db.query(Chore).filter(Chore.Category == category, Chore.Status == "completed").all()
    due_date = NextResetDueDate(category, now)
    for chore in chores:
        chore.Status = "pending"
        chore.CompletedAt = None
        chore.CompletedByUserId = None
        chore.FinalPoints = None
        chore.BonusMessage = None
        chore.DueDate = due_date
        chore.UpdatedAt = now
    db.flush()
    assignees = {(chore.AssignedToUserId, chore.HouseholdId) for chore in chores if chore.AssignedToUserId}
    for user_id, household_id in assignees:
        RecalculateUserStats(db, user_id, household_id, now=now)
    logger.info("reset %s chores count=%s", category, len(chores))
    return len(chores)


def RunPeriodicResets(
    db: Session,
    now: datetime | None = None,
    categories: list[str] | None = None,
) -> dict[str, int]:
    now = now or NowUtc()
    selected = categories if categories is not None else DueCategories(now)
    return {category: ResetCompletedChores(db, category, now) for category in selected}
