from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
import logging
import math

from sqlalchemy.orm import Session

from dailybag.core.errors import AccessError, ConflictError, NotFoundError
from dailybag.core.validation import CleanText, DESCRIPTION_MAX_LENGTH, TITLE_MAX_LENGTH, TITLE_MIN_LENGTH
from dailybag.modules.auth.deps import AsUtc, NowUtc, UserContext
from dailybag.modules.auth.models import User
from dailybag.modules.chores.defaults import DEFAULT_CHORES, DIFFICULTY_POINTS
from dailybag.modules.chores.models import Chore, ChoreCompletion
from dailybag.modules.chores.services.schedule_service import DefaultDueDate, NormalizeDueDate
from dailybag.modules.households.utils.rbac import ADMIN_ROLE, PARENT_ROLE, GetMembership, RequireAdmin, RequireMember
from dailybag.modules.stats.services import RecalculateUserStats

logger = logging.getLogger("dailybag.chores")

DIFFICULTIES = ("easy", "medium", "hard")
CATEGORIES = ("daily", "weekly", "monthly", "seasonal")
PRIORITIES = ("low", "medium", "high")
STATUSES = ("pending", "in_progress", "completed")
PRIORITY_ORDER = {"high": 0, "medium": 1, "low": 2}
MANAGER_ROLES = {ADMIN_ROLE, PARENT_ROLE}

EARLY_BONUS_RATE = 0.2
ON_TIME_BONUS_RATE = 0.15
LATE_PENALTY_PER_HOUR = 0.005
LATE_PENALTY_CAP = 0.3


@dataclass
class CompletionOutcome:
    FinalPoints: int
    BonusPoints: int
    PenaltyPoints: int
    BonusMessage: str | None
    IsEarly: bool
    IsLate: bool
    DaysEarly: int | None
    DaysLate: int | None


@dataclass
class CompletionResult:
    Chore: Chore
    Completion: ChoreCompletion


def _RoundHalfUp(value: float) -> int:
    return int(math.floor(value + 0.5))


def _Plural(count: int, word: str) -> str:
    return f"{count} {word}s" if count > 1 else f"{count} {word}"


def FormatTimeDifference(hours: float) -> str:
    hours = abs(hours)
    days = int(hours // 24)
    remaining = int(hours % 24)
    if days > 0:
        if remaining > 0:
            return f"{_Plural(days, 'day')} {_Plural(remaining, 'hour')}"
        return _Plural(days, "day")
    return _Plural(remaining, "hour")


def CalculateCompletionOutcome(points: int, due_date: datetime | None, now: datetime) -> CompletionOutcome:
    """Score a completion against the chore's deadline.

    Early completions earn a flat bonus, completions exactly at the deadline a
    smaller one. Late completions lose a share growing per hour late up to a
    cap and never drop below one point.
    """
    due_date = AsUtc(due_date)
    if due_date is None:
        return CompletionOutcome(points, 0, 0, None, False, False, None, None)

    hours = (due_date - now).total_seconds() / 3600
    if hours > 0:
        bonus = _RoundHalfUp(points * EARLY_BONUS_RATE)
        return CompletionOutcome(
            FinalPoints=points + bonus,
            BonusPoints=bonus,
            PenaltyPoints=0,
            BonusMessage=f"+{bonus} early bonus ({FormatTimeDifference(hours)} early)",
            IsEarly=True,
            IsLate=False,
            DaysEarly=int(hours // 24),
            DaysLate=None,
        )
    if hours < 0:
        rate = min(abs(hours) * LATE_PENALTY_PER_HOUR, LATE_PENALTY_CAP)
        penalty = _RoundHalfUp(points * rate)
        final_points = max(1, points - penalty)
        return CompletionOutcome(
            FinalPoints=final_points,
            BonusPoints=0,
            PenaltyPoints=points - final_points,
            BonusMessage=f"-{penalty} late penalty ({FormatTimeDifference(hours)} late)",
            IsEarly=False,
            IsLate=True,
            DaysEarly=None,
            DaysLate=int(abs(hours) // 24),
        )
    bonus = _RoundHalfUp(points * ON_TIME_BONUS_RATE)
    return CompletionOutcome(
        FinalPoints=points + bonus,
        BonusPoints=bonus,
        PenaltyPoints=0,
        BonusMessage=f"+{bonus} on-time bonus",
        IsEarly=False,
        IsLate=False,
        DaysEarly=None,
        DaysLate=None,
    )


def SortChores(chores: list[Chore]) -> list[Chore]:
    """Soonest due first (undated last), then priority, then newest."""

    def _Key(chore: Chore):
        due = AsUtc(chore.DueDate)
        created = AsUtc(chore.CreatedAt)
        return (
            due is None,
            due.timestamp() if due else 0,
            PRIORITY_ORDER.get(chore.Priority, len(PRIORITY_ORDER)),
            -(created.timestamp() if created else 0),
        )

    return sorted(chores, key=_Key)


def _Choice(value: str | None, allowed: tuple[str, ...], field: str, default: str) -> str:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized not in allowed:
        raise ValueError(f"Invalid {field}: {value}")
    return normalized


def _ValidatePoints(points: int | None, difficulty: str) -> int:
    if points is None:
        return DIFFICULTY_POINTS[difficulty]
    if points <= 0:
        raise ValueError("Points must be positive")
    return int(points)


def _ValidateAssignee(db: Session, household_id: int, user_id: int | None) -> int | None:
    if user_id is None:
        return None
    if not GetMembership(db, household_id, user_id):
        raise ValueError("Assigned user is not a member of this household")
    return user_id


def _GetChoreOrRaise(db: Session, chore_id: int) -> Chore:
    chore = db.query(Chore).filter(Chore.Id == chore_id).first()
    if not chore:
        raise NotFoundError("Chore not found")
    return chore


def ListChores(
    db: Session,
    user: UserContext,
    household_id: int,
    *,
    status: str | None = None,
    category: str | None = None,
    assigned_to: int | None = None,
) -> list[Chore]:
    RequireMember(db, household_id, user.Id)
    query = db.query(Chore).filter(Chore.HouseholdId == household_id)
    if status:
        query = query.filter(Chore.Status == _Choice(status, STATUSES, "status", "pending"))
    if category:
        query = query.filter(Chore.Category == _Choice(category, CATEGORIES, "category", "daily"))
    if assigned_to is not None:
        query = query.filter(Chore.AssignedToUserId == assigned_to)
    return SortChores(query.all())


def GetChore(db: Session, user: UserContext, chore_id: int) -> Chore:
    chore = _GetChoreOrRaise(db, chore_id)
    RequireMember(db, chore.HouseholdId, user.Id)
    return chore


def AddChore(db: Session, user: UserContext, household_id: int, payload: dict) -> Chore:
    RequireMember(db, household_id, user.Id)
    difficulty = _Choice(payload.get("Difficulty"), DIFFICULTIES, "difficulty", "medium")
    now = NowUtc()
    chore = Chore(
        HouseholdId=household_id,
        Title=CleanText(payload.get("Title"), "Title", min_length=TITLE_MIN_LENGTH, max_length=TITLE_MAX_LENGTH),
        Description=CleanText(
            payload.get("Description"), "Description", max_length=DESCRIPTION_MAX_LENGTH, required=False
        ),
        Points=_ValidatePoints(payload.get("Points"), difficulty),
        Difficulty=difficulty,
        Category=_Choice(payload.get("Category"), CATEGORIES, "category", "daily"),
        Priority=_Choice(payload.get("Priority"), PRIORITIES, "priority", "medium"),
        AssignedToUserId=_ValidateAssignee(db, household_id, payload.get("AssignedToUserId")),
        Status="pending",
        DueDate=NormalizeDueDate(payload.get("DueDate")),
        CreatedAt=now,
        UpdatedAt=now,
    )
    db.add(chore)
    db.flush()
    if chore.AssignedToUserId:
        RecalculateUserStats(db, chore.AssignedToUserId, household_id, now=now)
    db.commit()
    db.refresh(chore)
    logger.info("chore added chore_id=%s household_id=%s", chore.Id, household_id)
    return chore


def UpdateChore(db: Session, user: UserContext, chore_id: int, payload: dict) -> Chore:
    chore = _GetChoreOrRaise(db, chore_id)
    RequireMember(db, chore.HouseholdId, user.Id)
    previous_assignee = chore.AssignedToUserId

    if payload.get("Title") is not None:
        chore.Title = CleanText(payload["Title"], "Title", min_length=TITLE_MIN_LENGTH, max_length=TITLE_MAX_LENGTH)
    if "Description" in payload:
        chore.Description = CleanText(
            payload.get("Description"), "Description", max_length=DESCRIPTION_MAX_LENGTH, required=False
        )
    if payload.get("Difficulty") is not None:
        chore.Difficulty = _Choice(payload["Difficulty"], DIFFICULTIES, "difficulty", chore.Difficulty)
    if payload.get("Points") is not None:
        chore.Points = _ValidatePoints(payload["Points"], chore.Difficulty)
    if payload.get("Category") is not None:
        chore.Category = _Choice(payload["Category"], CATEGORIES, "category", chore.Category)
    if payload.get("Priority") is not None:
        chore.Priority = _Choice(payload["Priority"], PRIORITIES, "priority", chore.Priority)
    if "AssignedToUserId" in payload:
        chore.AssignedToUserId = _ValidateAssignee(db, chore.HouseholdId, payload.get("AssignedToUserId"))
    if "DueDate" in payload:
        chore.DueDate = NormalizeDueDate(payload.get("DueDate"))

    now = NowUtc()
    chore.UpdatedAt = now
    db.flush()
    for user_id in {previous_assignee, chore.AssignedToUserId} - {None}:
        RecalculateUserStats(db, user_id, chore.HouseholdId, now=now)
    db.commit()
    db.refresh(chore)
    return chore


def StartChore(db: Session, user: UserContext, chore_id: int) -> Chore:
    chore = _GetChoreOrRaise(db, chore_id)
    RequireMember(db, chore.HouseholdId, user.Id)
    if chore.Status == "completed":
        raise ConflictError("Chore already completed")
    chore.Status = "in_progress"
    chore.UpdatedAt = NowUtc()
    db.commit()
    db.refresh(chore)
    return chore


def CompleteChore(
    db: Session,
    user: UserContext,
    chore_id: int,
    completed_by_user_id: int | None = None,
    *,
    now: datetime | None = None,
) -> CompletionResult:
    chore = _GetChoreOrRaise(db, chore_id)
    if chore.Status == "completed":
        raise ConflictError("Chore already completed")
    actor = RequireMember(db, chore.HouseholdId, user.Id)

    completed_by = completed_by_user_id or user.Id
    if completed_by != user.Id:
        if actor.Role not in MANAGER_ROLES:
            raise AccessError("Only admins and parents can complete chores for other members")
        if not GetMembership(db, chore.HouseholdId, completed_by):
            raise ValueError("Completing user is not a member of this household")

    now = now or NowUtc()
    outcome = CalculateCompletionOutcome(chore.Points, chore.DueDate, now)

    chore.Status = "completed"
    chore.CompletedAt = now
    chore.CompletedByUserId = completed_by
    chore.FinalPoints = outcome.FinalPoints
    chore.BonusMessage = outcome.BonusMessage
    chore.UpdatedAt = now

    completion = ChoreCompletion(
        ChoreId=chore.Id,
        UserId=completed_by,
        HouseholdId=chore.HouseholdId,
        CompletedAt=now,
        PointsEarned=outcome.FinalPoints,
        BasePoints=chore.Points,
        Difficulty=chore.Difficulty,
        DueDate=chore.DueDate,
        BonusPoints=outcome.BonusPoints,
        PenaltyPoints=outcome.PenaltyPoints,
        BonusMessage=outcome.BonusMessage,
        IsEarly=outcome.IsEarly,
        IsLate=outcome.IsLate,
        DaysEarly=outcome.DaysEarly,
        DaysLate=outcome.DaysLate,
    )
    db.add(completion)

    profile = db.query(User).filter(User.Id == completed_by).first()
    if profile:
        profile.Points = (profile.Points or 0) + outcome.FinalPoints
        profile.LastActive = now
        profile.UpdatedAt = now

    db.flush()
    for user_id in {completed_by, chore.AssignedToUserId} - {None}:
        RecalculateUserStats(db, user_id, chore.HouseholdId, now=now)
    db.commit()
    db.refresh(chore)
    db.refresh(completion)
    logger.info(
        "chore completed chore_id=%s user_id=%s points=%s",
        chore.Id,
        completed_by,
        outcome.FinalPoints,
    )
    return CompletionResult(Chore=chore, Completion=completion)


def DeleteChore(db: Session, user: UserContext, chore_id: int) -> None:
    chore = _GetChoreOrRaise(db, chore_id)
    actor = RequireMember(db, chore.HouseholdId, user.Id)
    if actor.Role not in MANAGER_ROLES and chore.AssignedToUserId != user.Id:
        raise AccessError("Only admins, parents or the assignee can delete this chore")

    completions = db.query(ChoreCompletion).filter(ChoreCompletion.ChoreId == chore.Id).all()
    affected = {completion.UserId for completion in completions}
    if chore.AssignedToUserId:
        affected.add(chore.AssignedToUserId)
    for completion in completions:
        db.delete(completion)
    household_id = chore.HouseholdId
    db.delete(chore)
    db.flush()

    for user_id in affected:
        RecalculateUserStats(db, user_id, household_id)
    db.commit()
    logger.info("chore deleted chore_id=%s completions=%s", chore_id, len(completions))


def ResetChoresToDefaults(db: Session, user: UserContext, household_id: int) -> int:
    """Replace every open chore in the household with the default set."""
    RequireAdmin(db, household_id, user.Id)
    now = NowUtc()

    open_chores = (
        db.query(Chore)
        .filter(Chore.HouseholdId == household_id, Chore.Status != "completed")
        .all()
    )
    affected = {chore.AssignedToUserId for chore in open_chores} - {None}
    for chore in open_chores:
        db.delete(chore)

    for title, description, difficulty, category, priority in DEFAULT_CHORES:
        db.add(
            Chore(
                HouseholdId=household_id,
                Title=title,
                Description=description,
                Points=DIFFICULTY_POINTS[difficulty],
                Difficulty=difficulty,
                Category=category,
                Priority=priority,
                Status="pending",
                DueDate=DefaultDueDate(category, now),
                CreatedAt=now,
                UpdatedAt=now,
            )
        )
    db.flush()
    for user_id in affected:
        RecalculateUserStats(db, user_id, household_id, now=now)
    db.commit()
    logger.info("chores reset to defaults household_id=%s count=%s", household_id, len(DEFAULT_CHORES))
    return len(DEFAULT_CHORES)
