from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
import logging

from sqlalchemy import func
from sqlalchemy.orm import Session

from dailybag.core.errors import AccessError, ConflictError, NotFoundError
from dailybag.modules.auth.deps import NowUtc, UserContext
from dailybag.modules.auth.models import User
from dailybag.modules.households.models import Household
from dailybag.modules.households.utils.rbac import CanManageMember, GetMembership, IsAdmin, RequireAdmin, RequireMember
from dailybag.modules.redemptions.models import PointDeduction, RedemptionRequest
from dailybag.modules.stats.services import GetStatsRecord, RecalculateUserStats

logger = logging.getLogger("dailybag.redemptions")

CASH_TOLERANCE = Decimal("0.01")
MAX_CONVERSION_RATE = 10000
PROCESSABLE_STATUSES = {"approved", "rejected"}


@dataclass
class DeductionTotal:
    UserId: int
    UserName: str | None
    TotalPointsDeducted: int
    DeductionCount: int


@dataclass
class RedemptionSummary:
    UserId: int
    HouseholdId: int
    EarnedPoints: int
    PendingPoints: int
    AvailablePoints: int
    RedeemedPoints: int
    RedeemedValue: Decimal
    PendingCount: int
    ApprovedCount: int
    RejectedCount: int
    ConversionRate: int


def PointsToCash(points: int, rate: int) -> Decimal:
    return (Decimal(points) / Decimal(rate)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def ValidateConversion(points: int, cash_amount: Decimal | float, rate: int) -> None:
    if points <= 0:
        raise ValueError("Points requested must be positive")
    cash = Decimal(str(cash_amount))
    if cash <= 0:
        raise ValueError("Cash amount must be positive")
    expected = Decimal(points) / Decimal(rate)
    if abs(expected - cash) > CASH_TOLERANCE:
        raise ValueError(f"Cash amount does not match conversion rate ({rate} points = 1.00)")


def _GetHouseholdOrRaise(db: Session, household_id: int) -> Household:
    household = db.query(Household).filter(Household.Id == household_id).first()
    if not household:
        raise NotFoundError("Household not found")
    return household


def PendingPoints(db: Session, user_id: int, household_id: int) -> int:
    total = (
        db.query(func.coalesce(func.sum(RedemptionRequest.PointsRequested), 0))
        .filter(
            RedemptionRequest.UserId == user_id,
            RedemptionRequest.HouseholdId == household_id,
            RedemptionRequest.Status == "pending",
        )
        .scalar()
    )
    return int(total or 0)


def AvailablePoints(db: Session, user_id: int, household_id: int) -> int:
    stats = GetStatsRecord(db, user_id, household_id)
    if not stats:
        stats = RecalculateUserStats(db, user_id, household_id)
    return max(0, stats.EarnedPoints - PendingPoints(db, user_id, household_id))


def _Approve(db: Session, request: RedemptionRequest, approver_id: int, now: datetime) -> PointDeduction:
    stats = GetStatsRecord(db, request.UserId, request.HouseholdId)
    previous_level = stats.CurrentLevel if stats else None

    request.Status = "approved"
    request.ProcessedAt = now
    request.ProcessedByUserId = approver_id
    deduction = PointDeduction(
        UserId=request.UserId,
        HouseholdId=request.HouseholdId,
        PointsDeducted=request.PointsRequested,
        Reason=f"Redemption request approved: {Decimal(request.CashAmount):.2f}",
        RedemptionRequestId=request.Id,
        DeductedAt=now,
        DeductedByUserId=approver_id,
    )
    db.add(deduction)
    db.flush()
    RecalculateUserStats(db, request.UserId, request.HouseholdId, now=now, lock_level=previous_level)
    return deduction


def CreateRedemptionRequest(
    db: Session,
    user: UserContext,
    household_id: int,
    points_requested: int,
    cash_amount: Decimal | float,
    target_user_id: int | None = None,
) -> RedemptionRequest:
    household = _GetHouseholdOrRaise(db, household_id)
    actor = RequireMember(db, household_id, user.Id)
    user_id = target_user_id or user.Id
    if user_id != user.Id:
        target = GetMembership(db, household_id, user_id)
        if not target:
            raise ValueError("User is not a member of this household")
        if not CanManageMember(actor, target):
            raise AccessError("You can only request redemptions for yourself")

    ValidateConversion(points_requested, cash_amount, household.ConversionRate)
    available = AvailablePoints(db, user_id, household_id)
    if available < points_requested:
        raise ValueError(f"Insufficient points. Available: {available}, requested: {points_requested}")

    now = NowUtc()
    request = RedemptionRequest(
        UserId=user_id,
        HouseholdId=household_id,
        PointsRequested=points_requested,
        CashAmount=Decimal(str(cash_amount)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP),
        Status="pending",
        RequestedAt=now,
    )
    db.add(request)
    db.flush()

    if IsAdmin(actor):
        _Approve(db, request, user.Id, now)
        logger.info("redemption auto-approved request_id=%s user_id=%s", request.Id, user_id)
    db.commit()
    db.refresh(request)
    logger.info(
        "redemption requested request_id=%s user_id=%s points=%s",
        request.Id,
        user_id,
        points_requested,
    )
    return request


def ProcessRedemptionRequest(
    db: Session,
    user: UserContext,
    request_id: int,
    status: str,
    admin_notes: str | None = None,
) -> RedemptionRequest:
    request = db.query(RedemptionRequest).filter(RedemptionRequest.Id == request_id).first()
    if not request:
        raise NotFoundError("Redemption request not found")
    normalized = (status or "").strip().lower()
    if normalized not in PROCESSABLE_STATUSES:
        raise ValueError(f"Invalid status: {status}")
    if request.Status != "pending":
        raise ConflictError(f"Redemption request already {request.Status}")

    actor = RequireMember(db, request.HouseholdId, user.Id)
    target = GetMembership(db, request.HouseholdId, request.UserId)
    if not target or not CanManageMember(actor, target):
        raise AccessError("Only household admins or the member's parent can process this request")

    now = NowUtc()
    request.AdminNotes = admin_notes
    if normalized == "approved":
        _Approve(db, request, user.Id, now)
    else:
        request.Status = "rejected"
        request.ProcessedAt = now
        request.ProcessedByUserId = user.Id
    db.commit()
    db.refresh(request)
    logger.info("redemption processed request_id=%s status=%s by=%s", request.Id, request.Status, user.Id)
    return request


def ListUserRequests(db: Session, user: UserContext, household_id: int | None = None) -> list[RedemptionRequest]:
    query = db.query(RedemptionRequest).filter(RedemptionRequest.UserId == user.Id)
    if household_id is not None:
        query = query.filter(RedemptionRequest.HouseholdId == household_id)
    return query.order_by(RedemptionRequest.RequestedAt.desc(), RedemptionRequest.Id.desc()).all()


def ListHouseholdRequests(
    db: Session,
    user: UserContext,
    household_id: int,
    status: str | None = None,
) -> list[RedemptionRequest]:
    RequireMember(db, household_id, user.Id)
    query = db.query(RedemptionRequest).filter(RedemptionRequest.HouseholdId == household_id)
    if status:
        query = query.filter(RedemptionRequest.Status == status)
    return query.order_by(RedemptionRequest.RequestedAt.desc(), RedemptionRequest.Id.desc()).all()


def ListUserDeductions(
    db: Session,
    user: UserContext,
    household_id: int,
    target_user_id: int | None = None,
) -> list[PointDeduction]:
    RequireMember(db, household_id, user.Id)
    user_id = target_user_id or user.Id
    return (
        db.query(PointDeduction)
        .filter(PointDeduction.UserId == user_id, PointDeduction.HouseholdId == household_id)
        .order_by(PointDeduction.DeductedAt.desc(), PointDeduction.Id.desc())
        .all()
    )


def GetTotalDeductions(
    db: Session,
    user: UserContext,
    household_id: int,
    target_user_id: int | None = None,
) -> int:
    RequireMember(db, household_id, user.Id)
    user_id = target_user_id or user.Id
    total = (
        db.query(func.coalesce(func.sum(PointDeduction.PointsDeducted), 0))
        .filter(PointDeduction.UserId == user_id, PointDeduction.HouseholdId == household_id)
        .scalar()
    )
    return int(total or 0)


def GetHouseholdDeductions(db: Session, user: UserContext, household_id: int) -> list[DeductionTotal]:
    RequireMember(db, household_id, user.Id)
    rows = (
        db.query(
            PointDeduction.UserId,
            func.sum(PointDeduction.PointsDeducted),
            func.count(PointDeduction.Id),
        )
        .filter(PointDeduction.HouseholdId == household_id)
        .group_by(PointDeduction.UserId)
        .all()
    )
    user_ids = [row[0] for row in rows]
    names = {row.Id: row.Name for row in db.query(User).filter(User.Id.in_(user_ids)).all()} if user_ids else {}
    totals = [
        DeductionTotal(
            UserId=user_id,
            UserName=names.get(user_id),
            TotalPointsDeducted=int(total or 0),
            DeductionCount=int(count or 0),
        )
        for user_id, total, count in rows
    ]
    totals.sort(key=lambda entry: entry.TotalPointsDeducted, reverse=True)
    return totals


def SetConversionRate(db: Session, user: UserContext, household_id: int, rate: int) -> Household:
    household = _GetHouseholdOrRaise(db, household_id)
    RequireAdmin(db, household_id, user.Id)
    if rate < 1 or rate > MAX_CONVERSION_RATE:
        raise ValueError(f"Conversion rate must be between 1 and {MAX_CONVERSION_RATE}")
    household.ConversionRate = rate
    household.UpdatedAt = NowUtc()
    db.commit()
    db.refresh(household)
    logger.info("conversion rate updated household_id=%s rate=%s", household_id, rate)
    return household


def GetRedemptionSummary(
    db: Session,
    user: UserContext,
    household_id: int,
    target_user_id: int | None = None,
) -> RedemptionSummary:
    household = _GetHouseholdOrRaise(db, household_id)
    RequireMember(db, household_id, user.Id)
    user_id = target_user_id or user.Id

    requests = (
        db.query(RedemptionRequest)
        .filter(RedemptionRequest.UserId == user_id, RedemptionRequest.HouseholdId == household_id)
        .all()
    )
    stats = GetStatsRecord(db, user_id, household_id)
    earned = stats.EarnedPoints if stats else 0
    pending = sum(request.PointsRequested for request in requests if request.Status == "pending")
    approved = [request for request in requests if request.Status == "approved"]
    return RedemptionSummary(
        UserId=user_id,
        HouseholdId=household_id,
        EarnedPoints=earned,
        PendingPoints=pending,
        AvailablePoints=max(0, earned - pending),
        RedeemedPoints=sum(request.PointsRequested for request in approved),
        RedeemedValue=sum((Decimal(request.CashAmount) for request in approved), Decimal("0.00")),
        PendingCount=sum(1 for request in requests if request.Status == "pending"),
        ApprovedCount=len(approved),
        RejectedCount=sum(1 for request in requests if request.Status == "rejected"),
        ConversionRate=household.ConversionRate,
    )
