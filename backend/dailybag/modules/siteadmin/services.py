from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
import logging

from sqlalchemy.orm import Session

from dailybag.core.errors import AccessError, ConflictError, NotFoundError
from dailybag.modules.auth.deps import AsUtc, IsSiteAdminUser, NowUtc, UserContext
from dailybag.modules.auth.models import RefreshToken, User
from dailybag.modules.chores.models import Chore, ChoreCompletion
from dailybag.modules.households.models import Household, HouseholdMember
from dailybag.modules.households.services import PurgeHousehold
from dailybag.modules.stats.models import UserStats

logger = logging.getLogger("dailybag.siteadmin")

RECENT_SIGNUP_DAYS = 7


@dataclass
class HouseholdRole:
    Id: int
    Name: str
    Role: str


@dataclass
class SiteUser:
    Id: int
    Email: str
    Name: str
    Points: int
    Level: int
    IsSiteAdmin: bool
    CreatedAt: datetime | None
    LastActive: datetime | None
    Households: list[HouseholdRole] = field(default_factory=list)


@dataclass
class SiteHousehold:
    Id: int
    Name: str
    Description: str | None
    JoinCode: str
    MemberCount: int
    ChoreCount: int
    CompletedChores: int
    CreatedByUserId: int | None
    CreatedByName: str | None
    CreatedByEmail: str | None
    CreatedAt: datetime | None
    UpdatedAt: datetime | None


def _RequireSiteAdmin(db: Session, user: UserContext) -> User:
    record = db.query(User).filter(User.Id == user.Id).first()
    if not IsSiteAdminUser(record):
        raise AccessError("Site admin access required")
    return record


def GetAdminStatus(db: Session, user: UserContext) -> dict:
    record = db.query(User).filter(User.Id == user.Id).first()
    if not record:
        raise NotFoundError("User not found")
    return {
        "Id": record.Id,
        "Email": record.Email,
        "Name": record.Name,
        "IsSiteAdmin": IsSiteAdminUser(record),
    }


def ListAllUsers(db: Session, user: UserContext) -> list[SiteUser]:
    _RequireSiteAdmin(db, user)
    households = {record.Id: record for record in db.query(Household).all()}
    memberships: dict[int, list[HouseholdRole]] = {}
    for member in db.query(HouseholdMember).all():
        household = households.get(member.HouseholdId)
        if household:
            memberships.setdefault(member.UserId, []).append(
                HouseholdRole(Id=household.Id, Name=household.Name, Role=member.Role)
            )

    return [
        SiteUser(
            Id=record.Id,
            Email=record.Email,
            Name=record.Name,
            Points=record.Points or 0,
            Level=record.Level or 1,
            IsSiteAdmin=IsSiteAdminUser(record),
            CreatedAt=record.CreatedAt,
            LastActive=record.LastActive,
            Households=memberships.get(record.Id, []),
        )
        for record in db.query(User).order_by(User.Id.asc()).all()
    ]


def ListAllHouseholds(db: Session, user: UserContext) -> list[SiteHousehold]:
    _RequireSiteAdmin(db, user)
    users = {record.Id: record for record in db.query(User).all()}
    results = []
    for household in db.query(Household).order_by(Household.Id.asc()).all():
        chores = db.query(Chore.Status).filter(Chore.HouseholdId == household.Id).all()
        creator = users.get(household.CreatedByUserId)
        results.append(
            SiteHousehold(
                Id=household.Id,
                Name=household.Name,
                Description=household.Description,
                JoinCode=household.JoinCode,
                MemberCount=db.query(HouseholdMember).filter(HouseholdMember.HouseholdId == household.Id).count(),
                ChoreCount=len(chores),
                CompletedChores=sum(1 for row in chores if row[0] == "completed"),
                CreatedByUserId=creator.Id if creator else None,
                CreatedByName=creator.Name if creator else None,
                CreatedByEmail=creator.Email if creator else None,
                CreatedAt=household.CreatedAt,
                UpdatedAt=household.UpdatedAt,
            )
        )
    return results


def GetGlobalStats(db: Session, user: UserContext, now: datetime | None = None) -> dict:
    _RequireSiteAdmin(db, user)
    now = now or NowUtc()
    since = now - timedelta(days=RECENT_SIGNUP_DAYS)

    users = db.query(User).all()
    households = db.query(Household).all()
    total_chores = db.query(Chore).count()
    completed_chores = db.query(Chore).filter(Chore.Status == "completed").count()

    return {
        "TotalUsers": len(users),
        "TotalHouseholds": len(households),
        "TotalChores": total_chores,
        "CompletedChores": completed_chores,
        "TotalCompletions": db.query(ChoreCompletion).count(),
        "TotalPoints": sum(record.Points or 0 for record in users),
        "RecentUsers": sum(1 for record in users if record.CreatedAt and AsUtc(record.CreatedAt) > since),
        "RecentHouseholds": sum(
            1 for record in households if record.CreatedAt and AsUtc(record.CreatedAt) > since
        ),
        "CompletionRate": round(completed_chores / total_chores * 100) if total_chores else 0,
    }


def ToggleSiteAdmin(db: Session, user: UserContext, target_user_id: int, make_admin: bool) -> User:
    """Grant or revoke the site admin flag.

    While nobody holds the flag, a user may grant it to themselves once.
    The last flagged admin cannot be revoked.
    """
    current = db.query(User).filter(User.Id == user.Id).first()
    admins = db.query(User).filter(User.IsSiteAdmin.is_(True)).all()
    bootstrap = not admins and target_user_id == user.Id and make_admin
    if not bootstrap and not IsSiteAdminUser(current):
        raise AccessError("Only site admins can manage admin status")

    target = db.query(User).filter(User.Id == target_user_id).first()
    if not target:
        raise NotFoundError("User not found")
    if not make_admin and len(admins) == 1 and admins[0].Id == target_user_id:
        raise ConflictError("Cannot remove the last site admin")

    target.IsSiteAdmin = make_admin
    target.UpdatedAt = NowUtc()
    db.commit()
    db.refresh(target)
    logger.info(
        "site admin %s target_user_id=%s by user_id=%s bootstrap=%s",
        "granted" if make_admin else "revoked",
        target_user_id,
        user.Id,
        bootstrap,
    )
    return target


def DeleteUserAccount(db: Session, user: UserContext, target_user_id: int) -> None:
    _RequireSiteAdmin(db, user)
    if target_user_id == user.Id:
        raise ValueError("Cannot delete your own account from admin panel")
    target = db.query(User).filter(User.Id == target_user_id).first()
    if not target:
        raise NotFoundError("User not found")

    for model in (HouseholdMember, UserStats, RefreshToken):
        db.query(model).filter(model.UserId == target_user_id).delete(synchronize_session=False)
    db.delete(target)
    db.commit()
    logger.info("user deleted target_user_id=%s by user_id=%s", target_user_id, user.Id)


def DeleteHouseholdAsAdmin(db: Session, user: UserContext, household_id: int) -> None:
    _RequireSiteAdmin(db, user)
    household = db.query(Household).filter(Household.Id == household_id).first()
    if not household:
        raise NotFoundError("Household not found")
    PurgeHousehold(db, household)
    db.commit()
    logger.info("household deleted by site admin household_id=%s user_id=%s", household_id, user.Id)
