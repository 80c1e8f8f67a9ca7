from __future__ import annotations

from dataclasses import dataclass
import logging
import secrets

from sqlalchemy.orm import Session

from dailybag.core.errors import AccessError, ConflictError, NotFoundError
from dailybag.core.validation import CleanText, DESCRIPTION_MAX_LENGTH, NAME_MAX_LENGTH
from dailybag.modules.auth.deps import NowUtc, UserContext
from dailybag.modules.auth.models import User
from dailybag.modules.chores.models import Chore, ChoreCompletion
from dailybag.modules.households.models import Household, HouseholdMember
from dailybag.modules.households.utils.rbac import (
    ADMIN_ROLE,
    HOUSEHOLD_ROLES,
    MINOR_ROLES,
    GetMembership,
    IsAdmin,
    RequireAdmin,
    RequireMember,
)
from dailybag.modules.invites.models import UserInvite
from dailybag.modules.redemptions.models import PointDeduction, RedemptionRequest
from dailybag.modules.stats.models import UserStats

logger = logging.getLogger("dailybag.households")

MAX_HOUSEHOLD_MEMBERS = 10
JOIN_CODE_LENGTH = 6
JOIN_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"


@dataclass
class HouseholdWithRole:
    Household: Household
    Role: str
    MemberCount: int


@dataclass
class MemberWithUser:
    Member: HouseholdMember
    User: User | None


def GenerateJoinCode(db: Session) -> str:
    while True:
        code = "".join(secrets.choice(JOIN_CODE_ALPHABET) for _ in range(JOIN_CODE_LENGTH))
        exists = db.query(Household.Id).filter(Household.JoinCode == code).first()
        if not exists:
            return code


def _GetHouseholdOrRaise(db: Session, household_id: int) -> Household:
    household = db.query(Household).filter(Household.Id == household_id).first()
    if not household:
        raise NotFoundError("Household not found")
    return household


def _MemberCount(db: Session, household_id: int) -> int:
    return db.query(HouseholdMember).filter(HouseholdMember.HouseholdId == household_id).count()


def _AdminCount(db: Session, household_id: int) -> int:
    return (
        db.query(HouseholdMember)
        .filter(HouseholdMember.HouseholdId == household_id, HouseholdMember.Role == ADMIN_ROLE)
        .count()
    )


def _ValidateRole(role: str) -> str:
    normalized = (role or "").strip().lower()
    if normalized not in HOUSEHOLD_ROLES:
        raise ValueError(f"Invalid role: {role}")
    return normalized


def _ValidateParentLink(
    db: Session,
    household_id: int,
    role: str,
    parent_user_id: int | None,
) -> int | None:
    if parent_user_id is None:
        return None
    if role not in MINOR_ROLES:
        raise ValueError("Only teen and kid members can be linked to a parent")
    parent = GetMembership(db, household_id, parent_user_id)
    if not parent or parent.Role not in {ADMIN_ROLE, "parent"}:
        raise ValueError("Parent must be an admin or parent in this household")
    return parent_user_id


def EnsureCapacity(db: Session, household: Household) -> None:
    limit = min(household.MaxMembers or MAX_HOUSEHOLD_MEMBERS, MAX_HOUSEHOLD_MEMBERS)
    if _MemberCount(db, household.Id) >= limit:
        raise ConflictError(f"Household is full ({limit} members maximum)")


def GetHousehold(db: Session, user: UserContext, household_id: int) -> Household:
    household = _GetHouseholdOrRaise(db, household_id)
    RequireMember(db, household_id, user.Id)
    return household


def ListUserHouseholds(db: Session, user: UserContext) -> list[HouseholdWithRole]:
    memberships = db.query(HouseholdMember).filter(HouseholdMember.UserId == user.Id).all()
    results = []
    for membership in memberships:
        household = db.query(Household).filter(Household.Id == membership.HouseholdId).first()
        if not household:
            continue
        results.append(
            HouseholdWithRole(
                Household=household,
                Role=membership.Role,
                MemberCount=_MemberCount(db, household.Id),
            )
        )
    results.sort(key=lambda entry: entry.Household.Id)
    return results


def ListMembers(db: Session, user: UserContext, household_id: int) -> list[MemberWithUser]:
    _GetHouseholdOrRaise(db, household_id)
    RequireMember(db, household_id, user.Id)
    members = (
        db.query(HouseholdMember)
        .filter(HouseholdMember.HouseholdId == household_id)
        .order_by(HouseholdMember.JoinedAt.asc(), HouseholdMember.Id.asc())
        .all()
    )
    user_ids = [member.UserId for member in members]
    users = {row.Id: row for row in db.query(User).filter(User.Id.in_(user_ids)).all()} if user_ids else {}
    return [MemberWithUser(Member=member, User=users.get(member.UserId)) for member in members]


def CreateHousehold(
    db: Session,
    user: UserContext,
    name: str,
    description: str | None = None,
    *,
    commit: bool = True,
) -> Household:
    now = NowUtc()
    household = Household(
        Name=CleanText(name, "Name", max_length=NAME_MAX_LENGTH),
        Description=CleanText(description, "Description", max_length=DESCRIPTION_MAX_LENGTH, required=False),
        CreatedByUserId=user.Id,
        JoinCode=GenerateJoinCode(db),
        AllowInvites=True,
        RequireApproval=False,
        MaxMembers=MAX_HOUSEHOLD_MEMBERS,
        CreatedAt=now,
        UpdatedAt=now,
    )
    db.add(household)
    db.flush()
    db.add(
        HouseholdMember(
            HouseholdId=household.Id,
            UserId=user.Id,
            Role=ADMIN_ROLE,
            JoinedAt=now,
        )
    )
    if commit:
        db.commit()
        db.refresh(household)
    logger.info("household created household_id=%s user_id=%s", household.Id, user.Id)
    return household


def UpdateHousehold(db: Session, user: UserContext, household_id: int, payload: dict) -> Household:
    household = _GetHouseholdOrRaise(db, household_id)
    RequireAdmin(db, household_id, user.Id)

    if payload.get("Name") is not None:
        household.Name = CleanText(payload["Name"], "Name", max_length=NAME_MAX_LENGTH)
    if "Description" in payload:
        household.Description = CleanText(
            payload.get("Description"),
            "Description",
            max_length=DESCRIPTION_MAX_LENGTH,
            required=False,
        )
    if payload.get("AllowInvites") is not None:
        household.AllowInvites = bool(payload["AllowInvites"])
    if payload.get("RequireApproval") is not None:
        household.RequireApproval = bool(payload["RequireApproval"])
    if payload.get("MaxMembers") is not None:
        max_members = int(payload["MaxMembers"])
        if max_members < 1 or max_members > MAX_HOUSEHOLD_MEMBERS:
            raise ValueError(f"MaxMembers must be between 1 and {MAX_HOUSEHOLD_MEMBERS}")
        if max_members < _MemberCount(db, household_id):
            raise ValueError("MaxMembers cannot be lower than the current member count")
        household.MaxMembers = max_members

    household.UpdatedAt = NowUtc()
    db.commit()
    db.refresh(household)
    return household


def AddMember(
    db: Session,
    user: UserContext,
    household_id: int,
    target_user_id: int,
    role: str = "member",
    parent_user_id: int | None = None,
) -> HouseholdMember:
    household = _GetHouseholdOrRaise(db, household_id)
    RequireAdmin(db, household_id, user.Id)
    if not db.query(User.Id).filter(User.Id == target_user_id).first():
        raise NotFoundError("User not found")
    if GetMembership(db, household_id, target_user_id):
        raise ConflictError("User is already a member of this household")
    EnsureCapacity(db, household)

    normalized_role = _ValidateRole(role)
    member = HouseholdMember(
        HouseholdId=household_id,
        UserId=target_user_id,
        Role=normalized_role,
        ParentUserId=_ValidateParentLink(db, household_id, normalized_role, parent_user_id),
        JoinedAt=NowUtc(),
    )
    db.add(member)
    db.commit()
    db.refresh(member)
    logger.info("member added household_id=%s user_id=%s role=%s", household_id, target_user_id, normalized_role)
    return member


def RemoveMember(db: Session, user: UserContext, household_id: int, target_user_id: int) -> None:
    _GetHouseholdOrRaise(db, household_id)
    actor = GetMembership(db, household_id, user.Id)
    if not actor:
        raise AccessError("Not a member of this household")
    if not IsAdmin(actor) and user.Id != target_user_id:
        raise AccessError("Only household admins can remove other members")

    target = GetMembership(db, household_id, target_user_id)
    if not target:
        raise NotFoundError("Member not found")
    if IsAdmin(target) and _AdminCount(db, household_id) <= 1:
        raise ValueError("Cannot remove the last admin from the household")

    for minor in (
        db.query(HouseholdMember)
        .filter(HouseholdMember.HouseholdId == household_id, HouseholdMember.ParentUserId == target_user_id)
        .all()
    ):
        minor.ParentUserId = None
    db.delete(target)
    db.commit()
    logger.info("member removed household_id=%s user_id=%s", household_id, target_user_id)


def UpdateMemberRole(
    db: Session,
    user: UserContext,
    household_id: int,
    target_user_id: int,
    role: str,
    parent_user_id: int | None = None,
) -> HouseholdMember:
    _GetHouseholdOrRaise(db, household_id)
    RequireAdmin(db, household_id, user.Id)
    target = GetMembership(db, household_id, target_user_id)
    if not target:
        raise NotFoundError("Member not found")

    normalized_role = _ValidateRole(role)
    if IsAdmin(target) and normalized_role != ADMIN_ROLE and _AdminCount(db, household_id) <= 1:
        raise ValueError("Cannot demote the last admin of the household")

    target.Role = normalized_role
    target.ParentUserId = _ValidateParentLink(db, household_id, normalized_role, parent_user_id)
    db.commit()
    db.refresh(target)
    return target


def PurgeHousehold(db: Session, household: Household) -> None:
    """Delete a household and every record that belongs to it. Does not commit."""
    for model in (
        ChoreCompletion,
        Chore,
        UserStats,
        UserInvite,
        PointDeduction,
        RedemptionRequest,
        HouseholdMember,
    ):
        db.query(model).filter(model.HouseholdId == household.Id).delete(synchronize_session=False)
    db.delete(household)


def DeleteHousehold(db: Session, user: UserContext, household_id: int) -> None:
    household = _GetHouseholdOrRaise(db, household_id)
    RequireAdmin(db, household_id, user.Id)
    PurgeHousehold(db, household)
    db.commit()
    logger.info("household deleted household_id=%s user_id=%s", household_id, user.Id)


def JoinHousehold(db: Session, user: UserContext, join_code: str) -> HouseholdMember:
    code = (join_code or "").strip().upper()
    household = db.query(Household).filter(Household.JoinCode == code).first()
    if not household:
        raise NotFoundError("Invalid join code")
    if not household.AllowInvites:
        raise AccessError("This household is not accepting new members")
    if household.RequireApproval:
        raise AccessError("This household requires an invite from an admin")
    if GetMembership(db, household.Id, user.Id):
        raise ConflictError("You are already a member of this household")
    EnsureCapacity(db, household)

    member = HouseholdMember(
        HouseholdId=household.Id,
        UserId=user.Id,
        Role="member",
        JoinedAt=NowUtc(),
    )
    db.add(member)
    db.commit()
    db.refresh(member)
    logger.info("member joined by code household_id=%s user_id=%s", household.Id, user.Id)
    return member


def RegenerateJoinCode(db: Session, user: UserContext, household_id: int) -> Household:
    household = _GetHouseholdOrRaise(db, household_id)
    RequireAdmin(db, household_id, user.Id)
    household.JoinCode = GenerateJoinCode(db)
    household.UpdatedAt = NowUtc()
    db.commit()
    db.refresh(household)
    return household
