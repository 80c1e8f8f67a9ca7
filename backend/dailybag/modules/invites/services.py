from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
import logging
import secrets

from sqlalchemy.orm import Session

from dailybag.core.errors import AccessError, ConflictError, NotFoundError
from dailybag.core.validation import NormalizeEmail
from dailybag.modules.auth.deps import AsUtc, NowUtc, UserContext
from dailybag.modules.households.models import Household, HouseholdMember
from dailybag.modules.households.services import EnsureCapacity
from dailybag.modules.households.utils.rbac import ADMIN_ROLE, GetMembership, HOUSEHOLD_ROLES, RequireAdmin, RequireMember
from dailybag.modules.invites.models import UserInvite

logger = logging.getLogger("dailybag.invites")

INVITE_TTL_DAYS = 7
INVITE_STATUSES = ("pending", "accepted", "declined", "expired")


@dataclass
class InviteWithHousehold:
    Invite: UserInvite
    HouseholdName: str | None


def _GetHouseholdOrRaise(db: Session, household_id: int) -> Household:
    household = db.query(Household).filter(Household.Id == household_id).first()
    if not household:
        raise NotFoundError("Household not found")
    return household


def _GetInviteOrRaise(db: Session, invite_id: int) -> UserInvite:
    invite = db.query(UserInvite).filter(UserInvite.Id == invite_id).first()
    if not invite:
        raise NotFoundError("Invite not found")
    return invite


def IsExpired(invite: UserInvite, now: datetime) -> bool:
    expires_at = AsUtc(invite.ExpiresAt)
    return expires_at is not None and expires_at < now


def ListHouseholdInvites(
    db: Session,
    user: UserContext,
    household_id: int,
    status: str | None = None,
) -> list[UserInvite]:
    RequireMember(db, household_id, user.Id)
    query = db.query(UserInvite).filter(UserInvite.HouseholdId == household_id)
    if status:
        if status not in INVITE_STATUSES:
            raise ValueError(f"Invalid status: {status}")
        query = query.filter(UserInvite.Status == status)
    return query.order_by(UserInvite.CreatedAt.desc(), UserInvite.Id.desc()).all()


def ListMyInvites(db: Session, user: UserContext) -> list[InviteWithHousehold]:
    now = NowUtc()
    invites = (
        db.query(UserInvite)
        .filter(UserInvite.Email == user.Email.lower(), UserInvite.Status == "pending")
        .order_by(UserInvite.CreatedAt.desc())
        .all()
    )
    household_ids = {invite.HouseholdId for invite in invites}
    names = (
        {row.Id: row.Name for row in db.query(Household).filter(Household.Id.in_(household_ids)).all()}
        if household_ids
        else {}
    )
    return [
        InviteWithHousehold(Invite=invite, HouseholdName=names.get(invite.HouseholdId))
        for invite in invites
        if not IsExpired(invite, now)
    ]


def CreateInvite(
    db: Session,
    user: UserContext,
    household_id: int,
    email: str,
    role: str = "member",
) -> UserInvite:
    household = _GetHouseholdOrRaise(db, household_id)
    RequireAdmin(db, household_id, user.Id)
    if not household.AllowInvites:
        raise AccessError("Invites are disabled for this household")

    normalized_email = NormalizeEmail(email)
    normalized_role = (role or "member").strip().lower()
    if normalized_role not in HOUSEHOLD_ROLES:
        raise ValueError(f"Invalid role: {role}")

    existing = (
        db.query(UserInvite)
        .filter(
            UserInvite.HouseholdId == household_id,
            UserInvite.Email == normalized_email,
            UserInvite.Status == "pending",
        )
        .first()
    )
    now = NowUtc()
    if existing and not IsExpired(existing, now):
        raise ConflictError("An invite is already pending for this email")
    if existing:
        existing.Status = "expired"

    invite = UserInvite(
        Email=normalized_email,
        HouseholdId=household_id,
        InvitedByUserId=user.Id,
        Role=normalized_role,
        Status="pending",
        Token=secrets.token_hex(32),
        ExpiresAt=now + timedelta(days=INVITE_TTL_DAYS),
        CreatedAt=now,
    )
    db.add(invite)
    db.commit()
    db.refresh(invite)
    logger.info("invite created invite_id=%s household_id=%s", invite.Id, household_id)
    return invite


def _Accept(db: Session, user: UserContext, invite: UserInvite) -> HouseholdMember:
    if invite.Status != "pending":
        raise ConflictError(f"Invite is {invite.Status}")
    now = NowUtc()
    if IsExpired(invite, now):
        invite.Status = "expired"
        db.commit()
        raise ValueError("Invite has expired")
    if GetMembership(db, invite.HouseholdId, user.Id):
        invite.Status = "accepted"
        db.commit()
        raise ConflictError("You are already a member of this household")

    household = _GetHouseholdOrRaise(db, invite.HouseholdId)
    EnsureCapacity(db, household)
    member = HouseholdMember(
        HouseholdId=invite.HouseholdId,
        UserId=user.Id,
        Role=invite.Role or "member",
        JoinedAt=now,
    )
    db.add(member)
    invite.Status = "accepted"
    db.commit()
    db.refresh(member)
    logger.info("invite accepted invite_id=%s user_id=%s", invite.Id, user.Id)
    return member


def AcceptInvite(db: Session, user: UserContext, invite_id: int) -> HouseholdMember:
    invite = _GetInviteOrRaise(db, invite_id)
    if invite.Email != user.Email.lower():
        raise AccessError("This invite was sent to a different email address")
    return _Accept(db, user, invite)


def AcceptInviteByToken(db: Session, user: UserContext, token: str) -> HouseholdMember:
    invite = db.query(UserInvite).filter(UserInvite.Token == token).first()
    if not invite:
        raise NotFoundError("Invite not found")
    return _Accept(db, user, invite)


def DeclineInvite(db: Session, user: UserContext, invite_id: int) -> UserInvite:
    invite = _GetInviteOrRaise(db, invite_id)
    if invite.Email != user.Email.lower():
        raise AccessError("This invite was sent to a different email address")
    if invite.Status != "pending":
        raise ConflictError(f"Invite is {invite.Status}")
    invite.Status = "declined"
    db.commit()
    db.refresh(invite)
    return invite


def CancelInvite(db: Session, user: UserContext, invite_id: int) -> None:
    invite = _GetInviteOrRaise(db, invite_id)
    member = GetMembership(db, invite.HouseholdId, user.Id)
    if not member or member.Role != ADMIN_ROLE:
        raise AccessError("Only household admins can cancel invites")
    db.delete(invite)
    db.commit()
    logger.info("invite cancelled invite_id=%s", invite_id)
