from datetime import timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from dailybag.core.errors import AccessError, ConflictError
from dailybag.db import Base
from dailybag.modules.auth.deps import NowUtc, UserContext
from dailybag.modules.auth.models import User
from dailybag.modules.households.services import CreateHousehold, ListMembers, UpdateHousehold
from dailybag.modules.invites import services as invite_services
import dailybag.modules.chores.models  # noqa: F401
import dailybag.modules.redemptions.models  # noqa: F401
import dailybag.modules.stats.models  # noqa: F401


def _BuildSession():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)()


def _AddUser(db, name):
    record = User(Email=f"{name}@example.com", Name=name, PasswordHash="x")
    db.add(record)
    db.commit()
    return UserContext(Id=record.Id, Email=record.Email, Name=name)


def _Setup():
    db = _BuildSession()
    admin = _AddUser(db, "admin")
    guest = _AddUser(db, "guest")
    household = CreateHousehold(db, admin, "Home")
    return db, admin, guest, household


def test_invite_lifecycle():
    db, admin, guest, household = _Setup()

    invite = invite_services.CreateInvite(db, admin, household.Id, "Guest@Example.com", role="teen")
    assert invite.Email == "guest@example.com"
    assert len(invite.Token) == 64

    mine = invite_services.ListMyInvites(db, guest)
    assert [(entry.Invite.Id, entry.HouseholdName) for entry in mine] == [(invite.Id, "Home")]

    member = invite_services.AcceptInvite(db, guest, invite.Id)
    assert member.Role == "teen"
    assert invite.Status == "accepted"
    assert len(ListMembers(db, admin, household.Id)) == 2
    assert invite_services.ListMyInvites(db, guest) == []


def test_duplicate_pending_invite_is_rejected():
    db, admin, _guest, household = _Setup()
    invite_services.CreateInvite(db, admin, household.Id, "guest@example.com")
    with pytest.raises(ConflictError):
        invite_services.CreateInvite(db, admin, household.Id, "guest@example.com")


def test_expired_invite_cannot_be_accepted():
    db, admin, guest, household = _Setup()
    invite = invite_services.CreateInvite(db, admin, household.Id, "guest@example.com")
    invite.ExpiresAt = NowUtc() - timedelta(minutes=1)
    db.commit()

    with pytest.raises(ValueError, match="expired"):
        invite_services.AcceptInviteByToken(db, guest, invite.Token)
    db.refresh(invite)
    assert invite.Status == "expired"

    replacement = invite_services.CreateInvite(db, admin, household.Id, "guest@example.com")
    assert replacement.Id != invite.Id


def test_only_invitee_accepts_or_declines():
    db, admin, guest, household = _Setup()
    stranger = _AddUser(db, "stranger")
    invite = invite_services.CreateInvite(db, admin, household.Id, "guest@example.com")

    with pytest.raises(AccessError):
        invite_services.AcceptInvite(db, stranger, invite.Id)
    with pytest.raises(AccessError):
        invite_services.DeclineInvite(db, stranger, invite.Id)

    declined = invite_services.DeclineInvite(db, guest, invite.Id)
    assert declined.Status == "declined"
    with pytest.raises(ConflictError):
        invite_services.AcceptInvite(db, guest, invite.Id)


def test_invites_need_admin_and_open_household():
    db, admin, guest, household = _Setup()
    with pytest.raises(AccessError):
        invite_services.CreateInvite(db, guest, household.Id, "friend@example.com")

    UpdateHousehold(db, admin, household.Id, {"AllowInvites": False})
    with pytest.raises(AccessError):
        invite_services.CreateInvite(db, admin, household.Id, "friend@example.com")


def test_cancel_invite():
    db, admin, guest, household = _Setup()
    invite = invite_services.CreateInvite(db, admin, household.Id, "guest@example.com")

    with pytest.raises(AccessError):
        invite_services.CancelInvite(db, guest, invite.Id)
    invite_services.CancelInvite(db, admin, invite.Id)
    assert invite_services.ListHouseholdInvites(db, admin, household.Id) == []
