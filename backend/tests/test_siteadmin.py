from datetime import timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from dailybag.core.errors import AccessError, ConflictError
from dailybag.db import Base
from dailybag.modules.auth.deps import NowUtc, UserContext
from dailybag.modules.auth.models import User
from dailybag.modules.chores.models import Chore
from dailybag.modules.chores.services.chore_service import AddChore, CompleteChore
from dailybag.modules.households.models import Household, HouseholdMember
from dailybag.modules.households.services import AddMember, CreateHousehold
from dailybag.modules.siteadmin import services as siteadmin_services
from dailybag.modules.stats.models import UserStats
import dailybag.modules.invites.models  # noqa: F401
import dailybag.modules.redemptions.models  # noqa: F401


def _BuildSession():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)()


def _AddUser(db, name, site_admin=False):
    record = User(Email=f"{name}@example.com", Name=name, PasswordHash="x", IsSiteAdmin=site_admin)
    db.add(record)
    db.commit()
    return UserContext(Id=record.Id, Email=record.Email, Name=name, IsSiteAdmin=site_admin)


def test_first_user_can_bootstrap_site_admin():
    db = _BuildSession()
    first = _AddUser(db, "first")
    second = _AddUser(db, "second")

    with pytest.raises(AccessError):
        siteadmin_services.ToggleSiteAdmin(db, first, second.Id, True)

    record = siteadmin_services.ToggleSiteAdmin(db, first, first.Id, True)
    assert record.IsSiteAdmin is True
    assert siteadmin_services.GetAdminStatus(db, first)["IsSiteAdmin"] is True

    with pytest.raises(AccessError):
        siteadmin_services.ToggleSiteAdmin(db, second, second.Id, True)


def test_last_site_admin_cannot_be_revoked():
    db = _BuildSession()
    owner = _AddUser(db, "owner", site_admin=True)
    helper = _AddUser(db, "helper")

    with pytest.raises(ConflictError):
        siteadmin_services.ToggleSiteAdmin(db, owner, owner.Id, False)

    siteadmin_services.ToggleSiteAdmin(db, owner, helper.Id, True)
    assert siteadmin_services.ToggleSiteAdmin(db, owner, owner.Id, False).IsSiteAdmin is False


def test_site_admin_email_list(monkeypatch):
    db = _BuildSession()
    owner = _AddUser(db, "owner")
    monkeypatch.setenv("SITE_ADMIN_EMAILS", "someone@example.com, OWNER@example.com")

    assert siteadmin_services.GetAdminStatus(db, owner)["IsSiteAdmin"] is True
    assert len(siteadmin_services.ListAllUsers(db, owner)) == 1


def test_listings_require_site_admin():
    db = _BuildSession()
    user = _AddUser(db, "user")
    for operation in (
        siteadmin_services.ListAllUsers,
        siteadmin_services.ListAllHouseholds,
        siteadmin_services.GetGlobalStats,
    ):
        with pytest.raises(AccessError):
            operation(db, user)


def test_users_and_households_overview():
    db = _BuildSession()
    staff = _AddUser(db, "staff", site_admin=True)
    owner = _AddUser(db, "owner")
    kid = _AddUser(db, "kid")
    household = CreateHousehold(db, owner, "Home")
    AddMember(db, owner, household.Id, kid.Id, role="kid")
    first = AddChore(db, owner, household.Id, {"Title": "Dishes", "Points": 10})
    AddChore(db, owner, household.Id, {"Title": "Laundry", "Points": 10})
    CompleteChore(db, kid, first.Id)

    users = {entry.Name: entry for entry in siteadmin_services.ListAllUsers(db, staff)}
    assert users["staff"].IsSiteAdmin is True
    assert users["staff"].Households == []
    assert [(entry.Name, entry.Role) for entry in users["kid"].Households] == [("Home", "kid")]
    assert users["kid"].Points == 10

    [summary] = siteadmin_services.ListAllHouseholds(db, staff)
    assert summary.MemberCount == 2
    assert summary.ChoreCount == 2
    assert summary.CompletedChores == 1
    assert summary.CreatedByName == "owner"

    stats = siteadmin_services.GetGlobalStats(db, staff)
    assert stats["TotalUsers"] == 3
    assert stats["TotalHouseholds"] == 1
    assert stats["TotalChores"] == 2
    assert stats["CompletedChores"] == 1
    assert stats["TotalCompletions"] == 1
    assert stats["TotalPoints"] == 10
    assert stats["CompletionRate"] == 50


def test_recent_signups_use_seven_day_window():
    db = _BuildSession()
    staff = _AddUser(db, "staff", site_admin=True)
    old = db.query(User).filter(User.Id == staff.Id).one()
    old.CreatedAt = NowUtc() - timedelta(days=30)
    db.commit()
    _AddUser(db, "fresh")

    stats = siteadmin_services.GetGlobalStats(db, staff)

    assert stats["TotalUsers"] == 2
    assert stats["RecentUsers"] == 1
    assert stats["CompletionRate"] == 0


def test_delete_user_removes_memberships_and_stats():
    db = _BuildSession()
    staff = _AddUser(db, "staff", site_admin=True)
    owner = _AddUser(db, "owner")
    kid = _AddUser(db, "kid")
    household = CreateHousehold(db, owner, "Home")
    AddMember(db, owner, household.Id, kid.Id, role="kid")
    chore = AddChore(db, owner, household.Id, {"Title": "Dishes", "Points": 10})
    CompleteChore(db, kid, chore.Id)

    with pytest.raises(ValueError):
        siteadmin_services.DeleteUserAccount(db, staff, staff.Id)
    with pytest.raises(AccessError):
        siteadmin_services.DeleteUserAccount(db, owner, kid.Id)

    siteadmin_services.DeleteUserAccount(db, staff, kid.Id)

    assert db.query(User).filter(User.Id == kid.Id).first() is None
    assert db.query(HouseholdMember).filter(HouseholdMember.UserId == kid.Id).count() == 0
    assert db.query(UserStats).filter(UserStats.UserId == kid.Id).count() == 0


def test_site_admin_deletes_any_household():
    db = _BuildSession()
    staff = _AddUser(db, "staff", site_admin=True)
    owner = _AddUser(db, "owner")
    household = CreateHousehold(db, owner, "Home")
    AddChore(db, owner, household.Id, {"Title": "Dishes", "Points": 10})

    siteadmin_services.DeleteHouseholdAsAdmin(db, staff, household.Id)

    assert db.query(Household).count() == 0
    assert db.query(HouseholdMember).count() == 0
    assert db.query(Chore).count() == 0
