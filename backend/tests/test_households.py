import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from dailybag.core.errors import AccessError, ConflictError
from dailybag.db import Base
from dailybag.modules.auth.deps import UserContext
from dailybag.modules.auth.models import User
from dailybag.modules.households import services as household_services
from dailybag.modules.households.models import HouseholdMember
from dailybag.modules.households.utils.rbac import CanManageMember, IsAdmin
import dailybag.modules.chores.models  # noqa: F401
import dailybag.modules.invites.models  # noqa: F401
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


def test_admin_manages_everyone():
    admin = HouseholdMember(UserId=1, Role="admin")
    assert IsAdmin(admin) is True
    assert CanManageMember(admin, HouseholdMember(UserId=2, Role="member")) is True


def test_parent_manages_only_linked_minors():
    parent = HouseholdMember(UserId=1, Role="parent")
    assert CanManageMember(parent, HouseholdMember(UserId=2, Role="kid", ParentUserId=1)) is True
    assert CanManageMember(parent, HouseholdMember(UserId=3, Role="kid", ParentUserId=9)) is False
    assert CanManageMember(parent, HouseholdMember(UserId=4, Role="member", ParentUserId=1)) is False


def test_members_manage_nobody():
    assert CanManageMember(None, HouseholdMember(UserId=2, Role="kid")) is False
    member = HouseholdMember(UserId=1, Role="teen")
    assert CanManageMember(member, HouseholdMember(UserId=2, Role="kid", ParentUserId=1)) is False
    assert IsAdmin(None) is False


def test_create_household_makes_creator_admin():
    db = _BuildSession()
    owner = _AddUser(db, "owner")

    household = household_services.CreateHousehold(db, owner, " Home ")
    households = household_services.ListUserHouseholds(db, owner)

    assert household.Name == "Home"
    assert len(household.JoinCode) == household_services.JOIN_CODE_LENGTH
    assert len(households) == 1
    assert households[0].Role == "admin"


def test_last_admin_cannot_leave_or_be_demoted():
    db = _BuildSession()
    owner = _AddUser(db, "owner")
    household = household_services.CreateHousehold(db, owner, "Home")

    with pytest.raises(ValueError):
        household_services.RemoveMember(db, owner, household.Id, owner.Id)
    with pytest.raises(ValueError):
        household_services.UpdateMemberRole(db, owner, household.Id, owner.Id, "member")


def test_member_cannot_remove_others():
    db = _BuildSession()
    owner = _AddUser(db, "owner")
    other = _AddUser(db, "other")
    household = household_services.CreateHousehold(db, owner, "Home")
    household_services.AddMember(db, owner, household.Id, other.Id)

    with pytest.raises(AccessError):
        household_services.RemoveMember(db, other, household.Id, owner.Id)

    household_services.RemoveMember(db, other, household.Id, other.Id)
    assert household_services.ListMembers(db, owner, household.Id)[0].Member.UserId == owner.Id


def test_join_by_code_respects_household_settings():
    db = _BuildSession()
    owner = _AddUser(db, "owner")
    joiner = _AddUser(db, "joiner")
    household = household_services.CreateHousehold(db, owner, "Home")

    member = household_services.JoinHousehold(db, joiner, household.JoinCode.lower())
    assert member.Role == "member"
    with pytest.raises(ConflictError):
        household_services.JoinHousehold(db, joiner, household.JoinCode)

    late = _AddUser(db, "late")
    household_services.UpdateHousehold(db, owner, household.Id, {"RequireApproval": True})
    with pytest.raises(AccessError):
        household_services.JoinHousehold(db, late, household.JoinCode)


def test_household_capacity_is_enforced():
    db = _BuildSession()
    owner = _AddUser(db, "owner")
    household = household_services.CreateHousehold(db, owner, "Home")
    household_services.UpdateHousehold(db, owner, household.Id, {"MaxMembers": 2})

    household_services.AddMember(db, owner, household.Id, _AddUser(db, "second").Id)
    with pytest.raises(ConflictError):
        household_services.AddMember(db, owner, household.Id, _AddUser(db, "third").Id)


def test_parent_link_requires_minor_role():
    db = _BuildSession()
    owner = _AddUser(db, "owner")
    kid = _AddUser(db, "kid")
    household = household_services.CreateHousehold(db, owner, "Home")

    with pytest.raises(ValueError):
        household_services.AddMember(db, owner, household.Id, kid.Id, role="member", parent_user_id=owner.Id)

    member = household_services.AddMember(db, owner, household.Id, kid.Id, role="kid", parent_user_id=owner.Id)
    assert member.ParentUserId == owner.Id
