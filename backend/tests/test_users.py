import pytest
from pydantic import ValidationError
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from dailybag.core.errors import AccessError
from dailybag.db import Base
from dailybag.modules.auth.deps import UserContext
from dailybag.modules.auth.models import User
from dailybag.modules.households.services import AddMember, CreateHousehold
from dailybag.modules.users import services as user_services
from dailybag.modules.users.schemas import LevelPersistenceSet
import dailybag.modules.chores.models  # noqa: F401
import dailybag.modules.invites.models  # noqa: F401
import dailybag.modules.redemptions.models  # noqa: F401
import dailybag.modules.stats.models  # noqa: F401


def _BuildSession():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)()


def _AddUser(db, name, site_admin=False):
    record = User(Email=f"{name}@example.com", Name=name, PasswordHash="x", IsSiteAdmin=site_admin)
    db.add(record)
    db.commit()
    return UserContext(Id=record.Id, Email=record.Email, Name=name, IsSiteAdmin=site_admin)


def test_first_profile_becomes_admin():
    db = _BuildSession()
    first = _AddUser(db, "first")
    second = _AddUser(db, "second")

    assert user_services.CreateOrUpdateProfile(db, first, "First").Role == "admin"
    profile = user_services.CreateOrUpdateProfile(db, second, "Second", avatar_url="  ")
    assert profile.Role == "member"
    assert profile.AvatarUrl == "👤"


def test_profile_role_is_validated():
    db = _BuildSession()
    user = _AddUser(db, "kid")
    assert user_services.CreateOrUpdateProfile(db, user, "Kid", role="Kid").Role == "kid"
    with pytest.raises(ValueError):
        user_services.CreateOrUpdateProfile(db, user, "Kid", role="wizard")
    with pytest.raises(ValueError):
        user_services.UpdateProfile(db, user, avatar_url="x" * 501)


def test_points_never_go_negative():
    db = _BuildSession()
    user = _AddUser(db, "saver")

    assert user_services.UpdateUserPoints(db, user, user.Id, 30) == {
        "UserId": user.Id,
        "OldPoints": 0,
        "NewPoints": 30,
        "PointsChange": 30,
    }
    assert user_services.UpdateUserPoints(db, user, user.Id, -50)["NewPoints"] == 0


def test_points_of_others_need_site_admin():
    db = _BuildSession()
    user = _AddUser(db, "user")
    other = _AddUser(db, "other")
    staff = _AddUser(db, "staff", site_admin=True)

    with pytest.raises(AccessError):
        user_services.UpdateUserPoints(db, user, other.Id, 10)
    assert user_services.UpdateUserPoints(db, staff, other.Id, 10)["NewPoints"] == 10


def test_update_level_from_points():
    db = _BuildSession()
    user = _AddUser(db, "climber")
    user_services.UpdateUserPoints(db, user, user.Id, 80)

    result = user_services.UpdateUserLevel(db, user, user.Id)

    assert result == {"UserId": user.Id, "OldLevel": 1, "NewLevel": 3, "LeveledUp": True}
    assert user_services.UpdateUserLevel(db, user, user.Id)["LeveledUp"] is False


def test_users_visible_only_within_shared_households():
    db = _BuildSession()
    admin = _AddUser(db, "admin")
    member = _AddUser(db, "member")
    stranger = _AddUser(db, "stranger")
    household = CreateHousehold(db, admin, "Home")
    AddMember(db, admin, household.Id, member.Id)

    assert user_services.GetUser(db, admin, member.Id).Name == "member"
    with pytest.raises(AccessError):
        user_services.GetUser(db, stranger, member.Id)
    names = [record.Name for record in user_services.ListHouseholdUsers(db, member, household.Id)]
    assert names == ["admin", "member"]


def test_level_lock_set_and_clear():
    db = _BuildSession()
    admin = _AddUser(db, "admin")
    member = _AddUser(db, "member")
    household = CreateHousehold(db, admin, "Home")
    AddMember(db, admin, household.Id, member.Id)

    with pytest.raises(AccessError):
        user_services.SetUserLevelPersistence(db, member, household.Id, admin.Id, 4, 0)

    stats = user_services.SetUserLevelPersistence(db, admin, household.Id, member.Id, 4, 0, grace_period_days=7)
    assert stats.PersistedLevel == 4
    assert stats.CurrentLevel == 4

    stats = user_services.ClearUserLevelPersistence(db, member, household.Id, member.Id)
    assert stats.PersistedLevel is None
    assert stats.CurrentLevel == 1


def test_level_lock_above_max_level_is_rejected():
    with pytest.raises(ValidationError):
        LevelPersistenceSet(Level=99, PointsAtRedemption=0)

    db = _BuildSession()
    admin = _AddUser(db, "admin")
    household = CreateHousehold(db, admin, "Home")
    with pytest.raises(ValueError):
        user_services.SetUserLevelPersistence(db, admin, household.Id, admin.Id, 11, 0)


def test_complete_onboarding():
    db = _BuildSession()
    user = _AddUser(db, "newbie")

    record = user_services.CompleteOnboarding(db, user, dont_show_again=True)

    assert record.HasCompletedOnboarding is True
    assert record.OnboardingDismissedPermanently is True
