from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from dailybag.core.errors import AccessError, ConflictError
from dailybag.db import Base
from dailybag.modules.auth.deps import UserContext
from dailybag.modules.auth.models import User
from dailybag.modules.chores.defaults import DEFAULT_CHORES
from dailybag.modules.chores.models import Chore, ChoreCompletion
from dailybag.modules.chores.services import chore_service
from dailybag.modules.chores.services.schedule_service import ResetCompletedChores
from dailybag.modules.households.services import AddMember, CreateHousehold
from dailybag.modules.stats.services import GetStatsRecord
import dailybag.modules.invites.models  # noqa: F401
import dailybag.modules.redemptions.models  # noqa: F401

NOW = datetime(2026, 5, 20, 12, 0, tzinfo=timezone.utc)


def _BuildSession():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)()


def _AddUser(db, name):
    record = User(Email=f"{name}@example.com", Name=name, PasswordHash="x")
    db.add(record)
    db.commit()
    return UserContext(Id=record.Id, Email=record.Email, Name=name)


def _BuildHousehold(db):
    admin = _AddUser(db, "admin")
    kid = _AddUser(db, "kid")
    teen = _AddUser(db, "teen")
    household = CreateHousehold(db, admin, "Home")
    AddMember(db, admin, household.Id, kid.Id, role="kid", parent_user_id=admin.Id)
    AddMember(db, admin, household.Id, teen.Id, role="teen")
    return household, admin, kid, teen


def test_add_chore_defaults_points_from_difficulty():
    db = _BuildSession()
    household, admin, kid, _teen = _BuildHousehold(db)

    chore = chore_service.AddChore(
        db,
        admin,
        household.Id,
        {"Title": "Sweep", "Difficulty": "hard", "AssignedToUserId": kid.Id},
    )

    assert chore.Points == 15
    assert chore.Status == "pending"
    stats = GetStatsRecord(db, kid.Id, household.Id)
    assert stats.TotalChores == 1
    assert stats.TotalPoints == 15


def test_add_chore_rejects_bad_input():
    db = _BuildSession()
    household, admin, _kid, _teen = _BuildHousehold(db)

    with pytest.raises(ValueError):
        chore_service.AddChore(db, admin, household.Id, {"Title": "Sweep", "Difficulty": "extreme"})
    with pytest.raises(ValueError):
        chore_service.AddChore(db, admin, household.Id, {"Title": "Sweep", "Points": 0})
    with pytest.raises(ValueError):
        chore_service.AddChore(db, admin, household.Id, {"Title": "Sweep", "AssignedToUserId": 999})


def test_complete_chore_awards_points_and_updates_stats():
    db = _BuildSession()
    household, admin, kid, _teen = _BuildHousehold(db)
    chore = chore_service.AddChore(db, admin, household.Id, {"Title": "Dishes", "AssignedToUserId": kid.Id})

    result = chore_service.CompleteChore(db, kid, chore.Id, now=NOW)

    assert result.Chore.Status == "completed"
    assert result.Chore.CompletedByUserId == kid.Id
    assert result.Completion.PointsEarned == 10
    assert db.query(User).filter(User.Id == kid.Id).first().Points == 10

    stats = GetStatsRecord(db, kid.Id, household.Id)
    assert stats.CompletedChores == 1
    assert stats.EarnedPoints == 10
    assert stats.LifetimePoints == 10
    assert stats.CurrentStreak == 1
    assert stats.CurrentLevel == 1
    assert stats.PointsToNextLevel == 15

    with pytest.raises(ConflictError):
        chore_service.CompleteChore(db, kid, chore.Id, now=NOW)


def test_early_completion_records_bonus():
    db = _BuildSession()
    household, admin, kid, _teen = _BuildHousehold(db)
    chore = chore_service.AddChore(
        db,
        admin,
        household.Id,
        {"Title": "Laundry", "Points": 10, "DueDate": NOW + timedelta(days=2)},
    )

    result = chore_service.CompleteChore(db, kid, chore.Id, now=NOW)

    assert result.Completion.IsEarly is True
    assert result.Completion.BonusPoints == 2
    assert result.Chore.FinalPoints == 12
    assert result.Chore.BonusMessage.startswith("+2 early bonus")


def test_only_managers_complete_for_others():
    db = _BuildSession()
    household, admin, kid, teen = _BuildHousehold(db)
    chore = chore_service.AddChore(db, admin, household.Id, {"Title": "Trash"})

    with pytest.raises(AccessError):
        chore_service.CompleteChore(db, teen, chore.Id, completed_by_user_id=kid.Id, now=NOW)

    result = chore_service.CompleteChore(db, admin, chore.Id, completed_by_user_id=kid.Id, now=NOW)
    assert result.Completion.UserId == kid.Id
    assert GetStatsRecord(db, admin.Id, household.Id) is None


def test_delete_chore_permissions_and_stats():
    db = _BuildSession()
    household, admin, kid, teen = _BuildHousehold(db)
    chore = chore_service.AddChore(db, admin, household.Id, {"Title": "Mop", "AssignedToUserId": kid.Id})
    chore_service.CompleteChore(db, kid, chore.Id, now=NOW)

    with pytest.raises(AccessError):
        chore_service.DeleteChore(db, teen, chore.Id)

    chore_service.DeleteChore(db, kid, chore.Id)
    assert db.query(ChoreCompletion).count() == 0
    stats = GetStatsRecord(db, kid.Id, household.Id)
    assert stats.CompletedChores == 0
    assert stats.EarnedPoints == 0


def test_reset_to_defaults_replaces_open_chores():
    db = _BuildSession()
    household, admin, kid, _teen = _BuildHousehold(db)
    chore_service.AddChore(db, admin, household.Id, {"Title": "Custom"})
    done = chore_service.AddChore(db, admin, household.Id, {"Title": "Finished"})
    chore_service.CompleteChore(db, admin, done.Id, now=NOW)

    with pytest.raises(AccessError):
        chore_service.ResetChoresToDefaults(db, kid, household.Id)

    created = chore_service.ResetChoresToDefaults(db, admin, household.Id)
    titles = {chore.Title for chore in db.query(Chore).all()}
    assert created == len(DEFAULT_CHORES)
    assert "Custom" not in titles
    assert "Finished" in titles


def test_periodic_reset_reopens_completed_chores():
    db = _BuildSession()
    household, admin, _kid, _teen = _BuildHousehold(db)
    daily = chore_service.AddChore(db, admin, household.Id, {"Title": "Feed cat", "Category": "daily"})
    weekly = chore_service.AddChore(db, admin, household.Id, {"Title": "Vacuum", "Category": "weekly"})
    chore_service.CompleteChore(db, admin, daily.Id, now=NOW)
    chore_service.CompleteChore(db, admin, weekly.Id, now=NOW)

    assert ResetCompletedChores(db, "daily", NOW) == 1
    db.commit()

    db.refresh(daily)
    db.refresh(weekly)
    assert daily.Status == "pending"
    assert daily.CompletedByUserId is None
    assert daily.FinalPoints is None
    assert weekly.Status == "completed"
    assert db.query(ChoreCompletion).count() == 2


def test_periodic_reset_refreshes_assignee_stats():
    db = _BuildSession()
    household, admin, kid, _teen = _BuildHousehold(db)
    chore = chore_service.AddChore(
        db,
        admin,
        household.Id,
        {"Title": "Make bed", "Points": 10, "AssignedToUserId": kid.Id},
    )
    chore_service.CompleteChore(db, kid, chore.Id, now=NOW)
    stats = GetStatsRecord(db, kid.Id, household.Id)
    assert (stats.TotalChores, stats.CompletedChores, stats.TotalPoints) == (1, 1, 10)

    ResetCompletedChores(db, "daily", NOW + timedelta(hours=12))
    db.commit()

    stats = GetStatsRecord(db, kid.Id, household.Id)
    assert stats.TotalChores == 2
    assert stats.CompletedChores == 1
    assert stats.TotalPoints == 20
    assert stats.EarnedPoints == 10


def test_list_chores_requires_membership():
    db = _BuildSession()
    household, admin, _kid, _teen = _BuildHousehold(db)
    outsider = _AddUser(db, "outsider")
    chore_service.AddChore(db, admin, household.Id, {"Title": "Windows", "Priority": "high"})

    assert [chore.Title for chore in chore_service.ListChores(db, admin, household.Id)] == ["Windows"]
    assert chore_service.ListChores(db, admin, household.Id, status="completed") == []
    with pytest.raises(AccessError):
        chore_service.ListChores(db, outsider, household.Id)
