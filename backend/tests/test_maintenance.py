from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from dailybag.db import Base
from dailybag.modules.auth.deps import UserContext
from dailybag.modules.auth.models import User
from dailybag.modules.chores.models import Chore
from dailybag.modules.chores.services.chore_service import AddChore, CompleteChore
from dailybag.modules.households.services import CreateHousehold
from dailybag.modules.maintenance.services import RunScheduledJobs
from dailybag.modules.stats.services import GetStatsRecord
import dailybag.modules.invites.models  # noqa: F401
import dailybag.modules.redemptions.models  # noqa: F401

WEDNESDAY = datetime(2026, 5, 20, 20, 0, tzinfo=timezone.utc)


def _BuildSession():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)()


def test_unknown_job_is_rejected():
    with pytest.raises(ValueError, match="Unknown jobs: backup"):
        RunScheduledJobs(None, WEDNESDAY, ["stats", "backup"])


def test_scheduled_jobs_run_together():
    db = _BuildSession()
    record = User(Email="admin@example.com", Name="admin", PasswordHash="x")
    db.add(record)
    db.commit()
    admin = UserContext(Id=record.Id, Email=record.Email, Name="admin")
    household = CreateHousehold(db, admin, "Home")
    daily = AddChore(db, admin, household.Id, {"Title": "Feed cat", "Category": "daily"})
    AddChore(db, admin, household.Id, {"Title": "Vacuum", "Category": "weekly"})
    CompleteChore(db, admin, daily.Id, now=WEDNESDAY - timedelta(hours=2))

    stats = GetStatsRecord(db, admin.Id, household.Id)
    stats.PersistedLevel = 5
    stats.PersistedLevelExpiresAt = WEDNESDAY - timedelta(days=1)
    db.commit()

    result = RunScheduledJobs(db, WEDNESDAY)

    assert result["RanAt"] == WEDNESDAY
    assert result["Resets"] == {"daily": 1}
    assert result["ExpiredLevelLocks"] == 1
    assert result["Stats"] == {"Households": 1, "Members": 1}

    db.refresh(daily)
    assert daily.Status == "pending"
    stats = GetStatsRecord(db, admin.Id, household.Id)
    assert stats.PersistedLevel is None
    assert stats.CurrentLevel == 1
    assert stats.CompletedChores == 1
    assert db.query(Chore).filter(Chore.Status == "completed").count() == 0


def test_selected_jobs_only():
    db = _BuildSession()
    result = RunScheduledJobs(db, WEDNESDAY, ["level_persistence"])
    assert result == {"RanAt": WEDNESDAY, "ExpiredLevelLocks": 0}
