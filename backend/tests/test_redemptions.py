from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from dailybag.core.errors import AccessError, ConflictError
from dailybag.db import Base
from dailybag.modules.auth.deps import UserContext
from dailybag.modules.auth.models import User
from dailybag.modules.chores.services.chore_service import AddChore, CompleteChore
from dailybag.modules.households.services import AddMember, CreateHousehold
from dailybag.modules.redemptions import services as redemption_services
from dailybag.modules.redemptions.models import PointDeduction
from dailybag.modules.stats.services import GetStatsRecord
import dailybag.modules.invites.models  # noqa: F401


def test_points_to_cash():
    assert redemption_services.PointsToCash(150, 100) == Decimal("1.50")
    assert redemption_services.PointsToCash(1, 3) == Decimal("0.33")


def test_validate_conversion():
    redemption_services.ValidateConversion(100, 1.0, 100)
    redemption_services.ValidateConversion(101, Decimal("1.00"), 100)
    with pytest.raises(ValueError):
        redemption_services.ValidateConversion(100, 2.0, 100)
    with pytest.raises(ValueError):
        redemption_services.ValidateConversion(0, 0, 100)
    with pytest.raises(ValueError):
        redemption_services.ValidateConversion(100, -1, 100)


def _BuildSession():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)()


def _AddUser(db, name):
    record = User(Email=f"{name}@example.com", Name=name, PasswordHash="x")
    db.add(record)
    db.commit()
    return UserContext(Id=record.Id, Email=record.Email, Name=name)


def _BuildHousehold(db, kid_points=100):
    admin = _AddUser(db, "admin")
    kid = _AddUser(db, "kid")
    teen = _AddUser(db, "teen")
    household = CreateHousehold(db, admin, "Home")
    AddMember(db, admin, household.Id, kid.Id, role="kid", parent_user_id=admin.Id)
    AddMember(db, admin, household.Id, teen.Id, role="teen")
    chore = AddChore(db, admin, household.Id, {"Title": "Garage", "Points": kid_points})
    CompleteChore(db, kid, chore.Id)
    return household, admin, kid, teen


def test_member_request_waits_for_approval():
    db = _BuildSession()
    household, _admin, kid, _teen = _BuildHousehold(db)

    request = redemption_services.CreateRedemptionRequest(db, kid, household.Id, 50, 0.5)

    assert request.Status == "pending"
    assert redemption_services.AvailablePoints(db, kid.Id, household.Id) == 50
    assert db.query(PointDeduction).count() == 0
    with pytest.raises(ValueError, match="Insufficient points"):
        redemption_services.CreateRedemptionRequest(db, kid, household.Id, 60, 0.6)


def test_approval_deducts_points_and_keeps_level():
    db = _BuildSession()
    household, admin, kid, _teen = _BuildHousehold(db)
    assert GetStatsRecord(db, kid.Id, household.Id).CurrentLevel == 3

    request = redemption_services.CreateRedemptionRequest(db, kid, household.Id, 50, 0.5)
    processed = redemption_services.ProcessRedemptionRequest(db, admin, request.Id, "approved", "Enjoy")

    assert processed.Status == "approved"
    assert processed.ProcessedByUserId == admin.Id
    deduction = db.query(PointDeduction).one()
    assert deduction.PointsDeducted == 50
    assert deduction.RedemptionRequestId == request.Id

    stats = GetStatsRecord(db, kid.Id, household.Id)
    assert stats.EarnedPoints == 50
    assert stats.PointsRedeemed == 50
    assert stats.LifetimePoints == 100
    assert stats.CurrentLevel == 3
    assert stats.PersistedLevel == 3
    assert stats.PointsAtRedemption == 50

    with pytest.raises(ConflictError):
        redemption_services.ProcessRedemptionRequest(db, admin, request.Id, "rejected")


def test_rejection_leaves_points_untouched():
    db = _BuildSession()
    household, admin, kid, _teen = _BuildHousehold(db)
    request = redemption_services.CreateRedemptionRequest(db, kid, household.Id, 50, 0.5)

    redemption_services.ProcessRedemptionRequest(db, admin, request.Id, "rejected")

    summary = redemption_services.GetRedemptionSummary(db, kid, household.Id)
    assert summary.EarnedPoints == 100
    assert summary.AvailablePoints == 100
    assert summary.RejectedCount == 1
    assert db.query(PointDeduction).count() == 0


def test_only_admin_or_linked_parent_processes():
    db = _BuildSession()
    household, _admin, kid, teen = _BuildHousehold(db)
    request = redemption_services.CreateRedemptionRequest(db, kid, household.Id, 20, 0.2)

    with pytest.raises(AccessError):
        redemption_services.ProcessRedemptionRequest(db, teen, request.Id, "approved")
    with pytest.raises(AccessError):
        redemption_services.ProcessRedemptionRequest(db, kid, request.Id, "approved")
    with pytest.raises(ValueError):
        redemption_services.ProcessRedemptionRequest(db, teen, request.Id, "maybe")


def test_admin_redemption_is_approved_immediately():
    db = _BuildSession()
    household, admin, _kid, _teen = _BuildHousehold(db)
    chore = AddChore(db, admin, household.Id, {"Title": "Taxes", "Points": 40})
    CompleteChore(db, admin, chore.Id)

    request = redemption_services.CreateRedemptionRequest(db, admin, household.Id, 30, 0.3)

    assert request.Status == "approved"
    assert redemption_services.GetTotalDeductions(db, admin, household.Id) == 30
    totals = redemption_services.GetHouseholdDeductions(db, admin, household.Id)
    assert [(entry.UserName, entry.TotalPointsDeducted) for entry in totals] == [("admin", 30)]


def test_conversion_rate_applies_to_new_requests():
    db = _BuildSession()
    household, admin, kid, _teen = _BuildHousehold(db)

    with pytest.raises(AccessError):
        redemption_services.SetConversionRate(db, kid, household.Id, 50)
    with pytest.raises(ValueError):
        redemption_services.SetConversionRate(db, admin, household.Id, 0)

    redemption_services.SetConversionRate(db, admin, household.Id, 50)
    with pytest.raises(ValueError):
        redemption_services.CreateRedemptionRequest(db, kid, household.Id, 50, 0.5)
    request = redemption_services.CreateRedemptionRequest(db, kid, household.Id, 50, 1.0)
    assert request.CashAmount == Decimal("1.00")
