import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.exc import ProgrammingError
from sqlalchemy.orm import Session

from dailybag.core.errors import RaiseHttpError, RaiseStorageError
from dailybag.core.migrations import EnsureStorageReady
from dailybag.db import GetDb
from dailybag.modules.auth.deps import RequireAuthenticated, UserContext
from dailybag.modules.redemptions.schemas import (
    ConversionRateResponse,
    ConversionRateUpdate,
    DeductionTotalOut,
    DeductionTotalResponse,
    HouseholdDeductionsResponse,
    PointDeductionListResponse,
    PointDeductionOut,
    RedemptionCreate,
    RedemptionProcess,
    RedemptionRequestListResponse,
    RedemptionRequestOut,
    RedemptionSummaryOut,
)
from dailybag.modules.redemptions.services import (
    CreateRedemptionRequest,
    GetHouseholdDeductions,
    GetRedemptionSummary,
    GetTotalDeductions,
    ListHouseholdRequests,
    ListUserDeductions,
    ListUserRequests,
    ProcessRedemptionRequest,
    SetConversionRate,
)

router = APIRouter(prefix="/api/redemptions", tags=["redemptions"], dependencies=[Depends(EnsureStorageReady)])
logger = logging.getLogger("dailybag.redemptions")


@router.get("/mine", response_model=RedemptionRequestListResponse)
def ListMyRequests(
    household_id: int | None = None,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireAuthenticated),
) -> RedemptionRequestListResponse:
    try:
        records = ListUserRequests(db, user, household_id)
        return RedemptionRequestListResponse(Requests=[RedemptionRequestOut.model_validate(r) for r in records])
    except ProgrammingError as exc:
        RaiseStorageError(logger, exc)


@router.post(
    "/household/{household_id}",
    response_model=RedemptionRequestOut,
    status_code=status.HTTP_201_CREATED,
)
def CreateRequestItem(
    household_id: int,
    payload: RedemptionCreate,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireAuthenticated),
) -> RedemptionRequestOut:
    try:
        record = CreateRedemptionRequest(
            db,
            user,
            household_id,
            payload.PointsRequested,
            payload.CashAmount,
            payload.UserId,
        )
        return RedemptionRequestOut.model_validate(record)
    except ValueError as exc:
        RaiseHttpError(exc)
    except ProgrammingError as exc:
        RaiseStorageError(logger, exc)


@router.get("/household/{household_id}", response_model=RedemptionRequestListResponse)
def ListHouseholdRequestItems(
    household_id: int,
    status_filter: str | None = None,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireAuthenticated),
) -> RedemptionRequestListResponse:
    try:
        records = ListHouseholdRequests(db, user, household_id, status_filter)
        return RedemptionRequestListResponse(Requests=[RedemptionRequestOut.model_validate(r) for r in records])
    except ValueError as exc:
        RaiseHttpError(exc)
    except ProgrammingError as exc:
        RaiseStorageError(logger, exc)


@router.get("/household/{household_id}/summary", response_model=RedemptionSummaryOut)
def GetSummary(
    household_id: int,
    user_id: int | None = None,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireAuthenticated),
) -> RedemptionSummaryOut:
    try:
        return RedemptionSummaryOut.model_validate(GetRedemptionSummary(db, user, household_id, user_id))
    except ValueError as exc:
        RaiseHttpError(exc)
    except ProgrammingError as exc:
        RaiseStorageError(logger, exc)


@router.get("/household/{household_id}/deductions", response_model=PointDeductionListResponse)
def ListDeductions(
    household_id: int,
    user_id: int | None = None,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireAuthenticated),
) -> PointDeductionListResponse:
    try:
        records = ListUserDeductions(db, user, household_id, user_id)
        return PointDeductionListResponse(Deductions=[PointDeductionOut.model_validate(r) for r in records])
    except ValueError as exc:
        RaiseHttpError(exc)
    except ProgrammingError as exc:
        RaiseStorageError(logger, exc)


@router.get("/household/{household_id}/deductions/total", response_model=DeductionTotalResponse)
def GetDeductionTotal(
    household_id: int,
    user_id: int | None = None,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireAuthenticated),
) -> DeductionTotalResponse:
    try:
        total = GetTotalDeductions(db, user, household_id, user_id)
        return DeductionTotalResponse(UserId=user_id or user.Id, HouseholdId=household_id, TotalPointsDeducted=total)
    except ValueError as exc:
        RaiseHttpError(exc)
    except ProgrammingError as exc:
        RaiseStorageError(logger, exc)


@router.get("/household/{household_id}/deductions/by-user", response_model=HouseholdDeductionsResponse)
def GetDeductionsByUser(
    household_id: int,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireAuthenticated),
) -> HouseholdDeductionsResponse:
    try:
        totals = GetHouseholdDeductions(db, user, household_id)
        return HouseholdDeductionsResponse(Totals=[DeductionTotalOut.model_validate(t) for t in totals])
    except ValueError as exc:
        RaiseHttpError(exc)
    except ProgrammingError as exc:
        RaiseStorageError(logger, exc)


@router.put("/household/{household_id}/conversion-rate", response_model=ConversionRateResponse)
def UpdateConversionRate(
    household_id: int,
    payload: ConversionRateUpdate,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireAuthenticated),
) -> ConversionRateResponse:
    try:
        household = SetConversionRate(db, user, household_id, payload.ConversionRate)
        return ConversionRateResponse(HouseholdId=household.Id, ConversionRate=household.ConversionRate)
    except ValueError as exc:
        RaiseHttpError(exc)
    except ProgrammingError as exc:
        RaiseStorageError(logger, exc)


@router.post("/{request_id}/process", response_model=RedemptionRequestOut)
def ProcessRequestItem(
    request_id: int,
    payload: RedemptionProcess,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireAuthenticated),
) -> RedemptionRequestOut:
    try:
        record = ProcessRedemptionRequest(db, user, request_id, payload.Status.value, payload.AdminNotes)
        return RedemptionRequestOut.model_validate(record)
    except ValueError as exc:
        RaiseHttpError(exc)
    except ProgrammingError as exc:
        RaiseStorageError(logger, exc)
