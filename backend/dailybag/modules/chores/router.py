import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.exc import ProgrammingError
from sqlalchemy.orm import Session

from dailybag.core.errors import RaiseHttpError, RaiseStorageError
from dailybag.core.migrations import EnsureStorageReady
from dailybag.db import GetDb
from dailybag.modules.auth.deps import RequireAuthenticated, UserContext
from dailybag.modules.chores.schemas import (
    ChoreCategory,
    ChoreComplete,
    ChoreCompleteResponse,
    ChoreCreate,
    ChoreListResponse,
    ChoreOut,
    ChoreResetResponse,
    ChoreStatus,
    ChoreUpdate,
    CompletionOut,
)
from dailybag.modules.chores.services.chore_service import (
    AddChore,
    CompleteChore,
    DeleteChore,
    GetChore,
    ListChores,
    ResetChoresToDefaults,
    StartChore,
    UpdateChore,
)

router = APIRouter(prefix="/api/chores", tags=["chores"], dependencies=[Depends(EnsureStorageReady)])
logger = logging.getLogger("dailybag.chores")


@router.get("/household/{household_id}", response_model=ChoreListResponse)
def ListChoreItems(
    household_id: int,
    status_filter: ChoreStatus | None = None,
    category: ChoreCategory | None = None,
    assigned_to: int | None = None,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireAuthenticated),
) -> ChoreListResponse:
    try:
        chores = ListChores(
            db,
            user,
            household_id,
            status=status_filter.value if status_filter else None,
            category=category.value if category else None,
            assigned_to=assigned_to,
        )
        return ChoreListResponse(Chores=[ChoreOut.model_validate(chore) for chore in chores])
    except ValueError as exc:
        RaiseHttpError(exc)
    except ProgrammingError as exc:
        RaiseStorageError(logger, exc)


@router.post("/household/{household_id}", response_model=ChoreOut, status_code=status.HTTP_201_CREATED)
def CreateChoreItem(
    household_id: int,
    payload: ChoreCreate,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireAuthenticated),
) -> ChoreOut:
    try:
        return ChoreOut.model_validate(AddChore(db, user, household_id, payload.model_dump()))
    except ValueError as exc:
        RaiseHttpError(exc)
    except ProgrammingError as exc:
        RaiseStorageError(logger, exc)


@router.post("/household/{household_id}/reset-defaults", response_model=ChoreResetResponse)
def ResetChoreDefaults(
    household_id: int,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireAuthenticated),
) -> ChoreResetResponse:
    try:
        return ChoreResetResponse(Created=ResetChoresToDefaults(db, user, household_id))
    except ValueError as exc:
        RaiseHttpError(exc)
    except ProgrammingError as exc:
        RaiseStorageError(logger, exc)


@router.get("/{chore_id}", response_model=ChoreOut)
def GetChoreItem(
    chore_id: int,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireAuthenticated),
) -> ChoreOut:
    try:
        return ChoreOut.model_validate(GetChore(db, user, chore_id))
    except ValueError as exc:
        RaiseHttpError(exc)
    except ProgrammingError as exc:
        RaiseStorageError(logger, exc)


@router.put("/{chore_id}", response_model=ChoreOut)
def UpdateChoreItem(
    chore_id: int,
    payload: ChoreUpdate,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireAuthenticated),
) -> ChoreOut:
    try:
        record = UpdateChore(db, user, chore_id, payload.model_dump(exclude_unset=True))
        return ChoreOut.model_validate(record)
    except ValueError as exc:
        RaiseHttpError(exc)
    except ProgrammingError as exc:
        RaiseStorageError(logger, exc)


@router.post("/{chore_id}/start", response_model=ChoreOut)
def StartChoreItem(
    chore_id: int,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireAuthenticated),
) -> ChoreOut:
    try:
        return ChoreOut.model_validate(StartChore(db, user, chore_id))
    except ValueError as exc:
        RaiseHttpError(exc)
    except ProgrammingError as exc:
        RaiseStorageError(logger, exc)


@router.post("/{chore_id}/complete", response_model=ChoreCompleteResponse)
def CompleteChoreItem(
    chore_id: int,
    payload: ChoreComplete | None = None,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireAuthenticated),
) -> ChoreCompleteResponse:
    try:
        result = CompleteChore(db, user, chore_id, payload.CompletedByUserId if payload else None)
        return ChoreCompleteResponse(
            Chore=ChoreOut.model_validate(result.Chore),
            Completion=CompletionOut.model_validate(result.Completion),
        )
    except ValueError as exc:
        RaiseHttpError(exc)
    except ProgrammingError as exc:
        RaiseStorageError(logger, exc)


@router.delete("/{chore_id}", status_code=status.HTTP_204_NO_CONTENT)
def DeleteChoreItem(
    chore_id: int,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireAuthenticated),
) -> None:
    try:
        DeleteChore(db, user, chore_id)
    except ValueError as exc:
        RaiseHttpError(exc)
    except ProgrammingError as exc:
        RaiseStorageError(logger, exc)
