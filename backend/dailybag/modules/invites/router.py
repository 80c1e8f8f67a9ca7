import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.exc import IntegrityError, ProgrammingError
from sqlalchemy.orm import Session

from dailybag.core.errors import ConflictError, RaiseHttpError, RaiseStorageError
from dailybag.core.migrations import EnsureStorageReady
from dailybag.db import GetDb
from dailybag.modules.auth.deps import RequireAuthenticated, UserContext
from dailybag.modules.households.schemas import MemberOut
from dailybag.modules.invites.schemas import InviteCreate, InviteListResponse, InviteOut, InviteTokenAccept
from dailybag.modules.invites.services import (
    AcceptInvite,
    AcceptInviteByToken,
    CancelInvite,
    CreateInvite,
    DeclineInvite,
    ListHouseholdInvites,
    ListMyInvites,
)

router = APIRouter(prefix="/api/invites", tags=["invites"], dependencies=[Depends(EnsureStorageReady)])
logger = logging.getLogger("dailybag.invites")


def _BuildMemberOut(member) -> MemberOut:
    return MemberOut(
        Id=member.Id,
        HouseholdId=member.HouseholdId,
        UserId=member.UserId,
        Role=member.Role,
        ParentUserId=member.ParentUserId,
        JoinedAt=member.JoinedAt,
    )


@router.get("/mine", response_model=InviteListResponse)
def ListMyInviteItems(
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireAuthenticated),
) -> InviteListResponse:
    try:
        records = ListMyInvites(db, user)
        invites = []
        for record in records:
            invite = InviteOut.model_validate(record.Invite)
            invite.HouseholdName = record.HouseholdName
            invites.append(invite)
        return InviteListResponse(Invites=invites)
    except ProgrammingError as exc:
        RaiseStorageError(logger, exc)


@router.get("/household/{household_id}", response_model=InviteListResponse)
def ListHouseholdInviteItems(
    household_id: int,
    status_filter: str | None = None,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireAuthenticated),
) -> InviteListResponse:
    try:
        records = ListHouseholdInvites(db, user, household_id, status_filter)
        return InviteListResponse(Invites=[InviteOut.model_validate(record) for record in records])
    except ValueError as exc:
        RaiseHttpError(exc)
    except ProgrammingError as exc:
        RaiseStorageError(logger, exc)


@router.post("/household/{household_id}", response_model=InviteOut, status_code=status.HTTP_201_CREATED)
def CreateInviteItem(
    household_id: int,
    payload: InviteCreate,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireAuthenticated),
) -> InviteOut:
    try:
        return InviteOut.model_validate(CreateInvite(db, user, household_id, payload.Email, payload.Role))
    except ValueError as exc:
        RaiseHttpError(exc)
    except ProgrammingError as exc:
        RaiseStorageError(logger, exc)


@router.post("/accept", response_model=MemberOut)
def AcceptInviteByTokenItem(
    payload: InviteTokenAccept,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireAuthenticated),
) -> MemberOut:
    try:
        return _BuildMemberOut(AcceptInviteByToken(db, user, payload.Token))
    except ValueError as exc:
        RaiseHttpError(exc)
    except IntegrityError:
        db.rollback()
        RaiseHttpError(ConflictError("You are already a member of this household"))
    except ProgrammingError as exc:
        RaiseStorageError(logger, exc)


@router.post("/{invite_id}/accept", response_model=MemberOut)
def AcceptInviteItem(
    invite_id: int,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireAuthenticated),
) -> MemberOut:
    try:
        return _BuildMemberOut(AcceptInvite(db, user, invite_id))
    except ValueError as exc:
        RaiseHttpError(exc)
    except IntegrityError:
        db.rollback()
        RaiseHttpError(ConflictError("You are already a member of this household"))
    except ProgrammingError as exc:
        RaiseStorageError(logger, exc)


@router.post("/{invite_id}/decline", response_model=InviteOut)
def DeclineInviteItem(
    invite_id: int,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireAuthenticated),
) -> InviteOut:
    try:
        return InviteOut.model_validate(DeclineInvite(db, user, invite_id))
    except ValueError as exc:
        RaiseHttpError(exc)
    except ProgrammingError as exc:
        RaiseStorageError(logger, exc)


@router.delete("/{invite_id}", status_code=status.HTTP_204_NO_CONTENT)
def CancelInviteItem(
    invite_id: int,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireAuthenticated),
) -> None:
    try:
        CancelInvite(db, user, invite_id)
    except ValueError as exc:
        RaiseHttpError(exc)
    except ProgrammingError as exc:
        RaiseStorageError(logger, exc)
