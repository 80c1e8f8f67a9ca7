import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.exc import IntegrityError, ProgrammingError
from sqlalchemy.orm import Session

from dailybag.core.errors import ConflictError, RaiseHttpError, RaiseStorageError
from dailybag.core.migrations import EnsureStorageReady
from dailybag.db import GetDb
from dailybag.modules.auth.deps import RequireAuthenticated, UserContext
from dailybag.modules.households.schemas import (
    HouseholdCreate,
    HouseholdListResponse,
    HouseholdOut,
    HouseholdUpdate,
    HouseholdWithRoleOut,
    JoinRequest,
    MemberAdd,
    MemberListResponse,
    MemberOut,
    MemberRoleUpdate,
)
from dailybag.modules.households.services import (
    AddMember,
    CreateHousehold,
    DeleteHousehold,
    GetHousehold,
    JoinHousehold,
    ListMembers,
    ListUserHouseholds,
    RegenerateJoinCode,
    RemoveMember,
    UpdateHousehold,
    UpdateMemberRole,
)

router = APIRouter(prefix="/api/households", tags=["households"], dependencies=[Depends(EnsureStorageReady)])
logger = logging.getLogger("dailybag.households")


def _BuildMemberOut(member, profile=None) -> MemberOut:
    return MemberOut(
        Id=member.Id,
        HouseholdId=member.HouseholdId,
        UserId=member.UserId,
        Role=member.Role,
        ParentUserId=member.ParentUserId,
        JoinedAt=member.JoinedAt,
        Name=profile.Name if profile else None,
        Email=profile.Email if profile else None,
        AvatarUrl=profile.AvatarUrl if profile else None,
    )


def _HandleIntegrity(db: Session, exc: IntegrityError) -> None:
    db.rollback()
    logger.warning("households integrity error: %s", exc.orig)
    RaiseHttpError(ConflictError("Household membership changed concurrently, try again"))


@router.get("", response_model=HouseholdListResponse)
def ListMyHouseholds(
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireAuthenticated),
) -> HouseholdListResponse:
    try:
        records = ListUserHouseholds(db, user)
        return HouseholdListResponse(
            Households=[
                HouseholdWithRoleOut(
                    Household=HouseholdOut.model_validate(record.Household),
                    Role=record.Role,
                    MemberCount=record.MemberCount,
                )
                for record in records
            ]
        )
    except ProgrammingError as exc:
        RaiseStorageError(logger, exc)


@router.post("", response_model=HouseholdOut, status_code=status.HTTP_201_CREATED)
def CreateHouseholdItem(
    payload: HouseholdCreate,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireAuthenticated),
) -> HouseholdOut:
    try:
        return HouseholdOut.model_validate(CreateHousehold(db, user, payload.Name, payload.Description))
    except ValueError as exc:
        RaiseHttpError(exc)
    except IntegrityError as exc:
        _HandleIntegrity(db, exc)
    except ProgrammingError as exc:
        RaiseStorageError(logger, exc)


@router.post("/join", response_model=MemberOut, status_code=status.HTTP_201_CREATED)
def JoinHouseholdItem(
    payload: JoinRequest,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireAuthenticated),
) -> MemberOut:
    try:
        return _BuildMemberOut(JoinHousehold(db, user, payload.JoinCode))
    except ValueError as exc:
        RaiseHttpError(exc)
    except IntegrityError as exc:
        _HandleIntegrity(db, exc)
    except ProgrammingError as exc:
        RaiseStorageError(logger, exc)


@router.get("/{household_id}", response_model=HouseholdOut)
def GetHouseholdItem(
    household_id: int,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireAuthenticated),
) -> HouseholdOut:
    try:
        return HouseholdOut.model_validate(GetHousehold(db, user, household_id))
    except ValueError as exc:
        RaiseHttpError(exc)
    except ProgrammingError as exc:
        RaiseStorageError(logger, exc)


@router.patch("/{household_id}", response_model=HouseholdOut)
def UpdateHouseholdItem(
    household_id: int,
    payload: HouseholdUpdate,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireAuthenticated),
) -> HouseholdOut:
    try:
        record = UpdateHousehold(db, user, household_id, payload.model_dump(exclude_unset=True))
        return HouseholdOut.model_validate(record)
    except ValueError as exc:
        RaiseHttpError(exc)
    except ProgrammingError as exc:
        RaiseStorageError(logger, exc)


@router.delete("/{household_id}", status_code=status.HTTP_204_NO_CONTENT)
def DeleteHouseholdItem(
    household_id: int,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireAuthenticated),
) -> None:
    try:
        DeleteHousehold(db, user, household_id)
    except ValueError as exc:
        RaiseHttpError(exc)
    except ProgrammingError as exc:
        RaiseStorageError(logger, exc)


@router.post("/{household_id}/join-code", response_model=HouseholdOut)
def RegenerateJoinCodeItem(
    household_id: int,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireAuthenticated),
) -> HouseholdOut:
    try:
        return HouseholdOut.model_validate(RegenerateJoinCode(db, user, household_id))
    except ValueError as exc:
        RaiseHttpError(exc)
    except ProgrammingError as exc:
        RaiseStorageError(logger, exc)


@router.get("/{household_id}/members", response_model=MemberListResponse)
def ListMembersItem(
    household_id: int,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireAuthenticated),
) -> MemberListResponse:
    try:
        records = ListMembers(db, user, household_id)
        return MemberListResponse(Members=[_BuildMemberOut(record.Member, record.User) for record in records])
    except ValueError as exc:
        RaiseHttpError(exc)
    except ProgrammingError as exc:
        RaiseStorageError(logger, exc)


@router.post("/{household_id}/members", response_model=MemberOut, status_code=status.HTTP_201_CREATED)
def AddMemberItem(
    household_id: int,
    payload: MemberAdd,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireAuthenticated),
) -> MemberOut:
    try:
        member = AddMember(db, user, household_id, payload.UserId, payload.Role, payload.ParentUserId)
        return _BuildMemberOut(member)
    except ValueError as exc:
        RaiseHttpError(exc)
    except IntegrityError as exc:
        _HandleIntegrity(db, exc)
    except ProgrammingError as exc:
        RaiseStorageError(logger, exc)


@router.put("/{household_id}/members/{user_id}", response_model=MemberOut)
def UpdateMemberRoleItem(
    household_id: int,
    user_id: int,
    payload: MemberRoleUpdate,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireAuthenticated),
) -> MemberOut:
    try:
        member = UpdateMemberRole(db, user, household_id, user_id, payload.Role, payload.ParentUserId)
        return _BuildMemberOut(member)
    except ValueError as exc:
        RaiseHttpError(exc)
    except ProgrammingError as exc:
        RaiseStorageError(logger, exc)


@router.delete("/{household_id}/members/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def RemoveMemberItem(
    household_id: int,
    user_id: int,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireAuthenticated),
) -> None:
    try:
        RemoveMember(db, user, household_id, user_id)
    except ValueError as exc:
        RaiseHttpError(exc)
    except ProgrammingError as exc:
        RaiseStorageError(logger, exc)
