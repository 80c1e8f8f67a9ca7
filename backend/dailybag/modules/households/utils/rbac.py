from sqlalchemy.orm import Session

from dailybag.core.errors import AccessError
from dailybag.modules.households.models import HouseholdMember

ADMIN_ROLE = "admin"
PARENT_ROLE = "parent"
MINOR_ROLES = {"teen", "kid"}
HOUSEHOLD_ROLES = {ADMIN_ROLE, PARENT_ROLE, "teen", "kid", "member"}


def GetMembership(db: Session, household_id: int, user_id: int) -> HouseholdMember | None:
    return (
        db.query(HouseholdMember)
        .filter(HouseholdMember.HouseholdId == household_id, HouseholdMember.UserId == user_id)
        .first()
    )


def RequireMember(db: Session, household_id: int, user_id: int) -> HouseholdMember:
    member = GetMembership(db, household_id, user_id)
    if not member:
        raise AccessError("Not a member of this household")
    return member


def RequireAdmin(db: Session, household_id: int, user_id: int) -> HouseholdMember:
    member = GetMembership(db, household_id, user_id)
    if not member or not IsAdmin(member):
        raise AccessError("Only household admins can perform this action")
    return member


def IsAdmin(member: HouseholdMember | None) -> bool:
    return bool(member) and member.Role == ADMIN_ROLE


def CanManageMember(actor: HouseholdMember | None, target: HouseholdMember) -> bool:
    """Admins manage everyone; a parent manages the minors linked to them."""
    if IsAdmin(actor):
        return True
    if not actor or actor.Role != PARENT_ROLE:
        return False
    return target.Role in MINOR_ROLES and target.ParentUserId == actor.UserId
