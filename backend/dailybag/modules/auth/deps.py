import os
from dataclasses import dataclass
from datetime import datetime, timezone

import jwt
from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from dailybag.db import GetDb
from dailybag.modules.auth.models import User


def _require_env(name: str) -> str:
    value = os.getenv(name, "").strip()
    if not value:
        raise RuntimeError(f"Missing required env var: {name}")
    return value


def _site_admin_emails() -> set[str]:
    raw = os.getenv("SITE_ADMIN_EMAILS", "")
    return {entry.strip().lower() for entry in raw.split(",") if entry.strip()}


def IsSiteAdminUser(user: User | None) -> bool:
    """Site admins are flagged in the database or listed in SITE_ADMIN_EMAILS."""
    if user is None:
        return False
    return bool(user.IsSiteAdmin) or (user.Email or "").lower() in _site_admin_emails()


def _decode_access_token(token: str) -> dict:
    secret = _require_env("JWT_SECRET_KEY")
    try:
        return jwt.decode(token, secret, algorithms=["HS256"])
    except jwt.ExpiredSignatureError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token expired") from exc
    except jwt.InvalidTokenError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token") from exc


@dataclass
class UserContext:
    Id: int
    Email: str
    Name: str
    IsSiteAdmin: bool = False


def RequireAuthenticated(
    request: Request,
    db: Session = Depends(GetDb),
) -> UserContext:
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Bearer "):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")

    token = auth_header.replace("Bearer ", "", 1).strip()
    payload = _decode_access_token(token)
    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
    try:
        user_id = int(user_id)
    except (TypeError, ValueError) as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token") from exc

    user = db.query(User).filter(User.Id == user_id).first()
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")

    return UserContext(Id=user.Id, Email=user.Email, Name=user.Name, IsSiteAdmin=IsSiteAdminUser(user))


def RequireSiteAdmin():
    def _checker(user: UserContext = Depends(RequireAuthenticated)) -> UserContext:
        if not user.IsSiteAdmin:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")
        return user

    return _checker


def NowUtc() -> datetime:
    return datetime.now(tz=timezone.utc)


def AsUtc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
