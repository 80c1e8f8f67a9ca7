from datetime import timedelta
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from dailybag.core.validation import CleanText, IsWeakPassword, NAME_MAX_LENGTH, NormalizeEmail
from dailybag.db import GetDb
from dailybag.modules.auth.deps import AsUtc, NowUtc, RequireAuthenticated, UserContext, _require_env
from dailybag.modules.auth.models import DEFAULT_AVATAR, RefreshToken, User
from dailybag.modules.auth.schemas import (
    LoginRequest,
    RefreshRequest,
    RegisterRequest,
    RegisterResponse,
    TokenResponse,
)
from dailybag.modules.auth.service import (
    CreateAccessToken,
    CreateRefreshToken,
    HashPassword,
    HashRefreshToken,
    VerifyPassword,
    VerifyRefreshToken,
)

router = APIRouter(prefix="/api/auth", tags=["auth"])
logger = logging.getLogger("dailybag.auth")


def _IssueTokens(db: Session, user: User) -> TokenResponse:
    access_token, expires_in = CreateAccessToken(user.Id, user.Email)
    refresh_token = CreateRefreshToken()
    refresh_ttl_days = int(_require_env("JWT_REFRESH_TTL_DAYS"))
    db.add(
        RefreshToken(
            UserId=user.Id,
            TokenHash=HashRefreshToken(refresh_token),
            ExpiresAt=NowUtc() + timedelta(days=refresh_ttl_days),
        )
    )
    db.commit()
    return TokenResponse(
        AccessToken=access_token,
        RefreshToken=refresh_token,
        ExpiresIn=expires_in,
        UserId=user.Id,
        Email=user.Email,
        Name=user.Name,
    )


@router.post("/login", response_model=TokenResponse)
def Login(payload: LoginRequest, db: Session = Depends(GetDb)) -> TokenResponse:
    email = payload.Email.strip().lower()
    user = db.query(User).filter(User.Email == email).first()
    now = NowUtc()
    locked_until = AsUtc(user.LockedUntil) if user else None
    if locked_until and locked_until > now:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account locked. Try again later.")

    if not user or not VerifyPassword(payload.Password, user.PasswordHash):
        if user:
            max_attempts = int(_require_env("AUTH_LOGIN_MAX_ATTEMPTS"))
            lockout_minutes = int(_require_env("AUTH_LOGIN_LOCKOUT_MINUTES"))
            user.FailedLoginCount += 1
            if user.FailedLoginCount >= max_attempts:
                user.LockedUntil = now + timedelta(minutes=lockout_minutes)
                user.FailedLoginCount = 0
                logger.warning("account locked user_id=%s", user.Id)
            db.commit()
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    user.FailedLoginCount = 0
    user.LockedUntil = None
    user.LastActive = now
    return _IssueTokens(db, user)


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
def Register(payload: RegisterRequest, db: Session = Depends(GetDb)) -> RegisterResponse:
    try:
        email = NormalizeEmail(payload.Email)
        name = CleanText(payload.Name, "Name", max_length=NAME_MAX_LENGTH)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    existing = db.query(User).filter(User.Email == email).first()
    if existing:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already registered")

    min_length = int(_require_env("AUTH_PASSWORD_MIN_LENGTH"))
    if len(payload.Password) < min_length:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Password must be at least {min_length} characters",
        )
    if IsWeakPassword(payload.Password):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="This password is too common, please choose a stronger one",
        )

    record = User(
        Email=email,
        Name=name,
        AvatarUrl=DEFAULT_AVATAR,
        PasswordHash=HashPassword(payload.Password),
        Points=0,
        Level=1,
        Role=None,
    )
    db.add(record)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already registered")
    db.refresh(record)
    logger.info("user registered user_id=%s", record.Id)

    return RegisterResponse(UserId=record.Id, Message="Account created. Sign in to continue.")


@router.post("/refresh", response_model=TokenResponse)
def Refresh(payload: RefreshRequest, db: Session = Depends(GetDb)) -> TokenResponse:
    now = NowUtc()
    tokens = (
        db.query(RefreshToken)
        .filter(RefreshToken.RevokedAt.is_(None), RefreshToken.ExpiresAt > now)
        .all()
    )
    matched = None
    for token in tokens:
        if VerifyRefreshToken(payload.RefreshToken, token.TokenHash):
            matched = token
            break

    if not matched:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid refresh token")

    user = db.query(User).filter(User.Id == matched.UserId).first()
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")

    matched.RevokedAt = now
    return _IssueTokens(db, user)


@router.post("/logout")
def Logout(payload: RefreshRequest, user: UserContext = Depends(RequireAuthenticated), db: Session = Depends(GetDb)) -> dict:
    tokens = db.query(RefreshToken).filter(RefreshToken.UserId == user.Id, RefreshToken.RevokedAt.is_(None)).all()
    for token in tokens:
        if VerifyRefreshToken(payload.RefreshToken, token.TokenHash):
            token.RevokedAt = NowUtc()
            db.add(token)
            db.commit()
            return {"status": "ok"}
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Refresh token not found")
