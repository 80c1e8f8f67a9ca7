import secrets
from datetime import timedelta

import jwt
from passlib.context import CryptContext

from dailybag.modules.auth.deps import NowUtc, _require_env

pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")


def HashPassword(password: str) -> str:
    return pwd_context.hash(password)


def VerifyPassword(password: str, password_hash: str) -> bool:
    return pwd_context.verify(password, password_hash)


def CreateAccessToken(user_id: int, email: str) -> tuple[str, int]:
    secret = _require_env("JWT_SECRET_KEY")
    ttl_minutes = int(_require_env("JWT_ACCESS_TTL_MINUTES"))
    now = NowUtc()
    expires = now + timedelta(minutes=ttl_minutes)
    payload = {
        "sub": str(user_id),
        "email": email,
        "iat": int(now.timestamp()),
        "exp": int(expires.timestamp()),
    }
    token = jwt.encode(payload, secret, algorithm="HS256")
    return token, ttl_minutes * 60


def CreateRefreshToken() -> str:
    return secrets.token_urlsafe(48)


def HashRefreshToken(token: str) -> str:
    return pwd_context.hash(token)


def VerifyRefreshToken(token: str, token_hash: str) -> bool:
    return pwd_context.verify(token, token_hash)
