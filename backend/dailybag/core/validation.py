import re

TITLE_MIN_LENGTH = 3
TITLE_MAX_LENGTH = 100
DESCRIPTION_MAX_LENGTH = 500
NAME_MAX_LENGTH = 50
EMAIL_MAX_LENGTH = 100
PASSWORD_MAX_LENGTH = 128

WEAK_PASSWORDS = {
    "password",
    "123456",
    "qwerty",
    "admin",
    "letmein",
    "password123",
    "123456789",
    "abc123",
    "password1",
}

SUSPICIOUS_PATTERNS = [
    re.compile(r"<script", re.IGNORECASE),
    re.compile(r"javascript:", re.IGNORECASE),
    re.compile(r"on\w+\s*=", re.IGNORECASE),
    re.compile(r"eval\s*\(", re.IGNORECASE),
    re.compile(r"document\.", re.IGNORECASE),
    re.compile(r"window\.", re.IGNORECASE),
    re.compile(r"alert\s*\(", re.IGNORECASE),
    re.compile(r"confirm\s*\(", re.IGNORECASE),
    re.compile(r"prompt\s*\(", re.IGNORECASE),
]

_EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def ContainsSuspiciousContent(value: str) -> bool:
    return any(pattern.search(value) for pattern in SUSPICIOUS_PATTERNS)


def CleanText(
    value: str | None,
    field: str,
    *,
    max_length: int,
    min_length: int = 0,
    required: bool = True,
) -> str | None:
    cleaned = re.sub(r"\s+", " ", (value or "").strip())
    if not cleaned:
        if required:
            raise ValueError(f"{field} is required")
        return None
    if len(cleaned) < min_length:
        raise ValueError(f"{field} must be at least {min_length} characters")
    if len(cleaned) > max_length:
        raise ValueError(f"{field} must be at most {max_length} characters")
    if ContainsSuspiciousContent(cleaned):
        raise ValueError(f"{field} contains invalid content")
    return cleaned


def NormalizeEmail(value: str | None) -> str:
    email = (value or "").strip().lower()
    if not email:
        raise ValueError("Email is required")
    if len(email) > EMAIL_MAX_LENGTH or not _EMAIL_PATTERN.match(email):
        raise ValueError("Please enter a valid email address")
    if ContainsSuspiciousContent(email):
        raise ValueError("Email contains invalid characters")
    return email


def IsWeakPassword(password: str) -> bool:
    return password.lower() in WEAK_PASSWORDS
