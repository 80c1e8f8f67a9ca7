import pytest
from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError

from dailybag.modules.auth import router as auth_router
from dailybag.modules.auth.schemas import RegisterRequest


class _FakeQuery:
    def __init__(self, existing_user):
        self._existing_user = existing_user

    def filter(self, *args, **kwargs):
        return self

    def first(self):
        return self._existing_user


class _FakeRecord:
    Id = 7


class _FakeDb:
    def __init__(self, existing_user=None, raise_integrity_on_commit=False):
        self._existing_user = existing_user
        self._raise_integrity_on_commit = raise_integrity_on_commit
        self.rollback_called = False
        self.refresh_called = False
        self.added = []

    def query(self, *args, **kwargs):
        return _FakeQuery(self._existing_user)

    def add(self, record):
        self.added.append(record)

    def commit(self):
        if self._raise_integrity_on_commit:
            raise IntegrityError(
                "INSERT INTO users ...",
                {"Email": "race@example.com"},
                Exception("duplicate email"),
            )

    def rollback(self):
        self.rollback_called = True

    def refresh(self, record):
        self.refresh_called = True
        record.Id = 7


def _Patch(monkeypatch):
    monkeypatch.setattr(auth_router, "_require_env", lambda _key: "8")
    monkeypatch.setattr(auth_router, "HashPassword", lambda _value: "hashed-password")


def test_register_returns_conflict_when_insert_hits_unique_constraint(monkeypatch):
    _Patch(monkeypatch)
    db = _FakeDb(existing_user=None, raise_integrity_on_commit=True)
    payload = RegisterRequest(Email="race@example.com", Name="Race", Password="tidy-rooms-42")

    with pytest.raises(HTTPException) as exc_info:
        auth_router.Register(payload, db=db)

    assert exc_info.value.status_code == 409
    assert exc_info.value.detail == "Email already registered"
    assert db.rollback_called is True
    assert db.refresh_called is False


def test_register_rejects_existing_email(monkeypatch):
    _Patch(monkeypatch)
    db = _FakeDb(existing_user=_FakeRecord())
    payload = RegisterRequest(Email="Taken@Example.com", Name="Taken", Password="tidy-rooms-42")

    with pytest.raises(HTTPException) as exc_info:
        auth_router.Register(payload, db=db)

    assert exc_info.value.status_code == 409
    assert db.added == []


def test_register_rejects_short_and_common_passwords(monkeypatch):
    _Patch(monkeypatch)

    with pytest.raises(HTTPException) as exc_info:
        auth_router.Register(RegisterRequest(Email="a@example.com", Name="A", Password="short"), db=_FakeDb())
    assert exc_info.value.status_code == 400

    with pytest.raises(HTTPException) as exc_info:
        auth_router.Register(RegisterRequest(Email="a@example.com", Name="A", Password="password123"), db=_FakeDb())
    assert exc_info.value.status_code == 400
    assert "too common" in exc_info.value.detail


def test_register_rejects_invalid_email(monkeypatch):
    _Patch(monkeypatch)
    with pytest.raises(HTTPException) as exc_info:
        auth_router.Register(RegisterRequest(Email="not-an-email", Name="A", Password="tidy-rooms-42"), db=_FakeDb())
    assert exc_info.value.status_code == 400


def test_register_creates_user_without_role(monkeypatch):
    _Patch(monkeypatch)
    db = _FakeDb()
    response = auth_router.Register(
        RegisterRequest(Email=" New@Example.com ", Name="New", Password="tidy-rooms-42"),
        db=db,
    )

    assert response.UserId == 7
    record = db.added[0]
    assert record.Email == "new@example.com"
    assert record.PasswordHash == "hashed-password"
    assert record.Points == 0
    assert record.Level == 1
    assert record.Role is None
