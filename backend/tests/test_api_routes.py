import pytest
from fastapi import FastAPI, HTTPException
from fastapi.testclient import TestClient

from dailybag.core.errors import AccessError, ConflictError, NotFoundError, RaiseHttpError
from dailybag.modules.auth.deps import RequireAuthenticated, UserContext
from dailybag.modules.billing import router as billing_router
from dailybag.modules.billing.services import PaymentReturnHandler
from dailybag.modules.core.router import router as core_router


def _BuildClient(monkeypatch):
    monkeypatch.setattr(billing_router, "_payment_returns", PaymentReturnHandler())
    app = FastAPI()
    app.include_router(core_router)
    app.include_router(billing_router.router)
    app.dependency_overrides[RequireAuthenticated] = lambda: UserContext(
        Id=5,
        Email="payer@example.com",
        Name="Payer",
    )
    return TestClient(app)


def test_health(monkeypatch):
    client = _BuildClient(monkeypatch)
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_frontend_logs_accept_warn_level(monkeypatch):
    client = _BuildClient(monkeypatch)
    response = client.post("/api/logs", json={"level": "warn", "message": "slow render", "context": {"page": "chores"}})
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_payment_return_reported_once(monkeypatch):
    client = _BuildClient(monkeypatch)
    url = "/settings?payment=success&tab=plan"

    first = client.post("/api/billing/payment-return", json={"Url": url})
    assert first.status_code == 200
    assert first.json()["Status"] == "success"
    assert first.json()["CleanUrl"] == "/settings?tab=plan"

    second = client.post("/api/billing/payment-return", json={"Url": url})
    assert second.json()["Status"] == "none"


@pytest.mark.parametrize(
    "exc, status_code",
    [
        (NotFoundError("missing"), 404),
        (AccessError("nope"), 403),
        (ConflictError("again"), 409),
        (ValueError("bad"), 400),
    ],
)
def test_service_errors_map_to_http_status(exc, status_code):
    with pytest.raises(HTTPException) as exc_info:
        RaiseHttpError(exc)
    assert exc_info.value.status_code == status_code
    assert exc_info.value.detail == str(exc)
