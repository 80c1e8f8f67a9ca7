from __future__ import annotations

from dataclasses import dataclass
import logging
from urllib.parse import parse_qsl, urlencode, urlsplit

logger = logging.getLogger("dailybag.billing")

PAYMENT_PARAMS = ("payment", "session_id", "success", "canceled")

SUCCESS_TITLE = "Payment successful!"
SUCCESS_DESCRIPTION = "Welcome to Daily Bag Premium! Your subscription is now active."
CANCELED_TITLE = "Payment canceled"
CANCELED_DESCRIPTION = "No worries! You can upgrade anytime from the settings."


@dataclass
class PaymentReturn:
    Status: str
    Title: str | None
    Description: str | None
    DurationMs: int
    CleanUrl: str


def CleanPaymentUrl(url: str) -> str:
    parts = urlsplit(url)
    query = [(key, value) for key, value in parse_qsl(parts.query, keep_blank_values=True) if key not in PAYMENT_PARAMS]
    path = parts.path or "/"
    return f"{path}?{urlencode(query)}" if query else path


def _Status(params: dict[str, str]) -> str:
    if params.get("session_id"):
        return "success"
    payment = params.get("payment")
    if payment == "success":
        return "success"
    if payment == "canceled":
        return "canceled"
    if params.get("success") == "true":
        return "success"
    if params.get("canceled") == "true":
        return "canceled"
    return "none"


def ResolvePaymentReturn(url: str) -> PaymentReturn:
    """Work out what a checkout redirect back to the app means.

    The cleaned URL keeps the path and any unrelated query parameters.
    """
    params = dict(parse_qsl(urlsplit(url).query, keep_blank_values=True))
    status = _Status(params)
    if status == "success":
        return PaymentReturn(status, SUCCESS_TITLE, SUCCESS_DESCRIPTION, 5000, CleanPaymentUrl(url))
    if status == "canceled":
        return PaymentReturn(status, CANCELED_TITLE, CANCELED_DESCRIPTION, 4000, CleanPaymentUrl(url))
    return PaymentReturn(status, None, None, 0, CleanPaymentUrl(url))


class PaymentReturnHandler:
    """Resolves each return URL at most once."""

    def __init__(self) -> None:
        self._handled: set[tuple] = set()

    def Handle(self, url: str, owner: int | None = None) -> PaymentReturn:
        result = ResolvePaymentReturn(url)
        if result.Status == "none":
            return result
        key = (owner, url)
        if key in self._handled:
            return PaymentReturn("none", None, None, 0, result.CleanUrl)
        self._handled.add(key)
        logger.info("payment return handled status=%s", result.Status)
        return result
