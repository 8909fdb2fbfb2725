# apps/payments/gateway/responses.py
"""
Снимки состояния gateway (value objects) и разбор сырых ответов клиента.

Формат payload (dict), который возвращает GatewayClientPort:

    {"authorization_details": {
        "authorization_id": "P01-0000000-0000000-A000001",
        "authorization_reference_id": "100000001-A1",
        "status": {"state": "Open", "reason_code": None},
        "id_list": ["P01-0000000-0000000-C000001"],
        "amount": {"amount": "10.00", "currency_code": "EUR"}}}

    {"order_reference_details": {
        "order_reference_id": "P01-0000000-0000000",
        "status": {"state": "Open", "reason_code": None}}}

    {"error": {"code": "...", "message": "..."}}
"""
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from apps.payments.exceptions import GatewayUnavailableError


class AuthorizationState:
    PENDING = "Pending"
    OPEN = "Open"
    DECLINED = "Declined"
    CLOSED = "Closed"


class AuthorizationReasonCode:
    INVALID_PAYMENT_METHOD = "InvalidPaymentMethod"
    AMAZON_REJECTED = "AmazonRejected"
    PROCESSING_FAILURE = "ProcessingFailure"
    TRANSACTION_TIMED_OUT = "TransactionTimedOut"


class OrderReferenceState:
    DRAFT = "Draft"
    OPEN = "Open"
    SUSPENDED = "Suspended"
    CANCELED = "Canceled"
    CLOSED = "Closed"


@dataclass(frozen=True)
class GatewayStatus:
    state: str
    reason_code: str | None = None


@dataclass(frozen=True)
class AuthorizationDetails:
    authorization_id: str
    status: GatewayStatus
    authorization_reference_id: str = ""
    capture_ids: tuple[str, ...] = field(default_factory=tuple)
    amount: Decimal = Decimal("0.00")
    currency_code: str = ""

    def has_capture(self) -> bool:
        return bool(self.capture_ids)

    def is_pending(self) -> bool:
        return self.status.state == AuthorizationState.PENDING

    @property
    def capture_id(self) -> str | None:
        return self.capture_ids[0] if self.capture_ids else None


@dataclass(frozen=True)
class OrderReferenceDetails:
    order_reference_id: str
    status: GatewayStatus

    def is_open(self) -> bool:
        return self.status.state == OrderReferenceState.OPEN


def _parse_status(data: dict[str, Any] | None) -> GatewayStatus:
    data = data or {}
    state = data.get("state")
    if not state:
        raise GatewayUnavailableError("Gateway response has no status state")
    return GatewayStatus(state=state, reason_code=data.get("reason_code"))


def _unwrap(payload: dict[str, Any], key: str) -> dict[str, Any]:
    if "error" in payload:
        error = payload["error"] or {}
        raise GatewayUnavailableError(
            f"Gateway error {error.get('code', 'unknown')}: {error.get('message', '')}".strip()
        )
    try:
        return payload[key]
    except KeyError:
        raise GatewayUnavailableError(f"Gateway response has no '{key}' section")


class AuthorizationDetailsResponse:
    def __init__(self, payload: dict[str, Any]):
        data = _unwrap(payload, "authorization_details")
        amount = data.get("amount") or {}

        self.details = AuthorizationDetails(
            authorization_id=data.get("authorization_id", ""),
            authorization_reference_id=data.get("authorization_reference_id", ""),
            status=_parse_status(data.get("status")),
            capture_ids=tuple(data.get("id_list") or ()),
            amount=Decimal(str(amount.get("amount", "0.00"))),
            currency_code=amount.get("currency_code", ""),
        )


class OrderReferenceDetailsResponse:
    def __init__(self, payload: dict[str, Any]):
        data = _unwrap(payload, "order_reference_details")

        self.details = OrderReferenceDetails(
            order_reference_id=data.get("order_reference_id", ""),
            status=_parse_status(data.get("status")),
        )
