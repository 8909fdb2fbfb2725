# apps/payments/gateway/sandbox.py
from __future__ import annotations

from decimal import Decimal
from typing import Any
from uuid import uuid4

from apps.payments.gateway.responses import AuthorizationState, OrderReferenceState


class SandboxGatewayClient:
    """
    In-memory gateway для development / тестов (без внешних вызовов).

    - неизвестные authorization / order reference считаются Open
    - seed_* задают конкретное состояние
    - configure_authorize задаёт исход следующих authorize()
    - calls: журнал вызовов (для проверок в тестах)
    """

    def __init__(self, org=None) -> None:
        self.org = org
        self.authorizations: dict[str, dict[str, Any]] = {}
        self.order_references: dict[str, dict[str, Any]] = {}
        self.authorize_state: str = AuthorizationState.OPEN
        self.authorize_reason_code: str | None = None
        self.calls: list[dict[str, Any]] = []

    # ------------------------------------------------------------------
    # seeding
    # ------------------------------------------------------------------
    def seed_authorization(
        self,
        authorization_id: str,
        *,
        state: str = AuthorizationState.OPEN,
        reason_code: str | None = None,
        capture_ids: tuple[str, ...] = (),
        amount: Decimal | str = "0.00",
        currency_code: str = "EUR",
    ) -> None:
        self.authorizations[authorization_id] = {
            "authorization_id": authorization_id,
            "status": {"state": state, "reason_code": reason_code},
            "id_list": list(capture_ids),
            "amount": {"amount": str(amount), "currency_code": currency_code},
        }

    def seed_order_reference(self, order_reference_id: str, *, state: str = OrderReferenceState.OPEN) -> None:
        self.order_references[order_reference_id] = {
            "order_reference_id": order_reference_id,
            "status": {"state": state, "reason_code": None},
        }

    def configure_authorize(self, state: str, reason_code: str | None = None) -> None:
        self.authorize_state = state
        self.authorize_reason_code = reason_code

    # ------------------------------------------------------------------
    # GatewayClientPort
    # ------------------------------------------------------------------
    def get_authorization_details(self, *, authorization_id: str) -> dict[str, Any]:
        self.calls.append({"method": "get_authorization_details", "authorization_id": authorization_id})

        data = self.authorizations.get(authorization_id)
        if data is None:
            data = {
                "authorization_id": authorization_id,
                "status": {"state": AuthorizationState.OPEN, "reason_code": None},
                "id_list": [],
            }
        return {"authorization_details": data}

    def get_order_reference_details(self, *, order_reference_id: str) -> dict[str, Any]:
        self.calls.append({"method": "get_order_reference_details", "order_reference_id": order_reference_id})

        data = self.order_references.get(order_reference_id)
        if data is None:
            data = {
                "order_reference_id": order_reference_id,
                "status": {"state": OrderReferenceState.OPEN, "reason_code": None},
            }
        return {"order_reference_details": data}

    def authorize(
        self,
        *,
        order_reference_id: str,
        authorization_reference_id: str,
        amount: Decimal,
        currency: str,
        capture: bool,
        timeout_s: int,
    ) -> dict[str, Any]:
        self.calls.append(
            {
                "method": "authorize",
                "order_reference_id": order_reference_id,
                "authorization_reference_id": authorization_reference_id,
                "amount": amount,
                "currency": currency,
                "capture": capture,
                "timeout_s": timeout_s,
            }
        )

        authorization_id = f"{order_reference_id}-A{uuid4().hex[:8]}"
        declined = self.authorize_state == AuthorizationState.DECLINED
        capture_ids = [f"{order_reference_id}-C{uuid4().hex[:8]}"] if capture and not declined else []

        data = {
            "authorization_id": authorization_id,
            "authorization_reference_id": authorization_reference_id,
            "status": {"state": self.authorize_state, "reason_code": self.authorize_reason_code},
            "id_list": capture_ids,
            "amount": {"amount": str(amount), "currency_code": currency},
        }
        self.authorizations[authorization_id] = data
        return {"authorization_details": data}
