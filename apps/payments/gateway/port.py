# apps/payments/gateway/port.py
from __future__ import annotations

from decimal import Decimal
from typing import Any, Protocol


class GatewayClientPort(Protocol):
    """
    Порт (интерфейс) клиента платёжного gateway.

    Клиент создаётся на конкретную org (merchant-аккаунт) и возвращает
    сырые payload'ы; разбор — в apps.payments.gateway.responses.
    Таймауты/ретраи HTTP — ответственность реализации клиента.
    """

    def get_authorization_details(self, *, authorization_id: str) -> dict[str, Any]:
        ...

    def get_order_reference_details(self, *, order_reference_id: str) -> dict[str, Any]:
        ...

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
        ...
