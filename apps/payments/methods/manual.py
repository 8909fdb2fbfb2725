# apps/payments/methods/manual.py
from __future__ import annotations

from decimal import Decimal
from uuid import uuid4

from apps.payments.models import OrderPayment


class ManualMethod:
    """
    Заглушка для ручных платежей / development.

    Авторизация всегда проходит, transaction id генерируется локально.
    """

    def __init__(self, org=None) -> None:
        self.org = org

    def authorize_in_cron(self, *, payment: OrderPayment, amount: Decimal, capture: bool) -> None:
        prefix = "manual-capture" if capture else "manual-auth"
        payment.last_transaction_id = f"{prefix}-{uuid4().hex[:12]}"
        payment.base_amount_authorized = amount
        payment.raw_provider_payload = {"ok": True, "provider": "manual", "capture": capture}
