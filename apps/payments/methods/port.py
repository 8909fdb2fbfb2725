# apps/payments/methods/port.py
from __future__ import annotations

from decimal import Decimal
from typing import Protocol

from apps.payments.models import OrderPayment


class PaymentMethodPort(Protocol):
    """
    Порт (интерфейс) метода оплаты для фоновой (cron) авторизации.

    Контракт authorize_in_cron:
    - при успехе мутирует payment (last_transaction_id, base_amount_authorized),
      но НЕ сохраняет его: сохраняет вызывающий use-case
    - SoftDeclineError: временный отказ
    - любая другая PaymentGatewayError: окончательный отказ
    """

    def authorize_in_cron(self, *, payment: OrderPayment, amount: Decimal, capture: bool) -> None:
        ...
