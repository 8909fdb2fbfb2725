from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP
from typing import Any

import structlog

from apps.payments.models import OrderPayment, PaymentEvent

logger = structlog.get_logger(__name__)


# Разрешённые переходы статуса платежа (то же самое, не считается переходом)
ALLOWED_PAYMENT_TRANSITIONS: dict[str, set[str]] = {
    OrderPayment.Status.PENDING: {
        OrderPayment.Status.AUTHORIZED,
        OrderPayment.Status.CAPTURED,
        OrderPayment.Status.VOIDED,
        OrderPayment.Status.FAILED,
    },
    OrderPayment.Status.AUTHORIZED: {
        OrderPayment.Status.CAPTURED,
        OrderPayment.Status.VOIDED,
        OrderPayment.Status.FAILED,
    },
    OrderPayment.Status.FAILED: {
        OrderPayment.Status.AUTHORIZED,
        OrderPayment.Status.CAPTURED,
    },
    OrderPayment.Status.CAPTURED: {OrderPayment.Status.REFUNDED},
    OrderPayment.Status.REFUNDED: set(),
    OrderPayment.Status.VOIDED: set(),
}


def format_amount(amount) -> Decimal:
    """
    Сумма для gateway: Decimal, 2 знака, ROUND_HALF_UP.
    """
    return Decimal(str(amount or "0")).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def record_payment_status(
    *,
    payment: OrderPayment,
    status: str,
    action: str,
    metadata: dict[str, Any] | None = None,
) -> bool:
    """
    Переводит платёж в status и пишет PaymentEvent.

    Мягкая версия use-case'а для фоновой обработки:
    - тот же статус -> no-op (повторный прогон reconciler)
    - переход вне ALLOWED_PAYMENT_TRANSITIONS -> пропускаем с warning,
      статус платежа вторичен по отношению к заказу и ledger

    Возвращает True, если статус реально изменился.
    """
    if payment.status == status:
        return False

    if status not in ALLOWED_PAYMENT_TRANSITIONS.get(payment.status, set()):
        logger.warning(
            "payment_status_transition_skipped",
            payment_id=payment.pk,
            from_status=payment.status,
            to_status=status,
        )
        return False

    old_status = payment.status

    payment.status = status
    payment._status_change_allowed = True
    payment.save(update_fields=["status", "updated_at"])

    PaymentEvent.objects.create(
        org=payment.org,
        payment=payment,
        from_status=old_status,
        to_status=status,
        action=action,
        metadata=metadata or {},
    )

    return True
