# apps/orders/logic/status_transitions.py
from __future__ import annotations

import structlog

from apps.orders.logic.status_fsm import assert_can_transition
from apps.orders.models import Order, OrderStatusEvent

logger = structlog.get_logger(__name__)


def set_processing(*, order: Order, reason: str = "") -> Order:
    return _transition(order=order, new_status=Order.STATUS_PROCESSING, reason=reason)


def set_on_hold(*, order: Order, reason: str = "") -> Order:
    return _transition(order=order, new_status=Order.STATUS_ON_HOLD, reason=reason)


def set_payment_review(*, order: Order, reason: str = "") -> Order:
    return _transition(order=order, new_status=Order.STATUS_PAYMENT_REVIEW, reason=reason)


def _transition(*, order: Order, new_status: str, reason: str) -> Order:
    """
    Общий переход статуса заказа.

    Инварианты:
    - переход проверяется по ALLOWED_TRANSITIONS (ValidationError если запрещён)
    - повторная установка того же статуса: no-op (reconciler может
      перезапускаться на том же заказе, статусы "пере-устанавливаемые")
    - реальная смена пишет OrderStatusEvent

    Работает на переданном инстансе (без собственного row-lock):
    вызывающий код уже держит lock и транзакцию.
    """
    assert_can_transition(current=order.status, new=new_status)

    if order.status == new_status:
        return order

    old_status = order.status

    order.status = new_status
    order._status_change_allowed = True
    order.save(update_fields=["status", "updated_at"])

    OrderStatusEvent.objects.create(
        org=order.org,
        order=order,
        from_status=old_status,
        to_status=new_status,
        reason=reason,
    )

    logger.info(
        "order_status_changed",
        order_id=order.pk,
        from_status=old_status,
        to_status=new_status,
    )

    return order
