# apps/payments/logic/notices.py
from __future__ import annotations

import structlog

from apps.orders.models import Order
from apps.payments.models import AdminNotice

logger = structlog.get_logger(__name__)


def add_capture_declined_notice(order: Order) -> AdminNotice:
    notice = AdminNotice.objects.create(
        org=order.org,
        order=order,
        severity=AdminNotice.SEVERITY_MAJOR,
        title="Capture declined",
        description=f"Capture declined for Order #{order.increment_id}",
    )

    logger.warning("capture_declined_notice_added", order_id=order.pk, notice_id=notice.pk)

    return notice
