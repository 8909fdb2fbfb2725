# apps/payments/methods/gateway.py
from __future__ import annotations

from decimal import Decimal
from uuid import uuid4

import structlog

from apps.payments.gateway import registry
from apps.payments.gateway.responses import AuthorizationDetailsResponse
from apps.payments.gateway.validators import AuthorizationValidator
from apps.payments.models import OrderPayment

logger = structlog.get_logger(__name__)


class GatewayPaymentMethod:
    """
    Метод оплаты через внешний gateway (в контексте merchant-аккаунта org).
    """

    def __init__(self, org, validator: AuthorizationValidator | None = None) -> None:
        self.org = org
        self.validator = validator or AuthorizationValidator()

    def authorize_in_cron(self, *, payment: OrderPayment, amount: Decimal, capture: bool) -> None:
        order = payment.order

        # ВАЖНО: вызываем через registry, чтобы monkeypatch/set_client работали по пути
        client = registry.get_client_for_org(self.org)
        payload = client.authorize(
            order_reference_id=order.gateway_order_reference_id,
            authorization_reference_id=f"{order.increment_id}-{uuid4().hex[:8]}",
            amount=amount,
            currency=order.base_currency_code,
            capture=capture,
            timeout_s=registry.get_timeout_s(),
        )

        details = AuthorizationDetailsResponse(payload).details

        logger.info(
            "gateway_authorize_responded",
            order_id=order.pk,
            authorization_id=details.authorization_id,
            state=details.status.state,
            reason_code=details.status.reason_code,
            capture=capture,
        )

        # Soft/Hard decline -> исключение, payment не трогаем
        self.validator.validate(details)

        payment.raw_provider_payload = payload
        payment.base_amount_authorized = amount
        if capture and details.has_capture():
            payment.last_transaction_id = details.capture_id
        else:
            payment.last_transaction_id = details.authorization_id
