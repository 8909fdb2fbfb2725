# apps/payments/methods/registry.py
from __future__ import annotations

from apps.payments.methods.gateway import GatewayPaymentMethod
from apps.payments.methods.manual import ManualMethod
from apps.payments.methods.port import PaymentMethodPort
from apps.payments.models import OrderPayment
from config.orgs.org_context import get_current_org


def get_method_for_payment(payment: OrderPayment, *, org=None) -> PaymentMethodPort:
    """
    Выбираем метод оплаты по payment.provider и привязываем его к org (store).
    org=None: активная org из store context.
    """
    if org is None:
        org = get_current_org()

    if payment.provider == "manual":
        return ManualMethod(org=org)

    if payment.provider == "gateway":
        return GatewayPaymentMethod(org=org)

    # Без сюрпризов: если провайдер неизвестен — явно падаем
    raise ValueError(f"Unknown payment provider: {payment.provider}")
