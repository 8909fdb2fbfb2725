# conftest.py
from decimal import Decimal

import pytest


@pytest.fixture
def currency_factory(db):
    from config.dictionaries.models import Currency

    def _make_currency(code: str = "EUR", name: str = "Euro", symbol: str = "€"):
        currency, _ = Currency.objects.get_or_create(code=code, defaults={"name": name, "symbol": symbol})
        return currency

    return _make_currency


@pytest.fixture
def org_factory(db, currency_factory):
    from config.orgs.models import Organization

    def _make_org(name: str = "Org 1", **kwargs):
        kwargs.setdefault("base_currency_code", "EUR")
        currency_factory(code=kwargs["base_currency_code"])
        return Organization.objects.create(name=name, **kwargs)

    return _make_org


@pytest.fixture
def org(org_factory):
    return org_factory(name="Main Store")


@pytest.fixture
def order_factory(db, org):
    from apps.orders.models import Order

    counter = {"value": 100000000}

    def _make_order(**kwargs):
        counter["value"] += 1
        kwargs.setdefault("org", org)
        kwargs.setdefault("increment_id", str(counter["value"]))
        kwargs.setdefault("status", Order.STATUS_PENDING_PAYMENT)
        kwargs.setdefault("base_currency_code", kwargs["org"].base_currency_code)
        kwargs.setdefault("base_grand_total", Decimal("10.00"))
        kwargs.setdefault("gateway_order_reference_id", f"P01-{counter['value']}")
        return Order.objects.create(**kwargs)

    return _make_order


@pytest.fixture
def payment_factory(db):
    from apps.payments.models import OrderPayment

    def _make_payment(*, order, **kwargs):
        kwargs.setdefault("tender", OrderPayment.Tender.CARD)
        kwargs.setdefault("status", OrderPayment.Status.PENDING)
        kwargs.setdefault("amount", order.base_grand_total)
        kwargs.setdefault("base_amount_authorized", order.base_grand_total)
        kwargs.setdefault("currency", order.base_currency_code)
        kwargs.setdefault("provider", "gateway")
        return OrderPayment.objects.create(org=order.org, order=order, **kwargs)

    return _make_payment


@pytest.fixture
def invoice_factory(db):
    from apps.payments.models import Invoice

    def _make_invoice(*, order, payment=None, transaction_id: str, **kwargs):
        kwargs.setdefault("base_grand_total", order.base_grand_total)
        kwargs.setdefault("increment_id", order.increment_id)
        return Invoice.objects.create(
            org=order.org,
            order=order,
            payment=payment,
            transaction_id=transaction_id,
            **kwargs,
        )

    return _make_invoice


@pytest.fixture
def transaction_factory(db):
    from apps.payments.models import PaymentTransaction

    def _make_transaction(*, payment, txn_id: str, txn_type=PaymentTransaction.Type.AUTHORIZATION, **kwargs):
        return PaymentTransaction.objects.create(
            org=payment.org,
            order=payment.order,
            payment=payment,
            txn_id=txn_id,
            txn_type=txn_type,
            **kwargs,
        )

    return _make_transaction


@pytest.fixture
def pending_factory(db):
    from apps.payments.models import PendingAuthorization

    def _make_pending(*, order=None, payment=None, **kwargs):
        return PendingAuthorization.objects.create(order=order, payment=payment, **kwargs)

    return _make_pending


@pytest.fixture
def gateway():
    """
    SandboxGatewayClient, подставленный в registry на время теста.
    """
    from apps.payments.gateway import registry
    from apps.payments.gateway.sandbox import SandboxGatewayClient

    client = SandboxGatewayClient()
    registry.set_client(client)
    yield client
    registry.reset_client()


@pytest.fixture
def reconciler():
    from apps.payments.logic.authorization import AuthorizationReconciler

    # В тестах хотим видеть ошибки, а не глотать их
    return AuthorizationReconciler(throw_exceptions=True)


@pytest.fixture
def decline_events():
    """
    Собирает отправленные soft/hard decline сигналы: [(name, kwargs), ...]
    """
    from apps.payments.signals import (
        pending_authorization_hard_decline_after,
        pending_authorization_soft_decline_after,
    )

    received = []

    def on_soft(sender, **kwargs):
        received.append(("soft", kwargs))

    def on_hard(sender, **kwargs):
        received.append(("hard", kwargs))

    pending_authorization_soft_decline_after.connect(on_soft, weak=False)
    pending_authorization_hard_decline_after.connect(on_hard, weak=False)
    yield received
    pending_authorization_soft_decline_after.disconnect(on_soft)
    pending_authorization_hard_decline_after.disconnect(on_hard)
