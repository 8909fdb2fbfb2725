import pytest
from django.db import IntegrityError

pytestmark = pytest.mark.django_db


def test_external_id_unique_per_org(org_factory, order_factory, payment_factory):
    from apps.payments.models import OrderPayment

    org2 = org_factory(name="Org 2")

    payment_factory(order=order_factory(), external_id="ext-1")

    # В другой org такой же external_id допустим
    payment_factory(order=order_factory(org=org2), external_id="ext-1")

    assert OrderPayment.objects.count() == 2


def test_external_id_must_be_unique_within_same_org(order_factory, payment_factory):
    order = order_factory()

    payment_factory(order=order, external_id="ext-dup")

    with pytest.raises(IntegrityError):
        payment_factory(order=order, external_id="ext-dup")


def test_transaction_id_unique_per_payment(order_factory, payment_factory, transaction_factory):
    payment = payment_factory(order=order_factory())

    transaction_factory(payment=payment, txn_id="AUTH-1")

    with pytest.raises(IntegrityError):
        transaction_factory(payment=payment, txn_id="AUTH-1")


def test_pending_survives_order_deletion_as_orphan(order_factory, pending_factory):
    from apps.payments.models import PendingAuthorization

    order = order_factory()
    pending = pending_factory(order=order, authorization_id="AUTH-1")

    order.delete()

    pending = PendingAuthorization.objects.get(pk=pending.pk)
    assert pending.order_id is None


def test_ledger_records_only_authorizations_and_captures():
    from apps.payments.models import PaymentTransaction

    assert set(PaymentTransaction.Type.values) == {"authorization", "capture"}
