import pytest
from decimal import Decimal


@pytest.fixture
def processed_pending(order_factory, payment_factory, transaction_factory, pending_factory):
    """
    pending {processed: True}: прошлая авторизация отклонена soft,
    reconciler должен запросить новую.
    """
    order = order_factory()
    payment = payment_factory(order=order)
    transaction_factory(payment=payment, txn_id="AUTH-OLD", is_closed=True)
    pending = pending_factory(order=order, payment=payment, authorization_id="AUTH-OLD", processed=True)
    return order, payment, pending


@pytest.fixture
def processed_capture_pending(order_factory, payment_factory, transaction_factory, invoice_factory, pending_factory):
    order = order_factory(base_grand_total=Decimal("25.00"))
    payment = payment_factory(order=order)
    transaction_factory(payment=payment, txn_id="AUTH-OLD", is_closed=True)
    invoice = invoice_factory(order=order, payment=payment, transaction_id="CAP-OLD")
    pending = pending_factory(
        order=order,
        payment=payment,
        authorization_id="AUTH-OLD",
        capture_id="CAP-OLD",
        capture=True,
        processed=True,
    )
    return order, payment, invoice, pending


@pytest.mark.django_db
def test_new_authorization_completes_order(gateway, reconciler, processed_pending):
    """
    GIVEN:
        - pending processed=True, capture=False
        - order reference Open, gateway authorize -> Open

    THEN:
        - gateway.authorize вызван с суммой 10.00 и capture=False
        - новая authorization-транзакция в ledger
        - заказ processing, pending удалён
    """
    from apps.orders.models import Order
    from apps.payments.models import OrderPayment, PaymentTransaction, PendingAuthorization

    order, payment, pending = processed_pending

    reconciler.update_authorization(pending.pk)

    authorize_calls = [c for c in gateway.calls if c["method"] == "authorize"]
    assert len(authorize_calls) == 1
    assert authorize_calls[0]["amount"] == Decimal("10.00")
    assert authorize_calls[0]["capture"] is False
    assert authorize_calls[0]["order_reference_id"] == order.gateway_order_reference_id

    order.refresh_from_db()
    assert order.status == Order.STATUS_PROCESSING
    assert not PendingAuthorization.objects.filter(pk=pending.pk).exists()

    payment.refresh_from_db()
    assert payment.status == OrderPayment.Status.AUTHORIZED

    new_txn = PaymentTransaction.objects.get(txn_id=payment.last_transaction_id)
    assert new_txn.txn_type == PaymentTransaction.Type.AUTHORIZATION
    assert new_txn.txn_id != "AUTH-OLD"

    comment = order.comments.get()
    assert comment.transaction_id == new_txn.pk
    assert comment.message == f'Authorized amount of €10.00 online Transaction ID: "{new_txn.txn_id}"'


@pytest.mark.django_db
def test_closed_order_reference_is_left_untouched(gateway, reconciler, processed_pending):
    from apps.orders.models import Order
    from apps.payments.models import PendingAuthorization

    order, payment, pending = processed_pending
    gateway.seed_order_reference(order.gateway_order_reference_id, state="Closed")

    reconciler.update_authorization(pending.pk)

    assert [c["method"] for c in gateway.calls] == ["get_order_reference_details"]

    order.refresh_from_db()
    assert order.status == Order.STATUS_PENDING_PAYMENT
    assert PendingAuthorization.objects.filter(pk=pending.pk, processed=True).exists()
    assert not order.comments.exists()


@pytest.mark.django_db
def test_supplied_order_details_skip_reference_fetch(gateway, reconciler, processed_pending):
    from apps.orders.models import Order
    from apps.payments.gateway.responses import GatewayStatus, OrderReferenceDetails

    order, payment, pending = processed_pending
    details = OrderReferenceDetails(
        order_reference_id=order.gateway_order_reference_id,
        status=GatewayStatus(state="Open"),
    )

    reconciler.update_authorization(pending.pk, order_details=details)

    assert [c["method"] for c in gateway.calls] == ["authorize"]
    order.refresh_from_db()
    assert order.status == Order.STATUS_PROCESSING


@pytest.mark.django_db
def test_new_authorization_with_capture_pays_invoice(gateway, reconciler, processed_capture_pending):
    from apps.orders.models import Order
    from apps.payments.models import Invoice, OrderPayment, PaymentTransaction, PendingAuthorization

    order, payment, invoice, pending = processed_capture_pending

    reconciler.update_authorization(pending.pk)

    authorize_call = [c for c in gateway.calls if c["method"] == "authorize"][0]
    assert authorize_call["amount"] == Decimal("25.00")
    assert authorize_call["capture"] is True

    payment.refresh_from_db()
    capture_txn = PaymentTransaction.objects.get(txn_id=payment.last_transaction_id)
    assert capture_txn.txn_type == PaymentTransaction.Type.CAPTURE
    assert capture_txn.is_closed is True
    assert capture_txn.invoice_id == invoice.pk
    assert capture_txn.parent_txn_id == "AUTH-OLD"

    invoice.refresh_from_db()
    assert invoice.state == Invoice.STATE_PAID
    assert invoice.transaction_id == capture_txn.txn_id

    order.refresh_from_db()
    assert order.status == Order.STATUS_PROCESSING
    assert order.comments.get().message == f'Captured amount of €25.00 online Transaction ID: "{capture_txn.txn_id}"'

    assert payment.status == OrderPayment.Status.CAPTURED
    assert payment.base_amount_paid_online == Decimal("25.00")
    assert not PendingAuthorization.objects.filter(pk=pending.pk).exists()


@pytest.mark.django_db
def test_soft_declined_new_authorization_keeps_pending_for_retry(
    gateway, reconciler, processed_pending, decline_events
):
    from apps.orders.models import Order
    from apps.payments.models import PendingAuthorization

    order, payment, pending = processed_pending
    gateway.configure_authorize("Declined", "InvalidPaymentMethod")

    reconciler.update_authorization(pending.pk)

    order.refresh_from_db()
    assert order.status == Order.STATUS_PENDING_PAYMENT
    assert PendingAuthorization.objects.filter(pk=pending.pk, processed=True).exists()
    assert order.comments.get().message == 'Declined amount of €10.00 online Transaction ID: "AUTH-OLD"'
    assert [name for name, _ in decline_events] == ["soft"]


@pytest.mark.django_db
def test_hard_declined_capture_request_does_not_touch_invoice(
    gateway, reconciler, processed_capture_pending, decline_events
):
    """
    Отказ при повторной авторизации с capture обрабатывается как authorize-only:
    invoice остаётся open, admin notice не создаётся.
    """
    from apps.orders.models import Order
    from apps.payments.models import AdminNotice, Invoice, PendingAuthorization

    order, payment, invoice, pending = processed_capture_pending
    gateway.configure_authorize("Declined", "AmazonRejected")

    reconciler.update_authorization(pending.pk)

    invoice.refresh_from_db()
    assert invoice.state == Invoice.STATE_OPEN

    order.refresh_from_db()
    assert order.status == Order.STATUS_ON_HOLD
    assert not AdminNotice.objects.exists()
    assert not PendingAuthorization.objects.filter(pk=pending.pk).exists()
    assert order.comments.get().message.startswith("Declined amount of €25.00 online")
    assert [name for name, _ in decline_events] == ["hard"]


@pytest.mark.django_db
def test_manual_provider_authorizes_without_gateway(gateway, reconciler, processed_pending):
    from apps.orders.models import Order

    order, payment, pending = processed_pending
    payment.provider = "manual"
    payment.save(update_fields=["provider"])

    reconciler.update_authorization(pending.pk)

    assert [c["method"] for c in gateway.calls] == ["get_order_reference_details"]

    order.refresh_from_db()
    assert order.status == Order.STATUS_PROCESSING

    payment.refresh_from_db()
    assert payment.last_transaction_id.startswith("manual-auth-")


@pytest.mark.django_db
def test_unknown_provider_rolls_back_instead_of_declining(gateway, reconciler, processed_pending, decline_events):
    from apps.orders.models import Order
    from apps.payments.models import PendingAuthorization

    order, payment, pending = processed_pending
    payment.provider = "bitcoin"
    payment.save(update_fields=["provider"])

    with pytest.raises(ValueError, match="Unknown payment provider"):
        reconciler.update_authorization(pending.pk)

    order.refresh_from_db()
    assert order.status == Order.STATUS_PENDING_PAYMENT
    assert PendingAuthorization.objects.filter(pk=pending.pk, processed=True).exists()
    assert decline_events == []
