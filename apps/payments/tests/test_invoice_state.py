import pytest
from rest_framework.exceptions import ValidationError

pytestmark = pytest.mark.django_db


@pytest.fixture
def order_with_invoice(order_factory, payment_factory, invoice_factory):
    order = order_factory()
    payment = payment_factory(order=order)
    invoice = invoice_factory(order=order, payment=payment, transaction_id="CAP-1")
    return order, invoice


def test_get_invoice_by_capture_id(order_with_invoice):
    from apps.payments.logic.invoices import get_invoice

    order, invoice = order_with_invoice

    assert get_invoice("CAP-1", order) == invoice


def test_missing_invoice_raises_does_not_exist(order_with_invoice):
    from apps.payments.logic.invoices import get_invoice
    from apps.payments.models import Invoice

    order, _invoice = order_with_invoice

    with pytest.raises(Invoice.DoesNotExist):
        get_invoice("CAP-404", order)


def test_set_paid_then_cancel_is_rejected(order_with_invoice):
    from apps.payments.logic.invoices import get_invoice_and_set_cancelled, get_invoice_and_set_paid
    from apps.payments.models import Invoice

    order, invoice = order_with_invoice

    assert get_invoice_and_set_paid("CAP-1", order).state == Invoice.STATE_PAID

    with pytest.raises(ValidationError):
        get_invoice_and_set_cancelled("CAP-1", order)

    invoice.refresh_from_db()
    assert invoice.state == Invoice.STATE_PAID


def test_cancelled_invoice_cannot_be_paid(order_with_invoice):
    from apps.payments.logic.invoices import get_invoice_and_set_cancelled, get_invoice_and_set_paid
    from apps.payments.models import Invoice

    order, invoice = order_with_invoice

    assert get_invoice_and_set_cancelled("CAP-1", order).state == Invoice.STATE_CANCELLED

    with pytest.raises(ValidationError):
        get_invoice_and_set_paid("CAP-1", order)


def test_capture_declined_notice(order_factory):
    from apps.payments.logic.notices import add_capture_declined_notice
    from apps.payments.models import AdminNotice

    order = order_factory()

    notice = add_capture_declined_notice(order)

    assert notice.severity == AdminNotice.SEVERITY_MAJOR
    assert notice.title == "Capture declined"
    assert notice.description == f"Capture declined for Order #{order.increment_id}"
    assert notice.is_read is False
