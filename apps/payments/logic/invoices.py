# apps/payments/logic/invoices.py
from __future__ import annotations

from rest_framework.exceptions import ValidationError

from apps.orders.models import Order
from apps.payments.models import Invoice


def get_invoice(transaction_id: str, order: Order) -> Invoice:
    """
    Invoice заказа по id capture-операции.
    Invoice.DoesNotExist если такого нет.
    """
    invoice = Invoice.objects.filter(order=order, transaction_id=transaction_id).order_by("id").first()
    if invoice is None:
        raise Invoice.DoesNotExist(f"No invoice for transaction {transaction_id!r} in order {order.pk}")
    return invoice


def get_invoice_and_set_paid(transaction_id: str, order: Order) -> Invoice:
    invoice = get_invoice(transaction_id, order)

    if invoice.state == Invoice.STATE_CANCELLED:
        raise ValidationError({"invoice": ["Cancelled invoice cannot be paid."]})

    if invoice.state != Invoice.STATE_PAID:
        invoice.state = Invoice.STATE_PAID
        invoice.save(update_fields=["state", "updated_at"])

    return invoice


def get_invoice_and_set_cancelled(transaction_id: str, order: Order) -> Invoice:
    invoice = get_invoice(transaction_id, order)

    if invoice.state == Invoice.STATE_PAID:
        raise ValidationError({"invoice": ["Paid invoice cannot be cancelled."]})

    if invoice.state != Invoice.STATE_CANCELLED:
        invoice.state = Invoice.STATE_CANCELLED
        invoice.save(update_fields=["state", "updated_at"])

    return invoice
