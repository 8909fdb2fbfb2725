# apps/payments/logic/ledger.py
from __future__ import annotations

from apps.orders.models import Order, OrderComment
from apps.payments.models import Invoice, OrderPayment, PaymentTransaction


def add_transaction(
    *,
    payment: OrderPayment,
    txn_type: str,
    invoice: Invoice | None = None,
    is_closed: bool = False,
) -> PaymentTransaction:
    """
    Создаёт запись ledger для только что выполненной операции gateway.

    txn_id берётся из payment.last_transaction_id (его выставляет метод оплаты).
    Capture ссылается на родительскую authorization через parent_txn_id.
    Повторный вызов с тем же txn_id возвращает существующую запись.
    """
    txn_id = payment.last_transaction_id
    if not txn_id:
        raise ValueError("Payment has no transaction id to record")

    parent_txn_id = ""
    if txn_type == PaymentTransaction.Type.CAPTURE:
        parent = (
            PaymentTransaction.objects.filter(
                payment=payment,
                txn_type=PaymentTransaction.Type.AUTHORIZATION,
            )
            .order_by("-id")
            .first()
        )
        parent_txn_id = parent.txn_id if parent else ""

    transaction, _ = PaymentTransaction.objects.get_or_create(
        payment=payment,
        txn_id=txn_id,
        defaults={
            "org": payment.org,
            "order": payment.order,
            "invoice": invoice,
            "txn_type": txn_type,
            "parent_txn_id": parent_txn_id,
            "is_closed": is_closed,
            "raw_details": payment.raw_provider_payload or {},
        },
    )
    return transaction


def get_transaction(txn_id: str, payment: OrderPayment, order: Order) -> PaymentTransaction:
    """
    PaymentTransaction.DoesNotExist если операции нет в ledger.
    """
    return PaymentTransaction.objects.get(txn_id=txn_id, payment=payment, order=order)


def close_transaction(txn_id: str, payment: OrderPayment, order: Order) -> PaymentTransaction:
    transaction = get_transaction(txn_id, payment, order)
    if not transaction.is_closed:
        transaction.is_closed = True
        transaction.save(update_fields=["is_closed", "updated_at"])
    return transaction


def add_transaction_comment_to_order(
    *,
    payment: OrderPayment,
    transaction: PaymentTransaction,
    message: str,
) -> OrderComment:
    order = payment.order
    return OrderComment.objects.create(
        org=order.org,
        order=order,
        transaction=transaction,
        message=f'{message} Transaction ID: "{transaction.txn_id}"',
    )
