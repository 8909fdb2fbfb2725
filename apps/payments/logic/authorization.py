# apps/payments/logic/authorization.py
"""
Reconciliation незавершённых авторизаций (PendingAuthorization) с gateway.

Поток:
    update_authorization(id)
      -> transaction.atomic + select_for_update(PendingAuthorization)
      -> processed=True  : _process_new_authorization  (перезапросить авторизацию)
         processed=False : _process_update_authorization (проверить существующую)
      -> complete / soft decline / hard decline

Исход:
    complete      -> order processing, pending удалён
    soft decline  -> pending сохранён (processed=True), ретрай на следующем проходе
    hard decline  -> order on hold, pending удалён
"""
from __future__ import annotations

from dataclasses import dataclass

import structlog
from django.conf import settings
from django.db import transaction

from apps.orders.logic.status_transitions import set_on_hold, set_payment_review, set_processing
from apps.orders.models import Order
from apps.payments import signals
from apps.payments.exceptions import PaymentGatewayError, SoftDeclineError
from apps.payments.gateway import registry
from apps.payments.gateway.responses import (
    AuthorizationDetails,
    AuthorizationDetailsResponse,
    OrderReferenceDetails,
    OrderReferenceDetailsResponse,
)
from apps.payments.gateway.validators import AuthorizationValidator
from apps.payments.logic import invoices, ledger
from apps.payments.logic.notices import add_capture_declined_notice
from apps.payments.logic.payments import format_amount, record_payment_status
from apps.payments.methods import registry as method_registry
from apps.payments.models import OrderPayment, PaymentTransaction, PendingAuthorization
from config.orgs.org_context import reset_current_org, set_current_org

logger = structlog.get_logger(__name__)

SOFT_DECLINE = "soft"
HARD_DECLINE = "hard"

SOFT_DECLINE_EVENT = "payment_pending_authorization_soft_decline_after"
HARD_DECLINE_EVENT = "payment_pending_authorization_hard_decline_after"


@dataclass(frozen=True)
class DeclinePolicy:
    order_status: str | None
    cancel_invoice: bool
    notify_admin: bool
    retain_pending: bool
    event_name: str


# (вид отказа, capture) -> что делаем с заказом / invoice / pending.
# payment review ставится ТОЛЬКО при soft decline capture'а.
DECLINE_POLICIES: dict[tuple[str, bool], DeclinePolicy] = {
    (SOFT_DECLINE, True): DeclinePolicy(
        order_status=Order.STATUS_PAYMENT_REVIEW,
        cancel_invoice=False,
        notify_admin=False,
        retain_pending=True,
        event_name=SOFT_DECLINE_EVENT,
    ),
    (SOFT_DECLINE, False): DeclinePolicy(
        order_status=None,
        cancel_invoice=False,
        notify_admin=False,
        retain_pending=True,
        event_name=SOFT_DECLINE_EVENT,
    ),
    (HARD_DECLINE, True): DeclinePolicy(
        order_status=Order.STATUS_ON_HOLD,
        cancel_invoice=True,
        notify_admin=True,
        retain_pending=False,
        event_name=HARD_DECLINE_EVENT,
    ),
    (HARD_DECLINE, False): DeclinePolicy(
        order_status=Order.STATUS_ON_HOLD,
        cancel_invoice=False,
        notify_admin=False,
        retain_pending=False,
        event_name=HARD_DECLINE_EVENT,
    ),
}

_ORDER_STATUS_SETTERS = {
    Order.STATUS_PROCESSING: set_processing,
    Order.STATUS_PAYMENT_REVIEW: set_payment_review,
    Order.STATUS_ON_HOLD: set_on_hold,
}


class AuthorizationReconciler:
    def __init__(
        self,
        *,
        validator: AuthorizationValidator | None = None,
        throw_exceptions: bool | None = None,
    ) -> None:
        self.validator = validator or AuthorizationValidator()
        if throw_exceptions is None:
            throw_exceptions = getattr(settings, "PENDING_AUTHORIZATION_THROW_EXCEPTIONS", False)
        self.throw_exceptions = throw_exceptions

    def set_throw_exceptions(self, throw_exceptions: bool) -> "AuthorizationReconciler":
        """
        False (по умолчанию): ошибки логируются и глотаются (batch/cron).
        True: после лога и rollback ошибка пробрасывается (синхронные вызовы).
        """
        self.throw_exceptions = throw_exceptions
        return self

    # ------------------------------------------------------------------
    # Entry protocol
    # ------------------------------------------------------------------
    def update_authorization(
        self,
        pending_authorization_id: int,
        authorization_details: AuthorizationDetails | None = None,
        order_details: OrderReferenceDetails | None = None,
    ) -> None:
        """
        Use-case: разобрать одну PendingAuthorization.

        Конкурентность:
        - несколько воркеров могут взять один и тот же id.
          Поэтому: transaction.atomic + select_for_update на строку pending.
          Второй воркер ждёт commit/rollback первого и видит уже удалённую
          (или обновлённую) запись.

        Ошибки:
        - любая ошибка -> rollback всей транзакции + logger.exception
        - дальше: пробросить или проглотить (self.throw_exceptions)

        Store context заказа активен только на время вызова.
        """
        log = logger.bind(pending_authorization_id=pending_authorization_id)
        org_token = None

        try:
            with transaction.atomic():
                pending = (
                    PendingAuthorization.objects.select_for_update()
                    .filter(pk=pending_authorization_id)
                    .first()
                )

                if pending is None:
                    log.info("pending_authorization_missing")
                    return

                if pending.order_id is None:
                    log.info("pending_authorization_without_order_skipped")
                    return

                org_token = set_current_org(pending.order.org)

                if pending.processed:
                    self._process_new_authorization(pending, order_details)
                else:
                    self._process_update_authorization(pending, authorization_details)
        except Exception:
            log.exception("pending_authorization_update_failed")

            if self.throw_exceptions:
                raise
        finally:
            if org_token is not None:
                reset_current_org(org_token)

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------
    def _load_order_and_payment(self, pending: PendingAuthorization) -> tuple[Order, OrderPayment]:
        order = Order.objects.select_related("org").get(pk=pending.order_id)
        payment = OrderPayment.objects.get(pk=pending.payment_id)
        payment.order = order

        return order, payment

    def _process_update_authorization(
        self,
        pending: PendingAuthorization,
        authorization_details: AuthorizationDetails | None,
    ) -> None:
        order, payment = self._load_order_and_payment(pending)

        if authorization_details is None:
            client = registry.get_client_for_org()
            payload = client.get_authorization_details(authorization_id=pending.authorization_id)
            authorization_details = AuthorizationDetailsResponse(payload).details

        capture = authorization_details.has_capture()

        try:
            self.validator.validate(authorization_details)
        except SoftDeclineError:
            self.soft_decline_pending_authorization(order, payment, pending, capture)
            return
        except PaymentGatewayError:
            self.hard_decline_pending_authorization(order, payment, pending, capture)
            return

        if authorization_details.is_pending():
            logger.info(
                "pending_authorization_still_pending",
                pending_authorization_id=pending.pk,
                authorization_id=pending.authorization_id,
            )
            return

        self.complete_pending_authorization(order, payment, pending, capture)

    def _process_new_authorization(
        self,
        pending: PendingAuthorization,
        order_details: OrderReferenceDetails | None,
    ) -> None:
        order, payment = self._load_order_and_payment(pending)

        if order_details is None:
            client = registry.get_client_for_org()
            payload = client.get_order_reference_details(order_reference_id=order.gateway_order_reference_id)
            order_details = OrderReferenceDetailsResponse(payload).details

        if not order_details.is_open():
            logger.info(
                "order_reference_not_open",
                pending_authorization_id=pending.pk,
                order_id=order.pk,
                state=order_details.status.state,
            )
            return

        if pending.capture:
            self._request_new_authorization_and_capture(order, payment, pending)
        else:
            self._request_new_authorization(order, payment, pending)

    def _request_new_authorization(
        self,
        order: Order,
        payment: OrderPayment,
        pending: PendingAuthorization,
    ) -> None:
        capture = False

        base_amount = format_amount(payment.base_amount_authorized)
        method = method_registry.get_method_for_payment(payment)

        try:
            method.authorize_in_cron(payment=payment, amount=base_amount, capture=capture)
        except SoftDeclineError:
            self.soft_decline_pending_authorization(order, payment, pending, capture)
            return
        except PaymentGatewayError:
            self.hard_decline_pending_authorization(order, payment, pending, capture)
            return

        new_transaction = ledger.add_transaction(
            payment=payment,
            txn_type=PaymentTransaction.Type.AUTHORIZATION,
        )

        self.complete_pending_authorization(order, payment, pending, capture, new_transaction)

    def _request_new_authorization_and_capture(
        self,
        order: Order,
        payment: OrderPayment,
        pending: PendingAuthorization,
    ) -> None:
        capture = True

        invoice = invoices.get_invoice(pending.capture_id, order)
        base_amount = format_amount(invoice.base_grand_total)
        method = method_registry.get_method_for_payment(payment)

        # Контракт повторного запроса: decline-хендлеры получают capture=False,
        # т.е. отказ обрабатывается как authorize-only (invoice не отменяется).
        try:
            method.authorize_in_cron(payment=payment, amount=base_amount, capture=capture)
        except SoftDeclineError:
            self.soft_decline_pending_authorization(order, payment, pending, False)
            return
        except PaymentGatewayError:
            self.hard_decline_pending_authorization(order, payment, pending, False)
            return

        new_transaction = ledger.add_transaction(
            payment=payment,
            txn_type=PaymentTransaction.Type.CAPTURE,
            invoice=invoice,
            is_closed=True,
        )

        self.complete_pending_authorization(order, payment, pending, capture, new_transaction)

    # ------------------------------------------------------------------
    # Outcome handlers
    # ------------------------------------------------------------------
    def complete_pending_authorization(
        self,
        order: Order,
        payment: OrderPayment,
        pending: PendingAuthorization,
        capture: bool,
        new_transaction: PaymentTransaction | None = None,
    ) -> None:
        transaction_id = pending.capture_id if capture else pending.authorization_id

        set_processing(order=order, reason="Payment authorization completed")

        if capture:
            invoice = invoices.get_invoice_and_set_paid(transaction_id, order)

            if new_transaction is None:
                ledger.close_transaction(transaction_id, payment, order)
            else:
                invoice.transaction_id = new_transaction.txn_id
                invoice.save(update_fields=["transaction_id", "updated_at"])

            message = f"Captured amount of {order.format_base_amount(invoice.base_grand_total)} online"
            payment.base_amount_paid_online = format_amount(invoice.base_grand_total)
            payment_status, action = OrderPayment.Status.CAPTURED, "capture"
        else:
            message = f"Authorized amount of {order.format_base_amount(payment.base_amount_authorized)} online"
            payment_status, action = OrderPayment.Status.AUTHORIZED, "authorize"

        payment.save()
        record_payment_status(payment=payment, status=payment_status, action=action)

        transaction_ = new_transaction or ledger.get_transaction(transaction_id, payment, order)
        ledger.add_transaction_comment_to_order(payment=payment, transaction=transaction_, message=message)

        pending_id = pending.pk
        pending.delete()
        order.save()

        logger.info(
            "pending_authorization_completed",
            pending_authorization_id=pending_id,
            order_id=order.pk,
            capture=capture,
            transaction_id=transaction_.txn_id,
        )

    def soft_decline_pending_authorization(
        self,
        order: Order,
        payment: OrderPayment,
        pending: PendingAuthorization,
        capture: bool,
    ) -> None:
        self._decline_pending_authorization(SOFT_DECLINE, order, payment, pending, capture)

    def hard_decline_pending_authorization(
        self,
        order: Order,
        payment: OrderPayment,
        pending: PendingAuthorization,
        capture: bool,
    ) -> None:
        self._decline_pending_authorization(HARD_DECLINE, order, payment, pending, capture)

    def _decline_pending_authorization(
        self,
        kind: str,
        order: Order,
        payment: OrderPayment,
        pending: PendingAuthorization,
        capture: bool,
    ) -> None:
        policy = DECLINE_POLICIES[(kind, capture)]
        transaction_id = pending.capture_id if capture else pending.authorization_id

        if capture:
            if policy.cancel_invoice:
                invoice = invoices.get_invoice_and_set_cancelled(transaction_id, order)
            else:
                invoice = invoices.get_invoice(transaction_id, order)
            amount = invoice.base_grand_total
        else:
            amount = payment.base_amount_authorized

        message = f"Declined amount of {order.format_base_amount(amount)} online"

        if policy.notify_admin:
            add_capture_declined_notice(order)

        if policy.order_status is not None:
            _ORDER_STATUS_SETTERS[policy.order_status](order=order, reason=f"Payment authorization {kind} declined")

        transaction_ = ledger.get_transaction(transaction_id, payment, order)
        ledger.add_transaction_comment_to_order(payment=payment, transaction=transaction_, message=message)
        ledger.close_transaction(transaction_id, payment, order)

        pending_id = pending.pk
        if policy.retain_pending:
            pending.processed = True
            pending.save(update_fields=["processed", "updated_at"])
        else:
            pending.delete()

        order.save()

        logger.warning(
            "pending_authorization_declined",
            pending_authorization_id=pending_id,
            order_id=order.pk,
            decline=kind,
            capture=capture,
            retained=policy.retain_pending,
        )

        signals.dispatch(
            policy.event_name,
            sender=self.__class__,
            order=order,
            pending_authorization=pending,
        )
