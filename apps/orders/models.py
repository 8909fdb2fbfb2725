
# apps/orders/models.py
from __future__ import annotations
from django.db import models
from decimal import Decimal
import uuid
from django.core.exceptions import ValidationError as DjangoValidationError


from config.orgs.models import OrgScopedModel, Organization
from config.dictionaries.models import format_currency





class Order(OrgScopedModel):
    STATUS_NEW = "new"
    STATUS_PENDING_PAYMENT = "pending_payment"
    STATUS_PROCESSING = "processing"
    STATUS_PAYMENT_REVIEW = "payment_review"
    STATUS_ON_HOLD = "on_hold"
    STATUS_COMPLETE = "complete"
    STATUS_CANCELLED = "cancelled"
    STATUS_CHOICES = (
        (STATUS_NEW, "New"),
        (STATUS_PENDING_PAYMENT, "Pending payment"),
        (STATUS_PROCESSING, "Processing"),
        (STATUS_PAYMENT_REVIEW, "Payment review"),
        (STATUS_ON_HOLD, "On hold"),
        (STATUS_COMPLETE, "Complete"),
        (STATUS_CANCELLED, "Cancelled"),
    )

    increment_id = models.CharField(max_length=32, db_index=True)

    status = models.CharField(
        max_length=16,
        choices=STATUS_CHOICES,
        default=STATUS_NEW,
    )

    base_currency_code = models.CharField(max_length=3, default="EUR")
    base_grand_total = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))

    # order reference на стороне gateway (нужен для повторной авторизации)
    gateway_order_reference_id = models.CharField(max_length=128, blank=True, default="")

    def __init__(self, *args, **kwargs):
        """
        Django создаёт объект модели как при загрузке из БД, так и при создании.
        Мы фиксируем статус "как был загружен", чтобы отловить попытку поменять его напрямую.
        """
        super().__init__(*args, **kwargs)
        self._loaded_status = self.status

    def save(self, *args, **kwargs):
        """
        ЖЁСТКИЙ ИНВАРИАНТ:
        - Нельзя менять Order.status напрямую через model.save().
        - Статус меняется ТОЛЬКО через use-case (apps.orders.logic.status_transitions),
          который:
            * проверяет FSM переход
            * пишет OrderStatusEvent

        Механика:
        - Если объект уже существует (есть pk) и status изменён относительно _loaded_status,
          то сохранение запрещаем, если use-case не выставил _status_change_allowed=True.
        """
        is_update = self.pk is not None
        status_changed = is_update and (self.status != getattr(self, "_loaded_status", None))
        allowed = getattr(self, "_status_change_allowed", False)

        if status_changed and not allowed:
            raise DjangoValidationError(
                {"status": "Order.status can only be changed via a use-case."}
            )

        super().save(*args, **kwargs)

        # После успешного сохранения обновляем "загруженный" статус.
        self._loaded_status = self.status

        # И сбрасываем флаг, чтобы нельзя было повторно использовать этот инстанс для обхода.
        if hasattr(self, "_status_change_allowed"):
            self._status_change_allowed = False

    def format_base_amount(self, amount) -> str:
        return format_currency(self.base_currency_code, amount)

    class Meta:
        ordering = ["id"]

    def __str__(self) -> str:
        return f"Order #{self.increment_id}"





class OrderStatusEvent(models.Model):
    public_id = models.UUIDField(default=uuid.uuid4, editable=False, unique=True)

    org = models.ForeignKey(Organization, on_delete=models.PROTECT, related_name="order_status_events")
    order = models.ForeignKey("orders.Order", on_delete=models.CASCADE, related_name="status_events")

    from_status = models.CharField(max_length=32)
    to_status = models.CharField(max_length=32)

    reason = models.CharField(max_length=255, blank=True, default="")
    metadata = models.JSONField(blank=True, default=dict)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=["org", "order", "created_at"]),
            models.Index(fields=["order", "created_at"]),
        ]

    def __str__(self) -> str:
        return f"{self.order_id}: {self.from_status} -> {self.to_status}"


class OrderComment(models.Model):
    """
    Аудит-комментарий к заказу ("Authorized amount of €10.00 online ...").

    Основной durable-след результата обработки платежа.
    """

    public_id = models.UUIDField(default=uuid.uuid4, editable=False, unique=True)

    org = models.ForeignKey(Organization, on_delete=models.PROTECT, related_name="order_comments")
    order = models.ForeignKey("orders.Order", on_delete=models.CASCADE, related_name="comments")
    transaction = models.ForeignKey(
        "payments.PaymentTransaction",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="order_comments",
    )

    message = models.TextField()
    is_customer_notified = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["id"]

    def __str__(self) -> str:
        return f"{self.order_id}: {self.message[:40]}"
