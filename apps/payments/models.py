# apps/payments/models.py
from decimal import Decimal

from django.db import models

from django.core.exceptions import ValidationError

from config.orgs.models import OrgScopedModel


class OrderPayment(OrgScopedModel):
    """
    Платёж по заказу.

    - org-scope обязателен: все уникальности (idempotency_key / external_id) работают ВНУТРИ org.
    - status меняем только через use-case (apps.payments.logic.payments.record_payment_status).
    - base_amount_authorized / base_amount_paid_online — суммы в базовой валюте заказа.
    """

    class Tender(models.TextChoices):
        CASH = "cash", "Cash"
        CARD = "card", "Card"
        PREPAID_EXTERNAL = "prepaid_external", "Prepaid external"

    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        AUTHORIZED = "authorized", "Authorized"
        CAPTURED = "captured", "Captured"
        REFUNDED = "refunded", "Refunded"
        VOIDED = "voided", "Voided"
        FAILED = "failed", "Failed"

    order = models.ForeignKey("orders.Order", on_delete=models.PROTECT, related_name="payments")

    tender = models.CharField(max_length=32, choices=Tender.choices, default=Tender.CARD)
    status = models.CharField(max_length=32, choices=Status.choices, default=Status.PENDING)

    amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    currency = models.CharField(max_length=8, default="EUR")

    base_amount_authorized = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    base_amount_paid_online = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))

    # Идемпотентность/интеграции
    idempotency_key = models.CharField(max_length=128, null=True, blank=True)
    external_id = models.CharField(max_length=128, null=True, blank=True)
    provider = models.CharField(max_length=64, default="manual")

    # id последней операции на стороне провайдера (authorization / capture)
    last_transaction_id = models.CharField(max_length=128, blank=True, default="")

    raw_provider_payload = models.JSONField(null=True, blank=True)

    # флаг (по умолчанию False) — use-case временно выставляет True
    _status_change_allowed: bool = False
    _loaded_status: str | None = None

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        # В момент создания объекта в памяти фиксируем статус как "загруженный"
        self._loaded_status = self.status

    @classmethod
    def from_db(cls, db, field_names, values):
        """
        Django вызывает from_db при загрузке из БД.
        Здесь фиксируем статус, чтобы отлавливать изменения позже.
        """
        instance = super().from_db(db, field_names, values)
        instance._loaded_status = instance.status
        instance._status_change_allowed = False
        return instance

    def save(self, *args, **kwargs):
        """
        Инвариант: статус нельзя менять прямым .save().
        Менять статус можно только через use-case, который выставляет
        payment._status_change_allowed = True перед сохранением.
        """
        if self.pk is not None:
            status_changed = (self._loaded_status is not None) and (self.status != self._loaded_status)
            if status_changed and not getattr(self, "_status_change_allowed", False):
                raise ValidationError("OrderPayment.status can only be changed via use-case")

        super().save(*args, **kwargs)

        # После успешного сохранения обновляем "загруженный" статус
        self._loaded_status = self.status
        self._status_change_allowed = False

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["org", "idempotency_key"], name="uniq_payment_org_idempotency"),
            models.UniqueConstraint(fields=["org", "external_id"], name="uniq_payment_org_external_id"),
        ]

    def __str__(self) -> str:
        return f"Payment({self.public_id}) {self.status} {self.amount} {self.currency}"


class PaymentEvent(OrgScopedModel):
    """
    Аудит жизненного цикла платежа (from_status -> to_status, action).
    """

    payment = models.ForeignKey("payments.OrderPayment", on_delete=models.CASCADE, related_name="events")

    from_status = models.CharField(max_length=32, null=True, blank=True)
    to_status = models.CharField(max_length=32)
    action = models.CharField(max_length=32)  # authorize / capture / ...

    metadata = models.JSONField(default=dict, blank=True)

    def __str__(self) -> str:
        return f"PaymentEvent({self.payment_id}) {self.action} {self.from_status}->{self.to_status}"


class Invoice(OrgScopedModel):
    STATE_OPEN = "open"
    STATE_PAID = "paid"
    STATE_CANCELLED = "cancelled"
    STATE_CHOICES = (
        (STATE_OPEN, "Open"),
        (STATE_PAID, "Paid"),
        (STATE_CANCELLED, "Cancelled"),
    )

    order = models.ForeignKey("orders.Order", on_delete=models.PROTECT, related_name="invoices")
    payment = models.ForeignKey(
        "payments.OrderPayment",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="invoices",
    )

    increment_id = models.CharField(max_length=32, blank=True, default="")
    state = models.CharField(max_length=16, choices=STATE_CHOICES, default=STATE_OPEN)
    base_grand_total = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))

    # id capture-операции на стороне gateway
    transaction_id = models.CharField(max_length=128, blank=True, default="", db_index=True)

    class Meta:
        ordering = ["id"]

    def __str__(self) -> str:
        return f"Invoice #{self.increment_id} {self.state} {self.base_grand_total}"


class PaymentTransaction(OrgScopedModel):
    """
    Ledger: одна запись на одну операцию gateway (authorization / capture),
    привязанная к паре order + payment.
    """

    class Type(models.TextChoices):
        AUTHORIZATION = "authorization", "Authorization"
        CAPTURE = "capture", "Capture"

    order = models.ForeignKey("orders.Order", on_delete=models.PROTECT, related_name="transactions")
    payment = models.ForeignKey("payments.OrderPayment", on_delete=models.PROTECT, related_name="transactions")
    invoice = models.ForeignKey(
        "payments.Invoice",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="transactions",
    )

    txn_id = models.CharField(max_length=128)
    parent_txn_id = models.CharField(max_length=128, blank=True, default="")
    txn_type = models.CharField(max_length=32, choices=Type.choices)
    is_closed = models.BooleanField(default=False)

    raw_details = models.JSONField(default=dict, blank=True)

    class Meta:
        ordering = ["id"]
        constraints = [
            models.UniqueConstraint(fields=["payment", "txn_id"], name="uniq_transaction_payment_txn_id"),
        ]

    def __str__(self) -> str:
        return f"Transaction({self.txn_id}) {self.txn_type} closed={self.is_closed}"


class PendingAuthorization(models.Model):
    """
    Незавершённый запрос авторизации/capture на стороне gateway.

    - order = NULL: запись "инертная", reconciler её игнорирует.
    - processed = False: авторизация уже существует на gateway, ждём финальный статус.
    - processed = True: авторизацию нужно (пере)запросить у gateway (после soft decline).
    - capture = True: запрос был authorize+capture (capture_id = id capture/invoice).

    Запись удаляется при успехе и hard decline, сохраняется при soft decline.
    """

    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="pending_authorizations",
    )
    payment = models.ForeignKey(
        "payments.OrderPayment",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="pending_authorizations",
    )

    authorization_id = models.CharField(max_length=128, blank=True, default="")
    capture_id = models.CharField(max_length=128, blank=True, default="")

    capture = models.BooleanField(default=False)
    processed = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["id"]

    def __str__(self) -> str:
        return f"PendingAuthorization({self.pk}) order={self.order_id} processed={self.processed}"


class AdminNotice(OrgScopedModel):
    SEVERITY_CRITICAL = "critical"
    SEVERITY_MAJOR = "major"
    SEVERITY_MINOR = "minor"
    SEVERITY_NOTICE = "notice"
    SEVERITY_CHOICES = (
        (SEVERITY_CRITICAL, "Critical"),
        (SEVERITY_MAJOR, "Major"),
        (SEVERITY_MINOR, "Minor"),
        (SEVERITY_NOTICE, "Notice"),
    )

    severity = models.CharField(max_length=16, choices=SEVERITY_CHOICES, default=SEVERITY_NOTICE)
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True, default="")

    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="admin_notices",
    )

    is_read = models.BooleanField(default=False)

    class Meta:
        ordering = ["-created_at", "-id"]

    def __str__(self) -> str:
        return f"[{self.severity}] {self.title}"
