# apps/payments/exceptions.py
from __future__ import annotations


class PaymentGatewayError(Exception):
    """
    Базовая ошибка со стороны gateway / метода оплаты.

    Reconciler роутит в decline-хендлеры ТОЛЬКО наследников этого класса.
    Всё остальное (баги, DoesNotExist, ошибки БД) уходит наверх -> rollback.
    """


class GatewayUnavailableError(PaymentGatewayError):
    """Gateway вернул ошибку или неизвестный state/reason code."""


class DeclineError(PaymentGatewayError):
    def __init__(self, reason_code: str | None = None, message: str | None = None):
        self.reason_code = reason_code
        super().__init__(message or f"Authorization declined: {reason_code}")


class SoftDeclineError(DeclineError):
    """Временный отказ (например, невалидный метод оплаты): повторить позже."""


class HardDeclineError(DeclineError):
    """Окончательный отказ: заказ ставится on hold."""
