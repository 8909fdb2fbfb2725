# apps/payments/signals.py
from django.dispatch import Signal

# kwargs: order, pending_authorization
pending_authorization_soft_decline_after = Signal()
pending_authorization_hard_decline_after = Signal()

EVENTS = {
    "payment_pending_authorization_soft_decline_after": pending_authorization_soft_decline_after,
    "payment_pending_authorization_hard_decline_after": pending_authorization_hard_decline_after,
}


def dispatch(event_name: str, *, sender, **payload) -> None:
    """
    Синхронная публикация события; подписчики регистрируются снаружи.
    """
    EVENTS[event_name].send(sender=sender, **payload)
