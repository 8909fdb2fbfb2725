# config/orgs/org_context.py
from __future__ import annotations

from contextvars import ContextVar, Token

from .models import Organization

_current_org: ContextVar[Organization | None] = ContextVar("current_org", default=None)


def set_current_org(org: Organization) -> Token:
    """
    Выбирает активную org (store context) для текущего потока/задачи.

    Reconciler вызывает это ДО любых tenant-scoped вызовов gateway:
    registry клиента и метода оплаты берут merchant-аккаунт отсюда.
    Возвращает Token для reset_current_org().
    """
    return _current_org.set(org)


def reset_current_org(token: Token) -> None:
    """Возвращает store context, который был активен до set_current_org()."""
    _current_org.reset(token)


def get_current_org() -> Organization:
    org = _current_org.get()
    if org is None:
        raise LookupError("No active organization selected")
    return org
