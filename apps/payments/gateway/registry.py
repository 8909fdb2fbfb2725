# apps/payments/gateway/registry.py
from __future__ import annotations

from django.conf import settings
from django.utils.module_loading import import_string

from apps.payments.gateway.port import GatewayClientPort
from config.orgs.org_context import get_current_org

_override_client: GatewayClientPort | None = None


def get_client_for_org(org=None) -> GatewayClientPort:
    """
    Клиент gateway для merchant-аккаунта org.

    org=None: берём активную org из store context (LookupError если не выбрана).
    Класс клиента задаётся settings.PAYMENT_GATEWAY["CLIENT"] (dotted path),
    set_client() подменяет его целиком (dev/тесты).
    """
    if org is None:
        org = get_current_org()

    if _override_client is not None:
        return _override_client

    client_cls = import_string(settings.PAYMENT_GATEWAY["CLIENT"])
    return client_cls(org=org)


def set_client(client: GatewayClientPort) -> None:
    global _override_client
    _override_client = client


def reset_client() -> None:
    global _override_client
    _override_client = None


def get_timeout_s() -> int:
    return int(settings.PAYMENT_GATEWAY.get("TIMEOUT_S", 10))
