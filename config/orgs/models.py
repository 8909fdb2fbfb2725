#config/orgs/models.py

import uuid
from django.db import models


class OrgScopedModel(models.Model):
    public_id = models.UUIDField(default=uuid.uuid4, editable=False, unique=True)
    org = models.ForeignKey("orgs.Organization", on_delete=models.CASCADE, related_name="%(class)ss")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class Organization(models.Model):
    """
    Магазин / tenant.

    Все gateway-операции выполняются в контексте конкретной org
    (у каждой org свой merchant-аккаунт и своя базовая валюта).
    """

    public_id = models.UUIDField(default=uuid.uuid4, editable=False, unique=True)

    name = models.CharField(max_length=255)
    base_currency_code = models.CharField(max_length=3, default="EUR")  # ISO 4217

    gateway_merchant_id = models.CharField(max_length=64, blank=True, default="", db_index=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]

    def __str__(self) -> str:
        return self.name
