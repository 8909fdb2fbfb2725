# -*- coding: utf-8 -*-
# config/dictionaries/models.py
from decimal import Decimal

from django.db import models


class Currency(models.Model):
    code = models.CharField(max_length=3, unique=True)  # ISO 4217
    name = models.CharField(max_length=64)
    symbol = models.CharField(max_length=8, blank=True, default="")

    class Meta:
        ordering = ["code"]

    def __str__(self) -> str:
        return self.code

    def format_amount(self, amount) -> str:
        value = Decimal(str(amount)).quantize(Decimal("0.01"))
        if self.symbol:
            return f"{self.symbol}{value:,}"
        return f"{value:,} {self.code}"


def format_currency(code: str, amount) -> str:
    """
    "€1,234.50" если валюта заведена в справочнике, иначе "1,234.50 EUR".
    """
    currency = Currency.objects.filter(code=code).first()
    if currency is None:
        currency = Currency(code=code, name=code)
    return currency.format_amount(amount)
