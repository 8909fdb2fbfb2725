from django.core.management.base import BaseCommand
from django.db import transaction

from config.dictionaries.models import Currency

# code -> (name, symbol); суммы в комментариях к заказам форматируются по symbol
BASE_CURRENCIES = {
    "EUR": ("Euro", "€"),
    "USD": ("US Dollar", "$"),
    "GBP": ("Pound Sterling", "£"),
    "CZK": ("Czech Koruna", "Kč"),
}


class Command(BaseCommand):
    help = "Seed base currencies used for order amount formatting. Safe to run multiple times."

    @transaction.atomic
    def handle(self, *args, **options):
        for code, (name, symbol) in BASE_CURRENCIES.items():
            Currency.objects.update_or_create(
                code=code,
                defaults={"name": name, "symbol": symbol},
            )

        self.stdout.write(self.style.SUCCESS(f"Currencies seeded: {len(BASE_CURRENCIES)}."))
