import logging
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP

from django.db import transaction

from .models import Product, PricingRangeSetting

logger = logging.getLogger(__name__)

TWO_PLACES = Decimal("0.01")


@dataclass(frozen=True)
class PriceRange:
    id: str
    min_value: Decimal
    max_value: Decimal | None
    label: str

    def contains(self, cost: Decimal) -> bool:
        if cost < self.min_value:
            return False
        return self.max_value is None or cost < self.max_value


# percentages persisted in pricing_range_settings
DEFAULT_RANGES = (
    PriceRange("0-10", Decimal("0"), Decimal("10"), "0 - 10"),
    PriceRange("10-50", Decimal("10"), Decimal("50"), "10 - 50"),
    PriceRange("50-100", Decimal("50"), Decimal("100"), "50 - 100"),
    PriceRange("100-500", Decimal("100"), Decimal("500"), "100 - 500"),
    PriceRange("500+", Decimal("500"), None, "500+"),
)


def find_range(cost: Decimal, ranges=DEFAULT_RANGES) -> PriceRange | None:
    for price_range in ranges:
        if price_range.contains(cost):
            return price_range
    return None


def apply_percentage(cost: Decimal, percentage: Decimal) -> Decimal:
    factor = Decimal("1") + (Decimal(percentage) / Decimal("100"))
    return (Decimal(cost) * factor).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


class PricingService:
    @staticmethod
    def get_ranges():
        """
        Price ranges with their persisted markup percentage and how many
        products fall into each (by supplier cost, falling back to price).
        """
        stored = dict(PricingRangeSetting.objects.values_list("range_id", "percentage"))
        costs = [product.cost for product in Product.objects.only("price", "original_price")]

        ranges = []
        for price_range in DEFAULT_RANGES:
            ranges.append({
                "id": price_range.id,
                "label": price_range.label,
                "min_value": price_range.min_value,
                "max_value": price_range.max_value,
                "percentage": stored.get(price_range.id, Decimal("0")),
                "product_count": sum(1 for cost in costs if price_range.contains(cost)),
            })
        return {"ranges": ranges, "total_products": len(costs)}

    @staticmethod
    @transaction.atomic
    def apply_markup(percentages: dict[str, Decimal]) -> int:
        """
        Reprice products: price = cost * (1 + pct/100), rounded to 2 places.
        Ranges with 0% are left alone. Percentages are persisted afterwards.
        Returns the number of products updated.
        """
        unknown = set(percentages) - {r.id for r in DEFAULT_RANGES}
        if unknown:
            raise ValueError(f"Unknown price range(s): {', '.join(sorted(unknown))}")

        updated = 0
        for product in Product.objects.select_for_update().only("id", "price", "original_price"):
            price_range = find_range(product.cost)
            if price_range is None:
                continue
            pct = Decimal(percentages.get(price_range.id, 0))
            if pct == 0:
                continue
            Product.objects.filter(pk=product.pk).update(price=apply_percentage(product.cost, pct))
            updated += 1

        for range_id, pct in percentages.items():
            PricingRangeSetting.objects.update_or_create(range_id=range_id, defaults={"percentage": pct})

        logger.info(f"Pricing markup applied to {updated} product(s): {percentages}")
        return updated
